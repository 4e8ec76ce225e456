# -*- coding: utf-8 -*-
"""
Periodos de Cobranca
====================

Implementa:
- BillingPeriod: intervalo [start, end) de um periodo de cobranca
- PeriodCalculator: localiza o periodo que contem um instante, a partir
  do intervalo do plano (weekly/monthly/quarterly/yearly) e do alinhamento
  da assinatura (calendar/anniversary)

Os limites sao meias-noites no timezone do customer, expressas em UTC.
O fim de um periodo e o instante em que o proximo comeca.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Any, Tuple

from ..database.models import PlanInterval, BillingTime
from .dates import as_utc, day_diff, local_date, local_midnight


# Quantidade de meses por periodo
MONTH_STEPS = {
    PlanInterval.MONTHLY.value: 1,
    PlanInterval.QUARTERLY.value: 3,
    PlanInterval.YEARLY.value: 12,
}


@dataclass(frozen=True)
class BillingPeriod:
    """Periodo de cobranca imutavel: start inclusivo, end exclusivo"""
    start: datetime
    end: datetime

    def duration_days(self, tz_name: str = None) -> int:
        """Total de dias de calendario do periodo"""
        return day_diff(self.start, self.end, tz_name)

    def contains(self, moment) -> bool:
        return self.start <= as_utc(moment) < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


def build_date(year: int, month: int, day: int) -> date:
    """Cria a data ajustando dias inexistentes (31, 29/02) para o fim do mes"""
    days_in_month = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, days_in_month))


def _date_at_month_index(index: int, day: int) -> date:
    return build_date(index // 12, index % 12 + 1, day)


class PeriodCalculator:
    """
    Calculadora de periodos de cobranca.

    Uso:
        calculator = PeriodCalculator.for_subscription(subscription)

        period = calculator.period_containing(invoice_subscription.from_datetime)
        period.duration_days(customer.applicable_timezone)
    """

    def __init__(
        self,
        interval: str,
        billing_time: str = BillingTime.CALENDAR.value,
        anchor=None,
        tz_name: str = None
    ):
        """
        Args:
            interval: Intervalo do plano (weekly, monthly, quarterly, yearly)
            billing_time: calendar ou anniversary
            anchor: Instante de referencia dos periodos anniversary (subscription_at)
            tz_name: Timezone do customer
        """
        if interval != PlanInterval.WEEKLY.value and interval not in MONTH_STEPS:
            raise ValueError(f"Intervalo de plano nao suportado: {interval}")
        if billing_time == BillingTime.ANNIVERSARY.value and anchor is None:
            raise ValueError("Periodos anniversary exigem uma data de referencia")

        self.interval = interval
        self.billing_time = billing_time
        self.tz_name = tz_name
        self.anchor_date = local_date(anchor, tz_name) if anchor is not None else None

    @classmethod
    def for_subscription(cls, subscription, tz_name: str = None) -> "PeriodCalculator":
        """Monta a calculadora a partir do plano e da assinatura"""
        tz_name = tz_name or subscription.customer.applicable_timezone
        return cls(
            interval=subscription.plan.interval,
            billing_time=subscription.billing_time,
            anchor=subscription.subscription_at,
            tz_name=tz_name,
        )

    @property
    def is_anniversary(self) -> bool:
        return self.billing_time == BillingTime.ANNIVERSARY.value

    # =========================================================================
    # PERIODOS
    # =========================================================================

    def period_containing(self, moment) -> BillingPeriod:
        """Periodo que contem o instante informado"""
        start_day, end_day = self._bounds_for(local_date(moment, self.tz_name))
        return BillingPeriod(
            start=local_midnight(start_day, self.tz_name),
            end=local_midnight(end_day, self.tz_name),
        )

    def next_period(self, period: BillingPeriod) -> BillingPeriod:
        return self.period_containing(period.end)

    def previous_period(self, period: BillingPeriod) -> BillingPeriod:
        day_before = local_date(period.start, self.tz_name) - timedelta(days=1)
        return self.period_containing(local_midnight(day_before, self.tz_name))

    def _bounds_for(self, day: date) -> Tuple[date, date]:
        if self.interval == PlanInterval.WEEKLY.value:
            return self._weekly_bounds(day)
        return self._monthly_bounds(day, MONTH_STEPS[self.interval])

    def _weekly_bounds(self, day: date) -> Tuple[date, date]:
        # Calendar: semanas comecam na segunda-feira
        weekday = self.anchor_date.weekday() if self.is_anniversary else 0
        start = day - timedelta(days=(day.weekday() - weekday) % 7)
        return start, start + timedelta(days=7)

    def _monthly_bounds(self, day: date, step: int) -> Tuple[date, date]:
        if self.is_anniversary:
            anchor_month, anchor_day = self.anchor_date.month, self.anchor_date.day
        else:
            anchor_month, anchor_day = 1, 1

        index = day.year * 12 + day.month - 1
        index -= (index - (anchor_month - 1)) % step

        start = _date_at_month_index(index, anchor_day)
        if start > day:
            index -= step
            start = _date_at_month_index(index, anchor_day)

        return start, _date_at_month_index(index + step, anchor_day)
