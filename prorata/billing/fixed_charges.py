# -*- coding: utf-8 -*-
"""
Agregacao de Fixed Charges
==========================

Implementa:
- FixedChargeBoundaries: janela de agregacao validada (pydantic)
- AggregationResult: resultado imutavel da agregacao
- prorated_units: soma de units x (dias do evento / dias do periodo)
- active_events: descarta eventos agendados cancelados por eventos criados depois
- FixedChargeAggregator: le o historico, seleciona os eventos da janela e
  aplica a variante prorateada ou nao prorateada

Cada evento substitui a contagem de unidades a partir do seu timestamp
(last-write-wins), nunca soma com os anteriores.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from .. import config
from ..database.models import FixedCharge, Subscription
from ..database.repositories import FixedChargeEventRepository
from .dates import as_utc, day_diff
from .exceptions import NoUsageEventsError

logger = logging.getLogger(__name__)


class FixedChargeBoundaries(BaseModel):
    """Janela [from_datetime, to_datetime] e duracao do periodo cobrado"""
    from_datetime: datetime
    to_datetime: datetime
    charges_duration_days: int = Field(gt=0, description="Dias do periodo cobrado")

    @field_validator("from_datetime", "to_datetime")
    @classmethod
    def normalize_to_utc(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.to_datetime < self.from_datetime:
            raise ValueError("to_datetime deve ser maior ou igual a from_datetime")
        return self


@dataclass(frozen=True)
class AggregationResult:
    """Resultado da agregacao de uma fixed charge"""
    aggregation: Decimal
    current_usage_units: Decimal
    full_units_number: Decimal
    count: int
    total_aggregated_units: Decimal
    full_period_days: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aggregation": str(self.aggregation),
            "current_usage_units": str(self.current_usage_units),
            "full_units_number": str(self.full_units_number),
            "count": self.count,
            "total_aggregated_units": str(self.total_aggregated_units),
            "full_period_days": self.full_period_days,
        }


def _units(value) -> Decimal:
    return Decimal(str(value if value is not None else 0))


def round_units(value: Decimal) -> Decimal:
    """Arredonda unidades fracionarias para UNITS_DECIMAL_PLACES (ROUND_HALF_UP)"""
    return value.quantize(Decimal(1).scaleb(-config.UNITS_DECIMAL_PLACES), rounding=ROUND_HALF_UP)


def _creation_key(event):
    return as_utc(event.created_at), event.id or 0


def _timeline_key(event):
    return (as_utc(event.timestamp),) + _creation_key(event)


def active_events(events: Sequence) -> List:
    """
    Descarta eventos cancelados e devolve o restante em ordem cronologica.

    Um evento agendado deixa de valer quando um evento criado depois dele
    tem timestamp anterior ao seu: a nova contagem de unidades substitui
    tudo o que estava agendado a partir dela.

    Args:
        events: Objetos com `timestamp`, `created_at`, `id` e `units`
    """
    survivors = []
    earliest_later = None

    for event in sorted(events, key=_creation_key, reverse=True):
        timestamp = as_utc(event.timestamp)
        if earliest_later is None or timestamp <= earliest_later:
            survivors.append(event)
            earliest_later = timestamp
        else:
            logger.debug(f"[FixedCharge] {event!r} cancelado por evento criado depois")

    return sorted(survivors, key=_timeline_key)


def prorated_units(events: Sequence, boundaries: FixedChargeBoundaries, tz_name: str = None) -> Decimal:
    """
    Soma prorateada das unidades de uma sequencia ordenada de eventos.

    Cada evento vale do seu timestamp (nunca antes de from_datetime) ate o
    timestamp do proximo evento, ou ate to_datetime para o ultimo. Eventos
    com zero unidades nao contribuem.

    Args:
        events: Objetos com `timestamp` e `units`, em ordem cronologica
        boundaries: Janela e duracao do periodo cobrado
        tz_name: Timezone da contagem de dias
    """
    window_start = boundaries.from_datetime
    total = Decimal("0")

    for index, event in enumerate(events):
        if index + 1 < len(events):
            next_timestamp = as_utc(events[index + 1].timestamp)
        else:
            next_timestamp = boundaries.to_datetime

        start = max(as_utc(event.timestamp), window_start)
        end = max(next_timestamp, window_start)
        duration_days = day_diff(start, end, tz_name)

        units = _units(event.units)
        if units > 0:
            total += units * Decimal(duration_days) / Decimal(boundaries.charges_duration_days)

    return round_units(total)


class FixedChargeAggregator:
    """
    Agregador de eventos de fixed charge.

    Uso:
        aggregator = FixedChargeAggregator(db)
        result = aggregator.aggregate(fixed_charge, subscription, {
            "from_datetime": period.start,
            "to_datetime": period.end,
            "charges_duration_days": 31,
        })
        result.aggregation
    """

    def __init__(self, db: Session):
        self.db = db
        self.events = FixedChargeEventRepository(db)

    def aggregate(
        self,
        fixed_charge: FixedCharge,
        subscription: Subscription,
        boundaries: Union[FixedChargeBoundaries, Mapping[str, Any]],
        tz_name: str = None,
        carry_over: bool = False
    ) -> AggregationResult:
        """
        Agrega os eventos da fixed charge na janela informada.

        Args:
            fixed_charge: Fixed charge agregada (define `code` e `prorated`)
            subscription: Assinatura dona dos eventos
            boundaries: FixedChargeBoundaries ou dict equivalente
            tz_name: Timezone explicito (padrao: o do customer)
            carry_over: Usa o ultimo evento anterior a janela como base

        Raises:
            NoUsageEventsError: nenhum evento na janela
            pydantic.ValidationError: limites invalidos
        """
        if not isinstance(boundaries, FixedChargeBoundaries):
            boundaries = FixedChargeBoundaries.model_validate(dict(boundaries))
        tz_name = tz_name or subscription.customer.applicable_timezone

        history = active_events(self.events.list_until(
            subscription.organization_id,
            subscription.subscription_id,
            fixed_charge.code,
            boundaries.to_datetime,
        ))
        previous = [event for event in history if as_utc(event.timestamp) < boundaries.from_datetime]
        events = history[len(previous):]

        if carry_over and previous:
            events = [previous[-1]] + events

        if not events:
            logger.warning(
                f"[FixedCharge] Nenhum evento de {fixed_charge.code} para subscription "
                f"{subscription.subscription_id} entre {boundaries.from_datetime.isoformat()} "
                f"e {boundaries.to_datetime.isoformat()}"
            )
            raise NoUsageEventsError(
                subscription.subscription_id,
                fixed_charge.code,
                boundaries.from_datetime,
                boundaries.to_datetime,
            )

        last_units = _units(events[-1].units)

        if not fixed_charge.prorated:
            return AggregationResult(
                aggregation=last_units,
                current_usage_units=last_units,
                full_units_number=last_units,
                count=len(events),
                total_aggregated_units=last_units,
                full_period_days=boundaries.charges_duration_days,
            )

        aggregation = prorated_units(events, boundaries, tz_name)

        logger.debug(
            f"[FixedCharge] {fixed_charge.code}/{subscription.subscription_id}: "
            f"{len(events)} eventos, agregacao prorateada {aggregation}"
        )
        return AggregationResult(
            aggregation=aggregation,
            current_usage_units=last_units,
            full_units_number=last_units,
            count=len(events),
            total_aggregated_units=last_units,
            full_period_days=boundaries.charges_duration_days,
        )
