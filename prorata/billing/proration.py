# -*- coding: utf-8 -*-
"""
Coeficiente de Rateio
=====================

coefficient = dias_decorridos / dias_totais

- dias_totais: dias de calendario do periodo completo resolvido pela estrategia
- dias_decorridos: do inicio da primeira fatia do periodo ate o encerramento
  da assinatura (ou o fim da fatia ancora; um fim em 23:59:59 fecha na
  meia-noite seguinte)

Ambos contados no timezone do customer.
"""

import logging
from decimal import Decimal

from ..database.models import InvoiceSubscription, Subscription
from .dates import closing_midnight, day_diff
from .exceptions import DegeneratePeriodError, PeriodNotResolvableError, ProrationError
from .resolvers import BillingStrategy

logger = logging.getLogger(__name__)


class ProrationCoefficientEngine:
    """
    Calcula o coeficiente de rateio de uma invoice subscription.

    Uso:
        engine = ProrationCoefficientEngine(strategy)
        engine.coefficient(subscription, invoice_subscription)  # Decimal em (0, 1]
    """

    def __init__(self, strategy: BillingStrategy):
        self.strategy = strategy
        self.invoice_subscriptions = strategy.invoice_subscriptions

    @staticmethod
    def ratio(elapsed_days: int, total_days: int, period=None, subscription_id: str = None) -> Decimal:
        """
        Razao entre dias decorridos e dias totais.

        Raises:
            DegeneratePeriodError: se total_days <= 0
            ProrationError: se elapsed_days < 0
        """
        if total_days <= 0:
            logger.error(f"[Proration] Periodo degenerado para subscription {subscription_id}: {total_days} dias")
            raise DegeneratePeriodError(
                total_days,
                period.start if period is not None else None,
                period.end if period is not None else None,
            )
        if elapsed_days < 0:
            logger.error(f"[Proration] Dias decorridos negativos para subscription {subscription_id}: {elapsed_days}")
            raise ProrationError(elapsed_days, subscription_id)

        return Decimal(min(elapsed_days, total_days)) / Decimal(total_days)

    def coefficient(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription,
        tz_name: str = None
    ) -> Decimal:
        """
        Coeficiente de rateio da invoice subscription.

        Args:
            subscription: Assinatura cobrada
            invoice_subscription: Fatia faturavel corrente
            tz_name: Timezone explicito (padrao: o da estrategia ou do customer)

        Raises:
            PeriodNotResolvableError: nenhuma fatia no periodo resolvido
        """
        tz_name = tz_name or self.strategy.timezone_for(subscription)

        anchor = self.strategy.anchor_invoice_subscription(subscription, invoice_subscription)
        period = self.strategy.resolve_period(subscription, invoice_subscription, anchor=anchor)

        slices = self.invoice_subscriptions.list_period_slices(
            subscription.subscription_id,
            period.start,
            period.end,
            anchor.from_datetime,
        )
        if not slices:
            logger.error(
                f"[Proration] Nenhuma invoice subscription de {subscription.subscription_id} "
                f"entre {period.start.isoformat()} e {period.end.isoformat()}"
            )
            raise PeriodNotResolvableError(subscription.subscription_id, anchor.invoice_id)

        if subscription.is_terminated and subscription.terminated_at is not None:
            endpoint = subscription.terminated_at
        else:
            # Fatias fechadas em 23:59:59 contam o ultimo dia
            endpoint = closing_midnight(anchor.effective_end, tz_name)

        elapsed_days = day_diff(slices[0].from_datetime, endpoint, tz_name)
        total_days = period.duration_days(tz_name)

        result = self.ratio(elapsed_days, total_days, period, subscription.subscription_id)

        logger.debug(
            f"[Proration] {subscription.subscription_id} ({self.strategy.name}): "
            f"{elapsed_days}/{total_days} dias = {result}"
        )
        return result
