# -*- coding: utf-8 -*-
"""
Estrategias de Resolucao de Periodo
===================================

Implementa:
- BillingStrategy: contrato comum (ancora, inicio e fim do periodo)
- ArrearsBillingStrategy: cobranca no fim do periodo (pay in arrears)
- AdvanceBillingStrategy: cobranca no inicio do periodo (pay in advance)
- strategy_for: escolhe a estrategia a partir do plano da assinatura

A estrategia e escolhida uma vez por assinatura e passada explicitamente
para o motor de rateio.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from ..database.models import InvoiceSubscription, Subscription
from ..database.repositories import InvoiceSubscriptionRepository
from .exceptions import PeriodNotResolvableError
from .periods import BillingPeriod, PeriodCalculator

logger = logging.getLogger(__name__)


class BillingStrategy(ABC):
    """
    Resolve o periodo de cobranca de uma invoice subscription.

    Uso:
        strategy = strategy_for(subscription, InvoiceSubscriptionRepository(db))
        start = strategy.resolve_previous_period_start(subscription, invoice_subscription)
        end = strategy.resolve_period_end(subscription, invoice_subscription)
    """

    name = "base"

    def __init__(self, invoice_subscriptions: InvoiceSubscriptionRepository, tz_name: str = None):
        """
        Args:
            invoice_subscriptions: Repositorio de invoice subscriptions
            tz_name: Timezone explicito; se omitido usa o do customer
        """
        self.invoice_subscriptions = invoice_subscriptions
        self.tz_name = tz_name

    def timezone_for(self, subscription: Subscription) -> str:
        return self.tz_name or subscription.customer.applicable_timezone

    def _require_invoice_subscription(self, subscription, invoice_subscription):
        if invoice_subscription is None:
            logger.error(f"[Billing] Subscription {subscription.subscription_id} sem invoice subscription")
            raise PeriodNotResolvableError(subscription.subscription_id)

    @abstractmethod
    def anchor_invoice_subscription(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription
    ) -> InvoiceSubscription:
        """Invoice subscription que ancora a contagem de dias"""

    def resolve_period(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription,
        anchor: InvoiceSubscription = None
    ) -> BillingPeriod:
        """Periodo completo (sem considerar encerramento) que contem a ancora"""
        if anchor is None:
            anchor = self.anchor_invoice_subscription(subscription, invoice_subscription)
        calculator = PeriodCalculator.for_subscription(subscription, self.timezone_for(subscription))
        return calculator.period_containing(anchor.from_datetime)

    def resolve_previous_period_start(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription
    ) -> datetime:
        return self.resolve_period(subscription, invoice_subscription).start

    def resolve_period_end(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription
    ) -> datetime:
        return self.resolve_period(subscription, invoice_subscription).end

    def __repr__(self):
        return f"<{self.__class__.__name__} tz={self.tz_name}>"


class ArrearsBillingStrategy(BillingStrategy):
    """Pay in arrears: a fatura reflete o periodo ja decorrido"""

    name = "arrears"

    def anchor_invoice_subscription(self, subscription, invoice_subscription):
        self._require_invoice_subscription(subscription, invoice_subscription)
        return invoice_subscription


class AdvanceBillingStrategy(BillingStrategy):
    """
    Pay in advance: a fatura do periodo foi emitida antes do encerramento.

    Para uma assinatura encerrada, a ancora e a invoice subscription anterior
    da cadeia, a que ja cobrou o periodo.
    """

    name = "advance"

    def anchor_invoice_subscription(self, subscription, invoice_subscription):
        self._require_invoice_subscription(subscription, invoice_subscription)

        if not subscription.is_terminated:
            return invoice_subscription

        previous = self.invoice_subscriptions.get_previous(invoice_subscription)
        if previous is None:
            logger.error(
                f"[Billing] Nenhuma invoice subscription anterior a {invoice_subscription.invoice_id} "
                f"para subscription encerrada {subscription.subscription_id}"
            )
            raise PeriodNotResolvableError(
                subscription.subscription_id,
                invoice_subscription.invoice_id,
                message=(
                    f"Subscription {subscription.subscription_id} encerrada sem invoice "
                    f"subscription anterior a {invoice_subscription.invoice_id}"
                ),
            )

        logger.debug(
            f"[Billing] Subscription {subscription.subscription_id} encerrada: "
            f"ancora {previous.invoice_id} no lugar de {invoice_subscription.invoice_id}"
        )
        return previous


def strategy_for(
    subscription: Subscription,
    invoice_subscriptions: InvoiceSubscriptionRepository,
    tz_name: str = None
) -> BillingStrategy:
    """Seleciona a estrategia pelo `pay_in_advance` do plano"""
    strategy_class = AdvanceBillingStrategy if subscription.is_pay_in_advance else ArrearsBillingStrategy
    return strategy_class(invoice_subscriptions, tz_name=tz_name)
