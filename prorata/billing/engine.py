# -*- coding: utf-8 -*-
"""
Motor de Billing - ponto de entrada
===================================

BillingEngine escolhe a estrategia (advance/arrears) pelo plano da
assinatura e conecta resolvedor de periodo, coeficiente de rateio,
commitments e fixed charges. Nao tem regra de negocio propria.

Uso:
    with transaction_context() as db:
        engine = BillingEngine(db)
        engine.commitment_amount_cents(plan.commitment, invoice_subscription)
        engine.aggregate_fixed_charge(fixed_charge, subscription, invoice_subscription)
"""

from dataclasses import dataclass
from typing import Any, Mapping, Union

from sqlalchemy.orm import Session

from ..database.models import Commitment, FixedCharge, InvoiceSubscription, Subscription
from ..database.repositories import InvoiceSubscriptionRepository
from ..logging_config import get_billing_logger
from .commitments import CommitmentAmountCalculator
from .fixed_charges import AggregationResult, FixedChargeAggregator, FixedChargeBoundaries
from .periods import BillingPeriod
from .proration import ProrationCoefficientEngine
from .resolvers import BillingStrategy, strategy_for


@dataclass(frozen=True)
class EngineResolution:
    """Estrategia e periodo resolvidos para uma invoice subscription"""
    strategy: BillingStrategy
    anchor: InvoiceSubscription
    period: BillingPeriod
    coefficient_engine: ProrationCoefficientEngine


class BillingEngine:
    """
    Fachada do motor de rateio.

    Uso:
        engine = BillingEngine(db)
        resolution = engine.resolve(commitment, subscription, invoice_subscription)
        resolution.coefficient_engine.coefficient(subscription, invoice_subscription)
    """

    def __init__(self, db: Session, tz_name: str = None):
        """
        Args:
            db: Sessao do banco de dados SQLAlchemy
            tz_name: Timezone explicito para todas as contagens de dias
        """
        self.db = db
        self.tz_name = tz_name
        self.invoice_subscriptions = InvoiceSubscriptionRepository(db)
        self.aggregator = FixedChargeAggregator(db)

    def strategy_for(self, subscription: Subscription) -> BillingStrategy:
        return strategy_for(subscription, self.invoice_subscriptions, self.tz_name)

    def resolve(
        self,
        target: Union[Commitment, FixedCharge, None],
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription
    ) -> EngineResolution:
        """Seleciona a estrategia e resolve a ancora e o periodo"""
        strategy = self.strategy_for(subscription)
        anchor = strategy.anchor_invoice_subscription(subscription, invoice_subscription)
        period = strategy.resolve_period(subscription, invoice_subscription, anchor=anchor)

        billing_logger = get_billing_logger(
            __name__,
            subscription_id=subscription.subscription_id,
            invoice_id=invoice_subscription.invoice_id,
            organization_id=subscription.organization_id,
        )
        billing_logger.debug(
            f"[Engine] {target!r} resolvido com {strategy.name}: "
            f"{period.start.isoformat()} -> {period.end.isoformat()}"
        )

        return EngineResolution(
            strategy=strategy,
            anchor=anchor,
            period=period,
            coefficient_engine=ProrationCoefficientEngine(strategy),
        )

    # =========================================================================
    # COMMITMENTS
    # =========================================================================

    @staticmethod
    def _is_chargeable(commitment: Commitment, invoice_subscription: InvoiceSubscription) -> bool:
        return commitment is not None and invoice_subscription is not None and bool(commitment.amount_cents)

    def _calculator_for(self, invoice_subscription: InvoiceSubscription) -> CommitmentAmountCalculator:
        strategy = self.strategy_for(invoice_subscription.subscription)
        return CommitmentAmountCalculator(self.db, strategy=strategy, tz_name=self.tz_name)

    def commitment_amount_cents(
        self,
        commitment: Commitment,
        invoice_subscription: InvoiceSubscription
    ) -> int:
        """Commitment rateado em centavos; 0 sem nenhuma consulta quando nao ha o que cobrar"""
        if not self._is_chargeable(commitment, invoice_subscription):
            return 0
        return self._calculator_for(invoice_subscription).commitment_amount_cents(
            commitment, invoice_subscription
        )

    def true_up_amount_cents(
        self,
        commitment: Commitment,
        invoice_subscription: InvoiceSubscription,
        fees_amount_cents: int
    ) -> int:
        if not self._is_chargeable(commitment, invoice_subscription):
            return 0
        return self._calculator_for(invoice_subscription).true_up_amount_cents(
            commitment, invoice_subscription, fees_amount_cents
        )

    # =========================================================================
    # FIXED CHARGES
    # =========================================================================

    def fixed_charge_boundaries(
        self,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription
    ) -> FixedChargeBoundaries:
        """Limites de agregacao derivados do periodo resolvido"""
        strategy = self.strategy_for(subscription)
        period = strategy.resolve_period(subscription, invoice_subscription)
        return FixedChargeBoundaries(
            from_datetime=period.start,
            to_datetime=period.end,
            charges_duration_days=period.duration_days(strategy.timezone_for(subscription)),
        )

    def aggregate_fixed_charge(
        self,
        fixed_charge: FixedCharge,
        subscription: Subscription,
        invoice_subscription: InvoiceSubscription = None,
        boundaries: Union[FixedChargeBoundaries, Mapping[str, Any]] = None,
        carry_over: bool = False
    ) -> AggregationResult:
        """
        Agrega a fixed charge na janela informada ou, se omitida, no periodo
        resolvido para a invoice subscription.
        """
        if boundaries is None:
            boundaries = self.fixed_charge_boundaries(subscription, invoice_subscription)

        return self.aggregator.aggregate(
            fixed_charge,
            subscription,
            boundaries,
            tz_name=self.tz_name,
            carry_over=carry_over,
        )
