# -*- coding: utf-8 -*-
"""
Valor de Commitment Rateado
===========================

Implementa:
- Valor do minimum commitment proporcional aos dias cobrados
- True-up: diferenca devida quando as fees do periodo ficam abaixo do commitment
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from ..database.models import Commitment, InvoiceSubscription
from ..database.repositories import InvoiceSubscriptionRepository
from .proration import ProrationCoefficientEngine
from .resolvers import BillingStrategy, strategy_for

logger = logging.getLogger(__name__)


def round_cents(amount: Decimal) -> int:
    """Arredonda um valor monetario para centavos inteiros (ROUND_HALF_UP)"""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CommitmentAmountCalculator:
    """
    Calculadora do valor de commitment por invoice subscription.

    Uso:
        calculator = CommitmentAmountCalculator(db)
        calculator.commitment_amount_cents(plan.commitment, invoice_subscription)
    """

    def __init__(self, db: Session, strategy: BillingStrategy = None, tz_name: str = None):
        """
        Args:
            db: Sessao do banco de dados SQLAlchemy
            strategy: Estrategia ja escolhida; se omitida, escolhida pelo plano
            tz_name: Timezone explicito
        """
        self.db = db
        self.strategy = strategy
        self.tz_name = tz_name
        self.invoice_subscriptions = InvoiceSubscriptionRepository(db)

    def _strategy_for(self, subscription) -> BillingStrategy:
        if self.strategy is not None:
            return self.strategy
        return strategy_for(subscription, self.invoice_subscriptions, self.tz_name)

    def commitment_amount_cents(
        self,
        commitment: Commitment,
        invoice_subscription: InvoiceSubscription,
        tz_name: str = None
    ) -> int:
        """
        Valor do commitment em centavos para a invoice subscription.

        Retorna 0 sem nenhuma consulta quando o commitment ou a invoice
        subscription estao ausentes, ou quando o commitment vale 0.
        """
        if commitment is None or invoice_subscription is None or not commitment.amount_cents:
            return 0

        subscription = invoice_subscription.subscription
        engine = ProrationCoefficientEngine(self._strategy_for(subscription))
        coefficient = engine.coefficient(subscription, invoice_subscription, tz_name or self.tz_name)

        amount = round_cents(Decimal(commitment.amount_cents) * coefficient)

        logger.info(
            f"[Commitment] {commitment.commitment_id} na invoice {invoice_subscription.invoice_id}: "
            f"{commitment.amount_cents} x {coefficient:.4f} = {amount}"
        )
        return amount

    def true_up_amount_cents(
        self,
        commitment: Commitment,
        invoice_subscription: InvoiceSubscription,
        fees_amount_cents: int,
        tz_name: str = None
    ) -> int:
        """Diferenca entre o commitment rateado e as fees do periodo (nunca negativa)"""
        amount = self.commitment_amount_cents(commitment, invoice_subscription, tz_name)
        true_up = max(0, amount - int(fees_amount_cents or 0))

        if true_up:
            logger.info(
                f"[Commitment] True-up de {true_up} centavos na invoice "
                f"{invoice_subscription.invoice_id} (fees: {fees_amount_cents})"
            )
        return true_up
