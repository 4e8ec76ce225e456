# -*- coding: utf-8 -*-
"""
Testes do BillingEngine
=======================

Cenarios ponta a ponta: selecao de estrategia, resolucao de periodo,
commitments e fixed charges pela fachada.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from prorata.billing.engine import BillingEngine, EngineResolution
from prorata.billing.exceptions import PeriodNotResolvableError
from prorata.billing.proration import ProrationCoefficientEngine
from prorata.billing.resolvers import AdvanceBillingStrategy, ArrearsBillingStrategy
from prorata.database.models import Commitment, InvoiceSubscription


@pytest.fixture
def engine_facade(db_session):
    return BillingEngine(db_session)


class TestStrategyDispatch:
    """Testes para a selecao de estrategia."""

    @pytest.mark.integration
    def test_strategy_for(self, engine_facade, make_plan, make_subscription):
        """Deve despachar pelo pay_in_advance do plano."""
        advance = make_subscription(make_plan(pay_in_advance=True))
        arrears = make_subscription(make_plan(pay_in_advance=False))

        assert isinstance(engine_facade.strategy_for(advance), AdvanceBillingStrategy)
        assert isinstance(engine_facade.strategy_for(arrears), ArrearsBillingStrategy)


class TestResolve:
    """Testes para BillingEngine.resolve."""

    @pytest.mark.integration
    def test_resolution(self, engine_facade, make_plan, make_subscription, make_invoice_subscription):
        """Deve retornar estrategia, ancora, periodo e motor de coeficiente."""
        plan = make_plan(commitment_cents=10000)
        subscription = make_subscription(plan)
        invoice_subscription = make_invoice_subscription(subscription, datetime(2024, 1, 1), datetime(2024, 2, 1))

        resolution = engine_facade.resolve(plan.commitment, subscription, invoice_subscription)

        assert isinstance(resolution, EngineResolution)
        assert isinstance(resolution.strategy, ArrearsBillingStrategy)
        assert resolution.anchor is invoice_subscription
        assert resolution.period.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert resolution.period.end == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert isinstance(resolution.coefficient_engine, ProrationCoefficientEngine)
        assert resolution.coefficient_engine.coefficient(subscription, invoice_subscription) == Decimal(1)

    @pytest.mark.integration
    def test_advance_terminated_resolves_previous(
        self, engine_facade, make_plan, make_subscription, make_invoice_subscription
    ):
        """Deve resolver a ancora anterior em advance encerrado."""
        plan = make_plan(pay_in_advance=True, commitment_cents=120_00)
        subscription = make_subscription(plan, terminated_at=datetime(2024, 1, 16, 12, 0))
        previous = make_invoice_subscription(
            subscription, datetime(2024, 1, 1), datetime(2024, 2, 1), timestamp=datetime(2024, 1, 1)
        )
        current = make_invoice_subscription(
            subscription, datetime(2024, 1, 16, 12, 0), datetime(2024, 1, 16, 12, 0)
        )

        resolution = engine_facade.resolve(plan.commitment, subscription, current)

        assert resolution.anchor == previous
        assert engine_facade.commitment_amount_cents(plan.commitment, current) == 5806

    @pytest.mark.integration
    def test_missing_invoice_subscription(self, engine_facade, make_plan, make_subscription):
        """Deve falhar sem invoice subscription."""
        subscription = make_subscription(make_plan())

        with pytest.raises(PeriodNotResolvableError):
            engine_facade.resolve(None, subscription, None)


class TestCommitmentEntryPoints:
    """Testes dos pontos de entrada de commitment."""

    @pytest.mark.integration
    def test_commitment_amount(self, engine_facade, make_plan, make_subscription, make_invoice_subscription):
        """Deve calcular o commitment rateado pela fachada."""
        plan = make_plan(commitment_cents=120_00)
        subscription = make_subscription(plan, terminated_at=datetime(2024, 1, 16, 23, 59))
        invoice_subscription = make_invoice_subscription(
            subscription, datetime(2024, 1, 1), datetime(2024, 1, 16, 23, 59)
        )

        assert engine_facade.commitment_amount_cents(plan.commitment, invoice_subscription) == 5806
        assert engine_facade.true_up_amount_cents(plan.commitment, invoice_subscription, 1806) == 4000

    @pytest.mark.integration
    def test_short_circuit_without_invoice_subscription(self, engine_facade, make_plan):
        """Deve retornar 0 sem invoice subscription."""
        plan = make_plan(commitment_cents=10000)

        assert engine_facade.commitment_amount_cents(plan.commitment, None) == 0

    @pytest.mark.integration
    def test_zero_amount_issues_no_query(self, engine, make_plan, make_subscription, make_invoice_subscription):
        """Deve retornar 0 sem nenhum SQL, nem carregamento de subscription ou plano."""
        plan = make_plan(commitment_cents=0)
        subscription = make_subscription(plan, terminated_at=datetime(2024, 1, 16))
        invoice_subscription = make_invoice_subscription(subscription, datetime(2024, 1, 1), datetime(2024, 1, 16))

        session = sessionmaker(bind=engine)()
        commitment = session.get(Commitment, plan.commitment.id)
        loaded = session.get(InvoiceSubscription, invoice_subscription.id)
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine, "before_cursor_execute", record)
        try:
            facade = BillingEngine(session)
            assert facade.commitment_amount_cents(commitment, loaded) == 0
            assert facade.true_up_amount_cents(commitment, loaded, 500) == 0
        finally:
            event.remove(engine, "before_cursor_execute", record)
            session.close()

        assert statements == []

    @pytest.mark.integration
    def test_explicit_timezone(self, db_session, make_plan, make_subscription, make_invoice_subscription):
        """Deve aplicar o timezone explicito da fachada."""
        plan = make_plan(commitment_cents=3100)
        subscription = make_subscription(plan)
        # 01/01 00:00 JST -> 17/01 00:00 JST
        invoice_subscription = make_invoice_subscription(
            subscription, datetime(2023, 12, 31, 15, 0), datetime(2024, 1, 16, 15, 0)
        )

        engine_facade = BillingEngine(db_session, tz_name="Asia/Tokyo")

        assert engine_facade.commitment_amount_cents(plan.commitment, invoice_subscription) == 1600


class TestFixedChargeEntryPoints:
    """Testes dos pontos de entrada de fixed charges."""

    @pytest.mark.integration
    def test_boundaries_from_period(self, engine_facade, make_plan, make_subscription, make_invoice_subscription):
        """Deve derivar a janela do periodo resolvido."""
        subscription = make_subscription(make_plan())
        invoice_subscription = make_invoice_subscription(subscription, datetime(2024, 2, 1), datetime(2024, 3, 1))

        boundaries = engine_facade.fixed_charge_boundaries(subscription, invoice_subscription)

        assert boundaries.from_datetime == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert boundaries.to_datetime == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert boundaries.charges_duration_days == 29

    @pytest.mark.integration
    def test_aggregate_with_derived_boundaries(
        self, engine_facade, make_plan, make_subscription, make_invoice_subscription,
        make_fixed_charge, make_event
    ):
        """Deve agregar na janela do periodo quando nenhuma e informada."""
        plan = make_plan()
        subscription = make_subscription(plan)
        seats = make_fixed_charge(plan, prorated=True)
        invoice_subscription = make_invoice_subscription(subscription, datetime(2024, 1, 1), datetime(2024, 2, 1))
        make_event(subscription, seats, 10, datetime(2024, 1, 1))
        make_event(subscription, seats, 7, datetime(2024, 1, 20))

        result = engine_facade.aggregate_fixed_charge(seats, subscription, invoice_subscription)

        assert result.aggregation == Decimal("8.83871")
        assert result.full_period_days == 31

    @pytest.mark.integration
    def test_aggregate_with_explicit_boundaries(
        self, engine_facade, make_plan, make_subscription, make_fixed_charge, make_event
    ):
        """Deve usar os limites informados pelo chamador."""
        plan = make_plan()
        subscription = make_subscription(plan)
        seats = make_fixed_charge(plan, prorated=False)
        make_event(subscription, seats, 5, datetime(2024, 1, 2))
        make_event(subscription, seats, 8, datetime(2024, 1, 10))

        result = engine_facade.aggregate_fixed_charge(
            seats,
            subscription,
            boundaries={
                "from_datetime": datetime(2024, 1, 1),
                "to_datetime": datetime(2024, 1, 5),
                "charges_duration_days": 4,
            },
        )

        assert result.aggregation == 5
        assert result.count == 1
