# -*- coding: utf-8 -*-
"""
Pytest Configuration and Fixtures
=================================

Shared fixtures for the Prorata test suite: in-memory database, sample
organization/customer and factories for plans, subscriptions, invoice
subscriptions and fixed charge events.
"""

import sys
import uuid
from pathlib import Path
from datetime import datetime
from decimal import Decimal

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from prorata.database.connection import Base
from prorata.database.models import (
    Organization, Customer, Plan, Commitment, FixedCharge, Subscription,
    PlanInterval, BillingTime, SubscriptionStatus
)
from prorata.database.repositories import (
    InvoiceSubscriptionRepository, FixedChargeEventRepository
)


def generate_unique_id(prefix: str) -> str:
    """Generate a unique ID for test fixtures"""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """Create test database engine - in memory for isolation"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# MODEL FIXTURES
# =============================================================================

@pytest.fixture
def sample_organization(db_session):
    """Create a sample organization (UTC)"""
    organization = Organization(
        organization_id=generate_unique_id("ORG"),
        name="Test Organization",
        timezone="UTC",
    )
    db_session.add(organization)
    db_session.commit()
    return organization


@pytest.fixture
def sample_customer(db_session, sample_organization):
    """Create a sample customer without own timezone"""
    customer = Customer(
        customer_id=generate_unique_id("CUS"),
        organization_id=sample_organization.organization_id,
        name="Test Customer",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def make_plan(db_session, sample_organization):
    """Factory de planos, com commitment opcional"""
    def _make_plan(
        interval=PlanInterval.MONTHLY.value,
        pay_in_advance=False,
        commitment_cents=None,
        amount_cents=10000
    ):
        plan = Plan(
            plan_id=generate_unique_id("PLN"),
            organization_id=sample_organization.organization_id,
            name=f"Plan {interval}",
            interval=interval,
            pay_in_advance=pay_in_advance,
            amount_cents=amount_cents,
        )
        db_session.add(plan)
        if commitment_cents is not None:
            db_session.add(Commitment(
                commitment_id=generate_unique_id("COM"),
                plan_id=plan.plan_id,
                amount_cents=commitment_cents,
                invoice_display_name="Minimum commitment",
            ))
        db_session.commit()
        return plan
    return _make_plan


@pytest.fixture
def make_subscription(db_session, sample_customer):
    """Factory de assinaturas"""
    def _make_subscription(
        plan,
        subscription_at=datetime(2024, 1, 1),
        billing_time=BillingTime.CALENDAR.value,
        terminated_at=None,
        customer=None
    ):
        status = SubscriptionStatus.TERMINATED.value if terminated_at else SubscriptionStatus.ACTIVE.value
        subscription = Subscription(
            subscription_id=generate_unique_id("SUB"),
            external_id=generate_unique_id("EXT"),
            customer_id=(customer or sample_customer).customer_id,
            plan_id=plan.plan_id,
            status=status,
            billing_time=billing_time,
            subscription_at=subscription_at,
            started_at=subscription_at,
            terminated_at=terminated_at,
        )
        db_session.add(subscription)
        db_session.commit()
        return subscription
    return _make_subscription


@pytest.fixture
def make_invoice_subscription(db_session):
    """Factory de invoice subscriptions (timestamp padrao: fim da fatia)"""
    repository = InvoiceSubscriptionRepository(db_session)

    def _make_invoice_subscription(subscription, from_datetime, to_datetime, timestamp=None):
        return repository.create({
            "subscription_id": subscription.subscription_id,
            "from_datetime": from_datetime,
            "to_datetime": to_datetime,
            "timestamp": timestamp or to_datetime or from_datetime,
        })
    return _make_invoice_subscription


@pytest.fixture
def make_fixed_charge(db_session):
    """Factory de fixed charges"""
    def _make_fixed_charge(plan, code="seats", prorated=False):
        fixed_charge = FixedCharge(
            fixed_charge_id=generate_unique_id("FXC"),
            plan_id=plan.plan_id,
            code=code,
            prorated=prorated,
        )
        db_session.add(fixed_charge)
        db_session.commit()
        return fixed_charge
    return _make_fixed_charge


@pytest.fixture
def make_event(db_session):
    """Factory de fixed charge events"""
    repository = FixedChargeEventRepository(db_session)

    def _make_event(subscription, fixed_charge, units, timestamp, created_at=None):
        data = {
            "organization_id": subscription.organization_id,
            "subscription_id": subscription.subscription_id,
            "fixed_charge_id": fixed_charge.fixed_charge_id,
            "code": fixed_charge.code,
            "units": Decimal(str(units)),
            "timestamp": timestamp,
        }
        if created_at is not None:
            data["created_at"] = created_at
        return repository.create(data)
    return _make_event


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Configuracao inicial do pytest - registra markers customizados"""
    config.addinivalue_line("markers", "unit: marca testes unitarios")
    config.addinivalue_line("markers", "integration: marca testes de integracao")
