# -*- coding: utf-8 -*-
"""
Modelos de Dados do Motor de Rateio
===================================

Implementa os modelos SQLAlchemy para:
- Organization: Organizacao (tenant) dona dos dados
- Customer: Cliente com timezone de faturamento
- Plan: Plano com intervalo e momento de cobranca (advance/arrears)
- Commitment: Compromisso minimo de gasto do plano
- Subscription: Assinatura de um customer em um plano
- InvoiceSubscription: Fatia faturavel de uma assinatura em uma fatura
- FixedCharge / FixedChargeEvent: Cobrancas fixas e seus eventos de unidades

Todos os timestamps sao gravados em UTC (naive).
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, JSON, ForeignKey,
    Boolean, Numeric, Index, func
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Any

from .connection import Base
from .. import config


# =============================================================================
# ENUMS
# =============================================================================

class PlanInterval(str, Enum):
    """Intervalo de cobranca do plano"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class BillingTime(str, Enum):
    """Alinhamento do periodo de cobranca"""
    CALENDAR = "calendar"
    ANNIVERSARY = "anniversary"


class SubscriptionStatus(str, Enum):
    """Status da Assinatura"""
    PENDING = "pending"
    ACTIVE = "active"
    TERMINATED = "terminated"
    CANCELED = "canceled"


class CommitmentType(str, Enum):
    """Tipos de Commitment"""
    MINIMUM_COMMITMENT = "minimum_commitment"


# =============================================================================
# ORGANIZATION / CUSTOMER
# =============================================================================

class Organization(Base):
    """Organizacao (tenant) dona de customers, planos e eventos"""
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), default="UTC")

    created_at = Column(DateTime, default=datetime.utcnow)

    customers = relationship("Customer", back_populates="organization")

    def __repr__(self):
        return f"<Organization {self.organization_id}: {self.name}>"


class Customer(Base):
    """Cliente faturado; o timezone define a contagem de dias"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(50), unique=True, nullable=False, index=True)
    organization_id = Column(
        String(50), ForeignKey("organizations.organization_id"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="customers")
    subscriptions = relationship("Subscription", back_populates="customer")

    @property
    def applicable_timezone(self) -> str:
        """Timezone do customer, da organizacao ou o padrao configurado"""
        if self.timezone:
            return self.timezone
        if self.organization is not None and self.organization.timezone:
            return self.organization.timezone
        return config.DEFAULT_TIMEZONE

    def __repr__(self):
        return f"<Customer {self.customer_id} tz={self.applicable_timezone}>"


# =============================================================================
# PLAN / COMMITMENT / FIXED CHARGE
# =============================================================================

class Plan(Base):
    """
    Plano de assinatura.

    `pay_in_advance` define se a fatura do periodo e emitida no inicio
    (advance) ou no fim (arrears) do periodo.
    """
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(String(50), unique=True, nullable=False, index=True)
    organization_id = Column(
        String(50), ForeignKey("organizations.organization_id"), nullable=False, index=True
    )

    name = Column(String(100), nullable=False)
    interval = Column(String(20), nullable=False, default=PlanInterval.MONTHLY.value)
    pay_in_advance = Column(Boolean, default=False, nullable=False)

    # Precos em centavos para evitar problemas de float
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), default="USD")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    commitment = relationship("Commitment", back_populates="plan", uselist=False)
    fixed_charges = relationship("FixedCharge", back_populates="plan")
    subscriptions = relationship("Subscription", back_populates="plan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "name": self.name,
            "interval": self.interval,
            "pay_in_advance": self.pay_in_advance,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
        }

    def __repr__(self):
        timing = "advance" if self.pay_in_advance else "arrears"
        return f"<Plan {self.plan_id}: {self.interval}/{timing}>"


class Commitment(Base):
    """Compromisso minimo de gasto (minimum commitment) de um plano"""
    __tablename__ = "commitments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    commitment_id = Column(String(50), unique=True, nullable=False, index=True)
    plan_id = Column(String(50), ForeignKey("plans.plan_id"), nullable=False, index=True)

    commitment_type = Column(String(30), default=CommitmentType.MINIMUM_COMMITMENT.value)
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), default="USD")
    invoice_display_name = Column(String(200), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    plan = relationship("Plan", back_populates="commitment")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitment_id": self.commitment_id,
            "plan_id": self.plan_id,
            "commitment_type": self.commitment_type,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "invoice_display_name": self.invoice_display_name,
        }

    def __repr__(self):
        return f"<Commitment {self.commitment_id}: {self.amount_cents} {self.currency}>"


class FixedCharge(Base):
    """Cobranca fixa (ex: assentos) do plano, opcionalmente prorateada"""
    __tablename__ = "fixed_charges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fixed_charge_id = Column(String(50), unique=True, nullable=False, index=True)
    plan_id = Column(String(50), ForeignKey("plans.plan_id"), nullable=False, index=True)

    code = Column(String(100), nullable=False, index=True)
    prorated = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    plan = relationship("Plan", back_populates="fixed_charges")

    def __repr__(self):
        return f"<FixedCharge {self.fixed_charge_id}: {self.code} prorated={self.prorated}>"


# =============================================================================
# SUBSCRIPTION
# =============================================================================

class Subscription(Base):
    """
    Assinatura de um customer em um plano.

    `subscription_at` ancora os periodos de anniversary; `terminated_at`
    so e preenchido quando a assinatura foi encerrada.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(String(50), unique=True, nullable=False, index=True)
    external_id = Column(String(100), nullable=True, index=True)

    customer_id = Column(String(50), ForeignKey("customers.customer_id"), nullable=False, index=True)
    plan_id = Column(String(50), ForeignKey("plans.plan_id"), nullable=False, index=True)

    status = Column(String(20), default=SubscriptionStatus.ACTIVE.value, index=True)
    billing_time = Column(String(20), default=BillingTime.CALENDAR.value)

    subscription_at = Column(DateTime, nullable=False)
    started_at = Column(DateTime, nullable=True)
    terminated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    customer = relationship("Customer", back_populates="subscriptions")
    plan = relationship("Plan", back_populates="subscriptions")
    invoice_subscriptions = relationship("InvoiceSubscription", back_populates="subscription")

    @property
    def is_terminated(self) -> bool:
        return self.status == SubscriptionStatus.TERMINATED.value

    @property
    def is_pay_in_advance(self) -> bool:
        return bool(self.plan and self.plan.pay_in_advance)

    @property
    def is_anniversary(self) -> bool:
        return self.billing_time == BillingTime.ANNIVERSARY.value

    @property
    def organization_id(self) -> str:
        return self.customer.organization_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subscription_id": self.subscription_id,
            "external_id": self.external_id,
            "customer_id": self.customer_id,
            "plan_id": self.plan_id,
            "status": self.status,
            "billing_time": self.billing_time,
            "subscription_at": self.subscription_at.isoformat() if self.subscription_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "terminated_at": self.terminated_at.isoformat() if self.terminated_at else None,
        }

    def __repr__(self):
        return f"<Subscription {self.subscription_id}: {self.status}>"


# =============================================================================
# INVOICE SUBSCRIPTION
# =============================================================================

class InvoiceSubscription(Base):
    """
    Fatia faturavel de uma assinatura dentro de uma fatura.

    As fatias de uma assinatura formam uma cadeia cronologica; `to_datetime`
    so e nulo na fatia corrente, e nesse caso `timestamp` e o fim efetivo.
    """
    __tablename__ = "invoice_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(String(50), nullable=False, index=True)
    subscription_id = Column(
        String(50), ForeignKey("subscriptions.subscription_id"), nullable=False, index=True
    )

    from_datetime = Column(DateTime, nullable=False)
    to_datetime = Column(DateTime, nullable=True)
    timestamp = Column(DateTime, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    subscription = relationship("Subscription", back_populates="invoice_subscriptions")

    __table_args__ = (
        Index("ix_invoice_subscriptions_sub_from", "subscription_id", "from_datetime"),
    )

    @hybrid_property
    def effective_end(self):
        return self.to_datetime if self.to_datetime is not None else self.timestamp

    @effective_end.expression
    def effective_end(cls):
        return func.coalesce(cls.to_datetime, cls.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "invoice_id": self.invoice_id,
            "subscription_id": self.subscription_id,
            "from_datetime": self.from_datetime.isoformat() if self.from_datetime else None,
            "to_datetime": self.to_datetime.isoformat() if self.to_datetime else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<InvoiceSubscription {self.invoice_id}/{self.subscription_id}: {self.from_datetime} -> {self.effective_end}>"


# =============================================================================
# FIXED CHARGE EVENT
# =============================================================================

class FixedChargeEvent(Base):
    """
    Evento de unidades de uma cobranca fixa.

    Append-only: cada evento substitui a contagem de unidades a partir
    do seu timestamp.
    """
    __tablename__ = "fixed_charge_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(50), unique=True, nullable=False, index=True)

    organization_id = Column(String(50), nullable=False, index=True)
    subscription_id = Column(
        String(50), ForeignKey("subscriptions.subscription_id"), nullable=False, index=True
    )
    fixed_charge_id = Column(String(50), ForeignKey("fixed_charges.fixed_charge_id"), nullable=True)
    code = Column(String(100), nullable=False)

    units = Column(Numeric(30, 10), nullable=False, default=Decimal("0"))
    properties = Column(JSON, default=dict)

    timestamp = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index(
            "ix_fixed_charge_events_lookup",
            "organization_id", "subscription_id", "code", "timestamp"
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "subscription_id": self.subscription_id,
            "code": self.code,
            "units": str(self.units),
            "properties": self.properties or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<FixedChargeEvent {self.event_id}: {self.code}={self.units} @ {self.timestamp}>"
