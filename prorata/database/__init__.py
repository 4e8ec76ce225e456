"""
Prorata Database Package
"""
from .connection import Base, SessionLocal, get_db, init_db, transaction_context, engine
from .models import (
    Organization,
    Customer,
    Plan,
    Commitment,
    FixedCharge,
    Subscription,
    InvoiceSubscription,
    FixedChargeEvent,
    PlanInterval,
    BillingTime,
    SubscriptionStatus,
    CommitmentType
)

__all__ = [
    # Connection
    "Base",
    "SessionLocal",
    "get_db",
    "init_db",
    "transaction_context",
    "engine",
    # Models
    "Organization",
    "Customer",
    "Plan",
    "Commitment",
    "FixedCharge",
    "Subscription",
    "InvoiceSubscription",
    "FixedChargeEvent",
    # Enums
    "PlanInterval",
    "BillingTime",
    "SubscriptionStatus",
    "CommitmentType"
]
