# -*- coding: utf-8 -*-
"""
Modulo de Billing - Motor de Rateio
===================================

Este modulo implementa:
- Contagem de dias por calendario no timezone do customer
- Periodos de cobranca calendar/anniversary (weekly a yearly)
- Estrategias pay in advance / pay in arrears
- Coeficiente de rateio e valor de minimum commitment (com true-up)
- Agregacao de fixed charges prorateadas e nao prorateadas
"""

from .dates import day_diff, as_utc, local_date, local_midnight, closing_midnight
from .exceptions import (
    BillingComputationError,
    PeriodNotResolvableError,
    NoUsageEventsError,
    DegeneratePeriodError,
    ProrationError,
)
from .periods import BillingPeriod, PeriodCalculator, build_date
from .resolvers import (
    BillingStrategy,
    AdvanceBillingStrategy,
    ArrearsBillingStrategy,
    strategy_for,
)
from .proration import ProrationCoefficientEngine
from .commitments import CommitmentAmountCalculator, round_cents
from .fixed_charges import (
    FixedChargeAggregator,
    FixedChargeBoundaries,
    AggregationResult,
    prorated_units,
    active_events,
    round_units,
)
from .engine import BillingEngine, EngineResolution

__all__ = [
    # Datas e periodos
    "day_diff",
    "as_utc",
    "local_date",
    "local_midnight",
    "closing_midnight",
    "BillingPeriod",
    "PeriodCalculator",
    "build_date",
    # Excecoes
    "BillingComputationError",
    "PeriodNotResolvableError",
    "NoUsageEventsError",
    "DegeneratePeriodError",
    "ProrationError",
    # Estrategias
    "BillingStrategy",
    "AdvanceBillingStrategy",
    "ArrearsBillingStrategy",
    "strategy_for",
    # Servicos
    "ProrationCoefficientEngine",
    "CommitmentAmountCalculator",
    "round_cents",
    "FixedChargeAggregator",
    "FixedChargeBoundaries",
    "AggregationResult",
    "prorated_units",
    "active_events",
    "round_units",
    "BillingEngine",
    "EngineResolution",
]
