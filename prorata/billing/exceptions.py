# -*- coding: utf-8 -*-
"""
Excecoes do motor de rateio.

Nenhuma delas e re-tentada dentro do motor: a geracao de fatura deve
abortar e expor o defeito em vez de cobrar a menos ou a mais.
"""


class BillingComputationError(Exception):
    """Base para falhas de calculo de billing"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class PeriodNotResolvableError(BillingComputationError):
    """Nenhuma invoice subscription encontrada para resolver o periodo"""

    def __init__(self, subscription_id: str, invoice_id: str = None, message: str = None):
        self.subscription_id = subscription_id
        self.invoice_id = invoice_id
        super().__init__(
            message or f"Periodo nao resolvivel para subscription {subscription_id} (invoice {invoice_id})"
        )


class NoUsageEventsError(BillingComputationError):
    """Janela de agregacao sem nenhum fixed charge event"""

    def __init__(self, subscription_id: str, code: str, from_datetime=None, to_datetime=None):
        self.subscription_id = subscription_id
        self.code = code
        self.from_datetime = from_datetime
        self.to_datetime = to_datetime
        super().__init__(
            f"Nenhum evento de uso para {code} na subscription {subscription_id} "
            f"entre {from_datetime} e {to_datetime}"
        )


class DegeneratePeriodError(BillingComputationError):
    """Periodo total com zero (ou menos) dias"""

    def __init__(self, total_days: int, period_start=None, period_end=None):
        self.total_days = total_days
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            f"Periodo degenerado ({total_days} dias) entre {period_start} e {period_end}"
        )


class ProrationError(BillingComputationError):
    """Dias decorridos negativos: fim efetivo anterior ao inicio da fatia"""

    def __init__(self, elapsed_days: int, subscription_id: str = None):
        self.elapsed_days = elapsed_days
        self.subscription_id = subscription_id
        super().__init__(
            f"Dias decorridos negativos ({elapsed_days}) para subscription {subscription_id}"
        )
