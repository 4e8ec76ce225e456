# -*- coding: utf-8 -*-
"""
Repositorios para acesso ao banco de dados - Prorata

Leituras de faixa (range scans) usadas pelo motor de rateio. Os
parametros de data sao normalizados para UTC naive, o formato das colunas.
"""
import uuid
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import List, Optional, Iterable

from sqlalchemy.orm import Session
from sqlalchemy import and_, asc, desc

from .models import InvoiceSubscription, FixedChargeEvent


def _generate_id(prefix: str) -> str:
    """Gera um ID unico com prefixo"""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def as_naive_utc(value) -> datetime:
    """Normaliza datas e datetimes (naive = UTC) para UTC naive"""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# =============================================================================
# INVOICE SUBSCRIPTION REPOSITORY
# =============================================================================

class InvoiceSubscriptionRepository:
    """Repositorio para fatias faturaveis (invoice subscriptions)"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: dict) -> InvoiceSubscription:
        """Cria nova invoice subscription"""
        if "invoice_id" not in data:
            data["invoice_id"] = _generate_id("INV")

        for key in ("from_datetime", "to_datetime", "timestamp"):
            if data.get(key) is not None:
                data[key] = as_naive_utc(data[key])

        invoice_subscription = InvoiceSubscription(**data)
        self.db.add(invoice_subscription)
        self.db.commit()
        self.db.refresh(invoice_subscription)
        return invoice_subscription

    def get_by_id(self, record_id: int) -> Optional[InvoiceSubscription]:
        """Busca invoice subscription por ID"""
        return self.db.query(InvoiceSubscription).filter(InvoiceSubscription.id == record_id).first()

    def list_for_subscription(
        self,
        subscription_id: str,
        invoice_ids: Iterable[str] = None
    ) -> List[InvoiceSubscription]:
        """Lista as fatias da assinatura em ordem do fim efetivo"""
        query = self.db.query(InvoiceSubscription).filter(
            InvoiceSubscription.subscription_id == subscription_id
        )
        if invoice_ids is not None:
            query = query.filter(InvoiceSubscription.invoice_id.in_(list(invoice_ids)))
        return query.order_by(asc(InvoiceSubscription.effective_end), asc(InvoiceSubscription.id)).all()

    def get_previous(self, invoice_subscription: InvoiceSubscription) -> Optional[InvoiceSubscription]:
        """Fatia imediatamente anterior na cadeia da mesma assinatura"""
        return self.db.query(InvoiceSubscription).filter(
            and_(
                InvoiceSubscription.subscription_id == invoice_subscription.subscription_id,
                InvoiceSubscription.id != invoice_subscription.id,
                InvoiceSubscription.from_datetime < as_naive_utc(invoice_subscription.from_datetime),
            )
        ).order_by(desc(InvoiceSubscription.effective_end), desc(InvoiceSubscription.id)).first()

    def list_period_slices(
        self,
        subscription_id: str,
        period_start: datetime,
        period_end: datetime,
        anchor_from: datetime
    ) -> List[InvoiceSubscription]:
        """
        Fatias do periodo ate a fatia ancora, em ordem do fim efetivo.

        Args:
            subscription_id: ID da assinatura
            period_start: Inicio do periodo
            period_end: Fim do periodo
            anchor_from: from_datetime da fatia ancora

        Returns:
            Fatias com from_datetime em [period_start, anchor_from] e fim
            efetivo (COALESCE(to_datetime, timestamp)) em [period_start, period_end]
        """
        start = as_naive_utc(period_start)
        end = as_naive_utc(period_end)

        return self.db.query(InvoiceSubscription).filter(
            and_(
                InvoiceSubscription.subscription_id == subscription_id,
                InvoiceSubscription.from_datetime >= start,
                InvoiceSubscription.from_datetime <= as_naive_utc(anchor_from),
                InvoiceSubscription.effective_end >= start,
                InvoiceSubscription.effective_end <= end,
            )
        ).order_by(asc(InvoiceSubscription.effective_end), asc(InvoiceSubscription.id)).all()


# =============================================================================
# FIXED CHARGE EVENT REPOSITORY
# =============================================================================

class FixedChargeEventRepository:
    """Repositorio para eventos de fixed charges (append-only)"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: dict) -> FixedChargeEvent:
        """Registra novo evento"""
        if "event_id" not in data:
            data["event_id"] = _generate_id("FCE")
        data["timestamp"] = as_naive_utc(data["timestamp"])
        if "units" in data:
            data["units"] = Decimal(str(data["units"]))

        event = FixedChargeEvent(**data)
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def _scope(self, organization_id: str, subscription_id: str, code: str):
        return self.db.query(FixedChargeEvent).filter(
            and_(
                FixedChargeEvent.organization_id == organization_id,
                FixedChargeEvent.subscription_id == subscription_id,
                FixedChargeEvent.code == code,
            )
        )

    def list_until(
        self,
        organization_id: str,
        subscription_id: str,
        code: str,
        to_datetime: datetime
    ) -> List[FixedChargeEvent]:
        """
        Historico de eventos com timestamp <= to_datetime.

        Ordenado por timestamp (desempate por created_at e id). Inclui os
        eventos anteriores a janela: e deles que saem a base do carry-over e
        os cancelamentos de eventos agendados.
        """
        return self._scope(organization_id, subscription_id, code).filter(
            FixedChargeEvent.timestamp <= as_naive_utc(to_datetime)
        ).order_by(
            asc(FixedChargeEvent.timestamp),
            asc(FixedChargeEvent.created_at),
            asc(FixedChargeEvent.id),
        ).all()
