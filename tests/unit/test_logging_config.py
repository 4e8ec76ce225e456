# -*- coding: utf-8 -*-
"""
Testes Unitarios - Logging
"""

import json
import logging

import pytest

from prorata.logging_config import (
    BillingJsonFormatter,
    BillingContextAdapter,
    get_billing_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Restaura handlers e nivel do root logger apos o teste"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def make_record(**extra):
    record = logging.LogRecord(
        name="prorata.billing.proration",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Coeficiente calculado",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestBillingJsonFormatter:
    """Testes para o formatter JSON."""

    def test_service_and_context_fields(self):
        """Deve incluir service, environment e contexto de billing."""
        formatter = BillingJsonFormatter("%(message)s", service_name="prorata-test", environment="staging")

        payload = json.loads(formatter.format(make_record(subscription_id="SUB-1", invoice_id="INV-1")))

        assert payload["message"] == "Coeficiente calculado"
        assert payload["service"] == "prorata-test"
        assert payload["environment"] == "staging"
        assert payload["level"] == "INFO"
        assert payload["subscription_id"] == "SUB-1"
        assert payload["invoice_id"] == "INV-1"
        assert "source" not in payload

    def test_missing_context_is_omitted(self):
        """Deve omitir campos de contexto ausentes."""
        formatter = BillingJsonFormatter("%(message)s")

        payload = json.loads(formatter.format(make_record()))

        assert "organization_id" not in payload


@pytest.mark.unit
class TestSetupLogging:
    """Testes para setup_logging."""

    def test_json_handler(self, restore_root_logger):
        """Deve configurar um unico handler JSON."""
        setup_logging(level="DEBUG", json_format=True)

        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, BillingJsonFormatter)
        assert restore_root_logger.level == logging.DEBUG

    def test_readable_handler(self, restore_root_logger):
        """Deve usar formato legivel fora de producao."""
        setup_logging(level="WARNING", json_format=False)

        formatter = restore_root_logger.handlers[0].formatter
        assert not isinstance(formatter, BillingJsonFormatter)
        assert "%(levelname)-8s" in formatter._fmt
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


@pytest.mark.unit
class TestBillingContextAdapter:
    """Testes para get_billing_logger."""

    def test_injects_non_empty_context(self):
        """Deve injetar apenas identificadores preenchidos."""
        adapter = get_billing_logger(__name__, subscription_id="SUB-1", organization_id="ORG-1")

        msg, kwargs = adapter.process("mensagem", {})

        assert isinstance(adapter, BillingContextAdapter)
        assert msg == "mensagem"
        assert kwargs["extra"] == {"subscription_id": "SUB-1", "organization_id": "ORG-1"}

    def test_keeps_call_extra(self):
        """Deve preservar extras passados na chamada."""
        adapter = get_billing_logger(__name__, invoice_id="INV-9")

        _, kwargs = adapter.process("mensagem", {"extra": {"attempt": 2}})

        assert kwargs["extra"] == {"attempt": 2, "invoice_id": "INV-9"}
