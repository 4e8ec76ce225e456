# -*- coding: utf-8 -*-
"""
JSON Logging Configuration
==========================
Structured JSON logging for the proration engine.

Logs are sent to stdout; JSON in production/staging, readable text in
development.

Usage:
    from prorata.logging_config import setup_logging

    setup_logging()
"""

import sys
import logging
from datetime import datetime, timezone

from pythonjsonlogger.json import JsonFormatter

from . import config

# Campos de contexto de billing propagados para os logs
CONTEXT_FIELDS = ("subscription_id", "invoice_id", "organization_id")


class BillingJsonFormatter(JsonFormatter):
    """JSON formatter that stamps service metadata on every record."""

    def __init__(self, *args, **kwargs):
        self.service_name = kwargs.pop("service_name", config.SERVICE_NAME)
        self.environment = kwargs.pop("environment", config.ENVIRONMENT)
        super().__init__(*args, **kwargs)

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service_name
        log_record["environment"] = self.environment

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        # Add source location in debug mode
        if record.levelno <= logging.DEBUG:
            log_record["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName
            }


def setup_logging(
    level: str = None,
    service_name: str = None,
    json_format: bool = None
) -> None:
    """
    Setup structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        service_name: Service name for log entries
        json_format: Force JSON format (auto-detected if None)
    """
    level = level or config.LOG_LEVEL
    service_name = service_name or config.SERVICE_NAME

    # Auto-detect JSON format: use JSON in production, readable in dev
    if json_format is None:
        json_format = config.is_production()

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = BillingJsonFormatter(
            "%(message)s",
            service_name=service_name,
            environment=config.ENVIRONMENT,
        )
    else:
        # Readable format for development
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={level}, json={json_format}, env={config.ENVIRONMENT}")


class BillingContextAdapter(logging.LoggerAdapter):
    """Adapter that merges billing identifiers into every record's extra."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        extra.update({k: v for k, v in self.extra.items() if v is not None})
        kwargs["extra"] = extra
        return msg, kwargs


def get_billing_logger(
    name: str,
    subscription_id: str = None,
    invoice_id: str = None,
    organization_id: str = None
) -> BillingContextAdapter:
    """
    Get a logger carrying billing context.

    Usage:
        logger = get_billing_logger(__name__, subscription_id="SUB-1")
        logger.info("Computing commitment")
    """
    context = {
        "subscription_id": subscription_id,
        "invoice_id": invoice_id,
        "organization_id": organization_id,
    }
    return BillingContextAdapter(logging.getLogger(name), context)
