# -*- coding: utf-8 -*-
"""
Configuracoes do Prorata
========================

Motor de rateio (proration) de commitments e fixed charges.
Valores lidos de variaveis de ambiente (.env carregado via python-dotenv).
"""
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Carregar variaveis de ambiente
load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = PROJECT_ROOT / "prorata"
DATABASE_DIR = PACKAGE_DIR / "database"
PRORATA_DB = DATABASE_DIR / "prorata.db"

# =============================================================================
# DATABASE
# =============================================================================

# PostgreSQL (producao) ou SQLite (fallback local)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{PRORATA_DB}")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))

# =============================================================================
# BILLING
# =============================================================================

# Timezone usado quando nem o customer nem a organizacao definem um
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# Casas decimais das agregacoes de unidades (valores monetarios sempre em centavos)
UNITS_DECIMAL_PLACES = int(os.getenv("UNITS_DECIMAL_PLACES", 5))

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
SERVICE_NAME = os.getenv("SERVICE_NAME", "prorata")


def is_production() -> bool:
    """Verifica se esta em ambiente de producao"""
    return ENVIRONMENT in ("production", "staging")


# =============================================================================
# ENVIRONMENT VALIDATION
# =============================================================================

class ConfigValidationError(Exception):
    """Erro de validacao de configuracao"""
    pass


def validate_environment(raise_on_error: bool = False) -> dict:
    """
    Valida as configuracoes de billing no startup.

    Args:
        raise_on_error: Se True, levanta excecao em caso de erro

    Returns:
        Dict com status da validacao:
        {
            "valid": bool,
            "errors": list[str],
            "environment": str
        }
    """
    import logging
    logger = logging.getLogger(__name__)

    result = {
        "valid": True,
        "errors": [],
        "environment": ENVIRONMENT,
    }

    try:
        ZoneInfo(DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        result["errors"].append(f"DEFAULT_TIMEZONE invalido: {DEFAULT_TIMEZONE}")

    if UNITS_DECIMAL_PLACES < 0:
        result["errors"].append(f"UNITS_DECIMAL_PLACES deve ser >= 0: {UNITS_DECIMAL_PLACES}")

    if is_production() and DATABASE_URL.startswith("sqlite"):
        result["errors"].append("DATABASE_URL aponta para SQLite em producao")

    if result["errors"]:
        result["valid"] = False
        for error in result["errors"]:
            logger.error(f"[Config] {error}")
        if raise_on_error:
            raise ConfigValidationError("; ".join(result["errors"]))

    return result
