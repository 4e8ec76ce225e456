"""
Conexao com o Banco de Dados - Prorata
Suporta PostgreSQL (producao) e SQLite (fallback local)
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from .. import config

# ============================================
# Configuracao do Banco de Dados
# ============================================

DATABASE_URL = config.DATABASE_URL

# Detectar tipo de banco
IS_POSTGRES = "postgresql" in DATABASE_URL

# ============================================
# Engine Sync
# ============================================

if IS_POSTGRES:
    engine = create_engine(
        DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=config.DB_ECHO
    )
else:
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=config.DB_ECHO
    )


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Habilita foreign keys no SQLite"""
    if IS_POSTGRES:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ============================================
# Base para os modelos
# ============================================

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Obtem sessao do banco (uso como dependency/context)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_context() -> Generator[Session, None, None]:
    """
    Context manager sincrono com transaction boundaries.

    As leituras de invoice subscriptions e fixed charge events de um mesmo
    calculo devem acontecer dentro de um unico contexto para enxergarem o
    mesmo snapshot.

    Uso:
        with transaction_context() as db:
            engine = BillingEngine(db)
            engine.commitment_amount_cents(commitment, invoice_subscription)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Inicializa o banco de dados criando todas as tabelas"""
    # Importar modelos para registrar no metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    db_type = "PostgreSQL" if IS_POSTGRES else "SQLite"
    print(f"[Prorata DB] Banco de dados {db_type} inicializado")
    return True
