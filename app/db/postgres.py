"""
SQL connection and payout ledger schema.

The ledger is the only relational data: every released payout is one row.
The unique constraint makes releasing the same module twice impossible.
"""
import logging

from sqlalchemy import (
    create_engine, text, MetaData, Table, Column, Integer, String, Numeric,
    DateTime, UniqueConstraint
)
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) has no QueuePool sizing
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


engine = create_engine(
    settings.postgres_url,
    echo=False,
    **_engine_options(settings.postgres_url)
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

metadata = MetaData()

module_payouts = Table(
    "module_payouts",
    metadata,
    Column("payout_id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", String(64), nullable=False, index=True),
    Column("module_id", String(64), nullable=False),
    Column("squad_id", String(64), nullable=True),
    Column("member_id", String(128), nullable=False, index=True),
    Column("amount", Numeric(12, 2), nullable=False),
    # 'main' for module payouts, 'compensation' for blocker compensation
    Column("source", String(16), nullable=False),
    # Blocker id for compensation rows, module id again for main rows
    Column("reference_id", String(64), nullable=False),
    Column("released_at", DateTime, nullable=False),
    UniqueConstraint("job_id", "module_id", "member_id", "source", "reference_id",
                     name="uq_module_payout"),
)


def init_postgres_schema():
    """Create ledger tables if they don't exist."""
    metadata.create_all(engine)
    logger.info("Payout ledger schema ready")


@contextmanager
def get_db_session():
    """
    One transaction per block: committed on exit, rolled back on any error.

        with get_db_session() as db:
            db.execute(module_payouts.insert(), rows)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """True when the ledger database answers a trivial query."""
    try:
        with engine.connect() as conn:
            return conn.scalar(text("SELECT 1")) == 1
    except Exception as e:
        logger.warning("Ledger database unreachable: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """Read-only query helper; rows come back as plain dicts."""
    with engine.connect() as conn:
        return [dict(row) for row in conn.execute(text(sql), params or {}).mappings()]
