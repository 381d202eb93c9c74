"""
Database configuration and session management.
"""

from contextlib import contextmanager
from sqlmodel import SQLModel, create_engine, Session
from typing import Generator, Iterator
import os
import logging

# Import all models to ensure they are registered with SQLModel
from assetcover.models import (
    Policy, Claim, UserPolicyIndex, AssetRegistration,
    PriceCacheEntry, RiskMultiplier, ProtocolState
)
from assetcover.cache import config_cache

logger = logging.getLogger("assetcover")

# Database URL - defaults to SQLite for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/assetcover.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables(bind=None):
    """Create database tables."""
    bind = bind or engine
    if bind.url.drivername.startswith("sqlite") and bind.url.database not in (None, "", ":memory:"):
        os.makedirs(os.path.dirname(os.path.abspath(bind.url.database)), exist_ok=True)
    SQLModel.metadata.create_all(bind)


def get_session() -> Generator[Session, None, None]:
    """Get database session."""
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Run one protocol operation as a single transaction.

    Commits when the block finishes, rolls every write back when it raises.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def load_seed_data(session: Session):
    """Write the deployment state: protocol row, seed assets and multipliers."""
    config = config_cache.get_protocol_config()
    seed_data = config_cache.get_seed_data()

    if session.get(ProtocolState, 1) is None:
        session.add(ProtocolState(
            id=1,
            owner=config["owner"],
            treasury=config["treasury"],
            protocol_fee_rate=config.get("protocol_fee_rate", 0),
            oracle_ref=config.get("oracle_ref"),
            dynamic_pricing=bool(config.get("dynamic_pricing", False))
        ))

    for asset in seed_data.get("assets", []):
        if session.get(AssetRegistration, asset["asset_contract"]) is None:
            session.add(AssetRegistration(
                asset_contract=asset["asset_contract"],
                symbol=asset["symbol"],
                decimals=asset["decimals"]
            ))

    for symbol, multiplier in seed_data.get("risk_multipliers", {}).items():
        if session.get(RiskMultiplier, symbol) is None:
            session.add(RiskMultiplier(symbol=symbol, multiplier=multiplier))

    session.commit()
    logger.info("Seed data loaded")


def initialize_database(bind=None):
    """Initialize database with tables and seed data."""
    bind = bind or engine
    create_db_and_tables(bind)
    with Session(bind) as session:
        load_seed_data(session)
    logger.info("Database initialization complete")
