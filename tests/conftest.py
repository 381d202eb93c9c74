"""
Shared fixtures: an in-memory database seeded from the shipped config and
in-memory collaborators.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from assetcover.context import TxContext
from assetcover.db import get_session, initialize_database, atomic
from assetcover.deps import get_gateway
from assetcover.gateway import Gateway, InMemoryNativeLedger, InMemoryToken, StaticPriceOracle
from assetcover.main import app
from assetcover.services.ledger import set_oracle, set_dynamic_pricing

OWNER = "SP_PROTOCOL_OWNER"
TREASURY = "SP_PROTOCOL_TREASURY"
ALICE = "SP_ALICE"
BOB = "SP_BOB"
USDA = "SP_TOKEN_USDA"
XBTC = "SP_TOKEN_XBTC"
ORACLE_REF = "main-oracle"

STARTING_BALANCE = 1_000_000_000


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    initialize_database(engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def oracle():
    return StaticPriceOracle()


@pytest.fixture
def gateway(oracle):
    balances = {ALICE: STARTING_BALANCE, BOB: STARTING_BALANCE, TREASURY: STARTING_BALANCE}
    return Gateway(
        native=InMemoryNativeLedger(balances),
        tokens={
            USDA: InMemoryToken("USD Asset", "USDA", 6, balances, token_uri="https://example.org/usda.json"),
            XBTC: InMemoryToken("Wrapped BTC", "xBTC", 8, balances),
        },
        oracles={ORACLE_REF: oracle}
    )


@pytest.fixture
def make_ctx(session, gateway):
    """Build an operation context for a caller at a height."""
    def _make(caller, height=100):
        return TxContext(session=session, caller=caller, height=height, gateway=gateway)
    return _make


@pytest.fixture
def run(session):
    """Run a service call as one committed-or-rolled-back operation."""
    def _run(fn, *args, **kwargs):
        with atomic(session):
            return fn(*args, **kwargs)
    return _run


@pytest.fixture
def configure_oracle(make_ctx, run):
    def _configure(dynamic=False):
        ctx = make_ctx(OWNER)
        run(set_oracle, ctx, ORACLE_REF)
        if dynamic:
            run(set_dynamic_pricing, ctx, True)
    return _configure


@pytest.fixture
def client(engine, gateway):
    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def headers(caller, height=100):
    return {"Authorization": f"Bearer {caller}", "X-Block-Height": str(height)}
