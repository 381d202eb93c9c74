"""
SQLModel database models for the cover protocol.
"""

from sqlalchemy import Column, Numeric, String
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone

NATIVE = "native"
TOKEN = "token"
ASSET_CLASSES = (NATIVE, TOKEN)

CLAIM_PENDING = "pending"
CLAIM_APPROVED = "approved"
CLAIM_DENIED = "denied"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Unsigned 128-bit amounts: NUMERIC(39, 0) in PostgreSQL, exact decimal
# text elsewhere since SQLite NUMERIC goes through float.
class Amount(TypeDecorator):
    impl = String(39)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(39, 0))
        return dialect.type_descriptor(String(39))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return int(value)
        return str(int(value))

    def process_result_value(self, value, dialect):
        return None if value is None else int(value)


def amount_field(default=None, nullable: bool = False):
    return Field(default=default, sa_column=Column(Amount(), nullable=nullable))


class Policy(SQLModel, table=True):
    """Coverage contract between an owner and the protocol."""
    id: int = Field(primary_key=True)
    owner: str = Field(index=True)
    coverage_amount: int = amount_field()
    premium_paid: int = amount_field()
    start_height: int
    end_height: int
    active: bool = True
    claim_submitted: bool = False
    claim_approved: bool = False
    policy_type: str
    asset_class: str  # native | token
    asset_contract: Optional[str] = Field(default=None, index=True)
    coverage_usd: Optional[int] = amount_field(nullable=True)
    premium_usd: Optional[int] = amount_field(nullable=True)
    created_at: datetime = Field(default_factory=utc_now)


class Claim(SQLModel, table=True):
    """Claim filed against a policy; shares the policy's id."""
    policy_id: int = Field(primary_key=True, foreign_key="policy.id")
    claimant: str
    amount: int = amount_field()
    reason: str
    submitted_height: int
    status: str = CLAIM_PENDING
    created_at: datetime = Field(default_factory=utc_now)


class UserPolicyIndex(SQLModel, table=True):
    """Ordered policy ids per owner."""
    owner: str = Field(primary_key=True)
    policy_ids: str = "[]"  # JSON string


class AssetRegistration(SQLModel, table=True):
    """Registered fungible token."""
    asset_contract: str = Field(primary_key=True)
    symbol: str = Field(index=True)
    decimals: int
    enabled: bool = True
    created_at: datetime = Field(default_factory=utc_now)


class PriceCacheEntry(SQLModel, table=True):
    """Last observed USD price per symbol (6 fractional digits)."""
    symbol: str = Field(primary_key=True)
    price: int = amount_field()
    last_update: int
    valid: bool = True


class RiskMultiplier(SQLModel, table=True):
    """Per-symbol risk weighting, 100 = 1.0x."""
    symbol: str = Field(primary_key=True)
    multiplier: int


class ProtocolState(SQLModel, table=True):
    """Single-row aggregate of global counters and admin settings."""
    id: int = Field(default=1, primary_key=True)
    owner: str
    treasury: str
    policy_counter: int = 0
    total_premiums: int = amount_field(default=0)
    total_claims_paid: int = amount_field(default=0)
    protocol_fee_rate: int = 0
    oracle_ref: Optional[str] = None
    dynamic_pricing: bool = False
    native_enabled: bool = True
    token_enabled: bool = True
