"""
Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


# Request schemas
class PolicyCreateRequest(BaseModel):
    """Native-currency policy request."""
    coverage_amount: int = Field(ge=0, description="Coverage in smallest units")
    duration: int = Field(ge=0, description="Policy length in blocks")
    policy_type: str = Field(description="Free-text policy type")


class TokenPolicyCreateRequest(PolicyCreateRequest):
    """Token policy request."""
    asset_contract: str = Field(description="Registered token contract")


class ClaimSubmitRequest(BaseModel):
    policy_id: int = Field(ge=1)
    amount: int = Field(ge=0, description="Requested payout in smallest units")
    reason: str


class TokenApproveRequest(BaseModel):
    asset_contract: str


class AssetRegisterRequest(BaseModel):
    asset_contract: str
    symbol: str
    decimals: int = Field(ge=0)


class AssetUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their value."""
    symbol: Optional[str] = None
    decimals: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None


class EnabledRequest(BaseModel):
    enabled: bool


class RiskMultiplierRequest(BaseModel):
    multiplier: int = Field(ge=0, description="100 = 1.0x")


class QuoteRequest(BaseModel):
    coverage_amount: int = Field(ge=0)
    duration: int = Field(ge=0)
    asset_contract: Optional[str] = Field(None, description="Token contract; native when omitted")


class OracleConfigRequest(BaseModel):
    oracle_ref: Optional[str] = Field(None, description="Oracle reference; null unsets it")


class ProtocolFeeRequest(BaseModel):
    fee_rate: int = Field(ge=0, description="Basis points")


class WithdrawRequest(BaseModel):
    amount: int = Field(ge=0)
    recipient: Optional[str] = None
    asset_contract: Optional[str] = None


# Response schemas
class PolicyResponse(BaseModel):
    policy_id: int
    owner: str
    coverage_amount: int
    premium_paid: int
    start_height: int
    end_height: int
    active: bool
    claim_submitted: bool
    claim_approved: bool
    policy_type: str
    asset_class: str
    asset_contract: Optional[str]
    coverage_usd: Optional[int]
    premium_usd: Optional[int]
    status: str = Field(description="active, expired or inactive")
    valid: bool


class PolicyStatusResponse(BaseModel):
    policy_id: int
    active: bool = Field(description="Active and inside its coverage window")
    status: str
    height: int


class UserPoliciesResponse(BaseModel):
    owner: str
    policy_ids: List[int]
    policies: List[PolicyResponse]


class ClaimResponse(BaseModel):
    policy_id: int
    claimant: str
    amount: int
    reason: str
    submitted_height: int
    status: str


class AssetResponse(BaseModel):
    asset_contract: str
    symbol: str
    decimals: int
    enabled: bool


class TokenInfoResponse(AssetResponse):
    name: Optional[str]
    total_supply: Optional[int]
    token_uri: Optional[str]


class AssetClassResponse(BaseModel):
    asset_class: str
    supported: bool


class RiskMultiplierResponse(BaseModel):
    symbol: str
    multiplier: int


class PriceResponse(BaseModel):
    symbol: str
    price: int = Field(description="USD with 6 fractional digits")
    height: int


class PriceEntryResponse(BaseModel):
    symbol: str
    price: int
    last_update: int
    valid: bool
    fresh: bool


class PriceBreakdown(BaseModel):
    """Premium breakdown."""
    mode: str = Field(description="static or dynamic")
    symbol: str
    base: int = Field(description="Coverage after the rate")
    rate: int = Field(description="Rate in basis points")
    duration_factor: int
    risk_multiplier: Optional[int]
    volatility_mult: int
    min_premium: int
    price: Optional[int]
    coverage_usd: Optional[int]
    premium_usd: Optional[int]


class QuoteResponse(BaseModel):
    premium: int
    breakdown: PriceBreakdown


class ProtocolStatsResponse(BaseModel):
    total_policies: int
    total_premiums: int
    total_claims_paid: int
    protocol_fee_rate: int
    oracle_ref: Optional[str]
    dynamic_pricing: bool
    native_enabled: bool
    token_enabled: bool


class WithdrawResponse(BaseModel):
    amount: int
    recipient: str
    asset_class: str
    asset_contract: Optional[str]
