"""
Ledger service for the protocol-wide counters and admin settings.
"""

from typing import Dict, Any, Optional
import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import (
    AuthorizationError, NotFoundError, InvalidInputError, ExternalFailureError
)
from assetcover.fixedpoint import checked_add
from assetcover.models import ProtocolState, NATIVE, TOKEN

logger = logging.getLogger("assetcover")


def get_protocol_state(db_session: Session) -> ProtocolState:
    """Load the single protocol row."""
    state = db_session.get(ProtocolState, 1)
    if state is None:
        raise NotFoundError("ProtocolNotInitialized", "Protocol state has not been initialized")
    return state


def require_owner(ctx: TxContext) -> ProtocolState:
    """Return the protocol state if the caller is the protocol owner."""
    state = get_protocol_state(ctx.session)
    if ctx.caller != state.owner:
        raise AuthorizationError(f"{ctx.caller} is not the protocol owner")
    return state


def write_premium_to_ledger(state: ProtocolState, premium: int) -> int:
    """Add a collected premium to the cumulative total."""
    state.total_premiums = checked_add(state.total_premiums, premium)
    return state.total_premiums


def write_claim_to_ledger(state: ProtocolState, amount: int) -> int:
    """Add a paid claim to the cumulative total."""
    state.total_claims_paid = checked_add(state.total_claims_paid, amount)
    return state.total_claims_paid


def set_oracle(ctx: TxContext, oracle_ref: Optional[str]) -> ProtocolState:
    """
    Point the price cache at an oracle, or unset it with ``None``.

    The reference must resolve to a collaborator known to the gateway.
    """
    state = require_owner(ctx)
    if oracle_ref is not None:
        if not oracle_ref.strip():
            raise InvalidInputError("InvalidOracle", "Oracle reference cannot be empty")
        if ctx.gateway.oracle(oracle_ref) is None:
            raise NotFoundError("OracleNotFound", f"Unknown oracle {oracle_ref}")
    state.oracle_ref = oracle_ref
    ctx.session.add(state)
    logger.info(f"Oracle configured | oracle_ref={oracle_ref}")
    return state


def set_dynamic_pricing(ctx: TxContext, enabled: bool) -> ProtocolState:
    state = require_owner(ctx)
    state.dynamic_pricing = enabled
    ctx.session.add(state)
    logger.info(f"Dynamic pricing toggled | enabled={enabled}")
    return state


def set_protocol_fee(ctx: TxContext, fee_rate: int) -> ProtocolState:
    """Update the protocol fee in basis points."""
    state = require_owner(ctx)
    max_fee = config_cache.get_limits().get("max_protocol_fee", 1000)
    if fee_rate < 0 or fee_rate > max_fee:
        raise InvalidInputError("InvalidFee", f"Fee rate must be between 0 and {max_fee} bps")
    state.protocol_fee_rate = fee_rate
    ctx.session.add(state)
    logger.info(f"Protocol fee updated | fee_rate={fee_rate}")
    return state


def emergency_withdraw(
    ctx: TxContext,
    amount: int,
    recipient: Optional[str] = None,
    asset_contract: Optional[str] = None
) -> Dict[str, Any]:
    """
    Move funds out of the treasury unconditionally.

    Args:
        ctx: Operation context; caller must be the owner
        amount: Amount in the asset's smallest unit
        recipient: Destination, defaults to the owner
        asset_contract: Token to withdraw; native currency when omitted

    Returns:
        Summary of the withdrawal
    """
    state = require_owner(ctx)
    if amount <= 0:
        raise InvalidInputError("InvalidAmount", "Withdrawal amount must be positive")

    recipient = recipient or state.owner
    asset_class = TOKEN if asset_contract else NATIVE
    payout = ctx.gateway.payout(asset_class, asset_contract)
    if not payout.transfer(amount, state.treasury, recipient):
        raise ExternalFailureError("TransferFailed", "Treasury withdrawal failed")

    logger.warning(
        f"Emergency withdrawal | amount={amount} | recipient={recipient} | "
        f"asset={asset_contract or NATIVE}"
    )
    return {"amount": amount, "recipient": recipient, "asset_class": asset_class,
            "asset_contract": asset_contract}


def get_ledger_totals(db_session: Session) -> Dict[str, Any]:
    """
    Aggregate statistics for the protocol.

    Returns:
        Counters and admin settings
    """
    state = get_protocol_state(db_session)
    return {
        "total_policies": state.policy_counter,
        "total_premiums": state.total_premiums,
        "total_claims_paid": state.total_claims_paid,
        "protocol_fee_rate": state.protocol_fee_rate,
        "oracle_ref": state.oracle_ref,
        "dynamic_pricing": state.dynamic_pricing,
        "native_enabled": state.native_enabled,
        "token_enabled": state.token_enabled
    }
