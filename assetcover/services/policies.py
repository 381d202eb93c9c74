"""
Policy ledger: creation, cancellation and the derived expiry state.
"""

from typing import Dict, Any, List, Optional
import json
import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import (
    AuthorizationError, NotFoundError, InvalidInputError,
    StateConflictError, ExternalFailureError
)
from assetcover.fixedpoint import MAX_INDEX, checked_add
from assetcover.models import Policy, UserPolicyIndex, NATIVE, TOKEN
from assetcover.services.ledger import get_protocol_state, write_premium_to_ledger
from assetcover.services.pricing import price_policy, validate_terms
from assetcover.services.registry import get_asset, is_supported

logger = logging.getLogger("assetcover")

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_INACTIVE = "inactive"


def is_policy_valid(policy: Policy, height: int) -> bool:
    """Active and inside its height window."""
    return policy.active and policy.start_height <= height <= policy.end_height


def policy_status(policy: Policy, height: int) -> str:
    if not policy.active:
        return STATUS_INACTIVE
    if height > policy.end_height:
        return STATUS_EXPIRED
    return STATUS_ACTIVE


def get_policy(db_session: Session, policy_id: int) -> Policy:
    policy = db_session.get(Policy, policy_id)
    if policy is None:
        raise NotFoundError("NotFound", f"Policy {policy_id} not found")
    return policy


def get_user_policy_ids(db_session: Session, owner: str) -> List[int]:
    index = db_session.get(UserPolicyIndex, owner)
    return json.loads(index.policy_ids) if index is not None else []


def get_user_policies(db_session: Session, owner: str) -> List[Policy]:
    return [get_policy(db_session, policy_id) for policy_id in get_user_policy_ids(db_session, owner)]


def _validate_policy_type(policy_type: str):
    max_len = config_cache.get_limits().get("max_policy_type_length", 50)
    if not policy_type or len(policy_type) > max_len:
        raise InvalidInputError("InvalidPolicyType", f"Policy type must be 1-{max_len} characters")


def create_policy(
    ctx: TxContext,
    coverage_amount: int,
    duration: int,
    policy_type: str,
    asset_contract: Optional[str] = None
) -> Policy:
    """
    Create a policy, collecting the premium from the caller first.

    Args:
        ctx: Operation context; the caller becomes the owner
        coverage_amount: Coverage in the asset's smallest unit
        duration: Policy length in blocks, must exceed one day
        policy_type: Free-text policy type
        asset_contract: Registered token to cover; native currency when omitted

    Returns:
        The new policy
    """
    validate_terms(coverage_amount, duration)
    _validate_policy_type(policy_type)

    asset_class = TOKEN if asset_contract else NATIVE
    if not is_supported(ctx.session, asset_class):
        raise InvalidInputError("AssetNotSupported", f"Asset class {asset_class} is not enabled")
    if asset_class == TOKEN and not get_asset(ctx.session, asset_contract).enabled:
        raise StateConflictError("AssetDisabled", f"Asset {asset_contract} is disabled")

    state = get_protocol_state(ctx.session)
    owned = get_user_policy_ids(ctx.session, ctx.caller)
    max_policies = config_cache.get_limits().get("max_policies_per_user", 20)
    if len(owned) >= max_policies:
        raise StateConflictError("TooManyPolicies", f"Owner already holds {max_policies} policies")

    end_height = checked_add(ctx.height, duration, MAX_INDEX)
    premium, breakdown = price_policy(ctx, coverage_amount, duration, asset_contract)

    # Counter checks happen before any funds move
    policy_id = checked_add(state.policy_counter, 1, MAX_INDEX)
    checked_add(state.total_premiums, premium)

    payout = ctx.gateway.payout(asset_class, asset_contract)
    if not payout.transfer(premium, ctx.caller, state.treasury):
        logger.warning(f"Premium collection failed | owner={ctx.caller} | premium={premium}")
        raise ExternalFailureError("TransferFailed", "Premium transfer failed")

    policy = Policy(
        id=policy_id,
        owner=ctx.caller,
        coverage_amount=coverage_amount,
        premium_paid=premium,
        start_height=ctx.height,
        end_height=end_height,
        policy_type=policy_type,
        asset_class=asset_class,
        asset_contract=asset_contract,
        coverage_usd=breakdown["coverage_usd"],
        premium_usd=breakdown["premium_usd"]
    )
    state.policy_counter = policy_id
    write_premium_to_ledger(state, premium)

    index = ctx.session.get(UserPolicyIndex, ctx.caller) or UserPolicyIndex(owner=ctx.caller)
    index.policy_ids = json.dumps(owned + [policy_id])

    ctx.session.add(policy)
    ctx.session.add(state)
    ctx.session.add(index)

    logger.info(
        f"Policy created | policy_id={policy_id} | owner={ctx.caller} | "
        f"asset={asset_contract or NATIVE} | coverage={coverage_amount} | "
        f"premium={premium} | mode={breakdown['mode']} | end_height={end_height}"
    )
    return policy


def create_token_policy(
    ctx: TxContext,
    asset_contract: str,
    coverage_amount: int,
    duration: int,
    policy_type: str
) -> Policy:
    """Create a policy covered and paid in a registered token."""
    if not asset_contract:
        raise InvalidInputError("InvalidAddress", "Token policies need an asset contract")
    return create_policy(ctx, coverage_amount, duration, policy_type, asset_contract)


def cancel_policy(ctx: TxContext, policy_id: int) -> Policy:
    """Deactivate a policy that has no claim against it. No refund is paid."""
    policy = get_policy(ctx.session, policy_id)
    if policy.owner != ctx.caller:
        raise AuthorizationError(f"{ctx.caller} does not own policy {policy_id}")
    if not policy.active:
        raise StateConflictError("NotActive", f"Policy {policy_id} is not active")
    if policy.claim_submitted:
        raise StateConflictError("AlreadyClaimed", f"Policy {policy_id} has a claim")

    policy.active = False
    ctx.session.add(policy)
    logger.info(f"Policy cancelled | policy_id={policy_id} | owner={ctx.caller}")
    return policy


def policy_summary(policy: Policy, height: int) -> Dict[str, Any]:
    """Serializable view of a policy at the given height."""
    return {
        "policy_id": policy.id,
        "owner": policy.owner,
        "coverage_amount": policy.coverage_amount,
        "premium_paid": policy.premium_paid,
        "start_height": policy.start_height,
        "end_height": policy.end_height,
        "active": policy.active,
        "claim_submitted": policy.claim_submitted,
        "claim_approved": policy.claim_approved,
        "policy_type": policy.policy_type,
        "asset_class": policy.asset_class,
        "asset_contract": policy.asset_contract,
        "coverage_usd": policy.coverage_usd,
        "premium_usd": policy.premium_usd,
        "status": policy_status(policy, height),
        "valid": is_policy_valid(policy, height)
    }
