"""
Claims workflow: one claim per policy, resolved once by the authority.
"""

from typing import Dict, Any
import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import (
    AuthorizationError, NotFoundError, InvalidInputError,
    StateConflictError, ExternalFailureError
)
from assetcover.fixedpoint import checked_add
from assetcover.models import Claim, Policy, CLAIM_PENDING, CLAIM_APPROVED, CLAIM_DENIED, NATIVE, TOKEN
from assetcover.services.ledger import get_protocol_state, require_owner, write_claim_to_ledger
from assetcover.services.policies import get_policy

logger = logging.getLogger("assetcover")


def get_claim(db_session: Session, policy_id: int) -> Claim:
    claim = db_session.get(Claim, policy_id)
    if claim is None:
        raise NotFoundError("NotFound", f"No claim for policy {policy_id}")
    return claim


def submit_claim(ctx: TxContext, policy_id: int, amount: int, reason: str) -> Claim:
    """
    File a claim against a valid policy.

    Raises:
        NotFoundError: the policy does not exist
        AuthorizationError: caller is not the policy owner
        StateConflictError: NotActive, PolicyExpired, AlreadyClaimed
        InvalidInputError: InvalidAmount, InvalidReason
    """
    policy = get_policy(ctx.session, policy_id)
    if policy.owner != ctx.caller:
        raise AuthorizationError(f"{ctx.caller} does not own policy {policy_id}")
    if not policy.active:
        raise StateConflictError("NotActive", f"Policy {policy_id} is not active")
    if not policy.start_height <= ctx.height <= policy.end_height:
        raise StateConflictError("PolicyExpired", f"Policy {policy_id} is outside its coverage window")
    if policy.claim_submitted:
        raise StateConflictError("AlreadyClaimed", f"Policy {policy_id} already has a claim")
    if amount <= 0 or amount > policy.coverage_amount:
        raise InvalidInputError("InvalidAmount", "Claim amount must be between 1 and the coverage amount")
    max_reason = config_cache.get_limits().get("max_reason_length", 200)
    if not reason or len(reason) > max_reason:
        raise InvalidInputError("InvalidReason", f"Reason must be 1-{max_reason} characters")

    claim = Claim(
        policy_id=policy_id,
        claimant=ctx.caller,
        amount=amount,
        reason=reason,
        submitted_height=ctx.height
    )
    policy.claim_submitted = True
    ctx.session.add(claim)
    ctx.session.add(policy)
    logger.info(f"Claim submitted | policy_id={policy_id} | claimant={ctx.caller} | amount={amount}")
    return claim


def _pending_claim(ctx: TxContext, policy_id: int):
    claim = get_claim(ctx.session, policy_id)
    if claim.status != CLAIM_PENDING:
        raise StateConflictError("ClaimNotPending", f"Claim {policy_id} is already {claim.status}")
    return claim, get_policy(ctx.session, policy_id)


def _approve(ctx: TxContext, claim: Claim, policy: Policy) -> Claim:
    state = get_protocol_state(ctx.session)
    checked_add(state.total_claims_paid, claim.amount)

    payout = ctx.gateway.payout(policy.asset_class, policy.asset_contract)
    if not payout.transfer(claim.amount, state.treasury, claim.claimant):
        logger.warning(f"Claim payout failed | policy_id={policy.id} | amount={claim.amount}")
        raise ExternalFailureError("TransferFailed", "Claim payout transfer failed")

    claim.status = CLAIM_APPROVED
    policy.claim_approved = True
    policy.active = False
    write_claim_to_ledger(state, claim.amount)

    ctx.session.add(claim)
    ctx.session.add(policy)
    ctx.session.add(state)
    logger.info(
        f"Claim approved | policy_id={policy.id} | claimant={claim.claimant} | "
        f"amount={claim.amount} | asset={policy.asset_contract or NATIVE}"
    )
    return claim


def approve_claim(ctx: TxContext, policy_id: int) -> Claim:
    """Approve a pending claim on a native-currency policy and pay it."""
    require_owner(ctx)
    claim, policy = _pending_claim(ctx, policy_id)
    if policy.asset_class != NATIVE:
        raise InvalidInputError("AssetMismatch", f"Policy {policy_id} is not a native policy")
    return _approve(ctx, claim, policy)


def approve_token_claim(ctx: TxContext, policy_id: int, asset_contract: str) -> Claim:
    """Approve a pending claim on a token policy and pay it in that token."""
    require_owner(ctx)
    claim, policy = _pending_claim(ctx, policy_id)
    if policy.asset_class != TOKEN or policy.asset_contract != asset_contract:
        raise InvalidInputError("AssetMismatch", f"Policy {policy_id} is not covered in {asset_contract}")
    return _approve(ctx, claim, policy)


def deny_claim(ctx: TxContext, policy_id: int) -> Claim:
    """Deny a pending claim. The policy keeps its claim-submitted flag."""
    require_owner(ctx)
    claim = get_claim(ctx.session, policy_id)
    if claim.status != CLAIM_PENDING:
        raise StateConflictError("ClaimNotPending", f"Claim {policy_id} is already {claim.status}")

    claim.status = CLAIM_DENIED
    ctx.session.add(claim)
    logger.info(f"Claim denied | policy_id={policy_id}")
    return claim


def claim_summary(claim: Claim) -> Dict[str, Any]:
    return {
        "policy_id": claim.policy_id,
        "claimant": claim.claimant,
        "amount": claim.amount,
        "reason": claim.reason,
        "submitted_height": claim.submitted_height,
        "status": claim.status
    }
