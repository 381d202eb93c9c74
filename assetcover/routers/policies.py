"""
Policies router: creation, cancellation and policy reads.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session
import logging

from assetcover.schemas import (
    PolicyCreateRequest, TokenPolicyCreateRequest, PolicyResponse,
    PolicyStatusResponse, UserPoliciesResponse
)
from assetcover.context import TxContext
from assetcover.deps import get_current_principal, get_block_height, get_tx_context
from assetcover.db import get_session, atomic
from assetcover.services.policies import (
    create_policy, create_token_policy, cancel_policy, get_policy,
    get_user_policies, get_user_policy_ids, is_policy_valid,
    policy_status, policy_summary
)

logger = logging.getLogger("assetcover")

router = APIRouter()


@router.post("/policies", response_model=PolicyResponse)
async def create_native_policy(
    request: PolicyCreateRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    """
    Create a policy in the native currency.

    The premium is collected from the caller before the policy is written;
    any failure leaves no trace.
    """
    with atomic(ctx.session):
        policy = create_policy(ctx, request.coverage_amount, request.duration, request.policy_type)
    return PolicyResponse(**policy_summary(policy, ctx.height))


@router.post("/policies/token", response_model=PolicyResponse)
async def create_policy_in_token(
    request: TokenPolicyCreateRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    """Create a policy covered and paid in a registered token."""
    with atomic(ctx.session):
        policy = create_token_policy(
            ctx, request.asset_contract, request.coverage_amount,
            request.duration, request.policy_type
        )
    return PolicyResponse(**policy_summary(policy, ctx.height))


@router.post("/policies/{policy_id}/cancel", response_model=PolicyResponse)
async def cancel(policy_id: int, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        policy = cancel_policy(ctx, policy_id)
    return PolicyResponse(**policy_summary(policy, ctx.height))


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def read_policy(
    policy_id: int,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    policy = get_policy(session, policy_id)
    return PolicyResponse(**policy_summary(policy, height))


@router.get("/policies/{policy_id}/active", response_model=PolicyStatusResponse)
async def read_policy_active(
    policy_id: int,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    """Whether the policy is active and inside its window at this height."""
    policy = get_policy(session, policy_id)
    return PolicyStatusResponse(
        policy_id=policy.id,
        active=is_policy_valid(policy, height),
        status=policy_status(policy, height),
        height=height
    )


@router.get("/users/{owner}/policies", response_model=UserPoliciesResponse)
async def read_user_policies(
    owner: str,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    policies = get_user_policies(session, owner)
    return UserPoliciesResponse(
        owner=owner,
        policy_ids=get_user_policy_ids(session, owner),
        policies=[PolicyResponse(**policy_summary(p, height)) for p in policies]
    )
