"""
Claims router: submission and resolution.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from assetcover.schemas import ClaimSubmitRequest, TokenApproveRequest, ClaimResponse
from assetcover.context import TxContext
from assetcover.deps import get_current_principal, get_tx_context
from assetcover.db import get_session, atomic
from assetcover.services.claims import (
    submit_claim, approve_claim, approve_token_claim, deny_claim,
    get_claim, claim_summary
)

router = APIRouter()


@router.post("/claims", response_model=ClaimResponse)
async def submit(request: ClaimSubmitRequest, ctx: TxContext = Depends(get_tx_context)):
    """File a claim; only the policy owner may, once per policy."""
    with atomic(ctx.session):
        claim = submit_claim(ctx, request.policy_id, request.amount, request.reason)
    return ClaimResponse(**claim_summary(claim))


@router.post("/claims/{policy_id}/approve", response_model=ClaimResponse)
async def approve(policy_id: int, ctx: TxContext = Depends(get_tx_context)):
    """
    Approve a native-currency claim.

    The payout happens inside the same operation; if it fails the claim
    stays pending.
    """
    with atomic(ctx.session):
        claim = approve_claim(ctx, policy_id)
    return ClaimResponse(**claim_summary(claim))


@router.post("/claims/{policy_id}/approve-token", response_model=ClaimResponse)
async def approve_token(
    policy_id: int,
    request: TokenApproveRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    with atomic(ctx.session):
        claim = approve_token_claim(ctx, policy_id, request.asset_contract)
    return ClaimResponse(**claim_summary(claim))


@router.post("/claims/{policy_id}/deny", response_model=ClaimResponse)
async def deny(policy_id: int, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        claim = deny_claim(ctx, policy_id)
    return ClaimResponse(**claim_summary(claim))


@router.get("/claims/{policy_id}", response_model=ClaimResponse)
async def read_claim(
    policy_id: int,
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session)
):
    return ClaimResponse(**claim_summary(get_claim(session, policy_id)))
