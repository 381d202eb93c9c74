"""
Admin router: oracle, pricing mode, protocol fee, withdrawals and stats.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from assetcover.schemas import (
    OracleConfigRequest, EnabledRequest, ProtocolFeeRequest,
    WithdrawRequest, WithdrawResponse, ProtocolStatsResponse
)
from assetcover.context import TxContext
from assetcover.deps import get_current_principal, get_tx_context
from assetcover.db import get_session, atomic
from assetcover.services.ledger import (
    set_oracle, set_dynamic_pricing, set_protocol_fee,
    emergency_withdraw, get_ledger_totals
)

router = APIRouter()


@router.put("/admin/oracle", response_model=ProtocolStatsResponse)
async def configure_oracle(request: OracleConfigRequest, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        set_oracle(ctx, request.oracle_ref)
    return ProtocolStatsResponse(**get_ledger_totals(ctx.session))


@router.put("/admin/dynamic-pricing", response_model=ProtocolStatsResponse)
async def configure_dynamic_pricing(request: EnabledRequest, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        set_dynamic_pricing(ctx, request.enabled)
    return ProtocolStatsResponse(**get_ledger_totals(ctx.session))


@router.put("/admin/protocol-fee", response_model=ProtocolStatsResponse)
async def configure_protocol_fee(request: ProtocolFeeRequest, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        set_protocol_fee(ctx, request.fee_rate)
    return ProtocolStatsResponse(**get_ledger_totals(ctx.session))


@router.post("/admin/withdraw", response_model=WithdrawResponse)
async def withdraw(request: WithdrawRequest, ctx: TxContext = Depends(get_tx_context)):
    """Owner-only move of treasury funds."""
    with atomic(ctx.session):
        result = emergency_withdraw(ctx, request.amount, request.recipient, request.asset_contract)
    return WithdrawResponse(**result)


@router.get("/stats", response_model=ProtocolStatsResponse)
async def read_stats(
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session)
):
    return ProtocolStatsResponse(**get_ledger_totals(session))
