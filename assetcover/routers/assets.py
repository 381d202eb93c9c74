"""
Assets router: token registry, asset classes and risk multipliers.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from assetcover.schemas import (
    AssetRegisterRequest, AssetUpdateRequest, AssetResponse, TokenInfoResponse,
    EnabledRequest, AssetClassResponse, RiskMultiplierRequest, RiskMultiplierResponse
)
from assetcover.context import TxContext
from assetcover.deps import get_current_principal, get_gateway, get_tx_context
from assetcover.db import get_session, atomic
from assetcover.gateway import Gateway
from assetcover.models import AssetRegistration
from assetcover.services.registry import (
    register_asset, update_asset, revoke_asset, get_asset, describe_token,
    is_supported, set_asset_class_enabled, set_risk_multiplier, get_risk_multiplier
)

router = APIRouter()


def _asset_response(registration: AssetRegistration) -> AssetResponse:
    return AssetResponse(
        asset_contract=registration.asset_contract,
        symbol=registration.symbol,
        decimals=registration.decimals,
        enabled=registration.enabled
    )


@router.post("/assets", response_model=AssetResponse)
async def register(request: AssetRegisterRequest, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        registration = register_asset(ctx, request.asset_contract, request.symbol, request.decimals)
    return _asset_response(registration)


@router.patch("/assets/{asset_contract}", response_model=AssetResponse)
async def update(
    asset_contract: str,
    request: AssetUpdateRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    """Partial update; invalid symbol or decimals keep the stored value."""
    with atomic(ctx.session):
        registration = update_asset(
            ctx, asset_contract, request.symbol, request.decimals, request.enabled
        )
    return _asset_response(registration)


@router.delete("/assets/{asset_contract}", response_model=AssetResponse)
async def revoke(asset_contract: str, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        registration = revoke_asset(ctx, asset_contract)
    return _asset_response(registration)


@router.get("/assets/{asset_contract}", response_model=AssetResponse)
async def read_asset(
    asset_contract: str,
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session)
):
    return _asset_response(get_asset(session, asset_contract))


@router.get("/assets/{asset_contract}/token-info", response_model=TokenInfoResponse)
async def read_token_info(
    asset_contract: str,
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session),
    gateway: Gateway = Depends(get_gateway)
):
    return TokenInfoResponse(**describe_token(session, gateway, asset_contract))


@router.get("/asset-classes/{asset_class}", response_model=AssetClassResponse)
async def read_asset_class(
    asset_class: str,
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session)
):
    return AssetClassResponse(asset_class=asset_class, supported=is_supported(session, asset_class))


@router.put("/asset-classes/{asset_class}", response_model=AssetClassResponse)
async def toggle_asset_class(
    asset_class: str,
    request: EnabledRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    with atomic(ctx.session):
        set_asset_class_enabled(ctx, asset_class, request.enabled)
    return AssetClassResponse(asset_class=asset_class, supported=request.enabled)


@router.put("/risk-multipliers/{symbol}", response_model=RiskMultiplierResponse)
async def put_risk_multiplier(
    symbol: str,
    request: RiskMultiplierRequest,
    ctx: TxContext = Depends(get_tx_context)
):
    with atomic(ctx.session):
        set_risk_multiplier(ctx, symbol, request.multiplier)
    return RiskMultiplierResponse(symbol=symbol, multiplier=request.multiplier)


@router.get("/risk-multipliers/{symbol}", response_model=RiskMultiplierResponse)
async def read_risk_multiplier(
    symbol: str,
    principal: str = Depends(get_current_principal),
    session: Session = Depends(get_session)
):
    return RiskMultiplierResponse(symbol=symbol, multiplier=get_risk_multiplier(session, symbol))
