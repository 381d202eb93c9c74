"""
Prices router: read-only price queries and cache invalidation.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from assetcover.schemas import PriceResponse, PriceEntryResponse
from assetcover.context import TxContext
from assetcover.deps import get_current_principal, get_block_height, get_tx_context
from assetcover.db import get_session, atomic
from assetcover.models import PriceCacheEntry
from assetcover.services.price_cache import (
    get_price_readonly, get_cache_entry, clear_price, is_fresh
)

router = APIRouter()


def _entry_response(entry: PriceCacheEntry, height: int) -> PriceEntryResponse:
    return PriceEntryResponse(
        symbol=entry.symbol,
        price=entry.price,
        last_update=entry.last_update,
        valid=entry.valid,
        fresh=is_fresh(entry, height)
    )


@router.get("/prices/{symbol}", response_model=PriceResponse)
async def read_price(
    symbol: str,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    """Fresh cached price; never refreshes from the oracle."""
    price = get_price_readonly(session, symbol, height)
    return PriceResponse(symbol=symbol, price=price, height=height)


@router.get("/prices/{symbol}/entry", response_model=PriceEntryResponse)
async def read_price_entry(
    symbol: str,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    return _entry_response(get_cache_entry(session, symbol), height)


@router.delete("/prices/{symbol}", response_model=PriceEntryResponse)
async def clear(symbol: str, ctx: TxContext = Depends(get_tx_context)):
    with atomic(ctx.session):
        entry = clear_price(ctx, symbol)
    return _entry_response(entry, ctx.height)
