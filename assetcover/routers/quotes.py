"""
Quotes router for premium quotes.
"""

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
import logging

from assetcover.schemas import QuoteRequest, QuoteResponse, PriceBreakdown
from assetcover.deps import get_current_principal, get_block_height
from assetcover.db import get_session
from assetcover.services.pricing import quote_premium

logger = logging.getLogger("assetcover")

router = APIRouter()


@router.post("/quotes", response_model=QuoteResponse)
async def create_quote(
    request: QuoteRequest,
    request_obj: Request,
    principal: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session)
):
    """
    Quote a premium without writing anything.

    Dynamic quotes only use a fresh cached price; the oracle is never
    called from here, so a missing price quotes the static formula.
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")

    premium, breakdown = quote_premium(
        session, height, request.coverage_amount, request.duration, request.asset_contract
    )

    logger.info(
        f"Quote computed | request_id={request_id} | premium={premium} | "
        f"mode={breakdown['mode']} | symbol={breakdown['symbol']}"
    )
    return QuoteResponse(premium=premium, breakdown=PriceBreakdown(**breakdown))
