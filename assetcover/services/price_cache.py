"""
Staleness-aware USD price cache in front of the oracle.

Mutating operations use ``get_price``, which may refresh from the oracle.
Read-only queries use ``get_price_readonly``, which never calls out.
"""

import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import (
    NotFoundError, ExternalFailureError, StalePriceError
)
from assetcover.fixedpoint import MAX_AMOUNT
from assetcover.gateway import OracleError
from assetcover.models import PriceCacheEntry
from assetcover.services.ledger import get_protocol_state, require_owner
from assetcover.services.registry import is_known_symbol

logger = logging.getLogger("assetcover")


def max_price_age() -> int:
    return config_cache.get_pricing_params()["max_price_age"]


def is_fresh(entry: PriceCacheEntry, height: int) -> bool:
    return entry.valid and height - entry.last_update <= max_price_age()


def _require_known_symbol(db_session: Session, symbol: str):
    if not is_known_symbol(db_session, symbol):
        raise NotFoundError("UnknownSymbol", f"Symbol {symbol} is not a supported asset")


def get_price(ctx: TxContext, symbol: str) -> int:
    """Cached price if fresh, otherwise a refresh from the oracle."""
    _require_known_symbol(ctx.session, symbol)
    entry = ctx.session.get(PriceCacheEntry, symbol)
    if entry is not None and is_fresh(entry, ctx.height):
        return entry.price
    return refresh_price(ctx, symbol)


def refresh_price(ctx: TxContext, symbol: str) -> int:
    """
    Fetch a price from the configured oracle and overwrite the cache entry.

    Price, validity flag and last-update height come from one oracle
    reading; validity and age must both pass before the price is trusted.

    Raises:
        NotFoundError: OracleNotSet
        ExternalFailureError: OracleFailure
        StalePriceError: the oracle's price is invalid or too old
    """
    state = get_protocol_state(ctx.session)
    if not state.oracle_ref:
        raise NotFoundError("OracleNotSet", "No oracle configured")

    oracle = ctx.gateway.oracle(state.oracle_ref)
    if oracle is None:
        raise ExternalFailureError("OracleFailure", f"Oracle {state.oracle_ref} is not reachable")

    try:
        snapshot = oracle.get_price_snapshot(symbol)
    except OracleError as e:
        logger.warning(f"Oracle call failed | symbol={symbol} | error={e}")
        raise ExternalFailureError("OracleFailure", str(e)) from e
    price, last_update, valid = snapshot.price, snapshot.last_update_block, snapshot.valid

    if not valid or ctx.height - last_update > max_price_age():
        logger.warning(
            f"Oracle price rejected | symbol={symbol} | valid={valid} | "
            f"last_update={last_update} | height={ctx.height}"
        )
        raise StalePriceError(f"Oracle price for {symbol} is stale or invalid")
    if price <= 0 or price > MAX_AMOUNT:
        raise ExternalFailureError("OracleFailure", f"Oracle returned invalid price for {symbol}")

    entry = ctx.session.get(PriceCacheEntry, symbol)
    if entry is None:
        entry = PriceCacheEntry(symbol=symbol, price=price, last_update=ctx.height, valid=True)
    else:
        entry.price = price
        entry.last_update = ctx.height
        entry.valid = True
    ctx.session.add(entry)
    logger.info(f"Price refreshed | symbol={symbol} | price={price} | height={ctx.height}")
    return price


def get_price_readonly(db_session: Session, symbol: str, height: int) -> int:
    """Cached price only; fails instead of refreshing."""
    _require_known_symbol(db_session, symbol)
    entry = db_session.get(PriceCacheEntry, symbol)
    if entry is None:
        raise NotFoundError("PriceNotFound", f"No cached price for {symbol}")
    if not is_fresh(entry, height):
        raise StalePriceError(f"Cached price for {symbol} is stale or invalid")
    return entry.price


def get_cache_entry(db_session: Session, symbol: str) -> PriceCacheEntry:
    entry = db_session.get(PriceCacheEntry, symbol)
    if entry is None:
        raise NotFoundError("PriceNotFound", f"No cached price for {symbol}")
    return entry


def clear_price(ctx: TxContext, symbol: str) -> PriceCacheEntry:
    """Invalidate a cached price (admin only)."""
    require_owner(ctx)
    entry = get_cache_entry(ctx.session, symbol)
    entry.valid = False
    ctx.session.add(entry)
    logger.info(f"Price cache cleared | symbol={symbol}")
    return entry
