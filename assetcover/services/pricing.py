"""
Pricing service for calculating policy premiums.
"""

from typing import Dict, Any, Optional, Tuple
import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import (
    InvalidInputError, NotFoundError, ExternalFailureError, StalePriceError,
    ArithmeticOverflowError
)
from assetcover.fixedpoint import (
    BPS, apply_bps, checked_mul, checked_add, ensure_amount, ensure_index
)
from assetcover.services.ledger import get_protocol_state
from assetcover.services.price_cache import get_price, get_price_readonly
from assetcover.services.registry import asset_pricing_info, get_risk_multiplier

logger = logging.getLogger("assetcover")

PRICE_ERRORS = (NotFoundError, ExternalFailureError, StalePriceError)


def validate_terms(coverage_amount: int, duration: int):
    """Coverage must be positive and duration longer than one day."""
    min_duration = config_cache.get_limits().get("min_duration", 143)
    if coverage_amount <= 0:
        raise InvalidInputError("InvalidAmount", "Coverage amount must be positive")
    ensure_amount(coverage_amount)
    if duration <= min_duration:
        raise InvalidInputError("InvalidDuration", f"Duration must be greater than {min_duration}")
    ensure_index(duration)


def duration_factor(duration: int, pricing_params: Dict[str, Any]) -> int:
    """10000 plus 10 bps per day of cover."""
    blocks_per_day = pricing_params.get("blocks_per_day", 144)
    return BPS + checked_mul(duration, 10) // blocks_per_day


def calculate_static_premium(
    coverage_amount: int,
    duration: int,
    pricing_params: Dict[str, Any]
) -> Tuple[int, Dict[str, Any]]:
    """
    Calculate the static premium.

    Formula: premium = max(min_premium, coverage * base_rate/10000 * duration_factor/10000)

    The rate is applied first and the duration factor scales the rated base.

    Args:
        coverage_amount: Coverage in the asset's smallest unit
        duration: Policy length in blocks
        pricing_params: Pricing constants

    Returns:
        Tuple of (premium, breakdown_dict)
    """
    base_rate = pricing_params.get("base_premium_rate", 200)
    min_premium = pricing_params.get("min_premium", 1000)

    base = apply_bps(coverage_amount, base_rate)
    factor = duration_factor(duration, pricing_params)
    scaled = apply_bps(base, factor)
    premium = ensure_amount(max(min_premium, scaled))

    breakdown = {
        "mode": "static",
        "base": base,
        "rate": base_rate,
        "duration_factor": factor,
        "risk_multiplier": None,
        "volatility_mult": BPS,
        "min_premium": min_premium,
        "price": None
    }
    return premium, breakdown


def calculate_dynamic_premium(
    coverage_amount: int,
    duration: int,
    risk_multiplier: int,
    price: int,
    pricing_params: Dict[str, Any]
) -> Tuple[int, Dict[str, Any]]:
    """
    Calculate the risk- and price-aware premium.

    Formula:
        rate = base_rate + risk_multiplier * risk_factor / 100
        premium = max(min_premium, coverage * rate/10000 * duration_factor/10000 * volatility)

    ``volatility`` is 1.10 when the USD price is above the high-value
    threshold, 1.00 otherwise.

    Returns:
        Tuple of (premium, breakdown_dict)
    """
    base_rate = pricing_params.get("base_premium_rate", 200)
    min_premium = pricing_params.get("min_premium", 1000)
    risk_factor = pricing_params.get("risk_factor", 50)
    threshold = pricing_params.get("high_value_threshold", 10_000_000_000)
    surcharge = pricing_params.get("volatility_surcharge", 11000)

    rate = checked_add(base_rate, checked_mul(risk_multiplier, risk_factor) // 100)
    base = apply_bps(coverage_amount, rate)
    factor = duration_factor(duration, pricing_params)
    scaled = apply_bps(base, factor)

    volatility_mult = surcharge if price > threshold else BPS
    adjusted = apply_bps(scaled, volatility_mult)
    premium = ensure_amount(max(min_premium, adjusted))

    breakdown = {
        "mode": "dynamic",
        "base": base,
        "rate": rate,
        "duration_factor": factor,
        "risk_multiplier": risk_multiplier,
        "volatility_mult": volatility_mult,
        "min_premium": min_premium,
        "price": price
    }
    return premium, breakdown


def calculate_premium(
    coverage_amount: int,
    duration: int,
    pricing_params: Dict[str, Any],
    risk_multiplier: Optional[int] = None,
    price: Optional[int] = None
) -> Tuple[int, Dict[str, Any]]:
    """Dynamic premium when a price is available, static otherwise."""
    if price is None or risk_multiplier is None:
        return calculate_static_premium(coverage_amount, duration, pricing_params)
    return calculate_dynamic_premium(coverage_amount, duration, risk_multiplier, price, pricing_params)


def usd_value(amount: int, price: int, decimals: int) -> int:
    """USD value (6 fractional digits) of an amount in smallest units."""
    return checked_mul(amount, price) // (10 ** decimals)


def _priced(
    db_session: Session,
    coverage_amount: int,
    duration: int,
    symbol: str,
    dynamic: bool,
    price: Optional[int]
) -> Tuple[int, Dict[str, Any]]:
    pricing_params = config_cache.get_pricing_params()
    if dynamic and price is not None:
        risk_multiplier = get_risk_multiplier(db_session, symbol)
        return calculate_premium(coverage_amount, duration, pricing_params, risk_multiplier, price)
    return calculate_premium(coverage_amount, duration, pricing_params)


def price_policy(
    ctx: TxContext,
    coverage_amount: int,
    duration: int,
    asset_contract: Optional[str] = None
) -> Tuple[int, Dict[str, Any]]:
    """
    Price a new policy inside a mutating operation.

    With dynamic pricing on, the price cache may refresh from the oracle;
    any failure to get a price falls back to the static formula.

    Returns:
        Tuple of (premium, breakdown_dict); the breakdown carries the USD
        snapshot of coverage and premium when a price was known.
    """
    state = get_protocol_state(ctx.session)
    asset = asset_pricing_info(ctx.session, asset_contract)
    symbol = asset["symbol"]

    price = None
    if state.dynamic_pricing:
        try:
            price = get_price(ctx, symbol)
        except PRICE_ERRORS as e:
            logger.warning(f"Dynamic pricing fallback | symbol={symbol} | reason={e.code}")
    else:
        try:
            price = get_price_readonly(ctx.session, symbol, ctx.height)
        except PRICE_ERRORS:
            price = None

    premium, breakdown = _priced(
        ctx.session, coverage_amount, duration, symbol, state.dynamic_pricing, price
    )
    breakdown["symbol"] = symbol
    _add_usd_snapshot(breakdown, coverage_amount, premium, price, asset["decimals"])
    return premium, breakdown


def quote_premium(
    db_session: Session,
    height: int,
    coverage_amount: int,
    duration: int,
    asset_contract: Optional[str] = None
) -> Tuple[int, Dict[str, Any]]:
    """Read-only premium quote; never calls the oracle."""
    validate_terms(coverage_amount, duration)
    state = get_protocol_state(db_session)
    asset = asset_pricing_info(db_session, asset_contract)
    symbol = asset["symbol"]

    try:
        price = get_price_readonly(db_session, symbol, height)
    except PRICE_ERRORS as e:
        if state.dynamic_pricing:
            logger.info(f"Quote using static pricing | symbol={symbol} | reason={e.code}")
        price = None

    premium, breakdown = _priced(
        db_session, coverage_amount, duration, symbol, state.dynamic_pricing, price
    )
    breakdown["symbol"] = symbol
    _add_usd_snapshot(breakdown, coverage_amount, premium, price, asset["decimals"])
    return premium, breakdown


def _add_usd_snapshot(breakdown: Dict[str, Any], coverage_amount: int, premium: int,
                      price: Optional[int], decimals: int):
    if price is None:
        breakdown["coverage_usd"] = None
        breakdown["premium_usd"] = None
        return
    breakdown["coverage_usd"] = _snapshot_value(coverage_amount, price, decimals)
    breakdown["premium_usd"] = _snapshot_value(premium, price, decimals)


def _snapshot_value(amount: int, price: int, decimals: int) -> Optional[int]:
    # Valuations past 128 bits are left out of the snapshot.
    try:
        return usd_value(amount, price, decimals)
    except ArithmeticOverflowError:
        return None
