"""
Asset registry: enabled asset classes, registered tokens and risk weights.
"""

from typing import Dict, Any, Optional
import logging

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.errors import NotFoundError, InvalidInputError, StateConflictError
from assetcover.gateway import Gateway
from assetcover.models import AssetRegistration, RiskMultiplier, ASSET_CLASSES, NATIVE
from assetcover.services.ledger import get_protocol_state, require_owner

logger = logging.getLogger("assetcover")

DEFAULT_RISK_MULTIPLIER = 100


def _valid_symbol(symbol: Optional[str]) -> bool:
    max_len = config_cache.get_limits().get("max_symbol_length", 32)
    return bool(symbol) and len(symbol) <= max_len


def _valid_decimals(decimals: Optional[int]) -> bool:
    max_decimals = config_cache.get_limits().get("max_decimals", 18)
    return decimals is not None and 0 <= decimals <= max_decimals


def register_asset(ctx: TxContext, asset_contract: str, symbol: str, decimals: int) -> AssetRegistration:
    """
    Register a fungible token as an insurable asset.

    Raises:
        AuthorizationError: caller is not the registry owner
        StateConflictError: AlreadyRegistered, SymbolInUse
        InvalidInputError: InvalidSymbol, InvalidDecimals, InvalidAddress
    """
    state = require_owner(ctx)

    if ctx.session.get(AssetRegistration, asset_contract) is not None:
        raise StateConflictError("AlreadyRegistered", f"Asset {asset_contract} is already registered")
    if not _valid_symbol(symbol):
        raise InvalidInputError("InvalidSymbol", f"Invalid symbol '{symbol}'")
    if not _valid_decimals(decimals):
        raise InvalidInputError("InvalidDecimals", f"Invalid decimals {decimals}")
    if not asset_contract or asset_contract in (ctx.caller, state.owner, state.treasury):
        raise InvalidInputError("InvalidAddress", f"{asset_contract} cannot be registered as an asset")
    # Prices and risk multipliers are keyed by symbol
    if is_known_symbol(ctx.session, symbol):
        raise StateConflictError("SymbolInUse", f"Symbol {symbol} is already in use")

    registration = AssetRegistration(asset_contract=asset_contract, symbol=symbol, decimals=decimals)
    ctx.session.add(registration)
    logger.info(f"Asset registered | asset_contract={asset_contract} | symbol={symbol} | decimals={decimals}")
    return registration


def revoke_asset(ctx: TxContext, asset_contract: str) -> AssetRegistration:
    """Disable a registered asset; the record is kept."""
    require_owner(ctx)
    registration = ctx.session.get(AssetRegistration, asset_contract)
    if registration is None:
        raise NotFoundError("NotFound", f"Asset {asset_contract} not found")
    if not registration.enabled:
        raise StateConflictError("AlreadyDisabled", f"Asset {asset_contract} is already disabled")

    registration.enabled = False
    ctx.session.add(registration)
    logger.info(f"Asset revoked | asset_contract={asset_contract}")
    return registration


def update_asset(
    ctx: TxContext,
    asset_contract: str,
    symbol: Optional[str] = None,
    decimals: Optional[int] = None,
    enabled: Optional[bool] = None
) -> AssetRegistration:
    """
    Partially update a registration.

    Out-of-bound symbol or decimals, or a symbol already in use, keep the
    stored value instead of failing.
    """
    require_owner(ctx)
    registration = ctx.session.get(AssetRegistration, asset_contract)
    if registration is None:
        raise NotFoundError("NotFound", f"Asset {asset_contract} not found")

    if symbol is not None and symbol != registration.symbol:
        if _valid_symbol(symbol) and not is_known_symbol(ctx.session, symbol):
            registration.symbol = symbol
        else:
            logger.warning(
                f"Ignoring invalid or taken symbol on update | asset_contract={asset_contract} | symbol={symbol}"
            )
    if decimals is not None:
        if _valid_decimals(decimals):
            registration.decimals = decimals
        else:
            logger.warning(f"Ignoring invalid decimals on update | asset_contract={asset_contract}")
    if enabled is not None:
        registration.enabled = enabled

    ctx.session.add(registration)
    logger.info(
        f"Asset updated | asset_contract={asset_contract} | symbol={registration.symbol} | "
        f"decimals={registration.decimals} | enabled={registration.enabled}"
    )
    return registration


def get_asset(db_session: Session, asset_contract: str) -> AssetRegistration:
    registration = db_session.get(AssetRegistration, asset_contract)
    if registration is None:
        raise NotFoundError("NotFound", f"Asset {asset_contract} not found")
    return registration


def is_asset_enabled(db_session: Session, asset_contract: str) -> bool:
    registration = db_session.get(AssetRegistration, asset_contract)
    return registration is not None and registration.enabled


def is_supported(db_session: Session, asset_class: str) -> bool:
    """Whether policies may be written in this asset class."""
    if asset_class not in ASSET_CLASSES:
        return False
    state = get_protocol_state(db_session)
    return state.native_enabled if asset_class == NATIVE else state.token_enabled


def set_asset_class_enabled(ctx: TxContext, asset_class: str, enabled: bool):
    state = require_owner(ctx)
    if asset_class not in ASSET_CLASSES:
        raise InvalidInputError("InvalidAssetClass", f"Unknown asset class {asset_class}")
    if asset_class == NATIVE:
        state.native_enabled = enabled
    else:
        state.token_enabled = enabled
    ctx.session.add(state)
    logger.info(f"Asset class toggled | asset_class={asset_class} | enabled={enabled}")
    return state


def set_risk_multiplier(ctx: TxContext, symbol: str, multiplier: int) -> RiskMultiplier:
    """Set the risk weighting for a symbol (100 = 1.0x)."""
    require_owner(ctx)
    if not _valid_symbol(symbol):
        raise InvalidInputError("InvalidSymbol", f"Invalid symbol '{symbol}'")
    max_multiplier = config_cache.get_limits().get("max_risk_multiplier", 1000)
    if multiplier < 0 or multiplier > max_multiplier:
        raise InvalidInputError("InvalidMultiplier", f"Multiplier must be between 0 and {max_multiplier}")

    entry = ctx.session.get(RiskMultiplier, symbol)
    if entry is None:
        entry = RiskMultiplier(symbol=symbol, multiplier=multiplier)
    else:
        entry.multiplier = multiplier
    ctx.session.add(entry)
    logger.info(f"Risk multiplier set | symbol={symbol} | multiplier={multiplier}")
    return entry


def get_risk_multiplier(db_session: Session, symbol: str) -> int:
    entry = db_session.get(RiskMultiplier, symbol)
    return entry.multiplier if entry is not None else DEFAULT_RISK_MULTIPLIER


def is_known_symbol(db_session: Session, symbol: str) -> bool:
    """Native symbol or the symbol of any registered asset."""
    if symbol == config_cache.get_native_asset()["symbol"]:
        return True
    return db_session.query(AssetRegistration).filter(AssetRegistration.symbol == symbol).first() is not None


def asset_pricing_info(db_session: Session, asset_contract: Optional[str]) -> Dict[str, Any]:
    """Symbol and decimals used to price a policy in this asset."""
    if asset_contract is None:
        native = config_cache.get_native_asset()
        return {"symbol": native["symbol"], "decimals": native["decimals"]}
    registration = get_asset(db_session, asset_contract)
    return {"symbol": registration.symbol, "decimals": registration.decimals}


def describe_token(db_session: Session, gateway: Gateway, asset_contract: str) -> Dict[str, Any]:
    """Registration merged with the token adapter's own metadata."""
    registration = get_asset(db_session, asset_contract)
    token = gateway.token(asset_contract)
    info = {
        "asset_contract": asset_contract,
        "symbol": registration.symbol,
        "decimals": registration.decimals,
        "enabled": registration.enabled,
        "name": None,
        "total_supply": None,
        "token_uri": None
    }
    if token is not None:
        info["name"] = token.get_name()
        info["total_supply"] = token.get_total_supply()
        info["token_uri"] = token.get_token_uri()
    return info
