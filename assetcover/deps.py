"""
Dependencies: caller principal, block height, collaborators and the
per-operation context.
"""

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import os
import logging

import httpx

from sqlmodel import Session

from assetcover.cache import config_cache
from assetcover.context import TxContext
from assetcover.db import get_session
from assetcover.fixedpoint import MAX_INDEX
from assetcover.gateway import (
    Gateway, InMemoryNativeLedger, InMemoryToken, HttpPriceOracle, HttpNativeLedger, HttpToken
)

logger = logging.getLogger("assetcover")

security = HTTPBearer()

_gateway: Optional[Gateway] = None


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """
    The bearer credential is the caller principal, already verified by the
    host in front of this service.
    """
    principal = credentials.credentials.strip()
    if not principal:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller principal"
        )
    return principal


async def get_block_height(
    x_block_height: int = Header(..., ge=0, le=MAX_INDEX, description="Current host height")
) -> int:
    return x_block_height


def build_gateway() -> Gateway:
    """
    Default collaborators.

    With LEDGER_URL set, native and token transfers go to that ledger
    service; otherwise balances are held in memory, opened from the seed
    file. An HTTP oracle is registered when ORACLE_URL is set.
    """
    seed_data = config_cache.get_seed_data()
    assets = seed_data.get("assets", [])

    ledger_url = os.getenv("LEDGER_URL")
    if ledger_url:
        client = httpx.Client(base_url=ledger_url, timeout=5.0)
        gateway = Gateway(native=HttpNativeLedger(ledger_url, client=client))
        for asset in assets:
            gateway.register_token(
                asset["asset_contract"],
                HttpToken(ledger_url, asset["asset_contract"], client=client)
            )
        logger.info(f"HTTP ledger registered | url={ledger_url} | tokens={len(assets)}")
    else:
        balances = seed_data.get("balances", {})
        gateway = Gateway(native=InMemoryNativeLedger(balances.get("native", {})))
        for asset in assets:
            gateway.register_token(
                asset["asset_contract"],
                InMemoryToken(
                    asset.get("name", asset["symbol"]), asset["symbol"], asset["decimals"],
                    balances.get(asset["asset_contract"], {})
                )
            )

    oracle_url = os.getenv("ORACLE_URL")
    if oracle_url:
        oracle_ref = config_cache.get_protocol_config().get("oracle_ref") or "default"
        gateway.register_oracle(oracle_ref, HttpPriceOracle(oracle_url))
        logger.info(f"HTTP oracle registered | oracle_ref={oracle_ref} | url={oracle_url}")
    return gateway


def get_gateway() -> Gateway:
    global _gateway
    if _gateway is None:
        _gateway = build_gateway()
    return _gateway


async def get_tx_context(
    caller: str = Depends(get_current_principal),
    height: int = Depends(get_block_height),
    session: Session = Depends(get_session),
    gateway: Gateway = Depends(get_gateway)
) -> TxContext:
    return TxContext(session=session, caller=caller, height=height, gateway=gateway)
