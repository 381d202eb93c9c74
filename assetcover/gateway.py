"""
External collaborators: asset transfer and oracle price feed.

Calls are synchronous and return a plain success/failure result. The
protocol never retries; a failed call aborts the running operation.
"""

from dataclasses import dataclass
from typing import Protocol, Dict, Optional, Any
from abc import abstractmethod
import logging

import httpx

from assetcover.errors import ExternalFailureError
from assetcover.models import NATIVE, TOKEN

logger = logging.getLogger("assetcover")


class OracleError(Exception):
    """Raised when the price feed cannot answer."""


@dataclass(frozen=True)
class PriceSnapshot:
    """One consistent oracle reading for a symbol."""
    price: int
    last_update_block: int
    valid: bool


class NativeTransfer(Protocol):
    """Move value in the native currency."""

    @abstractmethod
    def move_value(self, amount: int, sender: str, recipient: str) -> bool:
        ...


class TokenTransfer(Protocol):
    """Fungible-token capability set."""

    @abstractmethod
    def transfer(self, amount: int, sender: str, recipient: str, memo: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    def get_balance(self, principal: str) -> int:
        ...

    @abstractmethod
    def get_name(self) -> str:
        ...

    @abstractmethod
    def get_symbol(self) -> str:
        ...

    @abstractmethod
    def get_decimals(self) -> int:
        ...

    @abstractmethod
    def get_total_supply(self) -> int:
        ...

    @abstractmethod
    def get_token_uri(self) -> Optional[str]:
        ...


class PriceOracle(Protocol):
    """USD price feed, 6 fractional digits."""

    @abstractmethod
    def get_asset_price(self, symbol: str) -> int:
        ...

    @abstractmethod
    def get_last_update_block(self, symbol: str) -> int:
        ...

    @abstractmethod
    def is_price_valid(self, symbol: str) -> bool:
        ...

    @abstractmethod
    def get_price_snapshot(self, symbol: str) -> PriceSnapshot:
        """Price, last-update height and validity from a single reading."""
        ...


# ============================================================================
# In-memory collaborators (development and tests)
# ============================================================================

class InMemoryNativeLedger:
    """Native balances held in a dict."""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self.balances: Dict[str, int] = dict(balances or {})

    def credit(self, principal: str, amount: int):
        self.balances[principal] = self.balances.get(principal, 0) + amount

    def get_balance(self, principal: str) -> int:
        return self.balances.get(principal, 0)

    def move_value(self, amount: int, sender: str, recipient: str) -> bool:
        if amount <= 0 or sender == recipient:
            return False
        if self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] -= amount
        self.credit(recipient, amount)
        return True


class InMemoryToken(InMemoryNativeLedger):
    """Fungible token with the full capability set."""

    def __init__(self, name: str, symbol: str, decimals: int,
                 balances: Optional[Dict[str, int]] = None, token_uri: Optional[str] = None):
        super().__init__(balances)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.token_uri = token_uri

    def transfer(self, amount: int, sender: str, recipient: str, memo: Optional[str] = None) -> bool:
        return self.move_value(amount, sender, recipient)

    def get_name(self) -> str:
        return self.name

    def get_symbol(self) -> str:
        return self.symbol

    def get_decimals(self) -> int:
        return self.decimals

    def get_total_supply(self) -> int:
        return sum(self.balances.values())

    def get_token_uri(self) -> Optional[str]:
        return self.token_uri


class StaticPriceOracle:
    """Oracle answering from prices set by hand."""

    def __init__(self):
        self._prices: Dict[str, PriceSnapshot] = {}
        self.calls = 0

    def set_price(self, symbol: str, price: int, last_update_block: int, valid: bool = True):
        self._prices[symbol] = PriceSnapshot(price, last_update_block, valid)

    def get_price_snapshot(self, symbol: str) -> PriceSnapshot:
        self.calls += 1
        if symbol not in self._prices:
            raise OracleError(f"No price for {symbol}")
        return self._prices[symbol]

    def get_asset_price(self, symbol: str) -> int:
        return self.get_price_snapshot(symbol).price

    def get_last_update_block(self, symbol: str) -> int:
        return self.get_price_snapshot(symbol).last_update_block

    def is_price_valid(self, symbol: str) -> bool:
        return self.get_price_snapshot(symbol).valid


# ============================================================================
# HTTP collaborators
# ============================================================================

def _as_uint(value: Any, field: str) -> int:
    """Non-negative integer from a JSON number or a string of digits."""
    if isinstance(value, bool):
        raise ValueError(f"'{field}' is not an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.isdigit():
        result = int(value)
    else:
        raise ValueError(f"'{field}' is not an integer")
    if result < 0:
        raise ValueError(f"'{field}' is negative")
    return result


class HttpPriceOracle:
    """
    Price feed served over HTTP.

    Expects ``GET {base_url}/prices/{symbol}`` to answer
    ``{"price": int, "last_update_block": int, "valid": bool}``. Any
    transport failure or malformed body surfaces as ``OracleError``.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def get_price_snapshot(self, symbol: str) -> PriceSnapshot:
        try:
            response = self.client.get(f"/prices/{symbol}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise OracleError(f"Oracle request failed for {symbol}: {e}") from e

        if not isinstance(data, dict):
            raise OracleError(f"Oracle response for {symbol} is not an object")
        try:
            valid = data["valid"]
            if not isinstance(valid, bool):
                raise ValueError("'valid' is not a boolean")
            return PriceSnapshot(
                price=_as_uint(data["price"], "price"),
                last_update_block=_as_uint(data["last_update_block"], "last_update_block"),
                valid=valid
            )
        except KeyError as e:
            raise OracleError(f"Oracle response for {symbol} missing {e}") from e
        except ValueError as e:
            raise OracleError(f"Malformed oracle response for {symbol}: {e}") from e

    def get_asset_price(self, symbol: str) -> int:
        return self.get_price_snapshot(symbol).price

    def get_last_update_block(self, symbol: str) -> int:
        return self.get_price_snapshot(symbol).last_update_block

    def is_price_valid(self, symbol: str) -> bool:
        return self.get_price_snapshot(symbol).valid


class HttpNativeLedger:
    """
    Native transfers through a ledger service.

    ``POST {base_url}/native/transfers`` takes
    ``{"amount", "sender", "recipient"}`` and answers ``{"success": bool}``.
    Anything but an explicit success is a failed transfer.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def _post_transfer(self, path: str, payload: Dict[str, Any]) -> bool:
        try:
            response = self.client.post(path, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Ledger transfer failed | path={path} | error={e}")
            return False
        return isinstance(data, dict) and data.get("success") is True

    def move_value(self, amount: int, sender: str, recipient: str) -> bool:
        return self._post_transfer(
            "/native/transfers",
            {"amount": amount, "sender": sender, "recipient": recipient}
        )


class HttpToken(HttpNativeLedger):
    """
    One token contract behind the ledger service.

    ``POST /tokens/{contract}/transfers`` moves funds,
    ``GET /tokens/{contract}/balances/{principal}`` answers ``{"balance"}`` and
    ``GET /tokens/{contract}`` answers the token metadata.
    """

    def __init__(self, base_url: str, asset_contract: str, timeout: float = 5.0,
                 client: Optional[httpx.Client] = None):
        super().__init__(base_url, timeout, client)
        self.asset_contract = asset_contract

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            response = self.client.get(path)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalFailureError(
                "TokenUnavailable", f"Token {self.asset_contract} did not answer: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ExternalFailureError("TokenUnavailable", f"Malformed answer for {self.asset_contract}")
        return data

    def _metadata(self, name: str):
        return self._get(f"/tokens/{self.asset_contract}").get(name)

    def transfer(self, amount: int, sender: str, recipient: str, memo: Optional[str] = None) -> bool:
        return self._post_transfer(
            f"/tokens/{self.asset_contract}/transfers",
            {"amount": amount, "sender": sender, "recipient": recipient, "memo": memo}
        )

    def get_balance(self, principal: str) -> int:
        data = self._get(f"/tokens/{self.asset_contract}/balances/{principal}")
        try:
            return _as_uint(data.get("balance"), "balance")
        except ValueError as e:
            raise ExternalFailureError("TokenUnavailable", str(e)) from e

    def get_name(self) -> str:
        return self._metadata("name")

    def get_symbol(self) -> str:
        return self._metadata("symbol")

    def get_decimals(self) -> int:
        return self._metadata("decimals")

    def get_total_supply(self) -> int:
        return self._metadata("total_supply")

    def get_token_uri(self) -> Optional[str]:
        return self._metadata("token_uri")


# ============================================================================
# Payout strategies
# ============================================================================

class NativePayout:
    """Transfer through the native currency."""

    def __init__(self, native: NativeTransfer):
        self.native = native

    def transfer(self, amount: int, sender: str, recipient: str) -> bool:
        return self.native.move_value(amount, sender, recipient)


class TokenPayout:
    """Transfer through one registered token contract."""

    def __init__(self, token: TokenTransfer):
        self.token = token

    def transfer(self, amount: int, sender: str, recipient: str) -> bool:
        return self.token.transfer(amount, sender, recipient)


class Gateway:
    """All collaborators the protocol talks to."""

    def __init__(self, native: NativeTransfer,
                 tokens: Optional[Dict[str, TokenTransfer]] = None,
                 oracles: Optional[Dict[str, PriceOracle]] = None):
        self.native = native
        self.tokens: Dict[str, TokenTransfer] = dict(tokens or {})
        self.oracles: Dict[str, PriceOracle] = dict(oracles or {})

    def register_token(self, asset_contract: str, token: TokenTransfer):
        self.tokens[asset_contract] = token

    def register_oracle(self, oracle_ref: str, oracle: PriceOracle):
        self.oracles[oracle_ref] = oracle

    def token(self, asset_contract: str) -> Optional[TokenTransfer]:
        return self.tokens.get(asset_contract)

    def oracle(self, oracle_ref: str) -> Optional[PriceOracle]:
        return self.oracles.get(oracle_ref)

    def payout(self, asset_class: str, asset_contract: Optional[str] = None):
        """Select the transfer strategy for a stored asset class tag."""
        if asset_class == NATIVE:
            return NativePayout(self.native)
        if asset_class == TOKEN:
            token = self.tokens.get(asset_contract)
            if token is None:
                logger.warning(f"No token adapter | asset_contract={asset_contract}")
                raise ExternalFailureError(
                    "TransferFailed", f"No transfer adapter for token {asset_contract}"
                )
            return TokenPayout(token)
        raise ExternalFailureError("TransferFailed", f"Unknown asset class {asset_class}")
