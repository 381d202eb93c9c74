"""
Domain errors for the cover protocol.

Every failure carries a machine-readable code (e.g. ``AlreadyRegistered``)
and one of six kinds. The API layer maps the kind to an HTTP status.
"""

from typing import Dict


class ErrorKind:
    """Error kinds shared by every operation."""
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    STATE_CONFLICT = "state_conflict"
    EXTERNAL_FAILURE = "external_failure"
    STALENESS = "staleness"


HTTP_STATUS_BY_KIND: Dict[str, int] = {
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.EXTERNAL_FAILURE: 502,
    ErrorKind.STALENESS: 503,
}


class AssetCoverError(Exception):
    """Base exception for all protocol failures."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or code
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code, "kind": self.kind, "detail": self.message}


class AuthorizationError(AssetCoverError):
    kind = ErrorKind.AUTHORIZATION

    def __init__(self, message: str = "Caller is not allowed to perform this operation"):
        super().__init__("Unauthorized", message)


class NotFoundError(AssetCoverError):
    kind = ErrorKind.NOT_FOUND


class InvalidInputError(AssetCoverError):
    kind = ErrorKind.INVALID_INPUT


class StateConflictError(AssetCoverError):
    kind = ErrorKind.STATE_CONFLICT


class ExternalFailureError(AssetCoverError):
    kind = ErrorKind.EXTERNAL_FAILURE


class StalePriceError(AssetCoverError):
    kind = ErrorKind.STALENESS

    def __init__(self, message: str = "Price is stale or invalid"):
        super().__init__("StalePrice", message)


class ArithmeticOverflowError(InvalidInputError):
    def __init__(self, message: str = "Arithmetic overflow"):
        super().__init__("ArithmeticOverflow", message)
