"""Error taxonomy shared by every relay component.

Each failure the core can produce has a kind. Components raise the typed
exception; the service layer turns it into a result object and the API
maps the kind to an HTTP status.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kind of relay failure, as reported to callers."""
    UNAUTHENTICATED = "unauthenticated"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"
    MISSING_FIELDS = "missing_fields"
    INVALID_ADDRESS = "invalid_address"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_KEY_MATERIAL = "invalid_key_material"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    SUBMISSION_REJECTED = "submission_rejected"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"


_HTTP_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.TOKEN_INVALID: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.MISSING_FIELDS: 400,
    ErrorKind.INVALID_ADDRESS: 400,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.INVALID_KEY_MATERIAL: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 500,
    ErrorKind.SUBMISSION_REJECTED: 500,
    ErrorKind.CONFIRMATION_TIMEOUT: 504,
}

_ERROR_TITLES = {
    ErrorKind.UNAUTHENTICATED: "Authentication required",
    ErrorKind.TOKEN_INVALID: "Invalid token",
    ErrorKind.TOKEN_EXPIRED: "Token expired",
    ErrorKind.MISSING_FIELDS: "Missing required fields",
    ErrorKind.INVALID_ADDRESS: "Invalid address",
    ErrorKind.INVALID_AMOUNT: "Invalid amount",
    ErrorKind.INVALID_KEY_MATERIAL: "Invalid key material",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Ledger node unavailable",
    ErrorKind.SUBMISSION_REJECTED: "Transaction failed",
    ErrorKind.CONFIRMATION_TIMEOUT: "Transaction not confirmed",
}


def http_status_for(kind: ErrorKind) -> int:
    """HTTP status code used when a failure of this kind reaches the API."""
    return _HTTP_STATUS.get(kind, 500)


def error_title(kind: ErrorKind) -> str:
    """Short human-readable title for an error kind."""
    return _ERROR_TITLES.get(kind, "Request failed")


class RelayError(Exception):
    """Base class for all typed relay failures."""

    kind: ErrorKind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str = ""):
        self.message = message or error_title(self.kind)
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Structured body for API responses."""
        return {
            "error": error_title(self.kind),
            "kind": self.kind.value,
            "message": self.message,
        }


class Unauthenticated(RelayError):
    """Token missing or unreadable."""
    kind = ErrorKind.UNAUTHENTICATED


class TokenInvalid(RelayError):
    """Token readable but failed verification."""
    kind = ErrorKind.TOKEN_INVALID


class TokenExpired(RelayError):
    """Token verified but past its expiry."""
    kind = ErrorKind.TOKEN_EXPIRED


class MissingFields(RelayError):
    """Required request fields are absent or empty."""
    kind = ErrorKind.MISSING_FIELDS

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Need {', '.join(fields)}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["details"] = self.message
        data["missing"] = self.fields
        return data


class InvalidAddress(RelayError):
    """Value is not a valid ledger account address."""
    kind = ErrorKind.INVALID_ADDRESS


class InvalidAmount(RelayError):
    """Transfer amount is not a positive, representable number."""
    kind = ErrorKind.INVALID_AMOUNT


class InvalidKeyMaterial(RelayError):
    """Secret key bytes have the wrong format or do not match the sender."""
    kind = ErrorKind.INVALID_KEY_MATERIAL


class UpstreamUnavailable(RelayError):
    """Ledger node could not be reached or answered garbage."""
    kind = ErrorKind.UPSTREAM_UNAVAILABLE


class SubmissionRejected(RelayError):
    """Ledger node rejected the transaction, or it failed on chain."""
    kind = ErrorKind.SUBMISSION_REJECTED

    def __init__(self, message: str = "", signature: Optional[str] = None):
        self.signature = signature
        super().__init__(message)


class ConfirmationTimeout(RelayError):
    """Transaction was submitted but confirmation was not observed in time.

    The ledger state is unknown: the transfer may still land. Callers must
    re-check balance or history instead of resubmitting.
    """
    kind = ErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, signature: str, timeout: float):
        self.signature = signature
        self.timeout = timeout
        super().__init__(
            f"Transaction {signature} was submitted but not confirmed within {timeout:g}s. "
            "It may still be applied; check the balance or transaction history before retrying."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["signature"] = self.signature
        return data
