"""
Typed failures returned by the vault accounting core.

The core never retries. It classifies and raises so the caller (an HTTP
handler, a CLI) decides what to do:

- NotFound            -> empty / 404 style response
- InvalidArgument     -> caller input problem
- InsufficientBalance -> business rejection, caller may pick a smaller amount
- InsufficientShares  -> business rejection, caller may pick fewer shares
- Conflict            -> stale contract reference, refresh and retry
- Transient           -> ledger timeout / unreachable, retry with backoff
- Fatal               -> unexpected ledger response shape, do not retry
"""

from __future__ import annotations

from typing import Any, Dict


class VaultError(Exception):
    """Base class for all vault accounting failures."""

    code: str = "vault_error"
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = {k: str(v) for k, v in self.details.items()}
        return payload


class NotFoundError(VaultError):
    code = "not_found"


class VaultNotFoundError(NotFoundError):
    code = "vault_not_found"

    def __init__(self, vault_id: str) -> None:
        super().__init__(f"Vault not found: {vault_id}", vault_id=vault_id)
        self.vault_id = vault_id


class InvalidArgumentError(VaultError):
    code = "invalid_argument"


class MissingReferenceError(InvalidArgumentError):
    code = "missing_reference"


class InsufficientBalanceError(VaultError):
    code = "insufficient_balance"


class InsufficientSharesError(VaultError):
    code = "insufficient_shares"


class ConflictError(VaultError):
    code = "conflict"
    retryable = True


class TransientError(VaultError):
    code = "transient"
    retryable = True


class FatalError(VaultError):
    code = "fatal"


def describe(exc: BaseException) -> Dict[str, Any]:
    """Compact dict for structured log events."""
    return {"err": str(exc), "code": getattr(exc, "code", type(exc).__name__)}
