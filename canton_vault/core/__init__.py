"""
Core vault accounting package.

This package contains exact amount handling, the share/asset conversion rules,
typed state views and the error taxonomy.
"""

from canton_vault.core.amounts import format_amount, quantize, to_amount
from canton_vault.core.conversion import (
    assets_for_redeem,
    assets_to_shares,
    holding_value,
    share_price,
    shares_for_deposit,
    shares_to_assets,
)
from canton_vault.core.errors import (
    ConflictError,
    FatalError,
    InsufficientBalanceError,
    InsufficientSharesError,
    InvalidArgumentError,
    MissingReferenceError,
    NotFoundError,
    TransientError,
    VaultError,
    VaultNotFoundError,
)
from canton_vault.core.models import (
    ConversionPreview,
    DemoSeed,
    DepositRequest,
    DepositResult,
    RedeemRequest,
    RedeemResult,
    ShareBalance,
    ShareHolding,
    UnderlyingHolding,
    Vault,
)

__all__ = [
    "format_amount",
    "quantize",
    "to_amount",
    "assets_for_redeem",
    "assets_to_shares",
    "holding_value",
    "share_price",
    "shares_for_deposit",
    "shares_to_assets",
    "ConflictError",
    "FatalError",
    "InsufficientBalanceError",
    "InsufficientSharesError",
    "InvalidArgumentError",
    "MissingReferenceError",
    "NotFoundError",
    "TransientError",
    "VaultError",
    "VaultNotFoundError",
    "ConversionPreview",
    "DemoSeed",
    "DepositRequest",
    "DepositResult",
    "RedeemRequest",
    "RedeemResult",
    "ShareBalance",
    "ShareHolding",
    "UnderlyingHolding",
    "Vault",
]
