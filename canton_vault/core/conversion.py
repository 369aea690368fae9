"""
Share/asset conversion rules.

These are the only place share price and conversions are computed. Deposit,
redeem and previews all call into this module with the vault totals read
*before* the transition, so a preview always matches the executed result.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from canton_vault.core.amounts import ONE, ZERO, mul_div, quantize, to_amount

if TYPE_CHECKING:
    from canton_vault.core.models import Vault


def share_price(total_assets: Decimal, total_shares: Decimal) -> Decimal:
    """totalAssets / totalShares, or 1.0 for a vault with no shares."""
    if total_shares > ZERO:
        return mul_div(total_assets, ONE, total_shares)
    return quantize(ONE)


def shares_for_deposit(total_assets: Decimal, total_shares: Decimal, assets: Decimal) -> Decimal:
    """
    Shares minted for depositing `assets`.

    First depositor convention: an empty pool mints 1 share per asset. A pool
    holding shares but no assets cannot price a deposit and also falls back to 1:1.
    """
    if total_shares == ZERO or total_assets == ZERO:
        return quantize(assets)
    return mul_div(assets, total_shares, total_assets)


def assets_for_redeem(total_assets: Decimal, total_shares: Decimal, shares: Decimal) -> Decimal:
    """Assets released for burning `shares`; 1:1 when the pool holds no assets."""
    if total_assets == ZERO or total_shares == ZERO:
        return quantize(shares)
    return mul_div(shares, total_assets, total_shares)


def assets_to_shares(vault: "Vault", assets) -> Decimal:
    """Preview: shares a deposit of `assets` would mint against this snapshot."""
    return shares_for_deposit(vault.total_assets, vault.total_shares, to_amount(assets))


def shares_to_assets(vault: "Vault", shares) -> Decimal:
    """Preview: assets a redemption of `shares` would release against this snapshot."""
    return assets_for_redeem(vault.total_assets, vault.total_shares, to_amount(shares))


def holding_value(vault: "Vault", shares: Decimal) -> Decimal:
    """Market value of `shares`: shares x sharePrice."""
    return mul_div(shares, vault.share_price, ONE)
