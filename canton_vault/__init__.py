"""
Canton vault accounting backend.

Pooled vault deposits and redemptions against a Canton contract ledger,
with an in-memory demo store used when the ledger is unreachable.
"""

__version__ = "0.3.0"
