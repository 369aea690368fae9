"""
Configuration package.

This package contains environment settings and the demo seed loader.
"""

from canton_vault.config.config import Settings
from canton_vault.config.seed import load_demo_seed

__all__ = [
    "Settings",
    "load_demo_seed",
]
