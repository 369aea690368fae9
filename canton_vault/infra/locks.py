"""Per-vault asyncio locks for deposit and redeem."""

from __future__ import annotations

import asyncio
from typing import Dict


class KeyedLocks:
    """
    Lazily created asyncio.Lock per vault id.

    Deposit and redeem hold the lock for their vault from the pre-state read
    until the transition is applied. Locks live as long as the registry.
    """

    def __init__(self) -> None:
        self._by_key: Dict[str, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    async def get_lock(self, key: str) -> asyncio.Lock:
        # two first callers for the same vault must receive the same lock
        async with self._registry_lock:
            return self._by_key.setdefault(key, asyncio.Lock())

    def __len__(self) -> int:
        return len(self._by_key)
