"""Per-key locks so that work on one key never blocks work on another."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _Slot:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLocks:
    """A registry of ``threading.Lock`` objects, one per key.

    A key's lock exists only while some caller holds or waits for it.
    Holders and waiters are counted under the registry lock, and the
    slot is dropped when the count returns to zero, so every caller for a
    key always contends on the same lock.  The registry lock is never held
    while the caller does its work.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._registry_lock:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._registry_lock:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        return len(self._slots)
