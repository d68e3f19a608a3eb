# utils/locks.py
"""
In-process advisory locks keyed by resource, e.g. ("route", 12) or ("car", 3).

Only serialises requests handled by the same process; the services pair
these with row locks and the `flask audit` scan for multi-worker deployments.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager, ExitStack
from typing import Dict, Hashable, Iterator

_registry_guard = threading.Lock()
# one lock per route/car/driver ever touched; bounded by fleet size
_locks: Dict[Hashable, threading.RLock] = {}


def _lock_for(key: Hashable):
    with _registry_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


@contextmanager
def keyed_lock(*keys: Hashable) -> Iterator[None]:
    """Hold every lock in `keys` (None entries skipped), acquired in sorted order."""
    wanted = sorted({k for k in keys if k is not None}, key=repr)
    with ExitStack() as stack:
        for key in wanted:
            stack.enter_context(_lock_for(key))
        yield
