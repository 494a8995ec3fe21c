"""Holder-scoped locks serializing match-then-write sequences in one process."""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class HolderLockRegistry:
    """
    Hands out one re-entrant lock per key (a case holder or property id).

    Locks are held weakly, so keys nobody is waiting on are dropped
    automatically. Cross-process races are covered by the documents
    uniqueness constraint, not by this registry.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[Hashable, _KeyLock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: Hashable) -> "_KeyLock":
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _KeyLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable | None) -> Iterator[None]:
        if key is None:
            yield
            return
        lock = self._lock_for(key)
        with lock.rlock:
            yield


class _KeyLock:
    __slots__ = ("rlock", "__weakref__")

    def __init__(self) -> None:
        self.rlock = threading.RLock()


default_lock_registry = HolderLockRegistry()
