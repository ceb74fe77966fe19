"""In-process holder of the current bearer credential.

:class:`CredentialStore` is the single source of truth for the bearer
credential of one :class:`~xapi.auth.manager.CredentialManager`. It offers
two kinds of access:

- :meth:`CredentialStore.read` -- returns the cached value immediately,
  never waits on the lock and never triggers acquisition.
- :meth:`CredentialStore.acquire_exclusive` -- an async context manager
  that holds an :class:`asyncio.Lock` for the duration of a write scope and
  yields a :class:`CredentialGuard` to mutate the slot.

The slot is only ever replaced by a single reference assignment made while
the lock is held, so a reader sees either the old value or the new one.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class CredentialGuard:
    """Write handle for the slot, valid only inside ``acquire_exclusive()``."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._active = True

    @property
    def value(self) -> Optional[str]:
        self._check()
        return self._store._value

    def set(self, value: str) -> None:
        self._check()
        self._store._value = value

    def clear(self) -> None:
        self._check()
        self._store._value = None

    def _release(self) -> None:
        self._active = False

    def _check(self) -> None:
        if not self._active:
            raise RuntimeError("CredentialGuard used outside its exclusive scope")


class CredentialStore:
    """Mutually exclusive slot for one bearer credential.

    Args:
        initial: Optional value to start in the ``Cached`` state with.

    Example::

        store = CredentialStore()
        async with store.acquire_exclusive() as guard:
            if guard.value is None:
                guard.set(await fetch_token())
        token = store.read()
    """

    def __init__(self, initial: Optional[str] = None) -> None:
        self._value: Optional[str] = initial
        self._lock = asyncio.Lock()

    def read(self) -> Optional[str]:
        """Return the cached credential, or ``None`` when the slot is empty."""
        return self._value

    @property
    def is_locked(self) -> bool:
        """Whether a write scope is currently held."""
        return self._lock.locked()

    @asynccontextmanager
    async def acquire_exclusive(self) -> AsyncIterator[CredentialGuard]:
        """Hold the write lock and yield a :class:`CredentialGuard`.

        Waiters queue in arrival order. The lock is released on every exit
        path, including exceptions raised inside the scope and cancellation
        of the holding task, and the guard stops working once released.
        """
        async with self._lock:
            guard = CredentialGuard(self)
            try:
                yield guard
            finally:
                guard._release()
