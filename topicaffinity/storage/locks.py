from __future__ import annotations

import zlib
from threading import Lock, RLock
from typing import Dict, Hashable


class UserLockRegistry:
    """
    One re-entrant lock per user.

    Decay-then-accumulate is a read-modify-write over a user's whole score
    set, so every mutation of that set runs under the user's lock.
    Different users never contend.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, RLock] = {}
        self._guard = Lock()

    def lock_for(self, user_id: str) -> RLock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = RLock()
                self._locks[user_id] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class StripedLock:
    """
    Fixed pool of locks addressed by key hash.

    Gives per-key mutual exclusion with bounded memory; unrelated keys
    share a stripe only on hash collision.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [RLock() for _ in range(stripes)]

    def lock_for(self, key: Hashable) -> RLock:
        digest = zlib.crc32(repr(key).encode("utf-8"))
        return self._locks[digest % len(self._locks)]
