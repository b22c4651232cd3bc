"""
In-process lock registry that serializes work per conversation.

Different conversations proceed in parallel; two message ingestions for the
same conversation run one after the other. Locks are re-entrant so a holder
may call into other per-conversation operations. Entries are reference
counted and dropped once nobody holds or waits on them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple


class ConversationLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, Tuple[threading.RLock, int]] = {}

    def _acquire_entry(self, conversation_id: str) -> threading.RLock:
        with self._guard:
            lock, refs = self._locks.get(conversation_id, (None, 0))
            if lock is None:
                lock = threading.RLock()
            self._locks[conversation_id] = (lock, refs + 1)
            return lock

    def _release_entry(self, conversation_id: str) -> None:
        with self._guard:
            lock, refs = self._locks[conversation_id]
            if refs <= 1:
                del self._locks[conversation_id]
            else:
                self._locks[conversation_id] = (lock, refs - 1)

    @contextmanager
    def hold(self, conversation_id: str) -> Iterator[None]:
        lock = self._acquire_entry(conversation_id)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            self._release_entry(conversation_id)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


conversation_locks = ConversationLocks()
