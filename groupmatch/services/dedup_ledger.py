"""In-process ledger of recently seen inbound message ids."""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from groupmatch.config import settings
from groupmatch.logging_config import get_logger

logger = get_logger("dedup_ledger")


@dataclass(frozen=True)
class MessageIdentity:
    message_id: Optional[str]
    chat_id: str
    received_at: float = field(default_factory=time.time)


class MessageLedger:
    """TTL-bounded set of message ids.

    `insert_if_absent` checks and marks in a single step under the lock, so two
    concurrent deliveries of the same id cannot both be admitted.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[MessageIdentity, float]] = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, identity: MessageIdentity) -> bool:
        """Record the id. Returns False when it was already recorded and unexpired."""
        if not identity.message_id:
            return True
        now = self._clock()
        with self._lock:
            existing = self._entries.get(identity.message_id)
            if existing is not None and existing[1] > now:
                return False
            self._entries[identity.message_id] = (identity, now + self.ttl_seconds)
            return True

    def contains(self, message_id: str) -> bool:
        now = self._clock()
        with self._lock:
            existing = self._entries.get(message_id)
            return existing is not None and existing[1] > now

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired message ids")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_ledger: Optional[MessageLedger] = None


def get_message_ledger() -> MessageLedger:
    global _ledger
    if _ledger is None:
        _ledger = MessageLedger(ttl_seconds=settings.dedup_ttl_seconds)
    return _ledger
