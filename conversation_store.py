"""
Conversation Store

In-memory store of multi-turn conversation histories. Conversations expire
after a period of inactivity (swept by a background thread) and the oldest
ones are evicted when the store grows past its capacity.

Nothing here is persisted: a restart forgets every conversation.
"""

import uuid
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from models import Conversation, Message, utc_now
from chat_logger import get_logger
from app_config import (
    CONVERSATION_TTL_HOURS,
    CONVERSATION_PRUNE_INTERVAL_SECONDS,
    MAX_CONVERSATIONS,
    CONVERSATION_EVICT_FRACTION,
)

logger = get_logger("concierge")


class ConversationStore:
    """Keyed collection of conversations guarded by a single lock."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_conversations: int = MAX_CONVERSATIONS,
        evict_fraction: float = CONVERSATION_EVICT_FRACTION,
        prune_interval_seconds: float = CONVERSATION_PRUNE_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        if ttl_seconds is None:
            ttl_seconds = CONVERSATION_TTL_HOURS * 3600
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        if not 0 < evict_fraction <= 1:
            raise ValueError("evict_fraction must be in (0, 1]")

        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_conversations = max_conversations
        self.evict_fraction = evict_fraction
        self.prune_interval = prune_interval_seconds
        self._clock = clock

        self._conversations: Dict[str, Conversation] = {}
        self._lock = threading.Lock()

        # Background prune state
        self._stop_event = threading.Event()
        self._prune_thread: Optional[threading.Thread] = None

    # ─── Foreground operations ───

    def create(self, seed: Message) -> str:
        """Start a conversation seeded with one message and return its id."""
        with self._lock:
            conversation_id = str(uuid.uuid4())
            while conversation_id in self._conversations:
                conversation_id = str(uuid.uuid4())

            now = self._clock()
            self._conversations[conversation_id] = Conversation(
                id=conversation_id,
                history=[seed],
                created=now,
                last_updated=now,
            )
            self._evict_oldest_locked()

        logger.debug(f"ConversationStore: created | id={conversation_id}")
        return conversation_id

    def exists(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._conversations

    def append(self, conversation_id: str, message: Message) -> bool:
        """Append a message. Returns False, changing nothing, if the id is unknown."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return False
            conversation.history.append(message)
            conversation.last_updated = self._clock()
            return True

    def get_history(self, conversation_id: str) -> Optional[List[Message]]:
        """Copy of the message history, or None if the id is unknown."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            return list(conversation.history)

    def get(self, conversation_id: str) -> Optional[Conversation]:
        """Snapshot of a conversation record; changes to it don't affect the store."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return None
            return replace(conversation, history=list(conversation.history))

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    # ─── Expiry & eviction ───

    def prune_expired(self) -> int:
        """Remove conversations idle for longer than the TTL. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                cid for cid, conversation in self._conversations.items()
                if now - conversation.last_updated > self.ttl
            ]
            for cid in expired:
                del self._conversations[cid]
            remaining = len(self._conversations)

        if expired:
            logger.info(f"ConversationStore: pruned expired | removed={len(expired)} | remaining={remaining}")
        return len(expired)

    def prune_if_needed(self) -> int:
        """Evict the oldest conversations if over capacity. Returns the number removed."""
        with self._lock:
            return self._evict_oldest_locked()

    def _evict_oldest_locked(self) -> int:
        if len(self._conversations) <= self.max_conversations:
            return 0

        target = max(1, int(self.max_conversations * (1 - self.evict_fraction)))
        # sorted() is stable, so ties keep insertion order and the newest survive
        by_age = sorted(self._conversations.values(), key=lambda c: c.last_updated)
        to_remove = by_age[:len(self._conversations) - target]
        for conversation in to_remove:
            del self._conversations[conversation.id]

        logger.info(
            f"ConversationStore: capacity eviction | removed={len(to_remove)} | "
            f"remaining={len(self._conversations)} | max={self.max_conversations}"
        )
        return len(to_remove)

    # ─── Background sweep ───

    def start_background_prune(self):
        """Start a daemon thread that runs prune_expired() every prune_interval seconds."""
        if self._prune_thread and self._prune_thread.is_alive():
            return
        self._stop_event.clear()

        def _prune_loop():
            while not self._stop_event.wait(self.prune_interval):
                try:
                    self.prune_expired()
                except Exception as e:
                    logger.error(f"ConversationStore: background prune failed | error={e}")

        self._prune_thread = threading.Thread(
            target=_prune_loop, name="conversation-prune", daemon=True
        )
        self._prune_thread.start()
        logger.info(f"ConversationStore: background prune scheduled | interval_s={self.prune_interval}")

    def stop_background_prune(self, timeout: Optional[float] = None):
        """Signal the sweep thread to exit and wait for it."""
        self._stop_event.set()
        if self._prune_thread is not None:
            self._prune_thread.join(timeout)
            self._prune_thread = None
