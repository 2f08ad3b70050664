# movie_bot/state.py

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Callable,
    Coroutine,
    MutableMapping,
)

from telegram.ext import Application

from .config import logger

if TYPE_CHECKING:
    from .workflows.selection_session import ChatSession

SESSION_STORE_KEY = "SESSION_STORE"
CHAT_COORDINATOR_KEY = "CHAT_COORDINATOR"


class SessionStore(ABC):
    """Per-chat conversation state, keyed by chat id."""

    @abstractmethod
    def get(self, chat_id: int) -> ChatSession | None:
        """Returns the stored session, or None when the chat has none."""

    @abstractmethod
    def set(self, chat_id: int, session: ChatSession) -> None:
        ...

    @abstractmethod
    def clear(self, chat_id: int) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    Unbounded by default. With `max_entries` the least recently touched chats
    are evicted first; with `ttl_seconds` sessions older than the TTL read as
    absent. Nothing survives a restart.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._sessions: OrderedDict[int, tuple[ChatSession, float]] = OrderedDict()

    def get(self, chat_id: int) -> ChatSession | None:
        entry = self._sessions.get(chat_id)
        if entry is None:
            return None
        session, stored_at = entry
        if self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds:
            del self._sessions[chat_id]
            return None
        return session

    def set(self, chat_id: int, session: ChatSession) -> None:
        self._sessions[chat_id] = (session, self._clock())
        self._sessions.move_to_end(chat_id)
        if self.max_entries is not None:
            while len(self._sessions) > self.max_entries:
                self._sessions.popitem(last=False)

    def clear(self, chat_id: int) -> None:
        self._sessions.pop(chat_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


class ChatCoordinator:
    """
    Serializes work per chat and tracks the one cancellable delivery each chat
    may have in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}
        self._inflight: dict[int, asyncio.Task] = {}

    @asynccontextmanager
    async def serialized(self, chat_id: int) -> AsyncIterator[None]:
        """
        Holds the chat's lock for the duration of the block. The lock is
        dropped once no holder or waiter is left for the chat.
        """
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._lock_users[chat_id] = self._lock_users.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[chat_id] - 1
            if remaining:
                self._lock_users[chat_id] = remaining
            else:
                del self._lock_users[chat_id]
                del self._locks[chat_id]

    def tracked_chats(self) -> int:
        return len(self._locks)

    def has_inflight(self, chat_id: int) -> bool:
        task = self._inflight.get(chat_id)
        return task is not None and not task.done()

    def cancel_inflight(self, chat_id: int) -> bool:
        """Cancels the chat's running delivery, if any. Returns True if one was cancelled."""
        task = self._inflight.get(chat_id)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"[FLOW] Cancelling in-flight delivery for chat {chat_id}.")
        return True

    async def run_cancellable(
        self, chat_id: int, coro: Coroutine[Any, Any, Any]
    ) -> bool:
        """
        Runs `coro` as the chat's tracked delivery and waits for it.

        Returns True when it completed, False when it was cancelled through
        `cancel_inflight`. Exceptions raised by the delivery propagate.
        """
        self.cancel_inflight(chat_id)
        task = asyncio.create_task(coro)
        self._inflight[chat_id] = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._inflight.get(chat_id) is task:
                del self._inflight[chat_id]

        if task.cancelled():
            return False
        task.result()
        return True

    async def shutdown(self) -> None:
        tasks = [task for task in self._inflight.values() if not task.done()]
        if not tasks:
            logger.info("No in-flight deliveries to stop.")
            return
        logger.info(f"Cancelling {len(tasks)} in-flight deliveries...")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def get_session_store(bot_data: MutableMapping[str, Any]) -> SessionStore:
    store = bot_data.get(SESSION_STORE_KEY)
    if store is None:
        store = InMemorySessionStore()
        bot_data[SESSION_STORE_KEY] = store
    return store


def get_chat_coordinator(bot_data: MutableMapping[str, Any]) -> ChatCoordinator:
    coordinator = bot_data.get(CHAT_COORDINATOR_KEY)
    if coordinator is None:
        coordinator = ChatCoordinator()
        bot_data[CHAT_COORDINATOR_KEY] = coordinator
    return coordinator


async def post_init(application: Application) -> None:
    """
    Prepares the per-process conversation state and the link cache.
    This function is called by the ApplicationBuilder.
    """
    from .services.link_service import configure_link_cache  # Avoid circular import

    logger.info("--- Initializing conversation state ---")
    get_session_store(application.bot_data)
    get_chat_coordinator(application.bot_data)

    link_config = application.bot_data.get("LINK_CONFIG", {})
    if link_config:
        configure_link_cache(
            max_entries=int(link_config["cache_max_entries"]),
            ttl=float(link_config["cache_ttl_seconds"]),
        )
    logger.info("--- Conversation state ready ---")


async def post_shutdown(application: Application) -> None:
    """
    Cancels in-flight deliveries before the bot shuts down.
    This function is called by the ApplicationBuilder.
    """
    logger.info("--- Shutting down: Signalling in-flight deliveries to stop ---")
    coordinator = application.bot_data.get(CHAT_COORDINATOR_KEY)
    if coordinator is not None:
        await coordinator.shutdown()
    logger.info("--- Shutdown complete ---")
