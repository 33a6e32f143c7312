"""Thread Memory Store - bounded, expiring conversational state per thread.

State is sharded by thread id; each shard has its own ``asyncio.Lock`` so
the periodic sweep and concurrent turns on unrelated threads never contend
on a single global lock. Callers only ever receive copies of thread state.
"""

from __future__ import annotations

import asyncio
import math
import weakref
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime, timedelta
from typing import Any

from agentcrew.models import ConversationThread, MemoryStats, MessageRole, ThreadMessage
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 2 * 60 * 60
DEFAULT_MAX_MESSAGES = 50
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60
RETAIN_RATIO = 0.8
ACTIVE_WINDOW = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def trim_messages(messages: list[ThreadMessage], cap: int) -> list[ThreadMessage]:
    """Batch-trim a message list that exceeds ``cap``.

    Keeps message 0 and the most recent ``floor(cap * 0.8)`` messages.
    Lists at or under the cap are returned unchanged.
    """
    if len(messages) <= cap:
        return messages
    keep = math.floor(cap * RETAIN_RATIO)
    tail = messages[-keep:] if keep > 0 else []
    return [messages[0], *tail]


class _Shard:
    __slots__ = ("lock", "threads")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.threads: dict[str, ConversationThread] = {}


class ThreadMemoryStore:
    """In-process conversational memory with bounded size and a TTL.

    Args:
        ttl_seconds: Idle time after which the sweep deletes a thread.
        max_messages: Message cap per thread.
        sweep_interval_seconds: Period of the background sweep.
        shards: Number of lock shards.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS,
        shards: int = 16,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        if shards < 1:
            raise ValueError("shards must be at least 1")

        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_messages = max_messages
        self.sweep_interval = sweep_interval_seconds
        self._clock = clock or _utcnow
        self._shards = [_Shard() for _ in range(shards)]
        self._turn_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._sweeper: asyncio.Task[None] | None = None

    def _shard(self, thread_id: str) -> _Shard:
        return self._shards[hash(thread_id) % len(self._shards)]

    def _touch(self, thread: ConversationThread) -> None:
        now = self._clock()
        if now > thread.last_activity:
            thread.last_activity = now

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    async def get_or_create(
        self,
        thread_id: str,
        channel_id: str = "",
        user_id: str = "",
    ) -> ConversationThread:
        """Return existing thread state or create it; always refreshes activity.

        Args:
            thread_id: Transport thread identifier.
            channel_id: Channel the thread belongs to.
            user_id: User who started the thread.

        Returns:
            A copy of the thread state.
        """
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            if thread is None:
                now = self._clock()
                thread = ConversationThread(
                    thread_id=thread_id,
                    channel_id=channel_id,
                    user_id=user_id,
                    created_at=now,
                    last_activity=now,
                )
                shard.threads[thread_id] = thread
                logger.debug("Thread created", thread_id=thread_id)
            else:
                self._touch(thread)
            return thread.model_copy(deep=True)

    async def get(self, thread_id: str) -> ConversationThread | None:
        """Return a copy of a thread without refreshing activity."""
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            return thread.model_copy(deep=True) if thread else None

    async def clear(self, thread_id: str) -> bool:
        """Delete a thread eagerly.

        Returns:
            True if the thread existed.
        """
        shard = self._shard(thread_id)
        async with shard.lock:
            existed = shard.threads.pop(thread_id, None) is not None
        if existed:
            logger.info("Thread cleared", thread_id=thread_id)
        return existed

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def append_message(
        self,
        thread_id: str,
        role: MessageRole | str,
        text: str,
        agent_id: str | None = None,
    ) -> bool:
        """Append a message, trimming in one batch if the cap is exceeded.

        Unknown threads are ignored.

        Args:
            thread_id: Thread to append to.
            role: user or assistant.
            text: Message text.
            agent_id: Agent that produced the message; becomes the current agent.

        Returns:
            True if the message was stored.
        """
        message = ThreadMessage(
            role=MessageRole(role), text=text, agent_id=agent_id, created_at=self._clock()
        )
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            if thread is None:
                return False

            thread.messages.append(message)
            if agent_id:
                thread.current_agent = agent_id
            if len(thread.messages) > self.max_messages:
                before = len(thread.messages)
                thread.messages = trim_messages(thread.messages, self.max_messages)
                logger.debug(
                    "Thread trimmed",
                    thread_id=thread_id,
                    dropped=before - len(thread.messages),
                )
            self._touch(thread)
            return True

    async def get_messages(self, thread_id: str) -> tuple[ThreadMessage, ...]:
        """Return the retained messages in order; empty for unknown threads."""
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            return tuple(thread.messages) if thread else ()

    async def get_current_agent(self, thread_id: str) -> str | None:
        """Return the agent that last replied in the thread."""
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            return thread.current_agent if thread else None

    # ------------------------------------------------------------------
    # Scratch data
    # ------------------------------------------------------------------

    async def set_scratch(self, thread_id: str, agent_id: str, data: dict[str, Any]) -> None:
        """Merge ``data`` into an agent's scratch bag. Unknown threads are ignored."""
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            if thread is None:
                return
            thread.scratch.setdefault(agent_id, {}).update(data)

    async def get_scratch(self, thread_id: str, agent_id: str) -> dict[str, Any]:
        """Return a copy of an agent's scratch bag, ``{}`` if absent."""
        shard = self._shard(thread_id)
        async with shard.lock:
            thread = shard.threads.get(thread_id)
            if thread is None:
                return {}
            return dict(thread.scratch.get(agent_id, {}))

    # ------------------------------------------------------------------
    # Per-thread turn serialisation
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def thread_lock(self, thread_id: str) -> AsyncIterator[None]:
        """Hold the turn lock for a thread.

        Whole dispatch turns for one thread run one at a time; other threads
        are unaffected.
        """
        lock = self._turn_locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._turn_locks[thread_id] = lock
        async with lock:
            yield

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def sweep(self) -> int:
        """Delete threads idle for longer than the TTL, one shard at a time.

        Returns:
            Number of threads deleted.
        """
        removed = 0
        for shard in self._shards:
            async with shard.lock:
                now = self._clock()
                expired = [
                    thread_id
                    for thread_id, thread in shard.threads.items()
                    if now - thread.last_activity > self.ttl
                ]
                for thread_id in expired:
                    del shard.threads[thread_id]
                removed += len(expired)

        if removed:
            logger.info("Expired threads swept", removed=removed)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("Thread sweep failed", error=str(e))

    def start(self) -> None:
        """Start the background sweep task on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.info(
                "Thread sweeper started",
                interval_seconds=self.sweep_interval,
                ttl_seconds=int(self.ttl.total_seconds()),
            )

    async def stop(self) -> None:
        """Cancel the background sweep task."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("Thread sweeper stopped")

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def stats(self) -> MemoryStats:
        """Return occupancy statistics."""
        total = 0
        active = 0
        messages = 0
        for shard in self._shards:
            async with shard.lock:
                now = self._clock()
                for thread in shard.threads.values():
                    total += 1
                    messages += len(thread.messages)
                    if now - thread.last_activity <= ACTIVE_WINDOW:
                        active += 1
        return MemoryStats(
            total_threads=total,
            active_threads=active,
            average_messages=messages / total if total else 0.0,
        )

    def __len__(self) -> int:
        """Return the number of live threads."""
        return sum(len(shard.threads) for shard in self._shards)

    def __contains__(self, thread_id: object) -> bool:
        """Check if a thread exists."""
        return isinstance(thread_id, str) and thread_id in self._shard(thread_id).threads
