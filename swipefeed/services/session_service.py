"""
SwipeFeed — Session registry

Maps each user to exactly one ``FeedController`` and builds the per-user
object graph (source, cache, repository, ledger) from settings.  Sessions
share no mutable state with each other; the only shared objects are
stateless connection handles (the Redis client, the SQL session factory).
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import redis.asyncio as redis
import structlog

from swipefeed.config import Settings, get_settings
from swipefeed.services.feed_controller import FeedController
from swipefeed.services.profile_cache import (
    InMemoryProfileCache,
    ProfileCache,
    RedisProfileCache,
    SqlProfileCache,
)
from swipefeed.services.profile_repository import ProfileRepository
from swipefeed.services.profile_source import (
    HttpProfileSource,
    MockProfileSource,
    ProfileSource,
)

logger = structlog.get_logger("swipefeed.session_service")

SourceFactory = Callable[[str], ProfileSource]
CacheFactory = Callable[[str], ProfileCache]


class SessionRegistry:
    """Owns one feed session per user id.

    ``source_factory`` and ``cache_factory`` receive the user id and default
    to the backends selected in settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        source_factory: SourceFactory | None = None,
        cache_factory: CacheFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self._source_factory = source_factory or self._default_source
        self._cache_factory = cache_factory or self._default_cache
        self._sessions: dict[str, FeedController] = {}
        self._sources: dict[str, ProfileSource] = {}
        # Outlive evicted sessions; the memory backend keeps its ledger here.
        self._caches: dict[str, ProfileCache] = {}
        self._last_seen: dict[str, float] = {}
        self._clock = clock
        self._redis_client: redis.Redis | None = None
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> FeedController:
        """Return the user's session, creating it on first use."""
        async with self._lock:
            controller = self._sessions.get(user_id)
            if controller is None:
                controller = self._build(user_id)
                self._sessions[user_id] = controller
                logger.info("session_created", user_id=user_id, active=len(self._sessions))
            self._last_seen[user_id] = self._clock()
            return controller

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def close(self, user_id: str) -> None:
        async with self._lock:
            controller = self._sessions.pop(user_id, None)
            source = self._sources.pop(user_id, None)
            self._last_seen.pop(user_id, None)
        if controller is not None:
            await controller.close()
        if isinstance(source, HttpProfileSource):
            await source.aclose()

    async def evict_idle(self, max_idle_seconds: float | None = None) -> int:
        """Close sessions not fetched for ``max_idle_seconds``.

        Defaults to ``SESSION_IDLE_SECONDS``; zero disables eviction.  Returns
        the number of sessions closed.
        """
        if max_idle_seconds is None:
            max_idle_seconds = self.settings.SESSION_IDLE_SECONDS
        if max_idle_seconds <= 0:
            return 0
        cutoff = self._clock() - max_idle_seconds
        idle = [user_id for user_id, seen in self._last_seen.items() if seen < cutoff]
        for user_id in idle:
            await self.close(user_id)
        if idle:
            logger.info("sessions_evicted", evicted=len(idle), active=len(self._sessions))
        return len(idle)

    async def close_all(self) -> None:
        for user_id in list(self._sessions):
            await self.close(user_id)
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
        self._caches.clear()
        logger.info("sessions_closed")

    # ── Construction ──────────────────────────────────────────────────────

    def _build(self, user_id: str) -> FeedController:
        source = self._source_factory(user_id)
        self._sources[user_id] = source
        cache = self._caches.get(user_id)
        if cache is None:
            cache = self._caches[user_id] = self._cache_factory(user_id)
        repository = ProfileRepository(source, cache)
        return FeedController(
            repository,
            daily_swipe_limit=self.settings.DAILY_SWIPE_LIMIT,
            prefetch_threshold=self.settings.PREFETCH_THRESHOLD,
            quota_window=self.settings.QUOTA_WINDOW,
            session_id=user_id,
        )

    def _default_source(self, user_id: str) -> ProfileSource:
        settings = self.settings
        if settings.PROFILE_SOURCE == "http":
            return HttpProfileSource(
                settings.PROFILE_SOURCE_URL,
                timeout_seconds=settings.SOURCE_TIMEOUT_SECONDS,
                max_retries=settings.SOURCE_MAX_RETRIES,
            )
        return MockProfileSource(
            latency_seconds=settings.MOCK_LATENCY_SECONDS,
            pagination_latency_seconds=settings.MOCK_PAGINATION_LATENCY_SECONDS,
        )

    def _default_cache(self, user_id: str) -> ProfileCache:
        settings = self.settings
        if settings.CACHE_BACKEND == "redis":
            if self._redis_client is None:
                self._redis_client = redis.from_url(
                    settings.REDIS_URL,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
            return RedisProfileCache(
                self._redis_client, user_id, key_prefix=settings.REDIS_KEY_PREFIX
            )
        if settings.CACHE_BACKEND == "sql":
            from swipefeed.database import get_session_factory

            return SqlProfileCache(get_session_factory(), user_id)
        return InMemoryProfileCache()
