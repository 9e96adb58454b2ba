"""
SwipeFeed — Profile repository

Composes a ``ProfileSource`` with a ``ProfileCache``:

  fetch_initial  source first; cache write is best-effort.  On source
                 failure fall back to the cached batch (stale but
                 available); with nothing cached, re-raise the source error.
  fetch_more     source only.  Pagination staleness is never masked.
  record_swipe   synchronous write-through to the cache ledger.  Returns
                 only once the swipe is durable.
"""

from __future__ import annotations

import structlog

from swipefeed.errors import PersistenceError, SourceUnavailable
from swipefeed.schemas.profile import Profile, SwipeAction
from swipefeed.services.profile_cache import ProfileCache
from swipefeed.services.profile_source import ProfileSource

logger = structlog.get_logger("swipefeed.profile_repository")


class ProfileRepository:
    """Source/cache composition with the stale-but-available fallback.

    Dependencies are injected at construction so that the repository can be
    tested with fakes and rebuilt per user by the session registry.
    """

    def __init__(self, source: ProfileSource, cache: ProfileCache) -> None:
        self.source = source
        self.cache = cache

    async def fetch_initial(self) -> list[Profile]:
        try:
            profiles = await self.source.fetch_profiles()
        except SourceUnavailable as source_error:
            logger.warning("fetch_initial_source_failed", error=str(source_error))
            return await self._fallback_to_cache(source_error)

        try:
            await self.cache.cache_profiles(profiles)
        except Exception:
            logger.exception("fetch_initial_cache_write_failed", count=len(profiles))

        logger.info("fetch_initial_fresh", count=len(profiles))
        return profiles

    async def fetch_more(self) -> list[Profile]:
        profiles = await self.source.fetch_more_profiles()
        logger.info("fetch_more_complete", count=len(profiles))
        return profiles

    async def record_swipe(self, action: SwipeAction) -> None:
        try:
            await self.cache.save_swipe_action(action)
        except PersistenceError:
            logger.error(
                "record_swipe_failed",
                action_id=action.id,
                profile_id=action.profile_id,
            )
            raise
        logger.debug("record_swipe_durable", action_id=action.id)

    async def swipe_history(self) -> list[SwipeAction]:
        return await self.cache.get_swipe_history()

    # ── Internals ─────────────────────────────────────────────────────────

    async def _fallback_to_cache(self, source_error: SourceUnavailable) -> list[Profile]:
        try:
            cached = await self.cache.get_cached_profiles()
        except PersistenceError as cache_error:
            logger.error("fetch_initial_cache_read_failed", error=str(cache_error))
            raise source_error from cache_error

        if not cached:
            logger.warning("fetch_initial_no_cache")
            raise source_error

        logger.info("fetch_initial_from_cache", count=len(cached))
        return cached
