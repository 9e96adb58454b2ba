"""
SwipeFeed — Local profile cache and swipe-ledger storage

Every cache instance belongs to exactly one user.  It keeps two things:

  * the last-known-good profile batch (replaced wholesale on each write)
  * the append-only list of swipe actions (oldest first)

Backends:

  * ``InMemoryProfileCache`` — process-local lists.
  * ``RedisProfileCache``    — one JSON string + one Redis list per user.
  * ``SqlProfileCache``      — ``cached_profiles`` / ``swipe_actions`` tables.

Storage failures surface as ``PersistenceError``.  Whether a failure is
fatal is the caller's decision: the repository treats profile caching as
best-effort but swipe persistence as mandatory.
"""

from __future__ import annotations

import json
from datetime import timezone
from typing import Protocol

import redis.asyncio as redis
import structlog
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swipefeed.errors import PersistenceError
from swipefeed.models.cache import CachedProfile, SwipeRecord
from swipefeed.schemas.profile import Profile, SwipeAction, SwipeDirection

logger = structlog.get_logger("swipefeed.profile_cache")

_PROFILE_LIST = TypeAdapter(list[Profile])


class ProfileCache(Protocol):
    """Local durable store for one user's feed and ledger."""

    async def cache_profiles(self, profiles: list[Profile]) -> None:
        ...

    async def get_cached_profiles(self) -> list[Profile]:
        ...

    async def save_swipe_action(self, action: SwipeAction) -> None:
        ...

    async def get_swipe_history(self) -> list[SwipeAction]:
        ...


# ──────────────────────────────────────────────────────────────────────────────
# In-memory
# ──────────────────────────────────────────────────────────────────────────────

class InMemoryProfileCache:
    def __init__(self) -> None:
        self._profiles: list[Profile] = []
        self._swipes: list[SwipeAction] = []

    async def cache_profiles(self, profiles: list[Profile]) -> None:
        self._profiles = list(profiles)

    async def get_cached_profiles(self) -> list[Profile]:
        return list(self._profiles)

    async def save_swipe_action(self, action: SwipeAction) -> None:
        self._swipes.append(action)

    async def get_swipe_history(self) -> list[SwipeAction]:
        return list(self._swipes)


# ──────────────────────────────────────────────────────────────────────────────
# Redis
# ──────────────────────────────────────────────────────────────────────────────

class RedisProfileCache:
    """Redis-backed cache.

    Keys (``prefix`` defaults to ``swipefeed``)::

        {prefix}:{owner_id}:profiles   STRING  JSON array of profiles
        {prefix}:{owner_id}:swipes     LIST    one JSON swipe action per item
    """

    def __init__(
        self,
        client: redis.Redis,
        owner_id: str,
        key_prefix: str = "swipefeed",
    ) -> None:
        self._client = client
        self.owner_id = owner_id
        self.profiles_key = f"{key_prefix}:{owner_id}:profiles"
        self.swipes_key = f"{key_prefix}:{owner_id}:swipes"

    async def cache_profiles(self, profiles: list[Profile]) -> None:
        payload = json.dumps([p.model_dump(mode="json") for p in profiles])
        try:
            await self._client.set(self.profiles_key, payload)
        except (redis.RedisError, OSError) as exc:
            raise PersistenceError(f"Failed to cache profiles: {exc}") from exc
        logger.debug("redis_profiles_cached", owner_id=self.owner_id, count=len(profiles))

    async def get_cached_profiles(self) -> list[Profile]:
        try:
            raw = await self._client.get(self.profiles_key)
        except (redis.RedisError, OSError) as exc:
            raise PersistenceError(f"Failed to read cached profiles: {exc}") from exc

        if not raw:
            return []
        try:
            return _PROFILE_LIST.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            # A corrupt batch is as good as no batch.
            logger.warning(
                "redis_cached_profiles_corrupt",
                owner_id=self.owner_id,
                error=str(exc),
            )
            return []

    async def save_swipe_action(self, action: SwipeAction) -> None:
        try:
            await self._client.rpush(self.swipes_key, action.model_dump_json())
        except (redis.RedisError, OSError) as exc:
            raise PersistenceError(f"Failed to save swipe {action.id}: {exc}") from exc

    async def get_swipe_history(self) -> list[SwipeAction]:
        try:
            raw_items = await self._client.lrange(self.swipes_key, 0, -1)
        except (redis.RedisError, OSError) as exc:
            raise PersistenceError(f"Failed to read swipe history: {exc}") from exc

        try:
            return [SwipeAction.model_validate_json(item) for item in raw_items]
        except ValidationError as exc:
            raise PersistenceError("Swipe history is corrupt") from exc


# ──────────────────────────────────────────────────────────────────────────────
# SQL
# ──────────────────────────────────────────────────────────────────────────────

class SqlProfileCache:
    """SQLAlchemy-backed cache sharing tables across users, keyed by owner."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        owner_id: str,
    ) -> None:
        self._session_factory = session_factory
        self.owner_id = owner_id

    async def cache_profiles(self, profiles: list[Profile]) -> None:
        rows = [
            CachedProfile(
                owner_id=self.owner_id,
                profile_id=profile.id,
                position=position,
                payload=profile.model_dump(mode="json"),
            )
            for position, profile in enumerate(profiles)
        ]
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        delete(CachedProfile).where(CachedProfile.owner_id == self.owner_id)
                    )
                    session.add_all(rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to cache profiles: {exc}") from exc
        logger.debug("sql_profiles_cached", owner_id=self.owner_id, count=len(rows))

    async def get_cached_profiles(self) -> list[Profile]:
        stmt = (
            select(CachedProfile)
            .where(CachedProfile.owner_id == self.owner_id)
            .order_by(CachedProfile.position)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read cached profiles: {exc}") from exc

        try:
            return [Profile.model_validate(row.payload) for row in rows]
        except ValidationError as exc:
            logger.warning(
                "sql_cached_profiles_corrupt",
                owner_id=self.owner_id,
                error=str(exc),
            )
            return []

    async def save_swipe_action(self, action: SwipeAction) -> None:
        record = SwipeRecord(
            id=action.id,
            owner_id=self.owner_id,
            profile_id=action.profile_id,
            direction=action.direction.value,
            created_at=action.timestamp,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(record)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save swipe {action.id}: {exc}") from exc

    async def get_swipe_history(self) -> list[SwipeAction]:
        stmt = (
            select(SwipeRecord)
            .where(SwipeRecord.owner_id == self.owner_id)
            .order_by(SwipeRecord.sequence)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read swipe history: {exc}") from exc

        history = []
        for row in rows:
            created_at = row.created_at
            if created_at.tzinfo is None:
                # SQLite drops the offset; everything is written in UTC.
                created_at = created_at.replace(tzinfo=timezone.utc)
            try:
                action = SwipeAction(
                    id=row.id,
                    profile_id=row.profile_id,
                    direction=SwipeDirection(row.direction),
                    timestamp=created_at,
                )
            except ValueError as exc:
                raise PersistenceError(f"Swipe record {row.id} is corrupt") from exc
            history.append(action)
        return history
