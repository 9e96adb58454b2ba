"""Shared pytest fixtures for SwipeFeed tests."""
import asyncio

import pytest

from swipefeed.errors import PersistenceError, SourceUnavailable
from swipefeed.schemas.profile import Profile
from swipefeed.services.feed_controller import FeedController
from swipefeed.services.profile_cache import InMemoryProfileCache
from swipefeed.services.profile_repository import ProfileRepository
from swipefeed.services.swipe_ledger import SwipeLedger


class FakeSource:
    """Scriptable profile source.

    ``pages`` is consumed one batch per ``fetch_more_profiles`` call; once
    empty the source reports no more pages.  Setting ``more_gate`` holds
    pagination open until the event is set.
    """

    def __init__(self, initial=None, pages=None):
        self.initial = list(initial or [])
        self.pages = list(pages or [])
        self.fail_initial = False
        self.fail_more = False
        self.more_gate: asyncio.Event | None = None
        self.fetch_calls = 0
        self.more_calls = 0

    async def fetch_profiles(self):
        self.fetch_calls += 1
        await asyncio.sleep(0)
        if self.fail_initial:
            raise SourceUnavailable("origin offline")
        return list(self.initial)

    async def fetch_more_profiles(self):
        self.more_calls += 1
        if self.more_gate is not None:
            await self.more_gate.wait()
        await asyncio.sleep(0)
        if self.fail_more:
            raise SourceUnavailable("origin offline")
        return self.pages.pop(0) if self.pages else []


class FlakyCache(InMemoryProfileCache):
    """In-memory cache whose reads and writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_profile_writes = False
        self.fail_profile_reads = False
        self.fail_swipe_writes = False

    async def cache_profiles(self, profiles):
        if self.fail_profile_writes:
            raise PersistenceError("disk full")
        await super().cache_profiles(profiles)

    async def get_cached_profiles(self):
        if self.fail_profile_reads:
            raise PersistenceError("cache unreadable")
        return await super().get_cached_profiles()

    async def save_swipe_action(self, action):
        if self.fail_swipe_writes:
            raise PersistenceError("ledger write failed")
        await super().save_swipe_action(action)


@pytest.fixture
def make_profile():
    def _make(idx: int = 0, **overrides) -> Profile:
        fields = {
            "id": f"profile-{idx}",
            "name": f"Candidate {idx}",
            "age": 25 + idx % 10,
            "bio": "Coffee, hiking and long conversations.",
            "distance": idx % 15,
            "image_url": f"https://picsum.photos/400/600?random={idx}",
        }
        fields.update(overrides)
        return Profile(**fields)

    return _make


@pytest.fixture
def make_profiles(make_profile):
    def _make(count: int, start: int = 0) -> list[Profile]:
        return [make_profile(i) for i in range(start, start + count)]

    return _make


@pytest.fixture
def fake_source(make_profiles):
    return FakeSource(initial=make_profiles(12))


@pytest.fixture
def flaky_cache():
    return FlakyCache()


@pytest.fixture
def build_controller():
    """Factory for a controller wired to the given fakes."""

    def _build(source, cache=None, limit=10, threshold=2, window="session", clock=None):
        repository = ProfileRepository(source, cache or InMemoryProfileCache())
        ledger_kwargs = {"window": window}
        if clock is not None:
            ledger_kwargs["clock"] = clock
        ledger = SwipeLedger(repository, **ledger_kwargs)
        return FeedController(
            repository,
            ledger=ledger,
            daily_swipe_limit=limit,
            prefetch_threshold=threshold,
            session_id="test-user",
        )

    return _build
