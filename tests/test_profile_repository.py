"""Tests for the source/cache composition and its offline fallback."""
import pytest

from swipefeed.errors import PersistenceError, SourceUnavailable
from swipefeed.schemas.profile import SwipeAction
from swipefeed.services.profile_repository import ProfileRepository


class TestFetchInitial:

    @pytest.mark.asyncio
    async def test_fresh_batch_is_returned_and_cached(self, fake_source, flaky_cache):
        repo = ProfileRepository(fake_source, flaky_cache)

        profiles = await repo.fetch_initial()

        assert [p.id for p in profiles] == [p.id for p in fake_source.initial]
        assert await flaky_cache.get_cached_profiles() == profiles

    @pytest.mark.asyncio
    async def test_offline_start_with_cache_serves_cached(
        self, fake_source, flaky_cache, make_profiles
    ):
        cached = make_profiles(3, start=100)
        await flaky_cache.cache_profiles(cached)
        fake_source.fail_initial = True
        repo = ProfileRepository(fake_source, flaky_cache)

        profiles = await repo.fetch_initial()

        assert profiles == cached

    @pytest.mark.asyncio
    async def test_offline_start_without_cache_raises(self, fake_source, flaky_cache):
        fake_source.fail_initial = True
        repo = ProfileRepository(fake_source, flaky_cache)

        with pytest.raises(SourceUnavailable):
            await repo.fetch_initial()

    @pytest.mark.asyncio
    async def test_unreadable_cache_surfaces_source_error(self, fake_source, flaky_cache):
        fake_source.fail_initial = True
        flaky_cache.fail_profile_reads = True
        repo = ProfileRepository(fake_source, flaky_cache)

        with pytest.raises(SourceUnavailable) as excinfo:
            await repo.fetch_initial()
        assert isinstance(excinfo.value.__cause__, PersistenceError)

    @pytest.mark.asyncio
    async def test_cache_write_failure_is_not_fatal(self, fake_source, flaky_cache):
        flaky_cache.fail_profile_writes = True
        repo = ProfileRepository(fake_source, flaky_cache)

        profiles = await repo.fetch_initial()

        assert len(profiles) == len(fake_source.initial)


class TestFetchMore:

    @pytest.mark.asyncio
    async def test_pagination_does_not_fall_back(self, fake_source, flaky_cache, make_profiles):
        await flaky_cache.cache_profiles(make_profiles(3, start=100))
        fake_source.fail_more = True
        repo = ProfileRepository(fake_source, flaky_cache)

        with pytest.raises(SourceUnavailable):
            await repo.fetch_more()

    @pytest.mark.asyncio
    async def test_pagination_returns_next_page(self, fake_source, flaky_cache, make_profiles):
        page = make_profiles(4, start=50)
        fake_source.pages = [page]
        repo = ProfileRepository(fake_source, flaky_cache)

        assert await repo.fetch_more() == page
        assert await repo.fetch_more() == []


class TestRecordSwipe:

    @pytest.mark.asyncio
    async def test_record_is_durable_before_returning(self, fake_source, flaky_cache):
        repo = ProfileRepository(fake_source, flaky_cache)
        action = SwipeAction(profile_id="p1", direction="left")

        await repo.record_swipe(action)

        assert await repo.swipe_history() == [action]

    @pytest.mark.asyncio
    async def test_record_failure_propagates(self, fake_source, flaky_cache):
        flaky_cache.fail_swipe_writes = True
        repo = ProfileRepository(fake_source, flaky_cache)

        with pytest.raises(PersistenceError):
            await repo.record_swipe(SwipeAction(profile_id="p1", direction="left"))
        assert await repo.swipe_history() == []
