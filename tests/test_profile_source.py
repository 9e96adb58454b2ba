"""Tests for the mock and HTTP profile sources."""
import random

import httpx
import pytest

from swipefeed.errors import SourceUnavailable
from swipefeed.services.profile_source import (
    EXAMPLE_PROFILES,
    HttpProfileSource,
    MockProfileSource,
)


def _mock_source(**kwargs):
    return MockProfileSource(
        latency_seconds=0,
        pagination_latency_seconds=0,
        rng=random.Random(42),
        **kwargs,
    )


class TestMockProfileSource:

    @pytest.mark.asyncio
    async def test_initial_batch_is_the_examples(self):
        profiles = await _mock_source().fetch_profiles()

        assert len(profiles) == 6
        assert {p.id for p in profiles} == {p.id for p in EXAMPLE_PROFILES}

    @pytest.mark.asyncio
    async def test_pages_contain_fresh_candidates(self):
        source = _mock_source()

        first = await source.fetch_more_profiles()
        second = await source.fetch_more_profiles()

        example_ids = {p.id for p in EXAMPLE_PROFILES}
        ids = [p.id for p in first + second]
        assert len(first) == 6
        assert len(set(ids)) == len(ids)
        assert example_ids.isdisjoint(ids)
        for profile in first:
            assert 22 <= profile.age <= 35
            assert 1 <= profile.distance <= 15
            assert len(profile.photos) == 3

    @pytest.mark.asyncio
    async def test_empty_page_once_pages_run_out(self):
        source = _mock_source(max_pages=1)

        assert len(await source.fetch_more_profiles()) == 6
        assert await source.fetch_more_profiles() == []


# ── HTTP ─────────────────────────────────────────────────────────────────────

def _payload(make_profiles, count=2):
    return [p.model_dump(mode="json", by_alias=True) for p in make_profiles(count)]


def _http_source(handler, max_retries=2):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpProfileSource(
        "http://origin.test/v1/",
        timeout_seconds=1.0,
        max_retries=max_retries,
        backoff_seconds=0,
        client=client,
    )


class TestHttpProfileSource:

    @pytest.mark.asyncio
    async def test_bare_list_payload(self, make_profiles):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=_payload(make_profiles))

        profiles = await _http_source(handler).fetch_profiles()

        assert [p.id for p in profiles] == ["profile-0", "profile-1"]
        assert seen == ["/v1/profiles"]

    @pytest.mark.asyncio
    async def test_wrapped_payload_on_pagination(self, make_profiles):
        def handler(request):
            assert request.url.path == "/v1/profiles/more"
            return httpx.Response(200, json={"profiles": _payload(make_profiles, 3)})

        profiles = await _http_source(handler).fetch_more_profiles()

        assert len(profiles) == 3

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, make_profiles):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=_payload(make_profiles))

        profiles = await _http_source(handler, max_retries=2).fetch_profiles()

        assert calls["n"] == 3
        assert len(profiles) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(SourceUnavailable):
            await _http_source(handler, max_retries=2).fetch_profiles()
        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            return httpx.Response(404)

        with pytest.raises(SourceUnavailable):
            await _http_source(handler).fetch_profiles()
        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_unavailable(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(SourceUnavailable):
            await _http_source(handler).fetch_profiles()

    @pytest.mark.asyncio
    async def test_malformed_profiles_are_unavailable(self):
        def handler(request):
            return httpx.Response(200, json=[{"name": "No age"}])

        with pytest.raises(SourceUnavailable):
            await _http_source(handler).fetch_profiles()
