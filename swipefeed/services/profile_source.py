"""
SwipeFeed — Profile sources (remote origin boundary)

Two implementations of the ``ProfileSource`` contract:

  * ``MockProfileSource`` — simulated latency over a fixed set of example
    profiles.  Pagination synthesises fresh candidates from the examples
    with new ids, randomised age/distance and new photo URLs.
  * ``HttpProfileSource`` — GETs a JSON list of profiles from
    ``{base_url}/profiles`` and ``{base_url}/profiles/more`` with a
    per-request timeout and exponential-backoff retry on transient errors.

Whatever goes wrong inside a source (timeout, transport error, non-2xx,
malformed payload) leaves it as ``SourceUnavailable``.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Protocol

import httpx
import structlog
from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from swipefeed.errors import SourceUnavailable
from swipefeed.schemas.profile import Profile

logger = structlog.get_logger("swipefeed.profile_source")

_PROFILE_LIST = TypeAdapter(list[Profile])


class ProfileSource(Protocol):
    """Remote origin of profile batches."""

    async def fetch_profiles(self) -> list[Profile]:
        ...

    async def fetch_more_profiles(self) -> list[Profile]:
        ...


# ──────────────────────────────────────────────────────────────────────────────
# Example data
# ──────────────────────────────────────────────────────────────────────────────

def _picsum(seed: int) -> str:
    return f"https://picsum.photos/400/600?random={seed}"


EXAMPLE_PROFILES: tuple[Profile, ...] = (
    Profile(
        name="Emma Watson",
        age=28,
        bio=(
            "Love reading books, hiking in nature, and exploring new coffee "
            "shops. Currently working on sustainable fashion initiatives. "
            "Looking for meaningful conversations and genuine connections!"
        ),
        occupation="Environmental Consultant",
        education="Harvard University",
        looking_for="Long-term relationship",
        distance=3,
        image_url=_picsum(1),
        photos=[_picsum(1), _picsum(11), _picsum(21)],
        interests=["Reading", "Hiking", "Coffee", "Sustainability", "Travel"],
    ),
    Profile(
        name="James Rodriguez",
        age=32,
        bio=(
            "Professional photographer who loves capturing life's beautiful "
            "moments. Weekend warrior on the mountain bike trails. Always up "
            "for a spontaneous adventure!"
        ),
        occupation="Photographer",
        education="Art Institute",
        looking_for="Something casual",
        distance=7,
        image_url=_picsum(2),
        photos=[_picsum(2), _picsum(12), _picsum(22)],
        interests=["Photography", "Mountain Biking", "Travel", "Art", "Adventure"],
    ),
    Profile(
        name="Sofia Chen",
        age=26,
        bio=(
            "Yoga instructor by day, food blogger by night. Obsessed with "
            "trying new restaurants and perfecting my homemade pasta recipe. "
            "Let's explore the city together!"
        ),
        occupation="Yoga Instructor",
        education="UC Berkeley",
        looking_for="New friends",
        distance=2,
        image_url=_picsum(3),
        photos=[_picsum(3), _picsum(13), _picsum(23)],
        interests=["Yoga", "Cooking", "Food", "Writing", "Meditation"],
    ),
    Profile(
        name="Michael Johnson",
        age=29,
        bio=(
            "Tech entrepreneur building the next big thing. When I'm not "
            "coding, you'll find me at the gym or trying out new craft beer "
            "spots. Always learning something new!"
        ),
        occupation="Software Engineer",
        education="Stanford University",
        looking_for="Long-term relationship",
        distance=5,
        image_url=_picsum(4),
        photos=[_picsum(4), _picsum(14), _picsum(24)],
        interests=["Technology", "Fitness", "Craft Beer", "Innovation", "Gaming"],
    ),
    Profile(
        name="Isabella Martinez",
        age=25,
        bio=(
            "Dance teacher who believes life is better with music. Love salsa "
            "nights, beach volleyball, and discovering hidden gems in the "
            "city. Let's dance!"
        ),
        occupation="Dance Instructor",
        education="Juilliard School",
        looking_for="Fun dates",
        distance=4,
        image_url=_picsum(5),
        photos=[_picsum(5), _picsum(15), _picsum(25)],
        interests=["Dancing", "Music", "Beach Volleyball", "Nightlife", "Teaching"],
    ),
    Profile(
        name="David Kim",
        age=31,
        bio=(
            "Marine biologist passionate about ocean conservation. Spend my "
            "weekends scuba diving and volunteering at the aquarium. Looking "
            "for someone who shares my love for nature!"
        ),
        occupation="Marine Biologist",
        education="UCLA",
        looking_for="Serious relationship",
        distance=8,
        image_url=_picsum(6),
        photos=[_picsum(6), _picsum(16), _picsum(26)],
        interests=["Marine Biology", "Scuba Diving", "Conservation", "Research", "Ocean"],
    ),
)


# ──────────────────────────────────────────────────────────────────────────────
# Mock source
# ──────────────────────────────────────────────────────────────────────────────

class MockProfileSource:
    """Simulated remote origin backed by ``EXAMPLE_PROFILES``.

    Parameters
    ----------
    latency_seconds:
        Delay before the initial batch is returned.
    pagination_latency_seconds:
        Delay before each pagination batch is returned.
    max_pages:
        Number of pagination pages to serve before reporting exhaustion
        with an empty batch.  ``None`` means unlimited.
    rng:
        Random generator, injectable for deterministic tests.
    """

    def __init__(
        self,
        latency_seconds: float = 1.0,
        pagination_latency_seconds: float = 0.5,
        max_pages: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.latency_seconds = latency_seconds
        self.pagination_latency_seconds = pagination_latency_seconds
        self.max_pages = max_pages
        self._rng = rng or random.Random()
        self._pages_served = 0

    async def fetch_profiles(self) -> list[Profile]:
        await asyncio.sleep(self.latency_seconds)
        profiles = list(EXAMPLE_PROFILES)
        self._rng.shuffle(profiles)
        logger.debug("mock_fetch_profiles", count=len(profiles))
        return profiles

    async def fetch_more_profiles(self) -> list[Profile]:
        await asyncio.sleep(self.pagination_latency_seconds)

        if self.max_pages is not None and self._pages_served >= self.max_pages:
            logger.debug("mock_fetch_more_exhausted", pages_served=self._pages_served)
            return []
        self._pages_served += 1

        templates = list(EXAMPLE_PROFILES)
        self._rng.shuffle(templates)
        batch = [self._synthesise(template) for template in templates]
        logger.debug(
            "mock_fetch_more_profiles",
            count=len(batch),
            page=self._pages_served,
        )
        return batch

    def _synthesise(self, template: Profile) -> Profile:
        """Derive a new candidate (fresh id) from an example profile."""
        rng = self._rng
        return Profile(
            name=template.name,
            age=rng.randint(22, 35),
            bio=template.bio,
            occupation=template.occupation,
            education=template.education,
            looking_for=template.looking_for,
            distance=rng.randint(1, 15),
            image_url=_picsum(rng.randint(100, 200)),
            photos=[
                _picsum(rng.randint(100, 200)),
                _picsum(rng.randint(201, 300)),
                _picsum(rng.randint(301, 400)),
            ],
            interests=list(template.interests),
        )


# ──────────────────────────────────────────────────────────────────────────────
# HTTP source
# ──────────────────────────────────────────────────────────────────────────────

def _is_retryable_http_error(exc: BaseException) -> bool:
    """Retry on transport failures (incl. timeouts), 429 and 5xx."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class HttpProfileSource:
    """JSON-over-HTTP profile origin.

    The endpoint may answer with either a bare list of profile objects or
    an object with a ``profiles`` key.  ``timeout_seconds`` bounds each
    attempt; ``max_retries`` extra attempts are made on transient errors.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def fetch_profiles(self) -> list[Profile]:
        return await self._fetch("/profiles")

    async def fetch_more_profiles(self) -> list[Profile]:
        return await self._fetch("/profiles/more")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _fetch(self, path: str) -> list[Profile]:
        url = f"{self.base_url}{path}"
        log = logger.bind(url=url)

        try:
            payload = await self._get_json_with_retry(url, log)
        except httpx.HTTPError as exc:
            log.warning("profile_source_request_failed", error=str(exc))
            raise SourceUnavailable(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            log.warning("profile_source_malformed_json", error=str(exc))
            raise SourceUnavailable(f"GET {url} returned invalid JSON") from exc

        try:
            profiles = _PROFILE_LIST.validate_python(_unwrap(payload))
        except ValueError as exc:
            log.warning("profile_source_malformed_payload", error=str(exc))
            raise SourceUnavailable(f"GET {url} returned malformed profiles") from exc

        log.info("profile_source_fetched", count=len(profiles))
        return profiles

    async def _get_json_with_retry(self, url: str, log: Any) -> Any:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_retryable_http_error),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.backoff_seconds,
                min=0,
                max=30,
            ),
            reraise=True,
        ):
            with attempt:
                log.debug(
                    "profile_source_attempt",
                    attempt_number=attempt.retry_state.attempt_number,
                )
                response = await self._client.get(url, timeout=self.timeout_seconds)
                response.raise_for_status()
                return response.json()


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "profiles" in payload:
        return payload["profiles"]
    return payload
