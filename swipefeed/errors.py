"""
SwipeFeed — Error taxonomy.

Adapters translate library failures (httpx, redis, SQLAlchemy, pydantic)
into these types at their boundary so the feed core only ever sees three
kinds of failure.  Running out of quota is *not* an error: it is the
``QuotaDecision.DENY`` value returned by a swipe.
"""

from __future__ import annotations


class SwipeFeedError(Exception):
    """Base class for all errors raised by the feed engine."""


class SourceUnavailable(SwipeFeedError):
    """The remote profile origin could not produce a batch.

    Covers network errors, timeouts and malformed responses alike.
    """


class PersistenceError(SwipeFeedError):
    """A local durable read or write (profile cache or swipe ledger) failed."""


class FeedNotReady(SwipeFeedError):
    """The session has not finished its initial load, or has been closed."""


class InvalidSwipe(SwipeFeedError):
    """A swipe intent that cannot apply to the current feed position."""
