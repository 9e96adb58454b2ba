"""
SwipeFeed — Feed controller (one per user session)

Owns the feed buffer and the current pointer, and is the only writer of
both.  All mutations funnel through a single ``asyncio.Lock`` so that the
swipe transaction

    QuotaGate.check  ->  SwipeLedger.append  ->  current_index += 1

never interleaves with another swipe, a quota reset, or a page append for
the same session.

State machine::

    idle --load--> loading_initial --ok--> ready
                                   --err-> idle (error surfaced)
    ready --swipe/deny--> limit_reached         (no durable change)
    ready --swipe/permit--> ready (index + 1)  [--> loading_more]
    limit_reached --reset_quota--> ready
    * --(index == len, no more pages)--> exhausted

Prefetching is driven by distance from the end of the buffer, never by
quota: a denied swipe still warms the buffer for after the reset.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Literal

import structlog

from swipefeed.errors import FeedNotReady, InvalidSwipe, PersistenceError
from swipefeed.schemas.feed import FeedSnapshot, FeedStatus, QuotaDecision, SwipeResult
from swipefeed.schemas.profile import Profile, SwipeAction, SwipeDirection
from swipefeed.services.profile_repository import ProfileRepository
from swipefeed.services.quota_gate import QuotaGate
from swipefeed.services.swipe_ledger import SwipeLedger

logger = structlog.get_logger("swipefeed.feed_controller")

Observer = Callable[[FeedSnapshot], None]


class FeedController:
    """Quota-gated, prefetching profile feed for a single user.

    Parameters
    ----------
    repository:
        Source/cache composition the feed pulls pages from.
    ledger:
        Swipe ledger for this user.  Built from ``repository`` when omitted.
    daily_swipe_limit:
        Quota per window (default 10).
    prefetch_threshold:
        Distance from the end of the buffer at which the next page is
        requested (default 2).
    quota_window:
        ``"day"`` or ``"session"``; only used when ``ledger`` is omitted.
    session_id:
        Identifier bound into every log line.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        ledger: SwipeLedger | None = None,
        daily_swipe_limit: int = 10,
        prefetch_threshold: int = 2,
        quota_window: Literal["day", "session"] = "day",
        session_id: str = "anonymous",
    ) -> None:
        if prefetch_threshold < 0:
            raise ValueError(
                f"Prefetch threshold must be zero or positive, got {prefetch_threshold}"
            )
        self._repository = repository
        self._ledger = ledger or SwipeLedger(repository, window=quota_window)
        self._gate = QuotaGate(daily_swipe_limit)
        self.prefetch_threshold = prefetch_threshold
        self.session_id = session_id

        self._lock = asyncio.Lock()
        self._phase = FeedStatus.IDLE
        self._profiles: list[Profile] = []
        self._profile_ids: set[str] = set()
        self._current_index = 0
        self._has_more = True
        self._last_error: str | None = None
        self._closed = False

        self._load_task: asyncio.Task | None = None
        self._page_task: asyncio.Task | None = None
        self._observers: list[Observer] = []

        self._log = logger.bind(session_id=session_id)

    # ══════════════════════════════════════════════════════════════════════
    # Read-only queries (no lock: they only read)
    # ══════════════════════════════════════════════════════════════════════

    @property
    def ledger(self) -> SwipeLedger:
        return self._ledger

    @property
    def limit(self) -> int:
        return self._gate.limit

    @property
    def status(self) -> FeedStatus:
        if self._phase in (FeedStatus.IDLE, FeedStatus.LOADING_INITIAL):
            return self._phase
        if self._current_index >= len(self._profiles) and not self._has_more:
            return FeedStatus.EXHAUSTED
        if self._phase is FeedStatus.LIMIT_REACHED and self.has_reached_limit():
            return FeedStatus.LIMIT_REACHED
        if self._page_in_flight():
            return FeedStatus.LOADING_MORE
        return FeedStatus.READY

    @property
    def is_loading(self) -> bool:
        return self._phase is FeedStatus.LOADING_INITIAL or self._page_in_flight()

    def swipe_count(self) -> int:
        return self._ledger.count()

    def remaining(self) -> int:
        return self._gate.remaining(self._ledger.count())

    def has_reached_limit(self) -> bool:
        return self._gate.has_reached_limit(self._ledger.count())

    def current_profile(self) -> Profile | None:
        if self._current_index < len(self._profiles):
            return self._profiles[self._current_index]
        return None

    def history(self) -> tuple[SwipeAction, ...]:
        """Recorded swipes, oldest first; raises ``FeedNotReady`` before load."""
        self._ensure_open()
        if self._phase in (FeedStatus.IDLE, FeedStatus.LOADING_INITIAL):
            raise FeedNotReady("Feed has not been loaded")
        return self._ledger.history()

    def snapshot(self) -> FeedSnapshot:
        count = self._ledger.count()
        return FeedSnapshot(
            status=self.status,
            profiles=tuple(self._profiles),
            current_index=self._current_index,
            is_loading=self.is_loading,
            has_more=self._has_more,
            swipe_count=count,
            limit=self._gate.limit,
            remaining=self._gate.remaining(count),
            has_reached_limit=self._gate.has_reached_limit(count),
            last_error=self._last_error,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Observation
    # ══════════════════════════════════════════════════════════════════════

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer`` for snapshots; returns an unsubscribe callable."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> FeedSnapshot:
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                self._log.exception("observer_failed", observer=repr(observer))
        return snapshot

    # ══════════════════════════════════════════════════════════════════════
    # Intents
    # ══════════════════════════════════════════════════════════════════════

    async def load(self) -> FeedSnapshot:
        """Perform the initial load; concurrent callers share one fetch.

        Calling ``load`` on a session that is already loaded is a no-op:
        the buffer only grows through pagination.
        """
        self._ensure_open()
        if self._load_task is not None and not self._load_task.done():
            self._log.debug("load_coalesced")
            return await asyncio.shield(self._load_task)
        if self._phase is not FeedStatus.IDLE:
            self._log.debug("load_ignored", status=self.status.value)
            return self.snapshot()

        self._load_task = asyncio.create_task(self._load())
        return await asyncio.shield(self._load_task)

    async def swipe(self, direction: SwipeDirection | str, profile_id: str) -> SwipeResult:
        """Apply one swipe intent to the current profile.

        Returns a ``SwipeResult`` whose ``decision`` is ``DENY`` when the
        quota is used up; a denied swipe changes no durable state.

        Raises
        ------
        FeedNotReady
            The initial load has not completed.
        InvalidSwipe
            There is no current profile or ``profile_id`` is not it.
        PersistenceError
            The ledger append failed; the index did not move.
        """
        self._ensure_open()
        direction = SwipeDirection(direction)

        async with self._lock:
            log = self._log.bind(profile_id=profile_id, direction=direction.value)

            if self._phase in (FeedStatus.IDLE, FeedStatus.LOADING_INITIAL):
                raise FeedNotReady("Feed has not been loaded")

            current = self.current_profile()
            if current is None:
                raise InvalidSwipe("No profile left to swipe")
            if current.id != profile_id:
                raise InvalidSwipe(
                    f"Profile {profile_id} is not the current profile ({current.id})"
                )

            count = self._ledger.count()
            decision = self._gate.check(count)

            if decision is QuotaDecision.DENY:
                self._phase = FeedStatus.LIMIT_REACHED
                log.info("swipe_denied", count=count, limit=self._gate.limit)
                self._maybe_prefetch()
                snapshot = self._notify()
                return SwipeResult(
                    decision=decision,
                    remaining=self._gate.remaining(count),
                    snapshot=snapshot,
                )

            action = SwipeAction(
                profile_id=profile_id,
                direction=direction,
                timestamp=self._ledger.now(),
            )
            try:
                await self._ledger.append(action)
            except PersistenceError as exc:
                self._last_error = str(exc)
                log.error("swipe_not_recorded", error=str(exc), index=self._current_index)
                self._notify()
                raise

            self._current_index += 1
            self._phase = FeedStatus.READY
            self._last_error = None
            new_count = self._ledger.count()
            log.info(
                "swipe_recorded",
                action_id=action.id,
                index=self._current_index,
                count=new_count,
                remaining=self._gate.remaining(new_count),
            )

            self._maybe_prefetch()
            snapshot = self._notify()
            return SwipeResult(
                decision=decision,
                action=action,
                remaining=self._gate.remaining(new_count),
                snapshot=snapshot,
            )

    async def load_more(self) -> FeedSnapshot:
        """Fetch the next page now, surfacing ``SourceUnavailable``.

        Joins a page fetch already in flight instead of starting another.
        """
        self._ensure_open()
        if self._phase in (FeedStatus.IDLE, FeedStatus.LOADING_INITIAL):
            raise FeedNotReady("Feed has not been loaded")

        task = self._page_task if self._page_in_flight() else self._start_page_fetch()
        await asyncio.shield(task)
        return self.snapshot()

    async def reset_quota(self) -> FeedSnapshot:
        """Open a fresh quota window (purchase completion)."""
        async with self._lock:
            self._ledger.reset_window()
            if self._phase is FeedStatus.LIMIT_REACHED:
                self._phase = FeedStatus.READY
            self._log.info("quota_reset", status=self.status.value)
            return self._notify()

    async def wait_idle(self) -> None:
        """Wait for any background page fetch to settle."""
        task = self._page_task
        if task is not None and not task.done():
            # Failures were already recorded by the done-callback.
            await asyncio.wait([task])

    async def close(self) -> None:
        """Abandon in-flight work; late page results are discarded."""
        if self._closed:
            return
        self._closed = True
        pending = [
            task for task in (self._load_task, self._page_task)
            if task is not None and not task.done()
        ]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        self._observers.clear()
        self._log.info("session_closed", cancelled=len(pending))

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    def _ensure_open(self) -> None:
        if self._closed:
            raise FeedNotReady("Session is closed")

    def _page_in_flight(self) -> bool:
        return self._page_task is not None and not self._page_task.done()

    async def _load(self) -> FeedSnapshot:
        async with self._lock:
            self._phase = FeedStatus.LOADING_INITIAL
            self._last_error = None
            self._notify()
            self._log.info("load_start")

            try:
                await self._ledger.load()
                profiles = await self._repository.fetch_initial()
            except Exception as exc:
                self._phase = FeedStatus.IDLE
                self._last_error = str(exc)
                self._log.warning("load_failed", error=str(exc))
                self._notify()
                raise

            if self._closed:
                self._log.info("load_discarded_after_close")
                return self.snapshot()

            self._profiles = []
            self._profile_ids = set()
            self._append_profiles(profiles)
            self._current_index = 0
            self._has_more = True
            self._phase = FeedStatus.READY
            self._log.info(
                "load_complete",
                buffered=len(self._profiles),
                swipe_count=self._ledger.count(),
            )
            self._maybe_prefetch()
            return self._notify()

    def _maybe_prefetch(self) -> None:
        """Start a background page fetch when close to the buffer's end."""
        if self._closed or not self._has_more or self._page_in_flight():
            return
        if self._current_index < len(self._profiles) - self.prefetch_threshold:
            return
        self._log.debug(
            "prefetch_triggered",
            index=self._current_index,
            buffered=len(self._profiles),
        )
        self._start_page_fetch()

    def _start_page_fetch(self) -> asyncio.Task:
        task = asyncio.create_task(self._fetch_page())
        task.add_done_callback(self._on_page_fetch_done)
        self._page_task = task
        return task

    async def _fetch_page(self) -> int:
        profiles = await self._repository.fetch_more()
        async with self._lock:
            if self._closed:
                self._log.info("page_discarded_after_close", count=len(profiles))
                return 0
            if not profiles:
                self._has_more = False
                self._log.info("feed_has_no_more_pages")
                return 0
            self._has_more = True
            added = self._append_profiles(profiles)
            self._last_error = None
            self._log.info(
                "page_appended",
                added=added,
                duplicates=len(profiles) - added,
                buffered=len(self._profiles),
                index=self._current_index,
            )
            return added

    def _on_page_fetch_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or self._closed:
            return
        exc = task.exception()
        if exc is not None:
            self._last_error = str(exc)
            self._log.warning("page_fetch_failed", error=str(exc))
        self._notify()

    def _append_profiles(self, profiles: list[Profile]) -> int:
        added = 0
        for profile in profiles:
            if profile.id in self._profile_ids:
                continue
            self._profiles.append(profile)
            self._profile_ids.add(profile.id)
            added += 1
        return added
