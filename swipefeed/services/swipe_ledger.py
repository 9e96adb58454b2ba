"""
SwipeFeed — Swipe ledger

The single source of truth for "how many swipes has this user used".

The ledger is append-only.  A durable write through the repository comes
first; only when it succeeds is the action added to the in-memory view,
so ``count`` never reflects a failed append.

Quota windows
-------------
``count(CountScope.WINDOW)`` counts the actions that belong to the current
quota window:

  * every action appended after the last ``reset_window()`` (purchase), and
  * for ``window="day"``, only those stamped on the current UTC day;
    for ``window="session"``, only those appended since this ledger was
    created (history loaded from storage is excluded).

Resetting a window never deletes history; it moves the window start.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Literal

import structlog

from swipefeed.schemas.profile import SwipeAction
from swipefeed.services.profile_repository import ProfileRepository

logger = structlog.get_logger("swipefeed.swipe_ledger")


class CountScope(str, Enum):
    WINDOW = "window"
    TODAY = "today"
    ALL = "all"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SwipeLedger:
    def __init__(
        self,
        repository: ProfileRepository,
        window: Literal["day", "session"] = "day",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if window not in ("day", "session"):
            raise ValueError(f"Unknown quota window {window!r}")
        self._repository = repository
        self.window = window
        self._clock = clock
        self._entries: list[SwipeAction] = []
        # Index into _entries where the current quota window begins.
        self._window_start = 0
        self._was_reset = False
        self._lock = asyncio.Lock()

    async def load(self) -> int:
        """Hydrate the in-memory view from persisted history.

        Returns the number of actions loaded.  In ``session`` mode the
        loaded history sits before the window start.
        """
        async with self._lock:
            history = await self._repository.swipe_history()
            known = {entry.id for entry in self._entries}
            loaded = [action for action in history if action.id not in known]
            self._entries = loaded + self._entries
            if self.window == "session" or self._was_reset:
                self._window_start += len(loaded)
            logger.info(
                "ledger_loaded",
                loaded=len(loaded),
                window=self.window,
                window_count=self._count_window(),
            )
            return len(loaded)

    async def append(self, action: SwipeAction) -> None:
        """Durably record ``action``; raises ``PersistenceError`` on failure."""
        async with self._lock:
            await self._repository.record_swipe(action)
            self._entries.append(action)

    def count(self, scope: CountScope = CountScope.WINDOW) -> int:
        if scope is CountScope.ALL:
            return len(self._entries)
        if scope is CountScope.TODAY:
            return sum(1 for entry in self._entries if self._is_today(entry))
        return self._count_window()

    def now(self) -> datetime:
        return self._clock()

    def history(self) -> tuple[SwipeAction, ...]:
        return tuple(self._entries)

    def reset_window(self) -> None:
        """Start a fresh quota window at the current end of the log."""
        previous = self._count_window()
        self._window_start = len(self._entries)
        self._was_reset = True
        logger.info("ledger_window_reset", cleared=previous, total=len(self._entries))

    # ── Internals ─────────────────────────────────────────────────────────

    def _count_window(self) -> int:
        in_window = self._entries[self._window_start:]
        if self.window == "session":
            return len(in_window)
        return sum(1 for entry in in_window if self._is_today(entry))

    def _is_today(self, entry: SwipeAction) -> bool:
        now = self._clock()
        stamp = entry.timestamp
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp.astimezone(timezone.utc).date() == now.astimezone(timezone.utc).date()
