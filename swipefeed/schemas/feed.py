from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from swipefeed.schemas.profile import Profile, SwipeAction, SwipeDirection


class FeedStatus(str, Enum):
    IDLE = "idle"
    LOADING_INITIAL = "loading_initial"
    READY = "ready"
    LOADING_MORE = "loading_more"
    EXHAUSTED = "exhausted"
    LIMIT_REACHED = "limit_reached"


class QuotaDecision(str, Enum):
    PERMIT = "permit"
    DENY = "deny"


class FeedSnapshot(BaseModel):
    """Read-only view of a session handed to observers and API callers."""

    model_config = ConfigDict(frozen=True)

    status: FeedStatus
    profiles: tuple[Profile, ...]
    current_index: int
    is_loading: bool
    has_more: bool
    swipe_count: int
    limit: int
    remaining: int
    has_reached_limit: bool
    last_error: Optional[str] = None

    @property
    def current_profile(self) -> Optional[Profile]:
        if self.current_index < len(self.profiles):
            return self.profiles[self.current_index]
        return None


class SwipeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: QuotaDecision
    action: Optional[SwipeAction] = None
    remaining: int
    snapshot: FeedSnapshot


# ── API payloads ──────────────────────────────────────────────────────────────

class SwipeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("profile_id", "profileId"),
    )
    direction: SwipeDirection


class FeedStateResponse(BaseModel):
    status: FeedStatus
    current_index: int
    current_profile: Optional[Profile] = None
    buffered: int
    is_loading: bool
    has_more: bool
    swipe_count: int
    limit: int
    remaining: int
    has_reached_limit: bool
    last_error: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: FeedSnapshot) -> "FeedStateResponse":
        return cls(
            status=snapshot.status,
            current_index=snapshot.current_index,
            current_profile=snapshot.current_profile,
            buffered=len(snapshot.profiles),
            is_loading=snapshot.is_loading,
            has_more=snapshot.has_more,
            swipe_count=snapshot.swipe_count,
            limit=snapshot.limit,
            remaining=snapshot.remaining,
            has_reached_limit=snapshot.has_reached_limit,
            last_error=snapshot.last_error,
        )


class SwipeResponse(BaseModel):
    decision: QuotaDecision
    action: Optional[SwipeAction] = None
    remaining: int
    state: FeedStateResponse
