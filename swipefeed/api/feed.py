"""
SwipeFeed — Feed API

Thin in-process presentation surface over a user's ``FeedController``:
load, inspect, swipe, retry pagination and read the ledger.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from swipefeed.api.dependencies import get_session_registry
from swipefeed.errors import FeedNotReady, InvalidSwipe, PersistenceError, SourceUnavailable
from swipefeed.schemas.feed import FeedStateResponse, SwipeRequest, SwipeResponse
from swipefeed.schemas.profile import SwipeAction
from swipefeed.services.session_service import SessionRegistry

logger = structlog.get_logger("swipefeed.api.feed")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /{user_id}/load — Initial load (source, falling back to cache)
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/load",
    response_model=FeedStateResponse,
    summary="Load the first batch of profiles",
)
async def load_feed(
    user_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> FeedStateResponse:
    controller = await registry.get(user_id)
    try:
        snapshot = await controller.load()
    except SourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Profiles are unavailable: {exc}",
        )
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Swipe history could not be read: {exc}",
        )
    return FeedStateResponse.from_snapshot(snapshot)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — Current state
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=FeedStateResponse,
    summary="Get the current feed state",
)
async def get_feed(
    user_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> FeedStateResponse:
    controller = await registry.get(user_id)
    return FeedStateResponse.from_snapshot(controller.snapshot())


# ──────────────────────────────────────────────────────────────────────────────
# POST /{user_id}/swipe — Quota-gated swipe
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/swipe",
    response_model=SwipeResponse,
    summary="Swipe the current profile",
)
async def swipe(
    user_id: str,
    payload: SwipeRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SwipeResponse:
    """Apply a swipe.  Running out of quota is a normal 200 response whose
    ``decision`` is ``deny``."""
    controller = await registry.get(user_id)
    try:
        result = await controller.swipe(payload.direction, payload.profile_id)
    except (FeedNotReady, InvalidSwipe) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except PersistenceError as exc:
        logger.error("swipe_persistence_failed", user_id=user_id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Swipe was not registered. Please try again.",
        )

    return SwipeResponse(
        decision=result.decision,
        action=result.action,
        remaining=result.remaining,
        state=FeedStateResponse.from_snapshot(result.snapshot),
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /{user_id}/more — Explicit pagination retry
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/more",
    response_model=FeedStateResponse,
    summary="Fetch the next page of profiles",
)
async def load_more(
    user_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> FeedStateResponse:
    controller = await registry.get(user_id)
    try:
        snapshot = await controller.load_more()
    except FeedNotReady as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except SourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"More profiles are unavailable: {exc}",
        )
    return FeedStateResponse.from_snapshot(snapshot)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/history — Ledger contents
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/history",
    response_model=list[SwipeAction],
    summary="List recorded swipes, oldest first",
)
async def swipe_history(
    user_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> list[SwipeAction]:
    controller = await registry.get(user_id)
    try:
        return list(controller.history())
    except FeedNotReady as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
