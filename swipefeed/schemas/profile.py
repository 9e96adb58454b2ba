"""
SwipeFeed — Profile and SwipeAction value objects.

Both models are frozen: once constructed they are never mutated.  Input
accepts the camelCase keys used by mobile clients (``imageURL``,
``lookingFor``, ``profileId``) as well as snake_case; output is always
snake_case.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """A candidate shown in the feed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str
    age: int = Field(gt=0)
    bio: str
    occupation: str = ""
    education: str = ""
    looking_for: str = Field(
        default="",
        validation_alias=AliasChoices("looking_for", "lookingFor"),
    )
    distance: int = Field(ge=0)
    image_url: str = Field(
        validation_alias=AliasChoices("image_url", "imageURL", "imageUrl"),
    )
    photos: tuple[str, ...] = Field(default=(), min_length=1)
    interests: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _default_photos_to_image(cls, data: Any) -> Any:
        """An empty photo list falls back to the single cover image."""
        if not isinstance(data, dict):
            return data
        if data.get("photos"):
            return data
        image = data.get("image_url") or data.get("imageURL") or data.get("imageUrl")
        if image is None:
            return data
        return {**data, "photos": [image]}


class SwipeDirection(str, Enum):
    """Binary decision on a profile."""

    LEFT = "left"    # reject / pass
    RIGHT = "right"  # accept / like


class SwipeAction(BaseModel):
    """One permitted swipe, as recorded in the ledger."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    profile_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("profile_id", "profileId"),
    )
    direction: SwipeDirection
    timestamp: datetime = Field(default_factory=_utcnow)
