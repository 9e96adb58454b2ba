"""
SwipeFeed — CachedProfile and SwipeRecord models (SQL cache backend).
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from swipefeed.database import Base


class CachedProfile(Base):
    __tablename__ = "cached_profiles"
    __table_args__ = (
        Index("ix_cached_profiles_owner_position", "owner_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String, nullable=False, comment="User whose feed this batch belongs to"
    )
    profile_id: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Order within the cached batch"
    )
    payload: Mapped[dict] = mapped_column(
        JSON, nullable=False, comment="Serialised Profile"
    )
    cached_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<CachedProfile owner={self.owner_id} profile={self.profile_id} pos={self.position}>"


class SwipeRecord(Base):
    __tablename__ = "swipe_actions"
    __table_args__ = (
        Index("ix_swipe_actions_owner_sequence", "owner_id", "sequence"),
    )

    sequence: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="Append order"
    )
    id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    profile_id: Mapped[str] = mapped_column(
        String, nullable=False, comment="Not a foreign key; profiles are not stored"
    )
    direction: Mapped[str] = mapped_column(
        String, nullable=False, comment="left / right"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        return f"<SwipeRecord {self.owner_id} -> {self.profile_id} dir={self.direction!r}>"
