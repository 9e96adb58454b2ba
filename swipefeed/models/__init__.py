"""
SwipeFeed — ORM model registry.

Importing every model here ensures that ``Base.metadata.create_all`` (and any
other tool that inspects the metadata) discovers all tables automatically.
"""

from swipefeed.models.cache import CachedProfile, SwipeRecord

__all__ = [
    "CachedProfile",
    "SwipeRecord",
]
