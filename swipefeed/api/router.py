"""
SwipeFeed — Main API Router

Aggregates all sub-routers under a single prefix so that ``swipefeed.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from swipefeed.api import feed, purchase

router = APIRouter()

router.include_router(feed.router, prefix="/feed", tags=["Feed"])
router.include_router(purchase.router, prefix="/purchase", tags=["Purchase"])
