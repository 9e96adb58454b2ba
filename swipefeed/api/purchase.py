"""
SwipeFeed — Purchase API

Lists premium plans and records completed purchases, which reset the
buyer's swipe quota.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from swipefeed.api.dependencies import get_purchase_service, get_session_registry
from swipefeed.schemas.purchase import PurchasePlan, PurchaseReceipt, PurchaseRequest
from swipefeed.services.purchase_service import PurchaseService, UnknownPlan
from swipefeed.services.session_service import SessionRegistry

logger = structlog.get_logger("swipefeed.api.purchase")

router = APIRouter()


@router.get(
    "/plans",
    response_model=list[PurchasePlan],
    summary="List premium plans",
)
async def list_plans(
    purchases: PurchaseService = Depends(get_purchase_service),
) -> list[PurchasePlan]:
    return purchases.list_plans()


@router.post(
    "/{user_id}",
    response_model=PurchaseReceipt,
    status_code=status.HTTP_201_CREATED,
    summary="Complete a purchase and reset the swipe quota",
)
async def complete_purchase(
    user_id: str,
    payload: PurchaseRequest,
    registry: SessionRegistry = Depends(get_session_registry),
    purchases: PurchaseService = Depends(get_purchase_service),
) -> PurchaseReceipt:
    controller = await registry.get(user_id)
    try:
        return await purchases.complete_purchase(user_id, controller, payload.months)
    except UnknownPlan as exc:
        logger.warning("purchase_unknown_plan", user_id=user_id, months=payload.months)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
