"""
SwipeFeed — Shared API dependencies

Process-wide singletons handed to route handlers through ``Depends`` so
tests can swap them via ``app.dependency_overrides``.
"""

from __future__ import annotations

from swipefeed.services.purchase_service import PurchaseService
from swipefeed.services.session_service import SessionRegistry

_session_registry: SessionRegistry | None = None
_purchase_service: PurchaseService | None = None


def get_session_registry() -> SessionRegistry:
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry()
    return _session_registry


def get_purchase_service() -> PurchaseService:
    global _purchase_service
    if _purchase_service is None:
        _purchase_service = PurchaseService()
    return _purchase_service


async def shutdown_session_registry() -> None:
    global _session_registry
    if _session_registry is not None:
        await _session_registry.close_all()
        _session_registry = None
