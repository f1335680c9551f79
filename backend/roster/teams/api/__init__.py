"""FastAPI routers for the roster domain."""

from __future__ import annotations

from fastapi import APIRouter

from roster.teams.api import applications, discovery, invites, join_requests, members

router = APIRouter(prefix="/api/roster/v1")

router.include_router(members.router)
router.include_router(invites.router)
router.include_router(join_requests.router)
router.include_router(applications.router)
router.include_router(discovery.router)

__all__ = ["router"]
