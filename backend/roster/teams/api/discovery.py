"""Nearby free-agent discovery endpoint."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from roster.infra.auth import AuthenticatedUser, get_optional_user
from roster.teams.api._errors import to_response
from roster.teams.domain.actions import TeamActions
from roster.teams.domain.models import Sport

router = APIRouter(tags=["roster:discovery"])
_actions = TeamActions()


@router.get("/teams/{team_id}/nearby-athletes")
async def nearby_athletes_endpoint(
	team_id: UUID,
	sport: Sport | None = None,
	search: str | None = Query(default=None, max_length=80),
	limit: int = Query(default=20, ge=1, le=50),
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.nearby_free_agents(auth_user, team_id, sport=sport, search=search, limit=limit)
	return to_response(result)


__all__ = ["router"]
