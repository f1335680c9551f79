"""Team roster endpoints: listing, permissions, removal, roles, transfer, leave."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from roster.infra.auth import AuthenticatedUser, get_optional_user
from roster.teams.api._errors import to_response
from roster.teams.domain.actions import TeamActions
from roster.teams.schemas import dto

router = APIRouter(tags=["roster:members"])
_actions = TeamActions()


@router.get("/teams/{team_id}/members")
async def list_members_endpoint(
	team_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.list_members(auth_user, team_id))


@router.get("/teams/{team_id}/permissions")
async def team_permissions_endpoint(
	team_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.team_permissions(auth_user, team_id))


@router.delete("/teams/{team_id}/members/{athlete_id}")
async def remove_member_endpoint(
	team_id: UUID,
	athlete_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.remove_member(auth_user, team_id, athlete_id))


@router.patch("/teams/{team_id}/members/{athlete_id}/role")
async def change_role_endpoint(
	team_id: UUID,
	athlete_id: UUID,
	payload: dto.RoleChangeRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.change_role(auth_user, team_id, athlete_id, payload.role))


@router.post("/teams/{team_id}/transfer-ownership")
async def transfer_ownership_endpoint(
	team_id: UUID,
	payload: dto.TransferOwnershipRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.transfer_ownership(auth_user, team_id, payload.athlete_id))


@router.post("/teams/{team_id}/leave")
async def leave_team_endpoint(
	team_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.leave_team(auth_user, team_id))


__all__ = ["router"]
