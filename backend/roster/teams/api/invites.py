"""Team invitation endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from roster.infra.auth import AuthenticatedUser, get_optional_user
from roster.teams.api._errors import to_response
from roster.teams.domain.actions import TeamActions
from roster.teams.schemas import dto

router = APIRouter(tags=["roster:invitations"])
_actions = TeamActions()


@router.post("/teams/{team_id}/invitations")
async def create_invitation_endpoint(
	team_id: UUID,
	payload: dto.InviteCreateRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.invite(auth_user, team_id, payload.athlete_id, message=payload.message)
	return to_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/teams/{team_id}/invitations")
async def list_team_invitations_endpoint(
	team_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.list_team_invitations(auth_user, team_id))


@router.get("/me/invitations")
async def my_invitations_endpoint(
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.my_invitations(auth_user))


@router.post("/invitations/{invitation_id}/accept")
async def accept_invitation_endpoint(
	invitation_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.accept_invitation(auth_user, invitation_id))


@router.post("/invitations/{invitation_id}/decline")
async def decline_invitation_endpoint(
	invitation_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.decline_invitation(auth_user, invitation_id))


@router.post("/invitations/{invitation_id}/cancel")
async def cancel_invitation_endpoint(
	invitation_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.cancel_invitation(auth_user, invitation_id))


__all__ = ["router"]
