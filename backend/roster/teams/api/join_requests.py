"""Join request submission and review endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from roster.infra.auth import AuthenticatedUser, get_optional_user
from roster.teams.api._errors import to_response
from roster.teams.domain.actions import TeamActions
from roster.teams.schemas import dto

router = APIRouter(tags=["roster:join-requests"])
_actions = TeamActions()


@router.post("/teams/{team_id}/join-requests")
async def submit_join_request_endpoint(
	team_id: UUID,
	payload: dto.JoinRequestCreateRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.request_to_join(auth_user, team_id, message=payload.message)
	return to_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/teams/{team_id}/join-requests")
async def list_join_requests_endpoint(
	team_id: UUID,
	status_filter: str | None = Query(default=None, alias="status", pattern="^(PENDING|ACCEPTED|REJECTED)$"),
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.list_join_requests(auth_user, team_id, status=status_filter))


@router.post("/join-requests/{request_id}/decision")
async def decide_join_request_endpoint(
	request_id: UUID,
	payload: dto.JoinRequestDecisionRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.decide_join_request(auth_user, request_id, payload.decision, note=payload.note)
	return to_response(result)


__all__ = ["router"]
