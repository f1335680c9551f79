"""Team application and guide lookup endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from roster.infra.auth import AuthenticatedUser, get_optional_user
from roster.teams.api._errors import to_response
from roster.teams.domain.actions import TeamActions
from roster.teams.domain.models import Sport
from roster.teams.schemas import dto

router = APIRouter(tags=["roster:applications"])
_actions = TeamActions()


@router.post("/applications")
async def submit_application_endpoint(
	payload: dto.ApplicationCreateRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.submit_application(auth_user, payload.to_draft())
	return to_response(result, success_status=status.HTTP_201_CREATED)


@router.post("/applications/{application_id}/approve")
async def approve_application_endpoint(
	application_id: UUID,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.approve_application(auth_user, application_id))


@router.post("/applications/{application_id}/reject")
async def reject_application_endpoint(
	application_id: UUID,
	payload: dto.ApplicationRejectRequest,
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	return to_response(await _actions.reject_application(auth_user, application_id, note=payload.note))


@router.get("/guides")
async def guides_for_application_endpoint(
	sport: Sport,
	lat: float | None = Query(default=None, ge=-90, le=90),
	lon: float | None = Query(default=None, ge=-180, le=180),
	max_distance_km: float | None = Query(default=None, gt=0, le=20000),
	auth_user: AuthenticatedUser | None = Depends(get_optional_user),
) -> JSONResponse:
	result = await _actions.guides_for_application(
		auth_user,
		sport,
		latitude=lat,
		longitude=lon,
		max_distance_km=max_distance_km,
	)
	return to_response(result)


__all__ = ["router"]
