"""Render team action results as HTTP responses."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse

from roster.teams.domain.results import ActionFailure, ActionResult


def to_response(result: ActionResult, *, success_status: int = status.HTTP_200_OK) -> JSONResponse:
	"""Successes use ``success_status``; failures use their error's status code."""
	if isinstance(result, ActionFailure):
		return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))
	return JSONResponse(status_code=success_status, content=result.model_dump(mode="json"))
