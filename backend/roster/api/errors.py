"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roster.obs import logging as obs_logging


def get_request_id(request: Request, default: str = "unknown") -> str:
	"""Return the request id bound by the observability middleware."""
	rid = obs_logging.current_request_id() or getattr(request.state, "request_id", None)
	return rid or request.headers.get("X-Request-Id") or default


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		rid = get_request_id(request)
		payload = {"detail": exc.detail, "request_id": rid}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		rid = get_request_id(request)
		payload = {
			"success": False,
			"error": "validation_error",
			"code": "VALIDATION_ERROR",
			"errors": jsonable_encoder(exc.errors()),
			"request_id": rid,
		}
		return JSONResponse(status_code=422, content=payload)
