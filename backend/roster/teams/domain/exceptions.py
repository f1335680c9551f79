"""Custom exceptions for roster team workflows."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class RosterError(Exception):
	"""Base class for roster related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	code: str = "ROSTER_ERROR"
	detail: str = "roster_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class UnauthenticatedError(RosterError):
	"""Raised when the caller cannot be mapped to an athlete."""

	status_code = status.HTTP_401_UNAUTHORIZED
	code = "UNAUTHENTICATED"
	detail = "unauthenticated"


class UnauthorizedError(RosterError):
	"""Raised when the caller's team role does not allow the action."""

	status_code = status.HTTP_403_FORBIDDEN
	code = "UNAUTHORIZED"
	detail = "unauthorized"


class NotFoundError(RosterError):
	"""Thrown when a team, athlete or workflow record is missing."""

	status_code = status.HTTP_404_NOT_FOUND
	code = "NOT_FOUND"
	detail = "not_found"


class ConflictError(RosterError):
	"""Raised for state conflicts (duplicate pending records, terminal re-decisions)."""

	status_code = status.HTTP_409_CONFLICT
	code = "CONFLICT"
	detail = "conflict"


class ValidationError(RosterError):
	"""Raised for validation errors not covered by FastAPI schema validation."""

	status_code = _HTTP_422
	code = "VALIDATION_ERROR"
	detail = "validation_error"


class StorageFailure(RosterError):
	"""Raised when a transaction could not commit. Callers may retry."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	code = "STORAGE_FAILURE"
	detail = "storage_failure"
