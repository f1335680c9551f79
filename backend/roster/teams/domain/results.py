"""Discriminated results returned by the team action facade."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field

from roster.teams.domain.exceptions import RosterError

T = TypeVar("T")


class ActionSuccess(BaseModel, Generic[T]):
	success: Literal[True] = True
	data: T


class ActionFailure(BaseModel):
	success: Literal[False] = False
	error: str
	code: str | None = None
	status_code: int = Field(default=400, exclude=True)

	@classmethod
	def from_error(cls, exc: RosterError) -> "ActionFailure":
		return cls(error=exc.detail, code=exc.code, status_code=exc.status_code)


ActionResult = Union[ActionSuccess[Any], ActionFailure]


def ok(data: Any = None) -> ActionSuccess[Any]:
	return ActionSuccess[Any](data=data)
