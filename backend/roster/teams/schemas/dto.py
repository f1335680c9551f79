"""Pydantic schemas for the roster API."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from roster.teams.domain.applications_service import ApplicationDraft
from roster.teams.domain.models import AthleteClass, AthleteRank, Sport, TeamRole


class InviteCreateRequest(BaseModel):
	athlete_id: UUID
	message: Optional[str] = Field(default=None, max_length=500)


class JoinRequestCreateRequest(BaseModel):
	message: Optional[str] = Field(default=None, max_length=500)


class JoinRequestDecisionRequest(BaseModel):
	decision: str = Field(..., pattern="^(ACCEPT|REJECT)$")
	note: Optional[str] = Field(default=None, max_length=500)


class RoleChangeRequest(BaseModel):
	role: TeamRole


class TransferOwnershipRequest(BaseModel):
	athlete_id: UUID


class ApplicationCreateRequest(BaseModel):
	guide_id: UUID
	name: str = Field(..., min_length=3, max_length=80)
	sport: Sport
	rank: AthleteRank = AthleteRank.PAWN
	team_class: AthleteClass = AthleteClass.E
	latitude: Optional[float] = Field(default=None, ge=-90, le=90)
	longitude: Optional[float] = Field(default=None, ge=-180, le=180)
	city: Optional[str] = Field(default=None, max_length=120)
	state: Optional[str] = Field(default=None, max_length=120)
	country: Optional[str] = Field(default=None, max_length=120)
	bio: Optional[str] = Field(default=None, max_length=1000)
	logo_url: Optional[str] = Field(default=None, max_length=2048)

	def to_draft(self) -> ApplicationDraft:
		return ApplicationDraft(**self.model_dump())


class ApplicationRejectRequest(BaseModel):
	note: Optional[str] = Field(default=None, max_length=1000)
