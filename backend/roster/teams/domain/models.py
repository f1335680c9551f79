"""Domain models for roster entities."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from roster.teams.domain.geo import Coordinates


class Sport(str, Enum):
	FOOTBALL = "FOOTBALL"
	BASKETBALL = "BASKETBALL"
	TENNIS = "TENNIS"
	CRICKET = "CRICKET"
	SOCCER = "SOCCER"
	VOLLEYBALL = "VOLLEYBALL"
	OTHER = "OTHER"


class AthleteRank(str, Enum):
	"""Athlete rank, listed weakest first."""

	PAWN = "PAWN"
	KNIGHT = "KNIGHT"
	BISHOP = "BISHOP"
	ROOK = "ROOK"
	QUEEN = "QUEEN"
	KING = "KING"


class AthleteClass(str, Enum):
	"""Athlete class, listed weakest first."""

	E = "E"
	D = "D"
	C = "C"
	B = "B"
	A = "A"
	S = "S"


RANK_ORDER = {rank: idx for idx, rank in enumerate(AthleteRank)}
CLASS_ORDER = {klass: idx for idx, klass in enumerate(AthleteClass)}


class TeamRole(str, Enum):
	OWNER = "OWNER"
	CAPTAIN = "CAPTAIN"
	PLAYER = "PLAYER"
	MANAGER = "MANAGER"


class TeamStatus(str, Enum):
	PENDING_MEMBERS = "PENDING_MEMBERS"
	ACTIVE = "ACTIVE"
	REVOKED = "REVOKED"
	EXPIRED = "EXPIRED"


class InvitationStatus(str, Enum):
	"""Invitation statuses; everything except PENDING is terminal."""

	PENDING = "PENDING"
	ACCEPTED = "ACCEPTED"
	REJECTED = "REJECTED"
	EXPIRED = "EXPIRED"
	CANCELLED = "CANCELLED"


class JoinRequestStatus(str, Enum):
	PENDING = "PENDING"
	ACCEPTED = "ACCEPTED"
	REJECTED = "REJECTED"


class JoinRequestDecision(str, Enum):
	ACCEPT = "ACCEPT"
	REJECT = "REJECT"


class ApplicationStatus(str, Enum):
	PENDING = "PENDING"
	APPROVED = "APPROVED"
	REJECTED = "REJECTED"


class GuideStatus(str, Enum):
	PENDING = "PENDING"
	APPROVED = "APPROVED"
	REJECTED = "REJECTED"


class NotificationType(str, Enum):
	TEAM_INVITE = "TEAM_INVITE"
	INVITE_ACCEPTED = "INVITE_ACCEPTED"
	INVITE_DECLINED = "INVITE_DECLINED"
	INVITE_CANCELLED = "INVITE_CANCELLED"
	TEAM_JOIN_REQUEST = "TEAM_JOIN_REQUEST"
	JOIN_REQUEST_REJECTED = "JOIN_REQUEST_REJECTED"
	MEMBER_JOINED = "MEMBER_JOINED"
	MEMBER_LEFT = "MEMBER_LEFT"
	ROLE_CHANGED = "ROLE_CHANGED"
	APPLICATION_SUBMITTED = "APPLICATION_SUBMITTED"
	APPLICATION_APPROVED = "APPLICATION_APPROVED"
	APPLICATION_REJECTED = "APPLICATION_REJECTED"


class Athlete(BaseModel):
	"""Represents a registered athlete."""

	id: UUID
	auth_subject: str
	username: str
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	primary_sport: Optional[Sport] = None
	secondary_sport: Optional[Sport] = None
	rank: AthleteRank = AthleteRank.PAWN
	athlete_class: AthleteClass = AthleteClass.E
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	city: Optional[str] = None
	country: Optional[str] = None
	profile_image: Optional[str] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def coordinates(self) -> Coordinates | None:
		return Coordinates.maybe(self.latitude, self.longitude)

	@property
	def display_name(self) -> str:
		full = " ".join(part for part in (self.first_name, self.last_name) if part)
		return full or self.username


class Team(BaseModel):
	"""Represents a team created from an approved application."""

	id: UUID
	name: str
	sport: Sport
	rank: AthleteRank = AthleteRank.PAWN
	team_class: AthleteClass = AthleteClass.E
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	owner_id: UUID
	status: TeamStatus
	team_application_id: Optional[UUID] = None
	overseer_guide_id: Optional[UUID] = None
	bio: Optional[str] = None
	logo_url: Optional[str] = None
	city: Optional[str] = None
	state: Optional[str] = None
	country: Optional[str] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def coordinates(self) -> Coordinates | None:
		return Coordinates.maybe(self.latitude, self.longitude)


class Membership(BaseModel):
	"""Represents a membership row; an athlete holds at most one."""

	id: UUID
	team_id: UUID
	athlete_id: UUID
	role: TeamRole
	is_captain: bool
	joined_at: datetime

	model_config = ConfigDict(from_attributes=True)


class TeamMember(Membership):
	"""Membership joined with the athlete's public profile."""

	username: str
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	profile_image: Optional[str] = None
	rank: AthleteRank = AthleteRank.PAWN
	athlete_class: AthleteClass = AthleteClass.E


class TeamCounters(BaseModel):
	team_id: UUID
	members_count: int = 0
	posts_count: int = 0
	matches_played: int = 0

	model_config = ConfigDict(from_attributes=True)


class Invitation(BaseModel):
	"""Represents a team-initiated invitation."""

	id: UUID
	team_id: UUID
	invited_athlete_id: UUID
	invited_by_id: UUID
	status: InvitationStatus
	message: Optional[str] = None
	expires_at: Optional[datetime] = None
	responded_at: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	def is_expired(self, now: datetime) -> bool:
		return self.expires_at is not None and self.expires_at < now


class JoinRequest(BaseModel):
	"""Represents an athlete-initiated join request."""

	id: UUID
	team_id: UUID
	athlete_id: UUID
	message: Optional[str] = None
	status: JoinRequestStatus
	reviewed_by_id: Optional[UUID] = None
	reviewed_at: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class TeamApplication(BaseModel):
	"""A prospective team awaiting its guide's review."""

	id: UUID
	applicant_id: UUID
	guide_id: UUID
	name: str
	sport: Sport
	rank: AthleteRank = AthleteRank.PAWN
	team_class: AthleteClass = AthleteClass.E
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	city: Optional[str] = None
	state: Optional[str] = None
	country: Optional[str] = None
	bio: Optional[str] = None
	logo_url: Optional[str] = None
	status: ApplicationStatus
	review_note: Optional[str] = None
	reviewed_at: Optional[datetime] = None
	team_id: Optional[UUID] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Guide(BaseModel):
	"""An approved reviewer of team applications, linked to an athlete."""

	id: UUID
	athlete_id: UUID
	status: GuideStatus
	primary_sport: Sport
	sports: list[Sport] = Field(default_factory=list)
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	city: Optional[str] = None
	country: Optional[str] = None
	display_name: Optional[str] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def coordinates(self) -> Coordinates | None:
		return Coordinates.maybe(self.latitude, self.longitude)

	def covers(self, sport: Sport) -> bool:
		return self.primary_sport == sport or sport in self.sports


class NotificationEntity(BaseModel):
	id: UUID
	recipient_id: UUID
	actor_id: Optional[UUID] = None
	type: NotificationType
	title: str
	message: str
	payload: dict[str, Any] = Field(default_factory=dict)
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class NearbyAthlete(BaseModel):
	"""A free agent returned by discovery, without raw coordinates."""

	id: UUID
	username: str
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	profile_image: Optional[str] = None
	primary_sport: Optional[Sport] = None
	secondary_sport: Optional[Sport] = None
	rank: AthleteRank
	athlete_class: AthleteClass
	city: Optional[str] = None
	country: Optional[str] = None
	distance_km: float

	@classmethod
	def from_athlete(cls, athlete: Athlete, distance_km: float) -> "NearbyAthlete":
		return cls(
			id=athlete.id,
			username=athlete.username,
			first_name=athlete.first_name,
			last_name=athlete.last_name,
			profile_image=athlete.profile_image,
			primary_sport=athlete.primary_sport,
			secondary_sport=athlete.secondary_sport,
			rank=athlete.rank,
			athlete_class=athlete.athlete_class,
			city=athlete.city,
			country=athlete.country,
			distance_km=distance_km,
		)


class GuideMatch(BaseModel):
	guide: Guide
	distance_km: Optional[float] = None
