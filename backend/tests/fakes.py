"""In-memory stand-in for ``TeamsRepository`` used by unit and API tests.

Mirrors the repository contract, including the conflict details raised when
a uniqueness invariant would be broken. Mutations run under one lock so
concurrent coroutines observe each other the way serialised transactions do.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional
from uuid import UUID, uuid4

from roster.teams.domain import models
from roster.teams.domain.exceptions import ConflictError, NotFoundError
from roster.teams.domain.geo import BoundingBox, Coordinates
from roster.teams.domain.models import (
	ApplicationStatus,
	AthleteClass,
	AthleteRank,
	GuideStatus,
	InvitationStatus,
	JoinRequestStatus,
	Sport,
	TeamRole,
	TeamStatus,
)

_ROLE_ORDER = {TeamRole.OWNER: 0, TeamRole.CAPTAIN: 1, TeamRole.MANAGER: 2, TeamRole.PLAYER: 3}


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


class InMemoryRosterRepository:
	def __init__(self) -> None:
		self.athletes: dict[UUID, models.Athlete] = {}
		self.guides: dict[UUID, models.Guide] = {}
		self.teams: dict[UUID, models.Team] = {}
		self.counters: dict[UUID, models.TeamCounters] = {}
		self.memberships: dict[UUID, models.Membership] = {}
		self.invitations: dict[UUID, models.Invitation] = {}
		self.join_requests: dict[UUID, models.JoinRequest] = {}
		self.applications: dict[UUID, models.TeamApplication] = {}
		self.notifications: list[models.NotificationEntity] = []
		self.candidate_queries: list[dict[str, Any]] = []
		self.fail_notifications = False
		self.fail_with: Optional[BaseException] = None
		self._lock = asyncio.Lock()
		self._clock = 0

	# --- seeding helpers ----------------------------------------------------

	def _tick(self) -> datetime:
		# strictly increasing timestamps keep ordering deterministic
		self._clock += 1
		return utcnow() + timedelta(microseconds=self._clock)

	def add_athlete(
		self,
		username: str,
		*,
		first_name: str | None = None,
		last_name: str | None = None,
		primary_sport: Sport | None = Sport.FOOTBALL,
		secondary_sport: Sport | None = None,
		rank: AthleteRank = AthleteRank.PAWN,
		athlete_class: AthleteClass = AthleteClass.E,
		latitude: float | None = None,
		longitude: float | None = None,
		subject: str | None = None,
	) -> models.Athlete:
		athlete_id = uuid4()
		athlete = models.Athlete(
			id=athlete_id,
			auth_subject=subject or f"user-{username}",
			username=username,
			first_name=first_name,
			last_name=last_name,
			primary_sport=primary_sport,
			secondary_sport=secondary_sport,
			rank=rank,
			athlete_class=athlete_class,
			latitude=latitude,
			longitude=longitude,
			created_at=self._tick(),
		)
		self.athletes[athlete_id] = athlete
		return athlete

	def add_guide(
		self,
		athlete: models.Athlete,
		*,
		primary_sport: Sport = Sport.FOOTBALL,
		sports: Iterable[Sport] = (),
		status: GuideStatus = GuideStatus.APPROVED,
		latitude: float | None = None,
		longitude: float | None = None,
	) -> models.Guide:
		guide = models.Guide(
			id=uuid4(),
			athlete_id=athlete.id,
			status=status,
			primary_sport=primary_sport,
			sports=list(sports),
			latitude=latitude,
			longitude=longitude,
			display_name=athlete.display_name,
			created_at=self._tick(),
		)
		self.guides[guide.id] = guide
		return guide

	def add_team(
		self,
		owner: models.Athlete,
		*,
		name: str = "Harbour FC",
		sport: Sport = Sport.FOOTBALL,
		latitude: float | None = None,
		longitude: float | None = None,
	) -> models.Team:
		now = self._tick()
		team = models.Team(
			id=uuid4(),
			name=name,
			sport=sport,
			latitude=latitude,
			longitude=longitude,
			owner_id=owner.id,
			status=TeamStatus.PENDING_MEMBERS,
			created_at=now,
			updated_at=now,
		)
		self.teams[team.id] = team
		self.counters[team.id] = models.TeamCounters(team_id=team.id, members_count=0)
		self.add_member(team, owner, TeamRole.OWNER)
		return team

	def add_member(self, team: models.Team, athlete: models.Athlete, role: TeamRole = TeamRole.PLAYER) -> models.Membership:
		membership = self._membership_row(
			team.id,
			athlete.id,
			role,
			is_captain=role in (TeamRole.OWNER, TeamRole.CAPTAIN),
		)
		self.counters[team.id].members_count += 1
		return membership

	def seed_invitation(
		self,
		team: models.Team,
		athlete: models.Athlete,
		invited_by: models.Athlete,
		*,
		expires_at: datetime | None = None,
		status: InvitationStatus = InvitationStatus.PENDING,
	) -> models.Invitation:
		invitation = models.Invitation(
			id=uuid4(),
			team_id=team.id,
			invited_athlete_id=athlete.id,
			invited_by_id=invited_by.id,
			status=status,
			expires_at=expires_at,
			created_at=self._tick(),
		)
		self.invitations[invitation.id] = invitation
		return invitation

	def notifications_for(self, athlete_id: UUID) -> list[models.NotificationEntity]:
		return [item for item in self.notifications if item.recipient_id == athlete_id]

	# --- internals ----------------------------------------------------------

	def _check_failure(self) -> None:
		if self.fail_with is not None:
			raise self.fail_with

	def _membership_row(self, team_id: UUID, athlete_id: UUID, role: TeamRole, *, is_captain: bool) -> models.Membership:
		if any(item.athlete_id == athlete_id for item in self.memberships.values()):
			raise ConflictError("already_on_team")
		membership = models.Membership(
			id=uuid4(),
			team_id=team_id,
			athlete_id=athlete_id,
			role=role,
			is_captain=is_captain,
			joined_at=self._tick(),
		)
		self.memberships[membership.id] = membership
		return membership

	def _find_membership(self, team_id: UUID, athlete_id: UUID) -> models.Membership | None:
		for membership in self.memberships.values():
			if membership.team_id == team_id and membership.athlete_id == athlete_id:
				return membership
		return None

	def _pending_invitation(self, team_id: UUID, athlete_id: UUID) -> models.Invitation | None:
		for invitation in self.invitations.values():
			if (
				invitation.team_id == team_id
				and invitation.invited_athlete_id == athlete_id
				and invitation.status == InvitationStatus.PENDING
			):
				return invitation
		return None

	def _pending_request(self, team_id: UUID, athlete_id: UUID) -> models.JoinRequest | None:
		for request in self.join_requests.values():
			if request.team_id == team_id and request.athlete_id == athlete_id and request.status == JoinRequestStatus.PENDING:
				return request
		return None

	def _bump(self, team_id: UUID, delta: int) -> None:
		counters = self.counters.setdefault(team_id, models.TeamCounters(team_id=team_id))
		counters.members_count = max(counters.members_count + delta, 0)

	# --- athletes & guides --------------------------------------------------

	async def get_athlete(self, athlete_id: UUID) -> models.Athlete | None:
		self._check_failure()
		return self.athletes.get(athlete_id)

	async def get_athlete_by_subject(self, subject: str) -> models.Athlete | None:
		self._check_failure()
		return next((item for item in self.athletes.values() if item.auth_subject == subject), None)

	async def get_guide(self, guide_id: UUID) -> models.Guide | None:
		return self.guides.get(guide_id)

	async def list_approved_guides(self, sport: Sport) -> list[models.Guide]:
		guides = [item for item in self.guides.values() if item.status == GuideStatus.APPROVED and item.covers(sport)]
		return sorted(guides, key=lambda item: item.created_at)

	async def find_free_agent_candidates(
		self,
		*,
		box: BoundingBox,
		sport: Sport | None,
		search: str | None,
		widen_search: bool,
		limit: int,
	) -> list[models.Athlete]:
		self._check_failure()
		self.candidate_queries.append(
			{"box": box, "sport": sport, "search": search, "widen_search": widen_search, "limit": limit}
		)
		members = {item.athlete_id for item in self.memberships.values()}
		term = search.lower() if search else None
		rows: list[models.Athlete] = []
		for athlete in self.athletes.values():
			if athlete.latitude is None or athlete.longitude is None:
				continue
			if not box.contains(Coordinates(athlete.latitude, athlete.longitude)):
				continue
			if athlete.id in members:
				continue
			checks: list[bool] = []
			if sport is not None:
				checks.append(sport in (athlete.primary_sport, athlete.secondary_sport))
			if term:
				names = (athlete.username, athlete.first_name or "", athlete.last_name or "")
				checks.append(any(term in name.lower() for name in names))
			if checks and not (any(checks) if widen_search else all(checks)):
				continue
			rows.append(athlete)

		def _order(athlete: models.Athlete) -> tuple:
			if sport is None:
				sport_rank = 0
			elif athlete.primary_sport == sport:
				sport_rank = 0
			elif athlete.secondary_sport == sport:
				sport_rank = 1
			else:
				sport_rank = 2
			return (
				sport_rank,
				-models.RANK_ORDER[athlete.rank],
				-models.CLASS_ORDER[athlete.athlete_class],
				str(athlete.id),
			)

		rows.sort(key=_order)
		return rows[:limit]

	# --- teams & membership -------------------------------------------------

	async def get_team(self, team_id: UUID) -> models.Team | None:
		self._check_failure()
		return self.teams.get(team_id)

	async def get_team_by_owner(self, athlete_id: UUID) -> models.Team | None:
		return next((team for team in self.teams.values() if team.owner_id == athlete_id), None)

	async def get_counters(self, team_id: UUID) -> models.TeamCounters | None:
		return self.counters.get(team_id)

	async def get_membership_for_athlete(self, athlete_id: UUID) -> models.Membership | None:
		return next((item for item in self.memberships.values() if item.athlete_id == athlete_id), None)

	async def get_membership(self, team_id: UUID, athlete_id: UUID) -> models.Membership | None:
		self._check_failure()
		return self._find_membership(team_id, athlete_id)

	async def list_members(self, team_id: UUID) -> list[models.TeamMember]:
		members: list[models.TeamMember] = []
		for membership in self.memberships.values():
			if membership.team_id != team_id:
				continue
			athlete = self.athletes[membership.athlete_id]
			members.append(
				models.TeamMember(
					**membership.model_dump(),
					username=athlete.username,
					first_name=athlete.first_name,
					last_name=athlete.last_name,
					profile_image=athlete.profile_image,
					rank=athlete.rank,
					athlete_class=athlete.athlete_class,
				)
			)
		members.sort(key=lambda item: (_ROLE_ORDER[item.role], item.joined_at))
		return members

	async def list_member_ids(self, team_id: UUID, *, roles: Iterable[TeamRole] | None = None) -> list[UUID]:
		wanted = set(roles) if roles else None
		return [
			item.athlete_id
			for item in sorted(self.memberships.values(), key=lambda row: row.joined_at)
			if item.team_id == team_id and (wanted is None or item.role in wanted)
		]

	async def delete_membership(self, team_id: UUID, athlete_id: UUID, *, expected_role: TeamRole) -> models.Membership:
		async with self._lock:
			self._check_failure()
			if team_id not in self.teams:
				raise NotFoundError("team_not_found")
			membership = self._find_membership(team_id, athlete_id)
			if membership is None:
				raise NotFoundError("member_not_found")
			if membership.role == TeamRole.OWNER:
				raise ConflictError("cannot_remove_owner")
			if membership.role != expected_role:
				raise ConflictError("membership_changed")
			del self.memberships[membership.id]
			self._bump(team_id, -1)
			return membership

	async def update_member_role(
		self,
		team_id: UUID,
		athlete_id: UUID,
		*,
		new_role: TeamRole,
		is_captain: bool,
		expected_role: TeamRole,
	) -> models.Membership:
		async with self._lock:
			if team_id not in self.teams:
				raise NotFoundError("team_not_found")
			membership = self._find_membership(team_id, athlete_id)
			if membership is None or membership.role != expected_role or membership.role == TeamRole.OWNER:
				raise ConflictError("membership_changed")
			updated = membership.model_copy(update={"role": new_role, "is_captain": is_captain})
			self.memberships[membership.id] = updated
			return updated

	async def transfer_ownership(self, team_id: UUID, *, from_id: UUID, to_id: UUID) -> models.Team:
		async with self._lock:
			team = self.teams.get(team_id)
			if team is None:
				raise NotFoundError("team_not_found")
			if team.owner_id != from_id:
				raise ConflictError("ownership_changed")
			target = self._find_membership(team_id, to_id)
			if target is None:
				raise NotFoundError("member_not_found")
			current = self._find_membership(team_id, from_id)
			if current is not None:
				self.memberships[current.id] = current.model_copy(update={"role": TeamRole.CAPTAIN, "is_captain": True})
			self.memberships[target.id] = target.model_copy(update={"role": TeamRole.OWNER, "is_captain": False})
			updated = team.model_copy(update={"owner_id": to_id, "updated_at": self._tick()})
			self.teams[team_id] = updated
			return updated

	# --- invitations --------------------------------------------------------

	async def get_invitation(self, invitation_id: UUID) -> models.Invitation | None:
		return self.invitations.get(invitation_id)

	async def get_pending_invitation(self, team_id: UUID, athlete_id: UUID) -> models.Invitation | None:
		return self._pending_invitation(team_id, athlete_id)

	async def list_team_invitations(
		self,
		team_id: UUID,
		*,
		status: InvitationStatus | None = InvitationStatus.PENDING,
	) -> list[models.Invitation]:
		rows = [
			item for item in self.invitations.values() if item.team_id == team_id and (status is None or item.status == status)
		]
		return sorted(rows, key=lambda item: item.created_at, reverse=True)

	async def list_invitations_for_athlete(
		self,
		athlete_id: UUID,
		*,
		status: InvitationStatus | None = InvitationStatus.PENDING,
	) -> list[models.Invitation]:
		rows = [
			item
			for item in self.invitations.values()
			if item.invited_athlete_id == athlete_id and (status is None or item.status == status)
		]
		return sorted(rows, key=lambda item: item.created_at, reverse=True)

	async def create_invitation(
		self,
		*,
		team_id: UUID,
		athlete_id: UUID,
		invited_by_id: UUID,
		message: str | None,
		expires_at: datetime | None,
		now: datetime,
	) -> models.Invitation:
		async with self._lock:
			self._check_failure()
			stale = self._pending_invitation(team_id, athlete_id)
			if stale is not None and stale.is_expired(now):
				self.invitations[stale.id] = stale.model_copy(update={"status": InvitationStatus.EXPIRED, "responded_at": now})
			if self._find_membership(team_id, athlete_id) is not None:
				raise ConflictError("already_member")
			if self._pending_request(team_id, athlete_id) is not None:
				raise ConflictError("join_request_pending")
			if self._pending_invitation(team_id, athlete_id) is not None:
				raise ConflictError("invite_already_pending")
			invitation = models.Invitation(
				id=uuid4(),
				team_id=team_id,
				invited_athlete_id=athlete_id,
				invited_by_id=invited_by_id,
				status=InvitationStatus.PENDING,
				message=message,
				expires_at=expires_at,
				created_at=self._tick(),
			)
			self.invitations[invitation.id] = invitation
			return invitation

	async def accept_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Membership:
		async with self._lock:
			invitation = self.invitations.get(invitation_id)
			if invitation is None:
				raise NotFoundError("invitation_not_found")
			if invitation.status != InvitationStatus.PENDING:
				raise ConflictError("invitation_not_pending")
			if invitation.is_expired(now):
				raise ConflictError("invitation_expired")
			membership = self._membership_row(
				invitation.team_id,
				invitation.invited_athlete_id,
				TeamRole.PLAYER,
				is_captain=False,
			)
			self.invitations[invitation_id] = invitation.model_copy(
				update={"status": InvitationStatus.ACCEPTED, "responded_at": now}
			)
			self._bump(invitation.team_id, 1)
			return membership

	async def _close_invitation(self, invitation_id: UUID, status: InvitationStatus, now: datetime) -> models.Invitation:
		async with self._lock:
			invitation = self.invitations.get(invitation_id)
			if invitation is None:
				raise NotFoundError("invitation_not_found")
			if invitation.status != InvitationStatus.PENDING:
				raise ConflictError("invitation_not_pending")
			closed = invitation.model_copy(update={"status": status, "responded_at": now})
			self.invitations[invitation_id] = closed
			return closed

	async def decline_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, InvitationStatus.REJECTED, now)

	async def cancel_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, InvitationStatus.CANCELLED, now)

	async def expire_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, InvitationStatus.EXPIRED, now)

	async def expire_invitations(self, *, now: datetime) -> int:
		async with self._lock:
			self._check_failure()
			expired = 0
			for invitation in list(self.invitations.values()):
				if invitation.status == InvitationStatus.PENDING and invitation.is_expired(now):
					self.invitations[invitation.id] = invitation.model_copy(
						update={"status": InvitationStatus.EXPIRED, "responded_at": now}
					)
					expired += 1
			return expired

	# --- join requests ------------------------------------------------------

	async def get_join_request(self, request_id: UUID) -> models.JoinRequest | None:
		return self.join_requests.get(request_id)

	async def get_pending_join_request(self, team_id: UUID, athlete_id: UUID) -> models.JoinRequest | None:
		return self._pending_request(team_id, athlete_id)

	async def list_join_requests(
		self,
		team_id: UUID,
		*,
		status: JoinRequestStatus | None = None,
	) -> list[models.JoinRequest]:
		rows = [
			item for item in self.join_requests.values() if item.team_id == team_id and (status is None or item.status == status)
		]
		return sorted(rows, key=lambda item: item.created_at, reverse=True)

	async def create_join_request(
		self,
		*,
		team_id: UUID,
		athlete_id: UUID,
		message: str | None,
		now: datetime,
	) -> models.JoinRequest:
		async with self._lock:
			if self._find_membership(team_id, athlete_id) is not None:
				raise ConflictError("already_member")
			invitation = self._pending_invitation(team_id, athlete_id)
			if invitation is not None and not invitation.is_expired(now):
				raise ConflictError("invitation_pending")
			if self._pending_request(team_id, athlete_id) is not None:
				raise ConflictError("join_request_already_pending")
			request = models.JoinRequest(
				id=uuid4(),
				team_id=team_id,
				athlete_id=athlete_id,
				message=message,
				status=JoinRequestStatus.PENDING,
				created_at=self._tick(),
			)
			self.join_requests[request.id] = request
			return request

	async def accept_join_request(self, request_id: UUID, *, reviewer_id: UUID, now: datetime) -> models.Membership:
		async with self._lock:
			request = self.join_requests.get(request_id)
			if request is None:
				raise NotFoundError("join_request_not_found")
			if request.status != JoinRequestStatus.PENDING:
				raise ConflictError("request_already_reviewed")
			membership = self._membership_row(request.team_id, request.athlete_id, TeamRole.PLAYER, is_captain=False)
			del self.join_requests[request_id]
			self._bump(request.team_id, 1)
			return membership

	async def reject_join_request(self, request_id: UUID, *, reviewer_id: UUID, now: datetime) -> models.JoinRequest:
		async with self._lock:
			request = self.join_requests.get(request_id)
			if request is None:
				raise NotFoundError("join_request_not_found")
			if request.status != JoinRequestStatus.PENDING:
				raise ConflictError("request_already_reviewed")
			rejected = request.model_copy(
				update={"status": JoinRequestStatus.REJECTED, "reviewed_by_id": reviewer_id, "reviewed_at": now}
			)
			self.join_requests[request_id] = rejected
			return rejected

	# --- applications -------------------------------------------------------

	async def get_application(self, application_id: UUID) -> models.TeamApplication | None:
		return self.applications.get(application_id)

	async def get_pending_application(self, applicant_id: UUID) -> models.TeamApplication | None:
		return next(
			(
				item
				for item in self.applications.values()
				if item.applicant_id == applicant_id and item.status == ApplicationStatus.PENDING
			),
			None,
		)

	async def create_application(self, *, applicant_id: UUID, **fields: Any) -> models.TeamApplication:
		async with self._lock:
			if any(team.owner_id == applicant_id for team in self.teams.values()):
				raise ConflictError("already_owns_team")
			if await self.get_pending_application(applicant_id) is not None:
				raise ConflictError("pending_application_exists")
			application = models.TeamApplication(
				id=uuid4(),
				applicant_id=applicant_id,
				status=ApplicationStatus.PENDING,
				created_at=self._tick(),
				**fields,
			)
			self.applications[application.id] = application
			return application

	async def approve_application(self, application_id: UUID, *, now: datetime) -> models.Team:
		async with self._lock:
			application = self.applications.get(application_id)
			if application is None:
				raise NotFoundError("application_not_found")
			if application.status != ApplicationStatus.PENDING:
				raise ConflictError("application_already_reviewed")
			if any(item.athlete_id == application.applicant_id for item in self.memberships.values()):
				raise ConflictError("applicant_already_on_team")
			if any(team.owner_id == application.applicant_id for team in self.teams.values()):
				raise ConflictError("already_owns_team")
			stamp = self._tick()
			team = models.Team(
				id=uuid4(),
				name=application.name,
				sport=application.sport,
				rank=application.rank,
				team_class=application.team_class,
				latitude=application.latitude,
				longitude=application.longitude,
				owner_id=application.applicant_id,
				status=TeamStatus.PENDING_MEMBERS,
				team_application_id=application.id,
				overseer_guide_id=application.guide_id,
				bio=application.bio,
				logo_url=application.logo_url,
				city=application.city,
				state=application.state,
				country=application.country,
				created_at=stamp,
				updated_at=stamp,
			)
			self.teams[team.id] = team
			self._membership_row(team.id, application.applicant_id, TeamRole.OWNER, is_captain=True)
			self.counters[team.id] = models.TeamCounters(team_id=team.id, members_count=1, posts_count=0, matches_played=0)
			self.applications[application_id] = application.model_copy(
				update={"status": ApplicationStatus.APPROVED, "reviewed_at": now, "team_id": team.id}
			)
			return team

	async def reject_application(self, application_id: UUID, *, note: str | None, now: datetime) -> models.TeamApplication:
		async with self._lock:
			application = self.applications.get(application_id)
			if application is None:
				raise NotFoundError("application_not_found")
			if application.status != ApplicationStatus.PENDING:
				raise ConflictError("application_already_reviewed")
			rejected = application.model_copy(
				update={"status": ApplicationStatus.REJECTED, "review_note": note, "reviewed_at": now}
			)
			self.applications[application_id] = rejected
			return rejected

	# --- notifications ------------------------------------------------------

	async def insert_notification(
		self,
		*,
		recipient_id: UUID,
		actor_id: UUID | None,
		type: models.NotificationType,
		title: str,
		message: str,
		payload: dict,
	) -> models.NotificationEntity:
		if self.fail_notifications:
			raise RuntimeError("notification store unavailable")
		entity = models.NotificationEntity(
			id=uuid4(),
			recipient_id=recipient_id,
			actor_id=actor_id,
			type=type,
			title=title,
			message=message,
			payload=payload,
			created_at=self._tick(),
		)
		self.notifications.append(entity)
		return entity
