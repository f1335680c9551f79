"""Async repository helpers for the roster domain.

Every mutating method runs in a single transaction. Uniqueness invariants
(one owner per team, one membership per athlete, one pending invitation or
join request per pair, one pending application per applicant) are enforced
by the schema; unique violations surface as ``ConflictError``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable
from uuid import UUID, uuid4

import asyncpg

from roster.infra.postgres import get_pool
from roster.teams.domain import models
from roster.teams.domain.exceptions import ConflictError, NotFoundError
from roster.teams.domain.geo import BoundingBox

_RANK_ARRAY = "ARRAY['PAWN','KNIGHT','BISHOP','ROOK','QUEEN','KING']::text[]"
_CLASS_ARRAY = "ARRAY['E','D','C','B','A','S']::text[]"
_ROLE_ORDER = "CASE m.role WHEN 'OWNER' THEN 0 WHEN 'CAPTAIN' THEN 1 WHEN 'MANAGER' THEN 2 ELSE 3 END"


def _like_pattern(term: str) -> str:
	escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
	return f"%{escaped}%"


def _affected(result: str | None) -> int:
	return int(result.split()[-1]) if result else 0


def _notification_from_row(record: asyncpg.Record) -> models.NotificationEntity:
	data = dict(record)
	payload = data.get("payload")
	if isinstance(payload, str):
		data["payload"] = json.loads(payload)
	return models.NotificationEntity.model_validate(data)


class TeamsRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Athletes & guides ------------------------------------------------

	async def get_athlete(self, athlete_id: UUID) -> models.Athlete | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM athlete WHERE id=$1", athlete_id)
		return models.Athlete.model_validate(dict(record)) if record else None

	async def get_athlete_by_subject(self, subject: str) -> models.Athlete | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM athlete WHERE auth_subject=$1", subject)
		return models.Athlete.model_validate(dict(record)) if record else None

	async def get_guide(self, guide_id: UUID) -> models.Guide | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM guide WHERE id=$1", guide_id)
		return models.Guide.model_validate(dict(record)) if record else None

	async def list_approved_guides(self, sport: models.Sport) -> list[models.Guide]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT g.*, COALESCE(NULLIF(TRIM(CONCAT_WS(' ', a.first_name, a.last_name)), ''), a.username)
					AS display_name
				FROM guide g
				JOIN athlete a ON a.id = g.athlete_id
				WHERE g.status = 'APPROVED'
					AND (g.primary_sport = $1 OR $1 = ANY(g.sports))
				ORDER BY g.created_at ASC
				""",
				sport.value,
			)
		return [models.Guide.model_validate(dict(row)) for row in rows]

	async def find_free_agent_candidates(
		self,
		*,
		box: BoundingBox,
		sport: models.Sport | None,
		search: str | None,
		widen_search: bool,
		limit: int,
	) -> list[models.Athlete]:
		"""Stage one of discovery: the index-friendly bounding-box query.

		Rows are pre-sorted by sport match, then rank and class descending, so
		the over-fetched window favours the strongest matching candidates.
		"""
		params: list[object] = [box.lat_min, box.lat_max, box.lon_min, box.lon_max]
		where_clauses = [
			"a.latitude IS NOT NULL",
			"a.longitude IS NOT NULL",
			"a.latitude BETWEEN $1 AND $2",
			"a.longitude BETWEEN $3 AND $4",
			"NOT EXISTS (SELECT 1 FROM team_membership m WHERE m.athlete_id = a.id)",
		]
		filters: list[str] = []
		sport_order = "0"
		if sport is not None:
			params.append(sport.value)
			idx = len(params)
			filters.append(f"(a.primary_sport = ${idx} OR a.secondary_sport = ${idx})")
			sport_order = f"CASE WHEN a.primary_sport = ${idx} THEN 0 WHEN a.secondary_sport = ${idx} THEN 1 ELSE 2 END"
		if search:
			params.append(_like_pattern(search))
			idx = len(params)
			filters.append(f"(a.username ILIKE ${idx} OR a.first_name ILIKE ${idx} OR a.last_name ILIKE ${idx})")
		if filters:
			joiner = " OR " if widen_search else " AND "
			where_clauses.append("(" + joiner.join(filters) + ")")
		params.append(limit)
		where = " AND ".join(where_clauses)
		query = f"""
			SELECT a.*
			FROM athlete a
			WHERE {where}
			ORDER BY {sport_order} ASC,
				array_position({_RANK_ARRAY}, a.rank) DESC,
				array_position({_CLASS_ARRAY}, a.athlete_class) DESC,
				a.id ASC
			LIMIT ${len(params)}
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [models.Athlete.model_validate(dict(row)) for row in rows]

	# --- Teams & membership -----------------------------------------------

	async def get_team(self, team_id: UUID) -> models.Team | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team WHERE id=$1", team_id)
		return models.Team.model_validate(dict(record)) if record else None

	async def get_team_by_owner(self, athlete_id: UUID) -> models.Team | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team WHERE owner_id=$1", athlete_id)
		return models.Team.model_validate(dict(record)) if record else None

	async def get_counters(self, team_id: UUID) -> models.TeamCounters | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team_counters WHERE team_id=$1", team_id)
		return models.TeamCounters.model_validate(dict(record)) if record else None

	async def get_membership_for_athlete(self, athlete_id: UUID) -> models.Membership | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team_membership WHERE athlete_id=$1", athlete_id)
		return models.Membership.model_validate(dict(record)) if record else None

	async def get_membership(self, team_id: UUID, athlete_id: UUID) -> models.Membership | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM team_membership WHERE team_id=$1 AND athlete_id=$2",
				team_id,
				athlete_id,
			)
		return models.Membership.model_validate(dict(record)) if record else None

	async def list_members(self, team_id: UUID) -> list[models.TeamMember]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT m.*, a.username, a.first_name, a.last_name, a.profile_image, a.rank, a.athlete_class
				FROM team_membership m
				JOIN athlete a ON a.id = m.athlete_id
				WHERE m.team_id = $1
				ORDER BY {_ROLE_ORDER}, m.joined_at ASC
				""",
				team_id,
			)
		return [models.TeamMember.model_validate(dict(row)) for row in rows]

	async def list_member_ids(
		self,
		team_id: UUID,
		*,
		roles: Iterable[models.TeamRole] | None = None,
	) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if roles:
				rows = await conn.fetch(
					"SELECT athlete_id FROM team_membership WHERE team_id=$1 AND role = ANY($2::text[])",
					team_id,
					[role.value for role in roles],
				)
			else:
				rows = await conn.fetch("SELECT athlete_id FROM team_membership WHERE team_id=$1", team_id)
		return [row["athlete_id"] for row in rows]

	async def _lock_team(self, conn: asyncpg.Connection, team_id: UUID) -> asyncpg.Record:
		record = await conn.fetchrow("SELECT * FROM team WHERE id=$1 FOR UPDATE", team_id)
		if not record:
			raise NotFoundError("team_not_found")
		return record

	async def _insert_membership(
		self,
		conn: asyncpg.Connection,
		*,
		team_id: UUID,
		athlete_id: UUID,
		role: models.TeamRole,
		is_captain: bool,
	) -> asyncpg.Record:
		try:
			return await conn.fetchrow(
				"""
				INSERT INTO team_membership (id, team_id, athlete_id, role, is_captain)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING *
				""",
				uuid4(),
				team_id,
				athlete_id,
				role.value,
				is_captain,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise ConflictError("already_on_team") from exc

	async def _bump_members(self, conn: asyncpg.Connection, team_id: UUID, delta: int) -> None:
		await conn.execute(
			"""
			INSERT INTO team_counters (team_id, members_count)
			VALUES ($1, GREATEST($2, 0))
			ON CONFLICT (team_id)
			DO UPDATE SET members_count = GREATEST(team_counters.members_count + $2, 0)
			""",
			team_id,
			delta,
		)

	async def delete_membership(
		self,
		team_id: UUID,
		athlete_id: UUID,
		*,
		expected_role: models.TeamRole,
	) -> models.Membership:
		"""Remove a non-owner membership, re-checking its role under the team lock."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await self._lock_team(conn, team_id)
				record = await conn.fetchrow(
					"SELECT * FROM team_membership WHERE team_id=$1 AND athlete_id=$2 FOR UPDATE",
					team_id,
					athlete_id,
				)
				if not record:
					raise NotFoundError("member_not_found")
				if record["role"] == models.TeamRole.OWNER.value:
					raise ConflictError("cannot_remove_owner")
				if record["role"] != expected_role.value:
					raise ConflictError("membership_changed")
				await conn.execute("DELETE FROM team_membership WHERE id=$1", record["id"])
				await self._bump_members(conn, team_id, -1)
		return models.Membership.model_validate(dict(record))

	async def update_member_role(
		self,
		team_id: UUID,
		athlete_id: UUID,
		*,
		new_role: models.TeamRole,
		is_captain: bool,
		expected_role: models.TeamRole,
	) -> models.Membership:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await self._lock_team(conn, team_id)
				record = await conn.fetchrow(
					"""
					UPDATE team_membership
					SET role = $3, is_captain = $4
					WHERE team_id = $1 AND athlete_id = $2 AND role = $5 AND role <> 'OWNER'
					RETURNING *
					""",
					team_id,
					athlete_id,
					new_role.value,
					is_captain,
					expected_role.value,
				)
				if not record:
					raise ConflictError("membership_changed")
		return models.Membership.model_validate(dict(record))

	async def transfer_ownership(self, team_id: UUID, *, from_id: UUID, to_id: UUID) -> models.Team:
		"""Swap OWNER between two members of ``team_id`` in one transaction.

		The team row is locked first, so concurrent transfers serialise; the
		owner is re-checked after the lock is held.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				team = await self._lock_team(conn, team_id)
				if team["owner_id"] != from_id:
					raise ConflictError("ownership_changed")
				target = await conn.fetchrow(
					"SELECT * FROM team_membership WHERE team_id=$1 AND athlete_id=$2 FOR UPDATE",
					team_id,
					to_id,
				)
				if not target:
					raise NotFoundError("member_not_found")
				# demote before promote; the partial unique index allows one OWNER row
				await conn.execute(
					"""
					UPDATE team_membership SET role = 'CAPTAIN', is_captain = TRUE
					WHERE team_id = $1 AND athlete_id = $2
					""",
					team_id,
					from_id,
				)
				try:
					await conn.execute(
						"""
						UPDATE team_membership SET role = 'OWNER', is_captain = FALSE
						WHERE team_id = $1 AND athlete_id = $2
						""",
						team_id,
						to_id,
					)
					record = await conn.fetchrow(
						"UPDATE team SET owner_id = $2, updated_at = NOW() WHERE id = $1 RETURNING *",
						team_id,
						to_id,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("ownership_conflict") from exc
		return models.Team.model_validate(dict(record))

	# --- Invitations ------------------------------------------------------

	async def _lock_pair(self, conn: asyncpg.Connection, team_id: UUID, athlete_id: UUID) -> None:
		await conn.execute(
			"SELECT pg_advisory_xact_lock(hashtextextended($1, 0))",
			f"roster:{team_id}:{athlete_id}",
		)

	async def get_invitation(self, invitation_id: UUID) -> models.Invitation | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team_invitation WHERE id=$1", invitation_id)
		return models.Invitation.model_validate(dict(record)) if record else None

	async def get_pending_invitation(self, team_id: UUID, athlete_id: UUID) -> models.Invitation | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				SELECT * FROM team_invitation
				WHERE team_id=$1 AND invited_athlete_id=$2 AND status='PENDING'
				""",
				team_id,
				athlete_id,
			)
		return models.Invitation.model_validate(dict(record)) if record else None

	async def list_team_invitations(
		self,
		team_id: UUID,
		*,
		status: models.InvitationStatus | None = models.InvitationStatus.PENDING,
	) -> list[models.Invitation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM team_invitation
				WHERE team_id=$1 AND ($2::text IS NULL OR status = $2)
				ORDER BY created_at DESC
				""",
				team_id,
				status.value if status else None,
			)
		return [models.Invitation.model_validate(dict(row)) for row in rows]

	async def list_invitations_for_athlete(
		self,
		athlete_id: UUID,
		*,
		status: models.InvitationStatus | None = models.InvitationStatus.PENDING,
	) -> list[models.Invitation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM team_invitation
				WHERE invited_athlete_id=$1 AND ($2::text IS NULL OR status = $2)
				ORDER BY created_at DESC
				""",
				athlete_id,
				status.value if status else None,
			)
		return [models.Invitation.model_validate(dict(row)) for row in rows]

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
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await self._lock_pair(conn, team_id, athlete_id)
				# a stale PENDING row must not block a fresh invitation
				await conn.execute(
					"""
					UPDATE team_invitation SET status = 'EXPIRED', responded_at = $3
					WHERE team_id = $1 AND invited_athlete_id = $2
						AND status = 'PENDING' AND expires_at IS NOT NULL AND expires_at < $3
					""",
					team_id,
					athlete_id,
					now,
				)
				member = await conn.fetchval(
					"SELECT 1 FROM team_membership WHERE team_id=$1 AND athlete_id=$2",
					team_id,
					athlete_id,
				)
				if member:
					raise ConflictError("already_member")
				pending_request = await conn.fetchval(
					"SELECT 1 FROM team_join_request WHERE team_id=$1 AND athlete_id=$2 AND status='PENDING'",
					team_id,
					athlete_id,
				)
				if pending_request:
					raise ConflictError("join_request_pending")
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO team_invitation (id, team_id, invited_athlete_id, invited_by_id, status, message, expires_at)
						VALUES ($1, $2, $3, $4, 'PENDING', $5, $6)
						RETURNING *
						""",
						uuid4(),
						team_id,
						athlete_id,
						invited_by_id,
						message,
						expires_at,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("invite_already_pending") from exc
		return models.Invitation.model_validate(dict(record))

	async def accept_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Membership:
		"""Create a PLAYER membership and mark the invitation ACCEPTED atomically."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				invitation = await conn.fetchrow(
					"SELECT * FROM team_invitation WHERE id=$1 FOR UPDATE",
					invitation_id,
				)
				if not invitation:
					raise NotFoundError("invitation_not_found")
				if invitation["status"] != models.InvitationStatus.PENDING.value:
					raise ConflictError("invitation_not_pending")
				if invitation["expires_at"] is not None and invitation["expires_at"] < now:
					raise ConflictError("invitation_expired")
				await self._lock_team(conn, invitation["team_id"])
				membership = await self._insert_membership(
					conn,
					team_id=invitation["team_id"],
					athlete_id=invitation["invited_athlete_id"],
					role=models.TeamRole.PLAYER,
					is_captain=False,
				)
				await conn.execute(
					"UPDATE team_invitation SET status = 'ACCEPTED', responded_at = $2 WHERE id = $1",
					invitation_id,
					now,
				)
				await self._bump_members(conn, invitation["team_id"], 1)
		return models.Membership.model_validate(dict(membership))

	async def _close_invitation(
		self,
		invitation_id: UUID,
		status: models.InvitationStatus,
		now: datetime,
	) -> models.Invitation:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE team_invitation SET status = $2, responded_at = $3
				WHERE id = $1 AND status = 'PENDING'
				RETURNING *
				""",
				invitation_id,
				status.value,
				now,
			)
			if not record:
				exists = await conn.fetchval("SELECT 1 FROM team_invitation WHERE id=$1", invitation_id)
				if not exists:
					raise NotFoundError("invitation_not_found")
				raise ConflictError("invitation_not_pending")
		return models.Invitation.model_validate(dict(record))

	async def decline_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, models.InvitationStatus.REJECTED, now)

	async def cancel_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, models.InvitationStatus.CANCELLED, now)

	async def expire_invitation(self, invitation_id: UUID, *, now: datetime) -> models.Invitation:
		return await self._close_invitation(invitation_id, models.InvitationStatus.EXPIRED, now)

	async def expire_invitations(self, *, now: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"""
				UPDATE team_invitation SET status = 'EXPIRED', responded_at = $1
				WHERE status = 'PENDING' AND expires_at IS NOT NULL AND expires_at < $1
				""",
				now,
			)
		return _affected(result)

	# --- Join requests ----------------------------------------------------

	async def get_join_request(self, request_id: UUID) -> models.JoinRequest | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team_join_request WHERE id=$1", request_id)
		return models.JoinRequest.model_validate(dict(record)) if record else None

	async def get_pending_join_request(self, team_id: UUID, athlete_id: UUID) -> models.JoinRequest | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM team_join_request WHERE team_id=$1 AND athlete_id=$2 AND status='PENDING'",
				team_id,
				athlete_id,
			)
		return models.JoinRequest.model_validate(dict(record)) if record else None

	async def list_join_requests(
		self,
		team_id: UUID,
		*,
		status: models.JoinRequestStatus | None = None,
	) -> list[models.JoinRequest]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM team_join_request
				WHERE team_id=$1 AND ($2::text IS NULL OR status = $2)
				ORDER BY created_at DESC
				""",
				team_id,
				status.value if status else None,
			)
		return [models.JoinRequest.model_validate(dict(row)) for row in rows]

	async def create_join_request(
		self,
		*,
		team_id: UUID,
		athlete_id: UUID,
		message: str | None,
		now: datetime,
	) -> models.JoinRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await self._lock_pair(conn, team_id, athlete_id)
				member = await conn.fetchval(
					"SELECT 1 FROM team_membership WHERE team_id=$1 AND athlete_id=$2",
					team_id,
					athlete_id,
				)
				if member:
					raise ConflictError("already_member")
				pending_invite = await conn.fetchval(
					"""
					SELECT 1 FROM team_invitation
					WHERE team_id=$1 AND invited_athlete_id=$2 AND status='PENDING'
						AND (expires_at IS NULL OR expires_at >= $3)
					""",
					team_id,
					athlete_id,
					now,
				)
				if pending_invite:
					raise ConflictError("invitation_pending")
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO team_join_request (id, team_id, athlete_id, message, status)
						VALUES ($1, $2, $3, $4, 'PENDING')
						RETURNING *
						""",
						uuid4(),
						team_id,
						athlete_id,
						message,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("join_request_already_pending") from exc
		return models.JoinRequest.model_validate(dict(record))

	async def accept_join_request(
		self,
		request_id: UUID,
		*,
		reviewer_id: UUID,
		now: datetime,
	) -> models.Membership:
		"""Create the PLAYER membership, then drop the accepted request row."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				request = await conn.fetchrow(
					"SELECT * FROM team_join_request WHERE id=$1 FOR UPDATE",
					request_id,
				)
				if not request:
					raise NotFoundError("join_request_not_found")
				if request["status"] != models.JoinRequestStatus.PENDING.value:
					raise ConflictError("request_already_reviewed")
				await self._lock_team(conn, request["team_id"])
				membership = await self._insert_membership(
					conn,
					team_id=request["team_id"],
					athlete_id=request["athlete_id"],
					role=models.TeamRole.PLAYER,
					is_captain=False,
				)
				await conn.execute(
					"""
					UPDATE team_join_request SET status = 'ACCEPTED', reviewed_by_id = $2, reviewed_at = $3
					WHERE id = $1
					""",
					request_id,
					reviewer_id,
					now,
				)
				await conn.execute("DELETE FROM team_join_request WHERE id = $1", request_id)
				await self._bump_members(conn, request["team_id"], 1)
		return models.Membership.model_validate(dict(membership))

	async def reject_join_request(
		self,
		request_id: UUID,
		*,
		reviewer_id: UUID,
		now: datetime,
	) -> models.JoinRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE team_join_request SET status = 'REJECTED', reviewed_by_id = $2, reviewed_at = $3
				WHERE id = $1 AND status = 'PENDING'
				RETURNING *
				""",
				request_id,
				reviewer_id,
				now,
			)
			if not record:
				exists = await conn.fetchval("SELECT 1 FROM team_join_request WHERE id=$1", request_id)
				if not exists:
					raise NotFoundError("join_request_not_found")
				raise ConflictError("request_already_reviewed")
		return models.JoinRequest.model_validate(dict(record))

	# --- Team applications ------------------------------------------------

	async def get_application(self, application_id: UUID) -> models.TeamApplication | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM team_application WHERE id=$1", application_id)
		return models.TeamApplication.model_validate(dict(record)) if record else None

	async def get_pending_application(self, applicant_id: UUID) -> models.TeamApplication | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM team_application WHERE applicant_id=$1 AND status='PENDING'",
				applicant_id,
			)
		return models.TeamApplication.model_validate(dict(record)) if record else None

	async def create_application(
		self,
		*,
		applicant_id: UUID,
		guide_id: UUID,
		name: str,
		sport: models.Sport,
		rank: models.AthleteRank,
		team_class: models.AthleteClass,
		latitude: float | None,
		longitude: float | None,
		city: str | None,
		state: str | None,
		country: str | None,
		bio: str | None,
		logo_url: str | None,
	) -> models.TeamApplication:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				owns = await conn.fetchval("SELECT 1 FROM team WHERE owner_id=$1", applicant_id)
				if owns:
					raise ConflictError("already_owns_team")
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO team_application (id, applicant_id, guide_id, name, sport, rank, team_class,
							latitude, longitude, city, state, country, bio, logo_url, status)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, 'PENDING')
						RETURNING *
						""",
						uuid4(),
						applicant_id,
						guide_id,
						name,
						sport.value,
						rank.value,
						team_class.value,
						latitude,
						longitude,
						city,
						state,
						country,
						bio,
						logo_url,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("pending_application_exists") from exc
		return models.TeamApplication.model_validate(dict(record))

	async def approve_application(self, application_id: UUID, *, now: datetime) -> models.Team:
		"""Turn a pending application into a team, its OWNER row and zeroed counters."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				application = await conn.fetchrow(
					"SELECT * FROM team_application WHERE id=$1 FOR UPDATE",
					application_id,
				)
				if not application:
					raise NotFoundError("application_not_found")
				if application["status"] != models.ApplicationStatus.PENDING.value:
					raise ConflictError("application_already_reviewed")
				applicant_id = application["applicant_id"]
				on_team = await conn.fetchval("SELECT 1 FROM team_membership WHERE athlete_id=$1", applicant_id)
				if on_team:
					raise ConflictError("applicant_already_on_team")
				try:
					team = await conn.fetchrow(
						"""
						INSERT INTO team (id, name, sport, rank, team_class, latitude, longitude, owner_id, status,
							team_application_id, overseer_guide_id, bio, logo_url, city, state, country)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 'PENDING_MEMBERS', $9, $10, $11, $12, $13, $14, $15)
						RETURNING *
						""",
						uuid4(),
						application["name"],
						application["sport"],
						application["rank"],
						application["team_class"],
						application["latitude"],
						application["longitude"],
						applicant_id,
						application_id,
						application["guide_id"],
						application["bio"],
						application["logo_url"],
						application["city"],
						application["state"],
						application["country"],
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("already_owns_team") from exc
				await self._insert_membership(
					conn,
					team_id=team["id"],
					athlete_id=applicant_id,
					role=models.TeamRole.OWNER,
					is_captain=True,
				)
				await conn.execute(
					"""
					INSERT INTO team_counters (team_id, members_count, posts_count, matches_played)
					VALUES ($1, 1, 0, 0)
					""",
					team["id"],
				)
				await conn.execute(
					"""
					UPDATE team_application SET status = 'APPROVED', reviewed_at = $2, team_id = $3
					WHERE id = $1
					""",
					application_id,
					now,
					team["id"],
				)
		return models.Team.model_validate(dict(team))

	async def reject_application(
		self,
		application_id: UUID,
		*,
		note: str | None,
		now: datetime,
	) -> models.TeamApplication:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE team_application SET status = 'REJECTED', review_note = $2, reviewed_at = $3
				WHERE id = $1 AND status = 'PENDING'
				RETURNING *
				""",
				application_id,
				note,
				now,
			)
			if not record:
				exists = await conn.fetchval("SELECT 1 FROM team_application WHERE id=$1", application_id)
				if not exists:
					raise NotFoundError("application_not_found")
				raise ConflictError("application_already_reviewed")
		return models.TeamApplication.model_validate(dict(record))

	# --- Notifications ----------------------------------------------------

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
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO notification (id, recipient_id, actor_id, type, title, message, payload)
				VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
				RETURNING *
				""",
				uuid4(),
				recipient_id,
				actor_id,
				type.value,
				title,
				message,
				json.dumps(payload, default=str),
			)
		return _notification_from_row(record)
