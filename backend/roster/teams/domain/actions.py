"""Caller-facing team actions returning discriminated results.

Each verb takes the authenticated caller first, maps it to an athlete, runs
the workflow with that athlete id, and converts the outcome into
``ActionSuccess`` or ``ActionFailure``. Domain errors become failures with
their taxonomy code; storage errors become ``STORAGE_FAILURE``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

import asyncpg

from roster.infra.auth import AuthenticatedUser
from roster.obs import metrics as obs_metrics
from roster.teams.domain import models, repo as repo_module
from roster.teams.domain.applications_service import ApplicationDraft, ApplicationsService
from roster.teams.domain.discovery_service import DiscoveryService
from roster.teams.domain.exceptions import RosterError, StorageFailure, UnauthenticatedError, ValidationError
from roster.teams.domain.invites_service import InvitesService
from roster.teams.domain.join_requests_service import JoinRequestsService
from roster.teams.domain.membership_service import MembershipService
from roster.teams.domain.notifications_service import NotificationService
from roster.teams.domain.results import ActionFailure, ActionResult, ok

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _coerce(enum_type, value, detail: str):
	if isinstance(value, enum_type):
		return value
	try:
		return enum_type(str(value).upper())
	except ValueError as exc:
		raise ValidationError(detail) from exc


class TeamActions:
	"""One coroutine per roster verb."""

	def __init__(
		self,
		*,
		repository: repo_module.TeamsRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.TeamsRepository()
		sink = notifications or NotificationService(repository=self.repo)
		self.membership = MembershipService(repository=self.repo, notifications=sink)
		self.invites = InvitesService(repository=self.repo, notifications=sink)
		self.join_requests = JoinRequestsService(repository=self.repo, notifications=sink)
		self.applications = ApplicationsService(repository=self.repo, notifications=sink)
		self.discovery = DiscoveryService(repository=self.repo)

	async def _resolve(self, user: AuthenticatedUser | None) -> models.Athlete:
		if user is None or not user.id:
			raise UnauthenticatedError("unauthenticated")
		athlete = await self.repo.get_athlete_by_subject(user.id)
		if athlete is None:
			raise UnauthenticatedError("athlete_profile_not_found")
		return athlete

	async def _run(
		self,
		action: str,
		user: AuthenticatedUser | None,
		op: Callable[[models.Athlete], Awaitable[Any]],
	) -> ActionResult:
		try:
			athlete = await self._resolve(user)
			data = await op(athlete)
		except RosterError as exc:
			logger.info(
				"team action rejected",
				extra={"action": action, "detail": exc.detail, "code": exc.code},
			)
			obs_metrics.inc_action_failure(action, exc.code)
			return ActionFailure.from_error(exc)
		except _STORAGE_ERRORS:
			logger.exception("team action storage failure", extra={"action": action})
			failure = StorageFailure()
			obs_metrics.inc_action_failure(action, failure.code)
			return ActionFailure.from_error(failure)
		return ok(data)

	# --- Invitations --------------------------------------------------------

	async def invite(
		self,
		user: AuthenticatedUser | None,
		team_id: UUID,
		athlete_id: UUID,
		*,
		message: Optional[str] = None,
	) -> ActionResult:
		return await self._run(
			"invite",
			user,
			lambda actor: self.invites.invite(team_id, athlete_id, actor.id, message=message),
		)

	async def accept_invitation(self, user: AuthenticatedUser | None, invitation_id: UUID) -> ActionResult:
		return await self._run("accept_invitation", user, lambda actor: self.invites.accept(invitation_id, actor.id))

	async def decline_invitation(self, user: AuthenticatedUser | None, invitation_id: UUID) -> ActionResult:
		return await self._run("decline_invitation", user, lambda actor: self.invites.decline(invitation_id, actor.id))

	async def cancel_invitation(self, user: AuthenticatedUser | None, invitation_id: UUID) -> ActionResult:
		return await self._run("cancel_invitation", user, lambda actor: self.invites.cancel(invitation_id, actor.id))

	async def list_team_invitations(self, user: AuthenticatedUser | None, team_id: UUID) -> ActionResult:
		return await self._run(
			"list_team_invitations",
			user,
			lambda actor: self.invites.list_for_team(team_id, actor.id),
		)

	async def my_invitations(self, user: AuthenticatedUser | None) -> ActionResult:
		return await self._run("my_invitations", user, lambda actor: self.invites.list_for_athlete(actor.id))

	# --- Join requests ------------------------------------------------------

	async def request_to_join(
		self,
		user: AuthenticatedUser | None,
		team_id: UUID,
		*,
		message: Optional[str] = None,
	) -> ActionResult:
		return await self._run(
			"request_to_join",
			user,
			lambda actor: self.join_requests.submit(team_id, actor.id, message=message),
		)

	async def decide_join_request(
		self,
		user: AuthenticatedUser | None,
		request_id: UUID,
		decision: models.JoinRequestDecision | str,
		*,
		note: Optional[str] = None,
	) -> ActionResult:
		async def _op(actor: models.Athlete):
			choice = _coerce(models.JoinRequestDecision, decision, "invalid_decision")
			return await self.join_requests.decide(request_id, choice, actor.id, note=note)

		return await self._run("decide_join_request", user, _op)

	async def list_join_requests(
		self,
		user: AuthenticatedUser | None,
		team_id: UUID,
		*,
		status: models.JoinRequestStatus | str | None = None,
	) -> ActionResult:
		async def _op(actor: models.Athlete):
			wanted = _coerce(models.JoinRequestStatus, status, "invalid_status") if status else None
			return await self.join_requests.list_requests(team_id, actor.id, status=wanted)

		return await self._run("list_join_requests", user, _op)

	# --- Membership ledger --------------------------------------------------

	async def remove_member(self, user: AuthenticatedUser | None, team_id: UUID, athlete_id: UUID) -> ActionResult:
		return await self._run(
			"remove_member",
			user,
			lambda actor: self.membership.remove_member(team_id, athlete_id, actor.id),
		)

	async def change_role(
		self,
		user: AuthenticatedUser | None,
		team_id: UUID,
		athlete_id: UUID,
		new_role: models.TeamRole | str,
	) -> ActionResult:
		async def _op(actor: models.Athlete):
			role = _coerce(models.TeamRole, new_role, "invalid_role")
			return await self.membership.change_role(team_id, athlete_id, actor.id, role)

		return await self._run("change_role", user, _op)

	async def transfer_ownership(self, user: AuthenticatedUser | None, team_id: UUID, athlete_id: UUID) -> ActionResult:
		return await self._run(
			"transfer_ownership",
			user,
			lambda actor: self.membership.transfer_ownership(team_id, athlete_id, actor.id),
		)

	async def leave_team(self, user: AuthenticatedUser | None, team_id: UUID) -> ActionResult:
		return await self._run("leave_team", user, lambda actor: self.membership.leave_team(team_id, actor.id))

	async def list_members(self, user: AuthenticatedUser | None, team_id: UUID) -> ActionResult:
		return await self._run("list_members", user, lambda actor: self.membership.list_members(team_id))

	async def team_permissions(self, user: AuthenticatedUser | None, team_id: UUID) -> ActionResult:
		return await self._run("team_permissions", user, lambda actor: self.membership.permissions(team_id, actor.id))

	# --- Applications -------------------------------------------------------

	async def submit_application(self, user: AuthenticatedUser | None, draft: ApplicationDraft) -> ActionResult:
		return await self._run("submit_application", user, lambda actor: self.applications.submit(actor.id, draft))

	async def approve_application(self, user: AuthenticatedUser | None, application_id: UUID) -> ActionResult:
		return await self._run(
			"approve_application",
			user,
			lambda actor: self.applications.approve(application_id, actor.id),
		)

	async def reject_application(
		self,
		user: AuthenticatedUser | None,
		application_id: UUID,
		*,
		note: Optional[str] = None,
	) -> ActionResult:
		return await self._run(
			"reject_application",
			user,
			lambda actor: self.applications.reject(application_id, actor.id, note=note),
		)

	async def guides_for_application(
		self,
		user: AuthenticatedUser | None,
		sport: models.Sport | str,
		*,
		latitude: Optional[float] = None,
		longitude: Optional[float] = None,
		max_distance_km: Optional[float] = None,
	) -> ActionResult:
		async def _op(actor: models.Athlete):
			wanted = _coerce(models.Sport, sport, "invalid_sport")
			return await self.applications.guides_for(
				wanted,
				latitude=latitude,
				longitude=longitude,
				max_distance_km=max_distance_km,
			)

		return await self._run("guides_for_application", user, _op)

	# --- Discovery ----------------------------------------------------------

	async def nearby_free_agents(
		self,
		user: AuthenticatedUser | None,
		team_id: UUID,
		*,
		sport: models.Sport | str | None = None,
		search: Optional[str] = None,
		limit: Optional[int] = None,
	) -> ActionResult:
		async def _op(actor: models.Athlete):
			wanted = _coerce(models.Sport, sport, "invalid_sport") if sport else None
			return await self.discovery.nearby_free_agents(team_id, sport=wanted, search=search, limit=limit)

		return await self._run("nearby_free_agents", user, _op)


__all__ = ["TeamActions"]
