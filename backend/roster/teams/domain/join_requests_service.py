"""Join request submission and review for teams."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.settings import settings
from roster.teams.domain import models, policies, repo as repo_module
from roster.teams.domain.exceptions import ConflictError, NotFoundError, ValidationError
from roster.teams.domain.models import JoinRequestDecision, JoinRequestStatus, NotificationType
from roster.teams.domain.notifications_service import NotificationService


def _now() -> datetime:
	return datetime.now(timezone.utc)


class JoinRequestsService:
	"""Athlete-initiated requests to join a team."""

	def __init__(
		self,
		*,
		repository: repo_module.TeamsRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.TeamsRepository()
		self.notifications = notifications or NotificationService(repository=self.repo)

	async def submit(self, team_id: UUID, actor_id: UUID, *, message: Optional[str] = None) -> models.JoinRequest:
		if message is not None and len(message) > settings.join_request_message_max:
			raise ValidationError("message_too_long")
		team = await self.repo.get_team(team_id)
		if team is None:
			raise NotFoundError("team_not_found")
		if await self.repo.get_membership(team_id, actor_id) is not None:
			raise ConflictError("already_member")
		now = _now()
		invitation = await self.repo.get_pending_invitation(team_id, actor_id)
		# unswept expired invitations do not block
		if invitation is not None and not invitation.is_expired(now):
			raise ConflictError("invitation_pending")
		if await self.repo.get_pending_join_request(team_id, actor_id) is not None:
			raise ConflictError("join_request_already_pending")

		try:
			request = await self.repo.create_join_request(
				team_id=team_id,
				athlete_id=actor_id,
				message=message,
				now=now,
			)
		except ConflictError as exc:
			obs_metrics.inc_join_request(exc.detail)
			raise
		obs_metrics.inc_join_request("created")

		async def _notify() -> None:
			athlete = await self.repo.get_athlete(actor_id)
			name = athlete.display_name if athlete else "An athlete"
			leaders = await self.repo.list_member_ids(team_id, roles=policies.LEADER_ROLES)
			await self.notifications.emit_many(
				leaders,
				actor_id=actor_id,
				type=NotificationType.TEAM_JOIN_REQUEST,
				title="New Join Request",
				message=f"{name} wants to join {team.name}",
				payload={"team_id": str(team_id), "request_id": str(request.id)},
				exclude=(actor_id,),
			)

		await self.notifications.dispatch("join_request_submitted", _notify)
		return request

	async def decide(
		self,
		request_id: UUID,
		decision: JoinRequestDecision,
		reviewer_id: UUID,
		*,
		note: Optional[str] = None,
	) -> models.JoinRequest | models.Membership:
		"""Accept or reject a pending request.

		Accepting returns the new membership (the request row is deleted);
		rejecting returns the retained REJECTED request.
		"""
		request = await self.repo.get_join_request(request_id)
		if request is None:
			raise NotFoundError("join_request_not_found")
		reviewer = await self.repo.get_membership(request.team_id, reviewer_id)
		policies.assert_can_manage_requests(policies.role_on_team(reviewer, request.team_id))
		if request.status != JoinRequestStatus.PENDING:
			raise ConflictError("request_already_reviewed")
		team = await self.repo.get_team(request.team_id)
		team_name = team.name if team else "the team"

		if decision == JoinRequestDecision.ACCEPT:
			if await self.repo.get_membership_for_athlete(request.athlete_id) is not None:
				raise ConflictError("already_on_team")
			membership = await self.repo.accept_join_request(request_id, reviewer_id=reviewer_id, now=_now())
			obs_metrics.inc_join_request("accepted")
			obs_metrics.inc_membership_op("join")

			async def _notify() -> None:
				await self.notifications.emit(
					request.athlete_id,
					actor_id=reviewer_id,
					type=NotificationType.MEMBER_JOINED,
					title="Join Request Accepted!",
					message=f"Welcome to {team_name}! You've been added as a player.",
					payload={"team_id": str(request.team_id)},
				)
				athlete = await self.repo.get_athlete(request.athlete_id)
				name = athlete.display_name if athlete else "A new member"
				leaders = await self.repo.list_member_ids(request.team_id, roles=policies.LEADER_ROLES)
				await self.notifications.emit_many(
					leaders,
					actor_id=reviewer_id,
					type=NotificationType.MEMBER_JOINED,
					title="New Member Joined",
					message=f"{name} joined the team",
					payload={"team_id": str(request.team_id), "athlete_id": str(request.athlete_id)},
					exclude=(reviewer_id, request.athlete_id),
				)

			await self.notifications.dispatch("join_request_accepted", _notify)
			return membership

		rejected = await self.repo.reject_join_request(request_id, reviewer_id=reviewer_id, now=_now())
		obs_metrics.inc_join_request("rejected")
		await self.notifications.emit(
			request.athlete_id,
			actor_id=reviewer_id,
			type=NotificationType.JOIN_REQUEST_REJECTED,
			title="Join Request Rejected",
			message=note or f"Your request to join {team_name} was declined.",
			payload={"team_id": str(request.team_id), "request_id": str(request_id)},
		)
		return rejected

	async def list_requests(
		self,
		team_id: UUID,
		actor_id: UUID,
		*,
		status: Optional[JoinRequestStatus] = None,
	) -> list[models.JoinRequest]:
		if await self.repo.get_team(team_id) is None:
			raise NotFoundError("team_not_found")
		actor = await self.repo.get_membership(team_id, actor_id)
		policies.assert_can_manage_requests(policies.role_on_team(actor, team_id))
		return await self.repo.list_join_requests(team_id, status=status)
