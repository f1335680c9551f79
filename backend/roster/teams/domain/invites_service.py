"""Invitation flows for team recruitment."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.settings import settings
from roster.teams.domain import models, policies, repo as repo_module
from roster.teams.domain.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from roster.teams.domain.models import InvitationStatus, NotificationType
from roster.teams.domain.notifications_service import NotificationService


def _now() -> datetime:
	return datetime.now(timezone.utc)


class InvitesService:
	"""Create, answer, cancel and expire team invitations."""

	def __init__(
		self,
		*,
		repository: repo_module.TeamsRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.TeamsRepository()
		self.notifications = notifications or NotificationService(repository=self.repo)

	async def _load_team(self, team_id: UUID) -> models.Team:
		team = await self.repo.get_team(team_id)
		if team is None:
			raise NotFoundError("team_not_found")
		return team

	async def _load_invitation(self, invitation_id: UUID) -> models.Invitation:
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None:
			raise NotFoundError("invitation_not_found")
		return invitation

	async def invite(
		self,
		team_id: UUID,
		target_id: UUID,
		actor_id: UUID,
		*,
		message: Optional[str] = None,
	) -> models.Invitation:
		if message is not None and len(message) > settings.invitation_message_max:
			raise ValidationError("message_too_long")
		team = await self._load_team(team_id)
		actor = await self.repo.get_membership(team_id, actor_id)
		policies.assert_can_invite(team, policies.role_on_team(actor, team_id), actor_id)
		if target_id == actor_id:
			raise ConflictError("cannot_invite_self")
		target = await self.repo.get_athlete(target_id)
		if target is None:
			raise NotFoundError("athlete_not_found")
		if await self.repo.get_membership(team_id, target_id) is not None:
			raise ConflictError("already_member")

		now = _now()
		try:
			invitation = await self.repo.create_invitation(
				team_id=team_id,
				athlete_id=target_id,
				invited_by_id=actor_id,
				message=message or f"Join {team.name} as a teammate!",
				expires_at=now + timedelta(days=settings.invitation_ttl_days),
				now=now,
			)
		except ConflictError as exc:
			obs_metrics.inc_invite(exc.detail)
			raise
		obs_metrics.inc_invite("created")
		await self.notifications.emit(
			target_id,
			actor_id=actor_id,
			type=NotificationType.TEAM_INVITE,
			title="New Team Invitation!",
			message=f"{team.name} has invited you to join!",
			payload={"team_id": str(team_id), "invitation_id": str(invitation.id)},
		)
		return invitation

	async def accept(self, invitation_id: UUID, actor_id: UUID) -> models.Membership:
		"""Join the inviting team as a PLAYER.

		Expired invitations are closed as EXPIRED and the call fails.
		"""
		invitation = await self._load_invitation(invitation_id)
		if invitation.invited_athlete_id != actor_id:
			raise UnauthorizedError("not_invitee")
		if invitation.status != InvitationStatus.PENDING:
			raise ConflictError("invitation_not_pending")
		now = _now()
		if invitation.is_expired(now):
			await self.repo.expire_invitation(invitation_id, now=now)
			obs_metrics.inc_invite("expired")
			raise ConflictError("invitation_expired")
		if await self.repo.get_membership_for_athlete(actor_id) is not None:
			raise ConflictError("already_on_team")

		membership = await self.repo.accept_invitation(invitation_id, now=now)
		obs_metrics.inc_invite("accepted")
		obs_metrics.inc_membership_op("join")

		async def _notify() -> None:
			team = await self.repo.get_team(invitation.team_id)
			team_name = team.name if team else "the team"
			athlete = await self.repo.get_athlete(actor_id)
			athlete_name = athlete.display_name if athlete else "A new member"
			await self.notifications.emit(
				invitation.invited_by_id,
				actor_id=actor_id,
				type=NotificationType.INVITE_ACCEPTED,
				title="Invitation Accepted",
				message=f"{athlete_name} accepted your invitation to {team_name}",
				payload={"team_id": str(invitation.team_id), "invitation_id": str(invitation_id)},
			)
			leaders = await self.repo.list_member_ids(invitation.team_id, roles=policies.LEADER_ROLES)
			await self.notifications.emit_many(
				leaders,
				actor_id=actor_id,
				type=NotificationType.MEMBER_JOINED,
				title="New Member Joined",
				message=f"{athlete_name} joined the team",
				payload={"team_id": str(invitation.team_id), "athlete_id": str(actor_id)},
				exclude=(actor_id, invitation.invited_by_id),
			)

		await self.notifications.dispatch("invite_accepted", _notify)
		return membership

	async def decline(self, invitation_id: UUID, actor_id: UUID) -> models.Invitation:
		invitation = await self._load_invitation(invitation_id)
		if invitation.invited_athlete_id != actor_id:
			raise UnauthorizedError("not_invitee")
		declined = await self.repo.decline_invitation(invitation_id, now=_now())
		obs_metrics.inc_invite("declined")

		async def _notify() -> None:
			athlete = await self.repo.get_athlete(actor_id)
			await self.notifications.emit(
				invitation.invited_by_id,
				actor_id=actor_id,
				type=NotificationType.INVITE_DECLINED,
				title="Invitation Declined",
				message=f"{athlete.display_name if athlete else 'An athlete'} declined your invitation",
				payload={"team_id": str(invitation.team_id), "invitation_id": str(invitation_id)},
			)

		await self.notifications.dispatch("invite_declined", _notify)
		return declined

	async def cancel(self, invitation_id: UUID, actor_id: UUID) -> models.Invitation:
		"""Withdraw a pending invitation. Allowed for the inviter and team leaders."""
		invitation = await self._load_invitation(invitation_id)
		if invitation.invited_by_id != actor_id:
			actor = await self.repo.get_membership(invitation.team_id, actor_id)
			policies.assert_is_leader(policies.role_on_team(actor, invitation.team_id))
		cancelled = await self.repo.cancel_invitation(invitation_id, now=_now())
		obs_metrics.inc_invite("cancelled")

		async def _notify() -> None:
			team = await self.repo.get_team(invitation.team_id)
			await self.notifications.emit(
				invitation.invited_athlete_id,
				actor_id=actor_id,
				type=NotificationType.INVITE_CANCELLED,
				title="Invitation Withdrawn",
				message=f"Your invitation to {team.name if team else 'a team'} was withdrawn",
				payload={"team_id": str(invitation.team_id), "invitation_id": str(invitation_id)},
			)

		await self.notifications.dispatch("invite_cancelled", _notify)
		return cancelled

	async def expire_stale(self, *, now: Optional[datetime] = None) -> int:
		expired = await self.repo.expire_invitations(now=now or _now())
		if expired:
			obs_metrics.INVITES.labels(result="expired").inc(expired)
		return expired

	async def list_for_team(self, team_id: UUID, actor_id: UUID) -> list[models.Invitation]:
		await self._load_team(team_id)
		actor = await self.repo.get_membership(team_id, actor_id)
		if policies.role_on_team(actor, team_id) is None:
			raise UnauthorizedError("membership_required")
		return await self.repo.list_team_invitations(team_id, status=InvitationStatus.PENDING)

	async def list_for_athlete(self, athlete_id: UUID) -> list[models.Invitation]:
		now = _now()
		invitations = await self.repo.list_invitations_for_athlete(athlete_id, status=InvitationStatus.PENDING)
		return [invitation for invitation in invitations if not invitation.is_expired(now)]
