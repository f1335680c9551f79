"""Membership ledger: removal, role changes, ownership transfer and leaving."""

from __future__ import annotations

from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.teams.domain import models, policies, repo as repo_module
from roster.teams.domain.exceptions import ConflictError, NotFoundError, UnauthorizedError
from roster.teams.domain.models import NotificationType, TeamRole
from roster.teams.domain.notifications_service import NotificationService


class MembershipService:
	"""Mutations on who belongs to a team and in which role.

	The caller's role is always re-read from storage; the repository then
	re-checks it under the team row lock before writing.
	"""

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

	async def _athlete_name(self, athlete_id: UUID) -> str:
		athlete = await self.repo.get_athlete(athlete_id)
		return athlete.display_name if athlete else "A member"

	async def list_members(self, team_id: UUID) -> list[models.TeamMember]:
		await self._load_team(team_id)
		return await self.repo.list_members(team_id)

	async def permissions(self, team_id: UUID, athlete_id: UUID) -> policies.TeamPermissions:
		team = await self._load_team(team_id)
		membership = await self.repo.get_membership(team_id, athlete_id)
		return policies.permissions_for(team, membership, athlete_id)

	async def remove_member(self, team_id: UUID, target_id: UUID, actor_id: UUID) -> models.Membership:
		team = await self._load_team(team_id)
		actor = await self.repo.get_membership(team_id, actor_id)
		actor_role = policies.role_on_team(actor, team_id)
		policies.assert_is_leader(actor_role)
		target = await self.repo.get_membership(team_id, target_id)
		if target is None:
			raise NotFoundError("member_not_found")
		policies.assert_can_remove(actor_role, target.role, is_self=target_id == actor_id)

		removed = await self.repo.delete_membership(team_id, target_id, expected_role=target.role)
		obs_metrics.inc_membership_op("remove")

		async def _notify() -> None:
			await self.notifications.emit(
				target_id,
				actor_id=actor_id,
				type=NotificationType.MEMBER_LEFT,
				title="Removed from Team",
				message=f"You were removed from {team.name}",
				payload={"team_id": str(team_id)},
			)
			target_name = await self._athlete_name(target_id)
			leaders = await self.repo.list_member_ids(team_id, roles=policies.LEADER_ROLES)
			await self.notifications.emit_many(
				leaders,
				actor_id=actor_id,
				type=NotificationType.MEMBER_LEFT,
				title="Member Removed",
				message=f"{target_name} was removed from the team",
				payload={"team_id": str(team_id), "athlete_id": str(target_id)},
				exclude=(actor_id, target_id),
			)

		await self.notifications.dispatch("member_removed", _notify)
		return removed

	async def change_role(
		self,
		team_id: UUID,
		target_id: UUID,
		actor_id: UUID,
		new_role: TeamRole,
	) -> models.Membership:
		team = await self._load_team(team_id)
		actor = await self.repo.get_membership(team_id, actor_id)
		target = await self.repo.get_membership(team_id, target_id)
		if target is None:
			raise NotFoundError("member_not_found")
		policies.assert_can_change_role(policies.role_on_team(actor, team_id), target.role, new_role)
		if target.role == new_role:
			return target

		updated = await self.repo.update_member_role(
			team_id,
			target_id,
			new_role=new_role,
			is_captain=policies.is_captain_flag(new_role),
			expected_role=target.role,
		)
		obs_metrics.inc_membership_op("change_role")
		await self.notifications.emit(
			target_id,
			actor_id=actor_id,
			type=NotificationType.ROLE_CHANGED,
			title="Role Updated",
			message=f"Your role in {team.name} was changed to {new_role.value}",
			payload={"team_id": str(team_id), "role": new_role.value},
		)
		return updated

	async def transfer_ownership(self, team_id: UUID, target_id: UUID, actor_id: UUID) -> models.Team:
		team = await self._load_team(team_id)
		actor = await self.repo.get_membership(team_id, actor_id)
		policies.assert_is_owner(policies.role_on_team(actor, team_id))
		if team.owner_id != actor_id:
			raise UnauthorizedError("owner_role_required")
		if target_id == actor_id:
			raise ConflictError("already_owner")
		target = await self.repo.get_membership(team_id, target_id)
		if target is None:
			raise NotFoundError("member_not_found")

		updated = await self.repo.transfer_ownership(team_id, from_id=actor_id, to_id=target_id)
		obs_metrics.inc_membership_op("transfer")

		async def _notify() -> None:
			await self.notifications.emit(
				target_id,
				actor_id=actor_id,
				type=NotificationType.ROLE_CHANGED,
				title="Team Ownership Transferred",
				message=f"You are now the owner of {team.name}!",
				payload={"team_id": str(team_id), "role": TeamRole.OWNER.value},
			)
			target_name = await self._athlete_name(target_id)
			members = await self.repo.list_member_ids(team_id)
			await self.notifications.emit_many(
				members,
				actor_id=actor_id,
				type=NotificationType.ROLE_CHANGED,
				title="New Team Owner",
				message=f"{target_name} is now the owner of {team.name}",
				payload={"team_id": str(team_id), "owner_id": str(target_id)},
				exclude=(actor_id, target_id),
			)

		await self.notifications.dispatch("ownership_transferred", _notify)
		return updated

	async def leave_team(self, team_id: UUID, actor_id: UUID) -> models.Membership:
		team = await self._load_team(team_id)
		membership = await self.repo.get_membership(team_id, actor_id)
		if membership is None:
			raise NotFoundError("not_a_member")
		if membership.role == TeamRole.OWNER:
			raise ConflictError("owner_cannot_leave")

		removed = await self.repo.delete_membership(team_id, actor_id, expected_role=membership.role)
		obs_metrics.inc_membership_op("leave")

		async def _notify() -> None:
			actor_name = await self._athlete_name(actor_id)
			leaders = await self.repo.list_member_ids(team_id, roles=policies.LEADER_ROLES)
			await self.notifications.emit_many(
				leaders,
				actor_id=actor_id,
				type=NotificationType.MEMBER_LEFT,
				title="Member Left Team",
				message=f"{actor_name} left {team.name}",
				payload={"team_id": str(team_id), "athlete_id": str(actor_id)},
				exclude=(actor_id,),
			)

		await self.notifications.dispatch("member_left", _notify)
		return removed
