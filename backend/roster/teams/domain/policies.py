"""Authorization policies for team roster operations."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from roster.teams.domain import models
from roster.teams.domain.exceptions import ConflictError, UnauthorizedError
from roster.teams.domain.models import TeamRole

ROLE_HIERARCHY = {
	TeamRole.OWNER: 4,
	TeamRole.CAPTAIN: 3,
	TeamRole.MANAGER: 2,
	TeamRole.PLAYER: 1,
}
LEADER_ROLES = frozenset({TeamRole.OWNER, TeamRole.CAPTAIN})


@dataclass(frozen=True, slots=True)
class Capabilities:
	can_invite: bool
	can_manage_requests: bool
	can_edit: bool
	can_create_post: bool
	can_challenge: bool
	removable_roles: frozenset[TeamRole]
	assignable_roles: frozenset[TeamRole]


CAPABILITIES: dict[TeamRole, Capabilities] = {
	TeamRole.OWNER: Capabilities(
		can_invite=True,
		can_manage_requests=True,
		can_edit=True,
		can_create_post=True,
		can_challenge=True,
		removable_roles=frozenset({TeamRole.CAPTAIN, TeamRole.PLAYER, TeamRole.MANAGER}),
		assignable_roles=frozenset({TeamRole.CAPTAIN, TeamRole.PLAYER, TeamRole.MANAGER}),
	),
	TeamRole.CAPTAIN: Capabilities(
		can_invite=True,
		can_manage_requests=True,
		can_edit=False,
		can_create_post=True,
		can_challenge=True,
		removable_roles=frozenset({TeamRole.PLAYER, TeamRole.MANAGER}),
		assignable_roles=frozenset({TeamRole.PLAYER, TeamRole.MANAGER}),
	),
	TeamRole.MANAGER: Capabilities(
		can_invite=True,
		can_manage_requests=False,
		can_edit=False,
		can_create_post=True,
		can_challenge=False,
		removable_roles=frozenset(),
		assignable_roles=frozenset(),
	),
	TeamRole.PLAYER: Capabilities(
		can_invite=True,
		can_manage_requests=False,
		can_edit=False,
		can_create_post=True,
		can_challenge=False,
		removable_roles=frozenset(),
		assignable_roles=frozenset(),
	),
}

_NO_CAPABILITIES = Capabilities(
	can_invite=False,
	can_manage_requests=False,
	can_edit=False,
	can_create_post=False,
	can_challenge=False,
	removable_roles=frozenset(),
	assignable_roles=frozenset(),
)


def capabilities_for(role: TeamRole | None) -> Capabilities:
	if role is None:
		return _NO_CAPABILITIES
	return CAPABILITIES[role]


def is_captain_flag(role: TeamRole) -> bool:
	"""Derived ``is_captain`` value written alongside a role change."""
	return role == TeamRole.CAPTAIN


@dataclass(frozen=True, slots=True)
class TeamPermissions:
	is_owner: bool
	is_captain: bool
	is_member: bool
	can_invite: bool
	can_manage_requests: bool
	can_edit: bool
	can_create_post: bool
	can_challenge: bool


def permissions_for(team: models.Team, membership: models.Membership | None, athlete_id: UUID) -> TeamPermissions:
	"""Flatten the capability table for one caller on one team."""
	role = membership.role if membership and membership.team_id == team.id else None
	caps = capabilities_for(role)
	is_owner = team.owner_id == athlete_id
	return TeamPermissions(
		is_owner=is_owner,
		is_captain=role == TeamRole.CAPTAIN,
		is_member=role is not None,
		# a team owner can invite even before its membership row exists
		can_invite=caps.can_invite or is_owner,
		can_manage_requests=caps.can_manage_requests,
		can_edit=caps.can_edit,
		can_create_post=caps.can_create_post,
		can_challenge=caps.can_challenge,
	)


def role_on_team(membership: models.Membership | None, team_id: UUID) -> TeamRole | None:
	if membership is None or membership.team_id != team_id:
		return None
	return membership.role


def assert_is_leader(role: TeamRole | None) -> None:
	if role not in LEADER_ROLES:
		raise UnauthorizedError("leader_role_required")


def assert_is_owner(role: TeamRole | None) -> None:
	if role != TeamRole.OWNER:
		raise UnauthorizedError("owner_role_required")


def assert_can_invite(team: models.Team, role: TeamRole | None, actor_id: UUID) -> None:
	if team.owner_id == actor_id:
		return
	if not capabilities_for(role).can_invite:
		raise UnauthorizedError("invite_not_allowed")


def assert_can_manage_requests(role: TeamRole | None) -> None:
	if not capabilities_for(role).can_manage_requests:
		raise UnauthorizedError("leader_role_required")


def assert_can_remove(actor_role: TeamRole | None, target_role: TeamRole, *, is_self: bool) -> None:
	"""Check a removal against the capability table.

	The owner row can never be removed; ownership has to be transferred first.
	"""
	assert_is_leader(actor_role)
	if target_role == TeamRole.OWNER:
		if is_self:
			raise ConflictError("owner_cannot_remove_self")
		raise UnauthorizedError("cannot_remove_owner")
	if target_role not in capabilities_for(actor_role).removable_roles:
		raise UnauthorizedError("insufficient_role_to_remove")


def assert_can_change_role(actor_role: TeamRole | None, current_role: TeamRole, new_role: TeamRole) -> None:
	if new_role == TeamRole.OWNER or current_role == TeamRole.OWNER:
		raise ConflictError("use_transfer_ownership")
	assert_is_leader(actor_role)
	caps = capabilities_for(actor_role)
	if new_role not in caps.assignable_roles:
		raise UnauthorizedError("only_owner_can_promote")
	if current_role not in caps.assignable_roles:
		raise UnauthorizedError("insufficient_role_to_change")
