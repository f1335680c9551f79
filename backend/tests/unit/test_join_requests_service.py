from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from roster.teams.domain.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from roster.teams.domain.join_requests_service import JoinRequestsService
from roster.teams.domain.models import (
	InvitationStatus,
	JoinRequestDecision,
	JoinRequestStatus,
	NotificationType,
	TeamRole,
)
from tests.fakes import utcnow


@pytest.fixture()
def club(roster_repo):
	owner = roster_repo.add_athlete("owner")
	captain_one = roster_repo.add_athlete("captain-one")
	captain_two = roster_repo.add_athlete("captain-two")
	manager = roster_repo.add_athlete("manager")
	applicant = roster_repo.add_athlete("applicant", first_name="Avery", last_name="Stone")
	team = roster_repo.add_team(owner, name="Harbour FC")
	roster_repo.add_member(team, captain_one, TeamRole.CAPTAIN)
	roster_repo.add_member(team, captain_two, TeamRole.CAPTAIN)
	roster_repo.add_member(team, manager, TeamRole.MANAGER)
	return team, owner, captain_one, captain_two, manager, applicant


@pytest.fixture()
def service(roster_repo) -> JoinRequestsService:
	return JoinRequestsService(repository=roster_repo)


@pytest.mark.asyncio
async def test_each_leader_gets_exactly_one_notification(roster_repo, service, club):
	team, owner, captain_one, captain_two, manager, applicant = club

	request = await service.submit(team.id, applicant.id, message="Left back, 5 seasons")

	assert request.status == JoinRequestStatus.PENDING
	for leader in (owner, captain_one, captain_two):
		notes = roster_repo.notifications_for(leader.id)
		assert len(notes) == 1
		assert notes[0].type == NotificationType.TEAM_JOIN_REQUEST
		assert notes[0].message == "Avery Stone wants to join Harbour FC"
	assert roster_repo.notifications_for(manager.id) == []
	assert roster_repo.notifications_for(applicant.id) == []


@pytest.mark.asyncio
async def test_submit_guards(roster_repo, service, club):
	team, owner, _, _, manager, applicant = club

	with pytest.raises(ValidationError) as excinfo:
		await service.submit(team.id, applicant.id, message="x" * 501)
	assert excinfo.value.detail == "message_too_long"

	with pytest.raises(NotFoundError):
		await service.submit(uuid4(), applicant.id)

	with pytest.raises(ConflictError) as excinfo:
		await service.submit(team.id, manager.id)
	assert excinfo.value.detail == "already_member"

	await service.submit(team.id, applicant.id)
	with pytest.raises(ConflictError) as excinfo:
		await service.submit(team.id, applicant.id)
	assert excinfo.value.detail == "join_request_already_pending"


@pytest.mark.asyncio
async def test_submit_blocked_by_pending_invitation(roster_repo, service, club):
	team, owner, *_, applicant = club
	roster_repo.seed_invitation(team, applicant, owner)

	with pytest.raises(ConflictError) as excinfo:
		await service.submit(team.id, applicant.id)
	assert excinfo.value.detail == "invitation_pending"


@pytest.mark.asyncio
async def test_unswept_expired_invitation_does_not_block(roster_repo, service, club):
	team, owner, *_, applicant = club
	invitation = roster_repo.seed_invitation(team, applicant, owner, expires_at=utcnow() - timedelta(days=1))

	request = await service.submit(team.id, applicant.id)

	assert request.status == JoinRequestStatus.PENDING
	assert roster_repo.invitations[invitation.id].status == InvitationStatus.PENDING


@pytest.mark.asyncio
async def test_accept_creates_membership_and_deletes_request(roster_repo, service, club):
	team, owner, captain_one, captain_two, _, applicant = club
	request = await service.submit(team.id, applicant.id)
	roster_repo.notifications.clear()
	before = roster_repo.counters[team.id].members_count

	membership = await service.decide(request.id, JoinRequestDecision.ACCEPT, captain_one.id)

	assert membership.role == TeamRole.PLAYER
	assert await roster_repo.get_join_request(request.id) is None
	assert roster_repo.counters[team.id].members_count == before + 1
	assert [note.title for note in roster_repo.notifications_for(applicant.id)] == ["Join Request Accepted!"]
	# the reviewer is not notified about their own decision
	assert roster_repo.notifications_for(captain_one.id) == []
	assert [note.type for note in roster_repo.notifications_for(owner.id)] == [NotificationType.MEMBER_JOINED]
	assert [note.type for note in roster_repo.notifications_for(captain_two.id)] == [NotificationType.MEMBER_JOINED]


@pytest.mark.asyncio
async def test_reject_keeps_request_and_uses_note(roster_repo, service, club):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)

	rejected = await service.decide(request.id, JoinRequestDecision.REJECT, owner.id, note="Squad is full")

	assert rejected.status == JoinRequestStatus.REJECTED
	assert rejected.reviewed_by_id == owner.id
	assert (await roster_repo.get_join_request(request.id)).status == JoinRequestStatus.REJECTED
	assert roster_repo.notifications_for(applicant.id)[-1].message == "Squad is full"
	assert await roster_repo.get_membership_for_athlete(applicant.id) is None


@pytest.mark.asyncio
async def test_redeciding_fails_without_state_change(roster_repo, service, club):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)
	await service.decide(request.id, JoinRequestDecision.REJECT, owner.id)
	snapshot = roster_repo.join_requests[request.id]
	notes_before = len(roster_repo.notifications)

	with pytest.raises(ConflictError) as excinfo:
		await service.decide(request.id, JoinRequestDecision.ACCEPT, owner.id)
	assert excinfo.value.detail == "request_already_reviewed"
	assert roster_repo.join_requests[request.id] == snapshot
	assert await roster_repo.get_membership_for_athlete(applicant.id) is None
	assert len(roster_repo.notifications) == notes_before


@pytest.mark.asyncio
async def test_redeciding_an_accepted_request_is_not_found(roster_repo, service, club):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)
	await service.decide(request.id, JoinRequestDecision.ACCEPT, owner.id)
	members_before = roster_repo.counters[team.id].members_count

	with pytest.raises(NotFoundError) as excinfo:
		await service.decide(request.id, JoinRequestDecision.REJECT, owner.id)
	assert excinfo.value.detail == "join_request_not_found"
	assert (await roster_repo.get_membership(team.id, applicant.id)).role == TeamRole.PLAYER
	assert roster_repo.counters[team.id].members_count == members_before


@pytest.mark.asyncio
async def test_rejection_notice_has_its_own_type(roster_repo, service, club):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)

	await service.decide(request.id, JoinRequestDecision.REJECT, owner.id)

	notes = roster_repo.notifications_for(applicant.id)
	assert [note.type for note in notes] == [NotificationType.JOIN_REQUEST_REJECTED]
	assert notes[0].message == "Your request to join Harbour FC was declined."


@pytest.mark.asyncio
async def test_accept_stands_when_leader_lookup_fails(roster_repo, service, club, monkeypatch):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)

	async def _broken(*args, **kwargs):
		raise OSError("connection reset")

	monkeypatch.setattr(roster_repo, "list_member_ids", _broken)

	membership = await service.decide(request.id, JoinRequestDecision.ACCEPT, owner.id)

	assert membership.role == TeamRole.PLAYER
	assert await roster_repo.get_join_request(request.id) is None


@pytest.mark.asyncio
async def test_only_leaders_can_decide_or_list(roster_repo, service, club):
	team, _, _, _, manager, applicant = club
	request = await service.submit(team.id, applicant.id)

	with pytest.raises(UnauthorizedError) as excinfo:
		await service.decide(request.id, JoinRequestDecision.ACCEPT, manager.id)
	assert excinfo.value.detail == "leader_role_required"
	with pytest.raises(UnauthorizedError):
		await service.list_requests(team.id, manager.id)


@pytest.mark.asyncio
async def test_accept_fails_when_requester_joined_elsewhere(roster_repo, service, club):
	team, owner, *_, applicant = club
	request = await service.submit(team.id, applicant.id)
	rival_owner = roster_repo.add_athlete("rival-owner")
	rival = roster_repo.add_team(rival_owner, name="Rivals")
	roster_repo.add_member(rival, applicant, TeamRole.PLAYER)

	with pytest.raises(ConflictError) as excinfo:
		await service.decide(request.id, JoinRequestDecision.ACCEPT, owner.id)
	assert excinfo.value.detail == "already_on_team"
	assert roster_repo.join_requests[request.id].status == JoinRequestStatus.PENDING


@pytest.mark.asyncio
async def test_list_requests_filters_by_status(roster_repo, service, club):
	team, owner, *_, applicant = club
	other = roster_repo.add_athlete("other")
	first = await service.submit(team.id, applicant.id)
	second = await service.submit(team.id, other.id)
	await service.decide(first.id, JoinRequestDecision.REJECT, owner.id)

	everything = await service.list_requests(team.id, owner.id)
	pending = await service.list_requests(team.id, owner.id, status=JoinRequestStatus.PENDING)

	assert {item.id for item in everything} == {first.id, second.id}
	assert [item.id for item in pending] == [second.id]


@pytest.mark.asyncio
async def test_unknown_request_is_not_found(service, club):
	team, owner, *_ = club

	with pytest.raises(NotFoundError) as excinfo:
		await service.decide(uuid4(), JoinRequestDecision.ACCEPT, owner.id)
	assert excinfo.value.detail == "join_request_not_found"
