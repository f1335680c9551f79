from __future__ import annotations

from uuid import uuid4

import pytest

from roster.settings import settings
from roster.teams.domain import geo
from roster.teams.domain.discovery_service import DiscoveryService, rank_by_distance
from roster.teams.domain.models import Sport, TeamRole


def _la_team(repo, **kwargs):
	owner = repo.add_athlete("owner")
	return repo.add_team(owner, latitude=34.0522, longitude=-118.2437, **kwargs)


@pytest.mark.asyncio
async def test_returns_free_agents_within_radius_sorted_by_distance(roster_repo):
	team = _la_team(roster_repo)
	far = roster_repo.add_athlete("far", latitude=34.9, longitude=-118.2)  # ~94km
	near = roster_repo.add_athlete("near", latitude=34.05, longitude=-118.25)
	mid = roster_repo.add_athlete("mid", latitude=34.2, longitude=-118.3)
	roster_repo.add_athlete("outside", latitude=35.5, longitude=-118.2)  # in the box, >100km
	roster_repo.add_athlete("nowhere")

	service = DiscoveryService(repository=roster_repo)
	results = await service.nearby_free_agents(team.id)

	assert [item.id for item in results] == [near.id, mid.id, far.id]
	assert all(item.distance_km <= settings.discovery_radius_km for item in results)
	assert 0.5 < results[0].distance_km < 0.8


@pytest.mark.asyncio
async def test_members_are_not_free_agents(roster_repo):
	team = _la_team(roster_repo)
	teammate = roster_repo.add_athlete("teammate", latitude=34.05, longitude=-118.25)
	roster_repo.add_member(team, teammate, TeamRole.PLAYER)
	elsewhere_owner = roster_repo.add_athlete("rival-owner", latitude=34.06, longitude=-118.24)
	roster_repo.add_team(elsewhere_owner, name="Rivals")

	results = await DiscoveryService(repository=roster_repo).nearby_free_agents(team.id)

	assert results == []


@pytest.mark.asyncio
async def test_sport_defaults_to_team_sport(roster_repo):
	team = _la_team(roster_repo, sport=Sport.BASKETBALL)
	hooper = roster_repo.add_athlete(
		"hooper", primary_sport=Sport.TENNIS, secondary_sport=Sport.BASKETBALL, latitude=34.05, longitude=-118.25
	)
	roster_repo.add_athlete("kicker", primary_sport=Sport.FOOTBALL, latitude=34.05, longitude=-118.25)

	results = await DiscoveryService(repository=roster_repo).nearby_free_agents(team.id)

	assert [item.id for item in results] == [hooper.id]
	assert roster_repo.candidate_queries[-1]["sport"] == Sport.BASKETBALL


@pytest.mark.asyncio
async def test_search_narrows_by_default_and_widens_when_configured(roster_repo):
	team = _la_team(roster_repo)
	roster_repo.add_athlete("jordan", primary_sport=Sport.TENNIS, latitude=34.05, longitude=-118.25)
	striker = roster_repo.add_athlete("striker", first_name="Jo", latitude=34.06, longitude=-118.25)
	service = DiscoveryService(repository=roster_repo)

	narrowed = await service.nearby_free_agents(team.id, search="  JO ")
	assert [item.id for item in narrowed] == [striker.id]
	assert roster_repo.candidate_queries[-1]["search"] == "JO"

	settings.discovery_search_mode = "widen"
	widened = await service.nearby_free_agents(team.id, search="jo")
	assert len(widened) == 2
	assert roster_repo.candidate_queries[-1]["widen_search"] is True


@pytest.mark.asyncio
async def test_limit_is_clamped_and_candidates_overfetched(roster_repo):
	team = _la_team(roster_repo)
	for idx in range(5):
		roster_repo.add_athlete(f"player{idx}", latitude=34.05 + idx * 0.01, longitude=-118.25)
	service = DiscoveryService(repository=roster_repo)

	results = await service.nearby_free_agents(team.id, limit=2)

	assert len(results) == 2
	assert roster_repo.candidate_queries[-1]["limit"] == 2 * settings.discovery_candidate_multiplier
	assert DiscoveryService.clamp_limit(None) == 20
	assert DiscoveryService.clamp_limit(0) == 1
	assert DiscoveryService.clamp_limit(500) == 50


@pytest.mark.asyncio
async def test_team_without_location_or_unknown_team_yields_empty(roster_repo):
	owner = roster_repo.add_athlete("owner")
	team = roster_repo.add_team(owner)
	roster_repo.add_athlete("near", latitude=34.05, longitude=-118.25)
	service = DiscoveryService(repository=roster_repo)

	assert await service.nearby_free_agents(team.id) == []
	assert await service.nearby_free_agents(uuid4()) == []
	assert roster_repo.candidate_queries == []


@pytest.mark.asyncio
async def test_storage_errors_degrade_to_empty_list(roster_repo):
	team = _la_team(roster_repo)
	roster_repo.add_athlete("near", latitude=34.05, longitude=-118.25)
	roster_repo.fail_with = OSError("connection reset")

	results = await DiscoveryService(repository=roster_repo).nearby_free_agents(team.id)

	assert results == []


def test_rank_by_distance_drops_nan_and_missing_coordinates(roster_repo):
	origin = geo.Coordinates(34.0522, -118.2437)
	good = roster_repo.add_athlete("good", latitude=34.05, longitude=-118.25)
	bad = roster_repo.add_athlete("bad", latitude=float("nan"), longitude=-118.25)
	missing = roster_repo.add_athlete("missing")

	ranked = rank_by_distance(origin, [bad, missing, good], radius_km=100.0, limit=10)

	assert [item.id for item in ranked] == [good.id]

