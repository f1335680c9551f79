"""Nearby free-agent discovery for team recruitment.

Discovery runs in two stages. The repository answers a cheap bounding-box
query over free agents, over-fetching ``candidate_multiplier * limit`` rows.
The exact haversine distance is then computed here, candidates outside the
radius are dropped, and the rest are ordered closest first.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional
from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.settings import settings
from roster.teams.domain import geo, models, repo as repo_module

logger = logging.getLogger(__name__)


def rank_by_distance(
	origin: geo.Coordinates,
	candidates: Iterable[models.Athlete],
	*,
	radius_km: float,
	limit: int,
) -> list[models.NearbyAthlete]:
	"""Exact-distance stage: filter to ``radius_km``, sort ascending, truncate."""
	ranked: list[models.NearbyAthlete] = []
	for athlete in candidates:
		point = athlete.coordinates
		if point is None:
			continue
		distance = geo.distance_km(origin, point)
		# NaN never compares <= radius, so bad coordinates drop out here
		if not distance <= radius_km:
			continue
		ranked.append(models.NearbyAthlete.from_athlete(athlete, distance))
	ranked.sort(key=lambda item: item.distance_km)
	return ranked[:limit]


class DiscoveryService:
	"""Find free agents near a team's home location."""

	def __init__(self, *, repository: repo_module.TeamsRepository | None = None) -> None:
		self.repo = repository or repo_module.TeamsRepository()

	@staticmethod
	def clamp_limit(limit: Optional[int]) -> int:
		if limit is None:
			return settings.discovery_default_limit
		return max(1, min(limit, settings.discovery_max_limit))

	async def nearby_free_agents(
		self,
		team_id: UUID,
		*,
		sport: Optional[models.Sport] = None,
		search: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.NearbyAthlete]:
		"""Return ranked free agents within the discovery radius of ``team_id``.

		Unknown teams and teams without coordinates yield an empty list, and so
		does any storage failure: discovery is best-effort.
		"""
		size = self.clamp_limit(limit)
		term = (search or "").strip() or None
		try:
			team = await self.repo.get_team(team_id)
			if team is None or team.coordinates is None:
				obs_metrics.observe_discovery("no_location")
				return []
			origin = team.coordinates
			candidates = await self.repo.find_free_agent_candidates(
				box=geo.bounding_box(origin, settings.discovery_box_degrees),
				sport=sport or team.sport,
				search=term,
				widen_search=settings.discovery_search_mode == "widen",
				limit=size * settings.discovery_candidate_multiplier,
			)
		except Exception:
			logger.exception("nearby athlete discovery failed", extra={"team_id": str(team_id)})
			obs_metrics.observe_discovery("error")
			return []
		results = rank_by_distance(
			origin,
			candidates,
			radius_km=settings.discovery_radius_km,
			limit=size,
		)
		obs_metrics.observe_discovery("ok", len(results))
		logger.info(
			"nearby athletes found",
			extra={"team_id": str(team_id), "candidates": len(candidates), "results": len(results)},
		)
		return results
