"""Team application submission and guide review."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.settings import settings
from roster.teams.domain import geo, models, repo as repo_module
from roster.teams.domain.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from roster.teams.domain.models import ApplicationStatus, GuideStatus, NotificationType
from roster.teams.domain.notifications_service import NotificationService


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class ApplicationDraft:
	guide_id: UUID
	name: str
	sport: models.Sport
	rank: models.AthleteRank = models.AthleteRank.PAWN
	team_class: models.AthleteClass = models.AthleteClass.E
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	city: Optional[str] = None
	state: Optional[str] = None
	country: Optional[str] = None
	bio: Optional[str] = None
	logo_url: Optional[str] = None


class ApplicationsService:
	"""One-shot conversion of a reviewed application into a live team."""

	def __init__(
		self,
		*,
		repository: repo_module.TeamsRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.TeamsRepository()
		self.notifications = notifications or NotificationService(repository=self.repo)

	async def submit(self, actor_id: UUID, draft: ApplicationDraft) -> models.TeamApplication:
		if await self.repo.get_team_by_owner(actor_id) is not None:
			raise ConflictError("already_owns_team")
		if await self.repo.get_pending_application(actor_id) is not None:
			raise ConflictError("pending_application_exists")
		guide = await self.repo.get_guide(draft.guide_id)
		if guide is None or guide.status != GuideStatus.APPROVED:
			raise ValidationError("invalid_guide_id")
		if draft.latitude is not None and draft.longitude is not None:
			geo.Coordinates.checked(draft.latitude, draft.longitude)

		try:
			application = await self.repo.create_application(
				applicant_id=actor_id,
				guide_id=draft.guide_id,
				name=draft.name,
				sport=draft.sport,
				rank=draft.rank,
				team_class=draft.team_class,
				latitude=draft.latitude,
				longitude=draft.longitude,
				city=draft.city,
				state=draft.state,
				country=draft.country,
				bio=draft.bio,
				logo_url=draft.logo_url,
			)
		except ConflictError as exc:
			obs_metrics.inc_application(exc.detail)
			raise
		obs_metrics.inc_application("submitted")

		async def _notify() -> None:
			applicant = await self.repo.get_athlete(actor_id)
			name = applicant.display_name if applicant else "An athlete"
			await self.notifications.emit(
				guide.athlete_id,
				actor_id=actor_id,
				type=NotificationType.APPLICATION_SUBMITTED,
				title="New Team Application",
				message=f'{name} applied to create "{draft.name}"',
				payload={"application_id": str(application.id)},
			)

		await self.notifications.dispatch("application_submitted", _notify)
		return application

	async def _load_for_review(self, application_id: UUID, reviewer_id: UUID) -> models.TeamApplication:
		application = await self.repo.get_application(application_id)
		if application is None:
			raise NotFoundError("application_not_found")
		guide = await self.repo.get_guide(application.guide_id)
		if guide is None or guide.athlete_id != reviewer_id:
			raise UnauthorizedError("not_application_guide")
		if application.status != ApplicationStatus.PENDING:
			raise ConflictError("application_already_reviewed")
		return application

	async def approve(self, application_id: UUID, reviewer_id: UUID) -> models.Team:
		application = await self._load_for_review(application_id, reviewer_id)
		if await self.repo.get_team_by_owner(application.applicant_id) is not None:
			raise ConflictError("already_owns_team")

		team = await self.repo.approve_application(application_id, now=_now())
		obs_metrics.inc_application("approved")
		await self.notifications.emit(
			application.applicant_id,
			actor_id=reviewer_id,
			type=NotificationType.APPLICATION_APPROVED,
			title="Team Application Approved!",
			message=f'Your team "{application.name}" has been approved. Start inviting members!',
			payload={"application_id": str(application_id), "team_id": str(team.id)},
		)
		return team

	async def reject(self, application_id: UUID, reviewer_id: UUID, *, note: Optional[str] = None) -> models.TeamApplication:
		await self._load_for_review(application_id, reviewer_id)
		rejected = await self.repo.reject_application(application_id, note=note, now=_now())
		obs_metrics.inc_application("rejected")
		await self.notifications.emit(
			rejected.applicant_id,
			actor_id=reviewer_id,
			type=NotificationType.APPLICATION_REJECTED,
			title="Team Application Rejected",
			message=note or "Your team application was not approved.",
			payload={"application_id": str(application_id)},
		)
		return rejected

	async def guides_for(
		self,
		sport: models.Sport,
		*,
		latitude: Optional[float] = None,
		longitude: Optional[float] = None,
		max_distance_km: Optional[float] = None,
	) -> list[models.GuideMatch]:
		"""Approved guides for ``sport``, closest first when a location is given."""
		origin = geo.Coordinates.checked(latitude, longitude) if latitude is not None and longitude is not None else None
		radius = max_distance_km if max_distance_km is not None else settings.guide_search_radius_km
		matches: list[models.GuideMatch] = []
		for guide in await self.repo.list_approved_guides(sport):
			point = guide.coordinates
			distance = geo.distance_km(origin, point) if origin is not None and point is not None else None
			if origin is not None and distance is not None and distance > radius:
				continue
			matches.append(models.GuideMatch(guide=guide, distance_km=distance))
		matches.sort(key=lambda match: (match.distance_km is None, match.distance_km or 0.0))
		return matches
