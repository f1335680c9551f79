"""Background job for expiring stale team invitations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from roster.obs import metrics as obs_metrics
from roster.teams.domain.invites_service import InvitesService

_JOB_NAME = "roster-invite-expiry"

logger = logging.getLogger(__name__)


class InviteExpiryJob:
	"""Marks PENDING invitations past their expiry as EXPIRED."""

	def __init__(self, *, service: InvitesService | None = None) -> None:
		self.service = service or InvitesService()

	async def run_once(self, *, now: datetime | None = None) -> int:
		started = datetime.now(timezone.utc)
		try:
			expired = await self.service.expire_stale(now=now or started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			logger.info("invitations expired", extra={"expired": expired})
			return expired
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)
