"""Best-effort notification sink for roster workflows."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, Optional
from uuid import UUID

from roster.obs import metrics as obs_metrics
from roster.teams.domain import repo as repo_module
from roster.teams.domain.models import NotificationEntity, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
	"""Persists notification rows. Emission never raises to the caller."""

	def __init__(self, *, repository: repo_module.TeamsRepository | None = None) -> None:
		self.repo = repository or repo_module.TeamsRepository()

	async def emit(
		self,
		recipient_id: UUID,
		*,
		actor_id: Optional[UUID],
		type: NotificationType,
		title: str,
		message: str,
		payload: Optional[dict[str, Any]] = None,
	) -> NotificationEntity | None:
		try:
			entity = await self.repo.insert_notification(
				recipient_id=recipient_id,
				actor_id=actor_id,
				type=type,
				title=title,
				message=message,
				payload=payload or {},
			)
		except Exception:
			logger.exception(
				"notification emit failed",
				extra={"notification_type": type.value, "recipient_id": str(recipient_id)},
			)
			obs_metrics.inc_notification(type.value, "failed")
			return None
		obs_metrics.inc_notification(type.value, "sent")
		return entity

	async def emit_many(
		self,
		recipient_ids: Iterable[UUID],
		*,
		actor_id: Optional[UUID],
		type: NotificationType,
		title: str,
		message: str,
		payload: Optional[dict[str, Any]] = None,
		exclude: Iterable[UUID] = (),
	) -> int:
		"""Fan out one notification per recipient, returning how many were stored."""
		skipped = set(exclude)
		sent = 0
		seen: set[UUID] = set()
		for recipient_id in recipient_ids:
			if recipient_id in skipped or recipient_id in seen:
				continue
			seen.add(recipient_id)
			entity = await self.emit(
				recipient_id,
				actor_id=actor_id,
				type=type,
				title=title,
				message=message,
				payload=payload,
			)
			if entity is not None:
				sent += 1
		return sent

	async def dispatch(self, event: str, fan_out: Callable[[], Awaitable[Any]]) -> bool:
		"""Run a post-commit fan-out, recipient lookups included.

		Failures are logged and counted; the committed change stands.
		"""
		try:
			await fan_out()
		except Exception:
			logger.exception("notification fan-out failed", extra={"event": event})
			obs_metrics.inc_notification(event, "failed")
			return False
		return True
