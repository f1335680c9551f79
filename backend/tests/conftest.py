import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from roster.infra import postgres
from roster.main import app
from roster.settings import settings
from roster.teams.domain.actions import TeamActions
from tests.fakes import InMemoryRosterRepository


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if sys.platform == "win32" and hasattr(asyncio, "WindowsSelectorEventLoopPolicy"):
	asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode.
	"""
	original_env = settings.environment
	original_mode = settings.discovery_search_mode
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.discovery_search_mode = original_mode


@pytest.fixture()
def roster_repo() -> InMemoryRosterRepository:
	return InMemoryRosterRepository()


@pytest.fixture()
def team_actions(roster_repo) -> TeamActions:
	return TeamActions(repository=roster_repo)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
