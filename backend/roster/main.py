"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roster.api import ops
from roster.api.errors import install_error_handlers
from roster.infra import postgres
from roster.obs import init as obs_init
from roster.settings import ensure_production_secret, settings
from roster.teams.api import router as roster_router


@asynccontextmanager
async def lifespan(app: FastAPI):
	ensure_production_secret(settings)
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Roster API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins and settings.is_dev():
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

# Starlette disallows wildcard '*' with allow_credentials=True.
allow_origins = [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(ops.router)
app.include_router(roster_router)
