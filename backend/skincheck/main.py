from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skincheck.api.router import api_router
from skincheck.api.routes.evaluation_socket import router as evaluation_socket_router
from skincheck.clients.leancloud import LeanCloudClient
from skincheck.config import load_settings
from skincheck.repositories.evaluation_repository import EvaluationRepository
from skincheck.services.assessor_roster import AssessorRoster, JsonFileStore
from skincheck.services.evaluation_feed import EvaluationFeed

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    client = LeanCloudClient.from_settings(settings)
    repository = EvaluationRepository(client, class_name=settings.evaluation_class)
    app.state.feed = EvaluationFeed(
        repository, latest_limit=settings.latest_evaluation_limit
    )
    app.state.roster = AssessorRoster(JsonFileStore(settings.assessor_store_path))
    app.state.lifespan_started = True
    logger.info(
        "Serving %s from %s", settings.evaluation_class, settings.lean_server_url
    )
    try:
        yield
    finally:
        app.state.feed.close()
        await client.close()
        app.state.lifespan_shutdown = True


app = FastAPI(title="skincheck", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api")
app.include_router(evaluation_socket_router)
