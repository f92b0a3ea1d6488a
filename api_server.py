from __future__ import annotations  # FastAPI server exposing the bouncer interview

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.factory import bind_agents_from_config
from api.routes import routers
from config.settings import settings
from storage.migrate import migrate

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Prepare storage and bind configured agents
    migrate(settings.DB_PATH)
    config_path = Path(settings.APP_CONFIG_PATH)
    if config_path.exists():
        bind_agents_from_config(config_path, settings)
    else:
        logger.warning("App config %s not found; agents must be bound manually", config_path)
    yield


app = FastAPI(title="Bouncer API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
for router in routers:
    app.include_router(router)


@app.get("/api/health")
def health() -> Dict[str, str]:  # Liveness probe
    return {"status": "ok"}
