from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mesabot.api.v1.health import router as health_router
from mesabot.api.v1.webhooks import router as webhooks_router
from mesabot.config import get_settings
from mesabot.runtime import BotRuntime


settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from mesabot.db import engine

    runtime = BotRuntime.from_settings(settings)
    await runtime.start()
    app.state.runtime = runtime
    logger.info("Application startup completed")
    try:
        yield
    finally:
        await runtime.shutdown()
        await engine.dispose()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="MesaBot",
    description="Asistente de reservas por mensajería",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

origins = (
    [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.allowed_origins != "*"
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(webhooks_router)
