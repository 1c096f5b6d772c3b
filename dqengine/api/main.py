"""FastAPI application — main entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dqengine.api.routers.v1 import router as v1_router
from dqengine.api.schemas import HealthResponse
from dqengine.config import get_settings
from dqengine.logger import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)
settings = get_settings()
settings.ensure_dirs()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("DQ engine API starting", environment=settings.environment)
    yield
    logger.info("DQ engine API shutting down")


app = FastAPI(
    title="Data Quality Rule Engine",
    description="Declarative data-quality validation for compensation survey data",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router)


# ── Health ───────────────────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", environment=settings.environment)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
