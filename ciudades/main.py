from contextlib import asynccontextmanager

from fastapi import FastAPI

from ciudades.api.middleware import RequestTimingMiddleware
from ciudades.api.v1.router import v1_router
from ciudades.common.logging import setup_logging
from ciudades.config import get_settings
from ciudades.core.board.cache import SnapshotCache
from ciudades.core.board.service import DashboardService
from ciudades.integrations.trello import TrelloClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    client = TrelloClient(settings.TRELLO_KEY, settings.TRELLO_TOKEN, settings.TRELLO_API_URL)
    app.state.dashboard_service = DashboardService(
        client,
        settings.pipeline_config(),
        cache=SnapshotCache(),
        revalidate_seconds=settings.TRELLO_REVALIDATE_SECONDS,
        timeout_seconds=settings.TRELLO_TIMEOUT_SECONDS,
    )
    yield


app = FastAPI(
    title="Ciudades Dashboard API",
    description="Read-only Trello board dashboard grouped by city",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestTimingMiddleware)

app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "ciudades",
        "version": "1.0.0",
    }
