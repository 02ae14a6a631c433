from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ciudades.api.deps import get_dashboard_service, require_session
from ciudades.common.enums import QuickFilter
from ciudades.common.exceptions import BoardConfigurationError, ExternalServiceError, NotFoundError
from ciudades.common.logging import get_logger
from ciudades.core.board.city import CityResolutionError
from ciudades.core.board.schemas import DashboardSnapshot
from ciudades.core.board.service import DashboardService
from ciudades.core.board.views import FilteredDashboard, GalleryView, filter_dashboard, gallery_view
from ciudades.integrations.trello import TrelloApiError

router = APIRouter(tags=["Dashboard"], dependencies=[Depends(require_session)])

logger = get_logger("api.dashboard")


# ---------- Schemas ----------


class RefreshResponse(BaseModel):
    ok: bool = True
    revalidated_at: datetime


# ---------- Helpers ----------


async def _load_snapshot(service: DashboardService) -> DashboardSnapshot:
    try:
        return await service.get_snapshot()
    except TrelloApiError as e:
        logger.error("Trello fetch failed (%d): %s", e.status, e.message)
        raise ExternalServiceError("trello", e.message)
    except CityResolutionError as e:
        logger.error("City resolution failed: %s", e)
        raise BoardConfigurationError(str(e))


# ---------- Endpoints ----------


@router.get("/dashboard", response_model=DashboardSnapshot)
async def get_dashboard(service: DashboardService = Depends(get_dashboard_service)):
    return await _load_snapshot(service)


@router.get("/dashboard/view", response_model=FilteredDashboard)
async def get_dashboard_view(
    q: str = Query("", max_length=200),
    designer: str = Query("", max_length=200),
    quick_filter: QuickFilter = Query(QuickFilter.ALL, alias="filter"),
    service: DashboardService = Depends(get_dashboard_service),
):
    snapshot = await _load_snapshot(service)
    return filter_dashboard(snapshot, query=q, designer_query=designer, quick_filter=quick_filter)


@router.get("/gallery", response_model=GalleryView)
async def get_gallery(
    city: str | None = Query(None),
    service: DashboardService = Depends(get_dashboard_service),
):
    snapshot = await _load_snapshot(service)
    view = gallery_view(snapshot, city)
    if city is not None and view.selected is None:
        raise NotFoundError("City", city)
    return view


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_dashboard(service: DashboardService = Depends(get_dashboard_service)):
    return RefreshResponse(revalidated_at=service.refresh())
