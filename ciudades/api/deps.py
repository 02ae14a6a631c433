from fastapi import Cookie, Depends, Request

from ciudades.common.exceptions import NotAuthenticatedError
from ciudades.common.logging import get_logger
from ciudades.common.security import SESSION_COOKIE_NAME, verify_session_token
from ciudades.config import Settings, get_settings
from ciudades.core.board.service import DashboardService

logger = get_logger("api.deps")


def get_app_settings() -> Settings:
    return get_settings()


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


async def require_session(
    request: Request,
    session: str | None = Cookie(None, alias=SESSION_COOKIE_NAME),
    settings: Settings = Depends(get_app_settings),
) -> None:
    if not verify_session_token(session, settings.AUTH_SECRET):
        logger.info("Rejected unauthenticated request to %s", request.url.path)
        raise NotAuthenticatedError()
