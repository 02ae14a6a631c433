from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from ciudades.api.deps import get_app_settings
from ciudades.common.exceptions import NotAuthenticatedError
from ciudades.common.logging import get_logger
from ciudades.common.security import (
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
    create_session_token,
    sanitize_redirect_path,
    validate_login_credentials,
)
from ciudades.config import Settings

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = get_logger("api.auth")


# ---------- Schemas ----------


class LoginRequest(BaseModel):
    username: str
    password: str
    from_path: str | None = None


class LoginResponse(BaseModel):
    ok: bool = True
    redirect_to: str


class LogoutResponse(BaseModel):
    ok: bool = True
    redirect_to: str = "/login"


# ---------- Endpoints ----------


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
):
    username = body.username.strip()
    if not validate_login_credentials(username, body.password.strip(), settings.AUTH_USER, settings.AUTH_PASS):
        logger.info("Failed login attempt for user '%s'", username)
        raise NotAuthenticatedError("Invalid username or password")

    response.set_cookie(
        SESSION_COOKIE_NAME,
        create_session_token(username, settings.AUTH_SECRET),
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
    return LoginResponse(redirect_to=sanitize_redirect_path(body.from_path))


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
    return LogoutResponse()
