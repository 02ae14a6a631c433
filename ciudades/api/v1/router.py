from fastapi import APIRouter

from ciudades.api.v1.auth import router as auth_router
from ciudades.api.v1.dashboard import router as dashboard_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(dashboard_router)
