from fastapi import APIRouter

from bearer_server.api.v1.router import api_v1_router
from bearer_server.core.config import settings
from bearer_server.schemas import HealthCheckResponse

api_router = APIRouter()


@api_router.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health Check",
)
async def health_check():
    return HealthCheckResponse(status="healthy", version=settings.app_version)


api_router.include_router(
    api_v1_router,
)
