from fastapi import APIRouter

from bearer_server.api.v1.endpoints import oauth

api_v1_router = APIRouter(prefix="/api/v1")


api_v1_router.include_router(
    oauth.router,
    prefix="/oauth",
    tags=["OAuth"],
)
