from fastapi import FastAPI, Request
from fastapi.concurrency import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from bearer_server.api.routes import api_router
from bearer_server.core.codec import SecureTokenCodec
from bearer_server.core.config import Environment, settings
from bearer_server.core.exceptions.oauth import OAuthError
from bearer_server.core.logger import configure_uvicorn_logging, setup_logger, shutdown_logger
from bearer_server.core.responses import OAuthJSONResponse, render_json
from bearer_server.middleware.logging import LoggingMiddleware
from bearer_server.services.bearer_service import BearerServer
from bearer_server.services.memory_verifier import InMemoryCredentialsVerifier
from bearer_server.services.verifier import CredentialsVerifier, supports_authorization_code


def build_default_verifier() -> InMemoryCredentialsVerifier:
    """In-memory verifier seeded with the users and clients from settings"""

    verifier = InMemoryCredentialsVerifier(
        rotate_refresh_tokens=settings.refresh_token_rotation,
        authorization_code_ttl=settings.authorization_code_expire_seconds,
        refresh_token_ttl=settings.refresh_token_expire_seconds,
    )

    for username, password in settings.bootstrap_users_map.items():
        verifier.add_user(username, password)

    for client_id, client_secret in settings.bootstrap_clients_map.items():
        verifier.add_client(client_id, client_secret or None)

    return verifier


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    setup_logger()
    configure_uvicorn_logging()

    server: BearerServer = app.state.bearer_server
    logger.success(
        f"Bearer server ready | "
        f"Codec: {type(server.codec).__name__} | "
        f"Verifier: {type(server.verifier).__name__} | "
        f"Authorization code: {supports_authorization_code(server.verifier)} | "
        f"Token TTL: {int(server.token_ttl.total_seconds())}s | "
        f"Refresh TTL: {int(server.refresh_token_ttl.total_seconds())}s"
    )

    yield  # Application runs here

    logger.info("Cleaning up resources...")
    shutdown_logger()


async def oauth_error_handler(request: Request, exc: OAuthError) -> OAuthJSONResponse:
    """Render an OAuthError as the RFC 6749 error body"""

    return render_json(exc.to_response(), status_code=exc.status_code)


ALLOWED_ENVIRONMENTS = {Environment.LOCAL, Environment.DEV, Environment.STG}


def create_app(
    verifier: CredentialsVerifier | None = None,
    codec: SecureTokenCodec | None = None,
) -> FastAPI:
    """
    Build the token server application.

    Args:
        verifier: Application credentials verifier, defaults to the in-memory one
        codec: Token sealing strategy, defaults to the one selected in settings
    """
    docs_enabled = settings.current_environment in ALLOWED_ENVIRONMENTS

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        description=settings.app_description,
        openapi_url="/openapi.json" if docs_enabled else None,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        lifespan=lifespan,
        generate_unique_id_function=lambda route: f"{route.tags[0]}-{route.name}",
    )

    app.state.bearer_server = BearerServer(
        secret_key=settings.secret_key,
        token_ttl=settings.token_ttl,
        refresh_token_ttl=settings.refresh_token_ttl,
        verifier=verifier if verifier is not None else build_default_verifier(),
        codec=codec,
    )

    # Set CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Set logging middleware
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(OAuthError, oauth_error_handler)  # type: ignore[arg-type]

    app.include_router(api_router)

    return app


app = create_app()
