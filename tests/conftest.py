import os

# Settings are read at import time, so the test environment must be in place first
os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("TOKEN_KEY_ITERATIONS", "1000")
os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import timedelta  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from faker import Faker  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from bearer_server.core.codec import AESGCMTokenCodec, JWETokenCodec  # noqa: E402
from bearer_server.core.config import settings  # noqa: E402
from bearer_server.main import create_app  # noqa: E402
from bearer_server.services.bearer_service import BearerServer  # noqa: E402
from bearer_server.services.memory_verifier import InMemoryCredentialsVerifier  # noqa: E402
from tests.schemas import ClientCredentials, UserCredentials  # noqa: E402
from tests.utils import (  # noqa: E402
    StubCodeVerifier,
    StubVerifier,
    generate_client_credentials,
    generate_user_credentials,
)

TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(hours=24)


@pytest.fixture
def faker() -> Faker:
    """Create a Faker instance for generating test data."""
    return Faker()


@pytest.fixture(scope="session")
def codec() -> AESGCMTokenCodec:
    """AES-GCM codec keyed with the test secret; key derivation runs once per session."""
    return AESGCMTokenCodec(
        settings.secret_key,
        salt=settings.token_key_salt,
        iterations=settings.token_key_iterations,
    )


@pytest.fixture(scope="session")
def jwe_codec() -> JWETokenCodec:
    return JWETokenCodec(settings.secret_key)


@pytest.fixture
def user_credentials(faker: Faker) -> UserCredentials:
    return generate_user_credentials(faker)


@pytest.fixture
def client_credentials(faker: Faker) -> ClientCredentials:
    return generate_client_credentials(faker)


@pytest.fixture
def verifier(
    user_credentials: UserCredentials,
    client_credentials: ClientCredentials,
) -> InMemoryCredentialsVerifier:
    """In-memory verifier knowing one user and one confidential client."""
    memory_verifier = InMemoryCredentialsVerifier()
    memory_verifier.add_user(
        user_credentials["username"],
        user_credentials["password"],
        claims={"role": "member", "tier": 2},
        properties={"display_name": user_credentials["display_name"]},
    )
    memory_verifier.add_client(
        client_credentials["client_id"],
        client_credentials["client_secret"],
        claims={"role": "service"},
    )
    return memory_verifier


@pytest.fixture
def stub_verifier(
    user_credentials: UserCredentials,
    client_credentials: ClientCredentials,
) -> StubVerifier:
    """Verifier without the authorization code capability."""
    return StubVerifier(
        users={user_credentials["username"]: user_credentials["password"]},
        clients={client_credentials["client_id"]: client_credentials["client_secret"]},
        claims={"role": "member"},
        properties={"plan": "free"},
    )


@pytest.fixture
def stub_code_verifier(
    user_credentials: UserCredentials,
    client_credentials: ClientCredentials,
) -> StubCodeVerifier:
    return StubCodeVerifier(
        users={user_credentials["username"]: user_credentials["password"]},
        clients={client_credentials["client_id"]: client_credentials["client_secret"]},
        codes={"valid-code": user_credentials["username"]},
    )


@pytest.fixture
def bearer_server(stub_verifier: StubVerifier, codec: AESGCMTokenCodec) -> BearerServer:
    return BearerServer(
        secret_key=settings.secret_key,
        token_ttl=TOKEN_TTL,
        refresh_token_ttl=REFRESH_TOKEN_TTL,
        verifier=stub_verifier,
        codec=codec,
    )


@pytest_asyncio.fixture
async def test_app(
    verifier: InMemoryCredentialsVerifier,
    codec: AESGCMTokenCodec,
) -> AsyncGenerator[FastAPI, None]:
    """Create a token server application backed by the in-memory verifier."""
    yield create_app(verifier=verifier, codec=codec)


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac
