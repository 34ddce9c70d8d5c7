import base64

from faker import Faker
from fastapi import Request

from bearer_server.core.exceptions.domain import VerificationError
from bearer_server.core.types import Claims, Properties
from bearer_server.schemas import TokenType
from tests.schemas import ClientCredentials, UserCredentials


def generate_user_credentials(faker: Faker | None = None) -> UserCredentials:
    """
    Generate random user credentials (username and password)
    Returns:
        UserCredentials: Generated username, password and display name
    """
    faker = faker or Faker()
    username = faker.password(
        length=10, upper_case=True, lower_case=True, digits=True, special_chars=False
    )
    password = (
        faker.password(
            length=12, special_chars=False, digits=True, upper_case=True, lower_case=True
        )
        + "@%&"
    )
    return UserCredentials(username=username, password=password, display_name=faker.name())


def generate_client_credentials(faker: Faker | None = None) -> ClientCredentials:
    faker = faker or Faker()
    return ClientCredentials(client_id=faker.uuid4(), client_secret=faker.sha256())


def basic_auth_header(username: str, password: str) -> dict[str, str]:
    """Build an HTTP Basic ``Authorization`` header."""
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


class StubVerifier:
    """
    Plain-text verifier recording the token pairs it stores.

    Has no ``validate_code``, so it does not support the authorization_code grant.
    """

    def __init__(
        self,
        users: dict[str, str] | None = None,
        clients: dict[str, str] | None = None,
        claims: Claims | None = None,
        properties: Properties | None = None,
    ):
        self.users = users or {}
        self.clients = clients or {}
        self.claims = claims
        self.properties = properties
        self.stored: dict[str, tuple[TokenType, str, str]] = {}
        self.claims_requests: list[str] = []

    async def validate_user(
        self, username: str, password: str, scope: str, request: Request | None
    ) -> None:
        if username not in self.users or self.users[username] != password:
            raise VerificationError("unknown user")

    async def validate_client(
        self, client_id: str, client_secret: str, scope: str, request: Request | None
    ) -> None:
        if client_id not in self.clients or self.clients[client_id] != client_secret:
            raise VerificationError("unknown client")

    async def add_claims(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Claims | None:
        self.claims_requests.append(token_id)
        return self.claims

    async def add_properties(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Properties | None:
        return self.properties

    async def validate_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        if self.stored.get(refresh_token_id) != (token_type, credential, token_id):
            raise VerificationError("unknown token pair")

    async def store_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        self.stored[refresh_token_id] = (token_type, credential, token_id)


class StubCodeVerifier(StubVerifier):
    """StubVerifier that also exchanges authorization codes."""

    def __init__(self, codes: dict[str, str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.codes = codes or {}  # code -> credential

    async def validate_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        request: Request | None,
    ) -> str:
        if client_id not in self.clients or code not in self.codes:
            raise VerificationError("unknown code")
        return self.codes[code]
