import asyncio
import time

from fastapi import Request
from loguru import logger

from bearer_server.core.auth import (
    generate_authorization_code,
    get_password_hash,
    verify_password,
)
from bearer_server.core.exceptions.domain import VerificationError
from bearer_server.core.types import (
    AuthorizationCodeDict,
    Claims,
    Properties,
    StoredTokenIdDict,
)
from bearer_server.schemas import TokenType

# Pre-computed dummy hash for timing attack prevention
# Reference: https://cheatsheetseries.owasp.org/cheatsheets/Authentication_Cheat_Sheet.html
_DUMMY_HASH = get_password_hash("dummy_password_for_timing_attack_prevention")


class InMemoryCredentialsVerifier:
    """
    Reference verifier keeping users, clients, codes and token ids in process memory.

    Implements both ``CredentialsVerifier`` and ``AuthorizationCodeVerifier``.
    Suitable for a single worker process; state is lost on restart.

    With ``rotate_refresh_tokens`` enabled a refresh token id is consumed when
    validated, so each refresh token can be exchanged once. Otherwise refresh
    tokens stay valid until they expire.

    Token ids are kept for ``refresh_token_ttl`` seconds and codes for
    ``authorization_code_ttl`` seconds; expired entries are purged whenever a
    new one is recorded.
    """

    def __init__(
        self,
        rotate_refresh_tokens: bool = True,
        authorization_code_ttl: int = 300,
        refresh_token_ttl: int = 86_400,
    ):
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self.authorization_code_ttl = authorization_code_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self.users: dict[str, str] = {}  # username -> password hash
        self.clients: dict[str, str | None] = {}  # client id -> secret hash, None for public
        self.claims: dict[str, Claims] = {}
        self.properties: dict[str, Properties] = {}
        self.authorization_codes: dict[str, AuthorizationCodeDict] = {}
        self.token_ids: dict[str, StoredTokenIdDict] = {}  # refresh token id -> pair

    # --- registration ---

    def add_user(
        self,
        username: str,
        password: str,
        claims: Claims | None = None,
        properties: Properties | None = None,
    ) -> None:
        self.users[username] = get_password_hash(password)
        self._set_extras(username, claims, properties)

    def add_client(
        self,
        client_id: str,
        client_secret: str | None,
        claims: Claims | None = None,
        properties: Properties | None = None,
    ) -> None:
        """Register a client; ``client_secret=None`` registers a public client."""
        self.clients[client_id] = get_password_hash(client_secret) if client_secret else None
        self._set_extras(client_id, claims, properties)

    def issue_code(self, client_id: str, credential: str, redirect_uri: str = "") -> str:
        """
        Issue a one-time authorization code for ``credential`` to ``client_id``.

        Raises:
            VerificationError: If the client is unknown
        """
        if client_id not in self.clients:
            raise VerificationError(f"Unknown client: {client_id}")

        self._purge_expired_codes()

        code = generate_authorization_code()
        self.authorization_codes[code] = AuthorizationCodeDict(
            client_id=client_id,
            credential=credential,
            redirect_uri=redirect_uri,
            expires_at=time.time() + self.authorization_code_ttl,
        )
        logger.info(f"Authorization code issued to client {client_id}")

        return code

    def _set_extras(
        self, credential: str, claims: Claims | None, properties: Properties | None
    ) -> None:
        if claims is not None:
            self.claims[credential] = claims
        if properties is not None:
            self.properties[credential] = properties

    # --- CredentialsVerifier ---

    async def validate_user(
        self, username: str, password: str, scope: str, request: Request | None
    ) -> None:
        # Always verify a hash so unknown usernames take as long as known ones
        hashed = self.users.get(username, _DUMMY_HASH)
        password_valid = await asyncio.to_thread(verify_password, password, hashed)

        if username not in self.users or not password_valid:
            raise VerificationError("Incorrect username or password")

    async def validate_client(
        self, client_id: str, client_secret: str, scope: str, request: Request | None
    ) -> None:
        if not await self._check_client_secret(client_id, client_secret):
            raise VerificationError("Incorrect client id or secret")

    async def add_claims(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Claims | None:
        claims = self.claims.get(credential)
        return dict(claims) if claims is not None else None

    async def add_properties(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Properties | None:
        properties = self.properties.get(credential)
        return dict(properties) if properties is not None else None

    async def validate_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        if self.rotate_refresh_tokens:
            stored = self.token_ids.pop(refresh_token_id, None)
        else:
            stored = self.token_ids.get(refresh_token_id)

        if stored is None or stored["expires_at"] < time.time():
            raise VerificationError("Refresh token was already used, expired or never issued")

        if (stored["token_type"], stored["credential"], stored["token_id"]) != (
            token_type.value,
            credential,
            token_id,
        ):
            raise VerificationError("Refresh token does not match the stored token pair")

    async def store_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        self._purge_expired_token_ids()

        self.token_ids[refresh_token_id] = StoredTokenIdDict(
            token_type=token_type.value,
            credential=credential,
            token_id=token_id,
            expires_at=time.time() + self.refresh_token_ttl,
        )

    # --- AuthorizationCodeVerifier ---

    async def validate_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        request: Request | None,
    ) -> str:
        # Codes are single use even when the exchange fails
        entry = self.authorization_codes.pop(code, None)

        if entry is None or entry["expires_at"] < time.time():
            raise VerificationError("Authorization code is invalid or expired")

        if entry["client_id"] != client_id:
            raise VerificationError("Authorization code was issued to another client")

        if entry["redirect_uri"] and entry["redirect_uri"] != redirect_uri:
            raise VerificationError("Redirect URI does not match the authorization request")

        # Public clients authenticate with the code alone
        if self.clients.get(client_id) is not None:
            if not await self._check_client_secret(client_id, client_secret):
                raise VerificationError("Incorrect client id or secret")

        return entry["credential"]

    async def _check_client_secret(self, client_id: str, client_secret: str) -> bool:
        hashed = self.clients.get(client_id) or _DUMMY_HASH
        secret_valid = await asyncio.to_thread(verify_password, client_secret, hashed)

        return self.clients.get(client_id) is not None and secret_valid

    # --- expiry ---

    def _purge_expired_token_ids(self) -> None:
        now = time.time()
        expired = [key for key, entry in self.token_ids.items() if entry["expires_at"] < now]
        for key in expired:
            del self.token_ids[key]

        if expired:
            logger.debug(f"Purged {len(expired)} expired refresh token ids")

    def _purge_expired_codes(self) -> None:
        now = time.time()
        expired = [
            code for code, entry in self.authorization_codes.items() if entry["expires_at"] < now
        ]
        for code in expired:
            del self.authorization_codes[code]

        if expired:
            logger.debug(f"Purged {len(expired)} expired authorization codes")
