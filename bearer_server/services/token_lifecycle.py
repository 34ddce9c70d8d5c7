from datetime import UTC, datetime, timedelta
from typing import Callable

from fastapi import Request

from bearer_server.core.auth import generate_token_id
from bearer_server.core.types import Claims
from bearer_server.schemas import RefreshToken, Token, TokenType
from bearer_server.services.verifier import CredentialsVerifier


class TokenLifecycleManager:
    """
    Builds token pairs with fresh ids, UTC creation dates and configured lifetimes.

    Holds only immutable configuration, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        verifier: CredentialsVerifier,
        token_ttl: timedelta,
        refresh_token_ttl: timedelta,
        id_generator: Callable[[], str] = generate_token_id,
    ):
        self.verifier = verifier
        self.token_ttl = token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self.id_generator = id_generator

    async def generate_tokens(
        self,
        token_type: TokenType,
        credential: str,
        scope: str,
        request: Request | None = None,
    ) -> tuple[Token, RefreshToken]:
        """
        Mint a token pair for a freshly validated grant.

        Claims are requested from the verifier for the new token id.

        Raises:
            Exception: Whatever ``add_claims`` raises, unchanged
        """
        token_id = self.id_generator()
        claims = await self.verifier.add_claims(token_type, credential, token_id, scope, request)

        return self._build(token_id, token_type, credential, scope, claims)

    def refresh_tokens(
        self,
        token_type: TokenType,
        credential: str,
        scope: str,
        claims: Claims | None,
    ) -> tuple[Token, RefreshToken]:
        """
        Mint a token pair for a refresh grant.

        Claims are carried over verbatim from the presented refresh token and
        are not recomputed.
        """
        return self._build(self.id_generator(), token_type, credential, scope, claims)

    def _build(
        self,
        token_id: str,
        token_type: TokenType,
        credential: str,
        scope: str,
        claims: Claims | None,
    ) -> tuple[Token, RefreshToken]:
        now = datetime.now(UTC)

        token = Token(
            id=token_id,
            credential=credential,
            token_type=token_type,
            scope=scope,
            claims=claims,
            creation_date=now,
            expires_in=int(self.token_ttl.total_seconds()),
        )
        refresh_token = RefreshToken(
            id=self.id_generator(),
            token_id=token.id,
            credential=credential,
            token_type=token_type,
            scope=scope,
            claims=claims,
            creation_date=now,
            expires_in=int(self.refresh_token_ttl.total_seconds()),
        )

        return token, refresh_token
