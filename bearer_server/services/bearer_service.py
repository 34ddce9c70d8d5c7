from datetime import timedelta
from typing import Awaitable, Callable, TypeVar

from fastapi import Request
from loguru import logger

from bearer_server.core.auth import generate_token_id
from bearer_server.core.codec import SecureTokenCodec, build_codec
from bearer_server.core.config import settings
from bearer_server.core.exceptions.domain import DecodeError, VerificationError
from bearer_server.core.exceptions.oauth import (
    InvalidGrantError,
    InvalidRequestError,
    OAuthError,
    ServerError,
    UnsupportedGrantTypeError,
)
from bearer_server.schemas import (
    GrantRequest,
    GrantType,
    RefreshToken,
    Token,
    TokenResponse,
    TokenType,
)
from bearer_server.services.token_lifecycle import TokenLifecycleManager
from bearer_server.services.verifier import (
    AuthorizationCodeVerifier,
    CredentialsVerifier,
    supports_authorization_code,
)

T = TypeVar("T")

TokenPair = tuple[Token, RefreshToken]
GrantHandler = Callable[[GrantRequest, Request | None], Awaitable[TokenPair]]

INVALID_CREDENTIALS = "invalid username or password"
INVALID_REFRESH_TOKEN = "refresh token is invalid or expired"


class BearerServer:
    """
    OAuth 2 bearer token server.

    Dispatches a grant to its handler, validates it with the application's
    verifier, mints a token pair, lets the verifier record it, seals both
    tokens and returns the token response.

    Every failure is raised as an ``OAuthError`` carrying the RFC 6749 error
    kind and HTTP status. A token pair is only returned once it has been
    stored, sealed and decorated with properties; any failure on the way
    discards it.

    The instance holds only configuration fixed at construction and may serve
    any number of concurrent grants.
    """

    def __init__(
        self,
        secret_key: str,
        token_ttl: timedelta,
        refresh_token_ttl: timedelta,
        verifier: CredentialsVerifier,
        codec: SecureTokenCodec | None = None,
        id_generator: Callable[[], str] = generate_token_id,
    ):
        self.token_ttl = token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self.verifier = verifier
        self.codec = codec or build_codec(
            secret_key,
            codec_name=settings.token_codec,
            salt=settings.token_key_salt,
            iterations=settings.token_key_iterations,
        )
        self.lifecycle = TokenLifecycleManager(
            verifier=verifier,
            token_ttl=token_ttl,
            refresh_token_ttl=refresh_token_ttl,
            id_generator=id_generator,
        )
        self._grant_handlers: dict[GrantType, GrantHandler] = {
            GrantType.PASSWORD: self._password_grant,
            GrantType.CLIENT_CREDENTIALS: self._client_credentials_grant,
            GrantType.AUTHORIZATION_CODE: self._authorization_code_grant,
            GrantType.REFRESH_TOKEN: self._refresh_token_grant,
        }

    async def generate_token_response(
        self,
        grant: GrantRequest,
        request: Request | None = None,
    ) -> TokenResponse:
        """
        Evaluate a grant and issue a sealed token pair.

        Args:
            grant: Grant parameters with credentials already extracted
            request: Incoming HTTP request, forwarded to the verifier

        Returns:
            TokenResponse with the sealed access and refresh tokens

        Raises:
            OAuthError: On any validation, verifier or sealing failure
        """
        try:
            grant_type = GrantType(grant.grant_type)
        except ValueError:
            logger.warning(f"Unsupported grant type requested: {grant.grant_type!r}")
            raise UnsupportedGrantTypeError()

        token, refresh_token = await self._grant_handlers[grant_type](grant, request)

        return await self._issue(grant_type, token, refresh_token, request)

    # ------------------------------------------------------------------
    # Grant handlers
    # ------------------------------------------------------------------

    async def _password_grant(self, grant: GrantRequest, request: Request | None) -> TokenPair:
        self._require(grant.credential, "username")
        self._require(grant.secret, "password")

        await self._call_verifier(
            self.verifier.validate_user(grant.credential, grant.secret, grant.scope, request),
            rejection=InvalidGrantError(INVALID_CREDENTIALS),
        )

        return await self._generate_tokens(TokenType.USER, grant.credential, grant.scope, request)

    async def _client_credentials_grant(
        self, grant: GrantRequest, request: Request | None
    ) -> TokenPair:
        self._require(grant.credential, "client_id")
        self._require(grant.secret, "client_secret")

        await self._call_verifier(
            self.verifier.validate_client(grant.credential, grant.secret, grant.scope, request),
            rejection=InvalidGrantError(INVALID_CREDENTIALS),
        )

        return await self._generate_tokens(
            TokenType.CLIENT, grant.credential, grant.scope, request
        )

    async def _authorization_code_grant(
        self, grant: GrantRequest, request: Request | None
    ) -> TokenPair:
        if not supports_authorization_code(self.verifier):
            logger.warning("authorization_code grant requested but the verifier cannot check codes")
            raise UnsupportedGrantTypeError()

        code_verifier: AuthorizationCodeVerifier = self.verifier  # type: ignore[assignment]

        self._require(grant.credential, "client_id")
        self._require(grant.code, "code")

        credential = await self._call_verifier(
            code_verifier.validate_code(
                grant.credential, grant.secret, grant.code, grant.redirect_uri, request
            ),
            rejection=InvalidRequestError("invalid authorization code"),
        )

        return await self._generate_tokens(
            TokenType.AUTHORIZATION_CODE, credential, grant.scope, request
        )

    async def _refresh_token_grant(
        self, grant: GrantRequest, request: Request | None
    ) -> TokenPair:
        self._require(grant.refresh_token, "refresh_token")

        try:
            refresh = self.codec.unseal_refresh_token(grant.refresh_token)
        except DecodeError as e:
            logger.warning(f"Refresh token rejected: {e.message}")
            raise InvalidRequestError(INVALID_REFRESH_TOKEN) from e

        if refresh.is_expired():
            logger.warning(f"Expired refresh token presented for token {refresh.token_id}")
            raise InvalidRequestError(INVALID_REFRESH_TOKEN)

        await self._call_verifier(
            self.verifier.validate_token_id(
                refresh.token_type, refresh.credential, refresh.token_id, refresh.id
            ),
            rejection=InvalidRequestError(INVALID_REFRESH_TOKEN),
        )

        return self.lifecycle.refresh_tokens(
            refresh.token_type, refresh.credential, refresh.scope, refresh.claims
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(value: str, name: str) -> None:
        if not value:
            raise InvalidRequestError(f"missing required parameter: {name}")

    @staticmethod
    async def _call_verifier(check: Awaitable[T], rejection: OAuthError) -> T:
        """
        Await a verifier validation call.

        ``VerificationError`` becomes ``rejection`` and an ``OAuthError`` raised
        by the verifier is passed through unchanged; anything else is an
        internal failure.
        """
        try:
            return await check
        except OAuthError as e:
            logger.warning(f"Grant rejected by verifier: {e.error.value}")
            raise
        except VerificationError as e:
            logger.warning(f"Grant rejected: {e.message}")
            raise rejection from e
        except Exception as e:
            logger.exception("Verifier failed while validating a grant")
            raise ServerError(f"grant validation failed: {e}") from e

    async def _generate_tokens(
        self,
        token_type: TokenType,
        credential: str,
        scope: str,
        request: Request | None,
    ) -> TokenPair:
        try:
            return await self.lifecycle.generate_tokens(token_type, credential, scope, request)
        except Exception as e:
            logger.exception("Claims computation failed")
            raise ServerError(f"token generation failed, check claims: {e}") from e

    async def _issue(
        self,
        grant_type: GrantType,
        token: Token,
        refresh_token: RefreshToken,
        request: Request | None,
    ) -> TokenResponse:
        try:
            await self.verifier.store_token_id(
                token.token_type, token.credential, token.id, refresh_token.id
            )
        except Exception as e:
            logger.exception(f"Storing token id {token.id} failed")
            raise ServerError(f"storing token id failed: {e}") from e

        try:
            sealed_token = self.codec.seal(token)
            sealed_refresh_token = self.codec.seal(refresh_token)
        except Exception as e:
            logger.exception("Sealing the token pair failed")
            raise ServerError(f"token generation failed, check security provider: {e}") from e

        try:
            properties = await self.verifier.add_properties(
                token.token_type, token.credential, token.id, token.scope, request
            )
        except Exception as e:
            logger.exception(f"Properties computation failed for token {token.id}")
            raise ServerError(f"token generation failed, check properties: {e}") from e

        logger.info(
            f"Issued {grant_type.value} token {token.id} "
            f"(type: {token.token_type.value}, refresh: {refresh_token.id})"
        )

        return TokenResponse(
            access_token=sealed_token,
            refresh_token=sealed_refresh_token,
            expires_in=int(self.token_ttl.total_seconds()),
            refresh_token_expires_in=int(self.refresh_token_ttl.total_seconds()),
            properties=properties,
        )
