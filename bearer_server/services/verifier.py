from typing import Protocol, runtime_checkable

from fastapi import Request

from bearer_server.core.types import Claims, Properties
from bearer_server.schemas import TokenType


@runtime_checkable
class CredentialsVerifier(Protocol):
    """
    Application supplied capability validating users and clients.

    Rejections are signalled by raising ``VerificationError``; any other
    exception is treated as an internal failure by BearerServer.
    ``request`` is the incoming HTTP request when the grant arrived over HTTP.
    """

    async def validate_user(
        self, username: str, password: str, scope: str, request: Request | None
    ) -> None:
        """Validate resource owner credentials."""
        ...

    async def validate_client(
        self, client_id: str, client_secret: str, scope: str, request: Request | None
    ) -> None:
        """Validate client credentials."""
        ...

    async def add_claims(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Claims | None:
        """Provide claims sealed into the token and carried through refresh."""
        ...

    async def add_properties(
        self,
        token_type: TokenType,
        credential: str,
        token_id: str,
        scope: str,
        request: Request | None,
    ) -> Properties | None:
        """Provide extra data attached to the token response only."""
        ...

    async def validate_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        """Validate a previously stored token pair during a refresh grant."""
        ...

    async def store_token_id(
        self, token_type: TokenType, credential: str, token_id: str, refresh_token_id: str
    ) -> None:
        """Record a newly issued token pair."""
        ...


@runtime_checkable
class AuthorizationCodeVerifier(Protocol):
    """Optional capability enabling the authorization_code grant."""

    async def validate_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        request: Request | None,
    ) -> str:
        """
        Check an authorization code.

        Returns:
            The credential (resource owner) the code was issued for
        """
        ...


def supports_authorization_code(verifier: CredentialsVerifier) -> bool:
    return isinstance(verifier, AuthorizationCodeVerifier)
