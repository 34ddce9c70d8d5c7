from typing import Any, TypeAlias, TypedDict

# Verifier supplied data; never interpreted by the server
Claims: TypeAlias = dict[str, Any]
Properties: TypeAlias = dict[str, Any]


class BasicCredentialsDict(TypedDict):
    """Username and password pair decoded from an HTTP Basic header."""

    username: str
    password: str


class AuthorizationCodeDict(TypedDict):
    """Pending authorization code awaiting exchange."""

    client_id: str
    credential: str  # resource owner the code was issued for
    redirect_uri: str
    expires_at: float  # unix timestamp


class StoredTokenIdDict(TypedDict):
    """Token pair recorded by the in-memory verifier, keyed by refresh token id."""

    token_type: str
    credential: str
    token_id: str
    expires_at: float  # unix timestamp, refresh token expiry
