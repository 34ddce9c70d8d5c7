import base64
import binascii
import secrets
import uuid

from pwdlib import PasswordHash

from bearer_server.core.exceptions.domain import DecodeError
from bearer_server.core.types import BasicCredentialsDict

password_hash = PasswordHash.recommended()

BASIC_SCHEME = "basic "


def generate_token_id() -> str:
    """
    Generate a random, non-sequential token identifier.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def generate_authorization_code() -> str:
    """
    Generate an unguessable authorization code.

    Returns:
        URL safe random string
    """
    return secrets.token_urlsafe(32)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hashed password
    Args:
        plain_password: Plain password
        hashed_password: Hashed password

    Returns:
        Whether password matches hash
    """
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash password
    Args:
        password: Plain password

    Returns:
        Hashed password
    """
    return password_hash.hash(password)


def parse_basic_authorization(header: str | None) -> BasicCredentialsDict | None:
    """
    Decode an HTTP Basic ``Authorization`` header value.

    Args:
        header: Raw header value, may be missing

    Returns:
        Username and password, or None when the header is absent, uses another
        scheme or carries no ``:`` separated pair

    Raises:
        DecodeError: If the Basic payload is not valid base64 or UTF-8
    """
    if not header or header[: len(BASIC_SCHEME)].lower() != BASIC_SCHEME:
        return None

    try:
        value = base64.b64decode(header[len(BASIC_SCHEME) :].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise DecodeError("Invalid basic authorization header", e)

    username, sep, password = value.partition(":")
    if not sep or not username:
        return None

    return BasicCredentialsDict(username=username, password=password)
