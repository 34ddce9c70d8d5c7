import base64
import binascii
import hashlib
import os
from abc import ABC, abstractmethod
from typing import TypeVar

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from jose import jwe
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError
from pydantic import ValidationError as PydanticValidationError

from bearer_server.core.exceptions.domain import DecodeError
from bearer_server.schemas import RefreshToken, Token

TokenT = TypeVar("TokenT", bound=Token)

# Associated data binding a sealed string to the kind of value it holds
TOKEN_CONTEXT = b"token"
REFRESH_TOKEN_CONTEXT = b"refresh_token"

AES_GCM_CODEC = "aes-gcm"
JWE_CODEC = "jwe"


def b64encode(data: bytes) -> str:
    """Unpadded urlsafe base64."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64decode_strict(value: str) -> bytes:
    """
    Decode unpadded urlsafe base64, accepting only the canonical encoding.

    Non-alphabet characters and altered trailing bits are rejected instead of
    being silently dropped by the decoder.

    Raises:
        DecodeError: If ``value`` is not the canonical encoding of some bytes.
    """
    try:
        data = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Sealed token is not valid base64", e)

    if b64encode(data) != value:
        raise DecodeError("Sealed token is not canonically encoded")

    return data


class SecureTokenCodec(ABC):
    """
    Strategy that turns Token / RefreshToken values into opaque strings and back.

    Implementations provide ``encrypt`` / ``decrypt``; serialisation, context
    binding and model validation live here so that every strategy exposes the
    same Token data model. Implementations must be stateless apart from the key
    material configured at construction.
    """

    @abstractmethod
    def encrypt(self, payload: bytes, context: bytes) -> str:
        """Encrypt and authenticate ``payload`` bound to ``context``."""

    @abstractmethod
    def decrypt(self, sealed: str, context: bytes) -> bytes:
        """
        Reverse ``encrypt``.

        Raises:
            DecodeError: If ``sealed`` was not produced by this codec for ``context``.
        """

    def seal(self, token: Token) -> str:
        context = REFRESH_TOKEN_CONTEXT if isinstance(token, RefreshToken) else TOKEN_CONTEXT
        return self.encrypt(token.model_dump_json().encode("utf-8"), context)

    def unseal_token(self, sealed: str) -> Token:
        return self._unseal(sealed, Token, TOKEN_CONTEXT)

    def unseal_refresh_token(self, sealed: str) -> RefreshToken:
        return self._unseal(sealed, RefreshToken, REFRESH_TOKEN_CONTEXT)

    def _unseal(self, sealed: str, model: type[TokenT], context: bytes) -> TokenT:
        payload = self.decrypt(sealed, context)

        try:
            return model.model_validate_json(payload)
        except PydanticValidationError as e:
            raise DecodeError("Sealed token has an invalid structure", e)


class AESGCMTokenCodec(SecureTokenCodec):
    """
    AES-256-GCM sealing.

    Layout: ``version || nonce || ciphertext || tag``, unpadded urlsafe base64.
    The key is derived once from the secret with PBKDF2-HMAC-SHA256.
    """

    VERSION = b"\x01"
    NONCE_LENGTH = 12
    TAG_LENGTH = 16
    KEY_LENGTH = 32

    def __init__(
        self,
        secret_key: str,
        salt: str = "bearer-server",
        iterations: int = 100_000,
    ):
        if not secret_key:
            raise ValueError("Token codec secret key must not be empty")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_LENGTH,
            salt=salt.encode("utf-8"),
            iterations=iterations,
        )
        self._aes_gcm = AESGCM(kdf.derive(secret_key.encode("utf-8")))

    def encrypt(self, payload: bytes, context: bytes) -> str:
        nonce = os.urandom(self.NONCE_LENGTH)
        ciphertext = self._aes_gcm.encrypt(nonce, payload, context)

        return b64encode(self.VERSION + nonce + ciphertext)

    def decrypt(self, sealed: str, context: bytes) -> bytes:
        data = b64decode_strict(sealed)

        header_length = len(self.VERSION) + self.NONCE_LENGTH
        if len(data) < header_length + self.TAG_LENGTH:
            raise DecodeError("Sealed token is truncated")

        if data[: len(self.VERSION)] != self.VERSION:
            raise DecodeError("Sealed token has an unknown version")

        nonce = data[len(self.VERSION) : header_length]
        ciphertext = data[header_length:]

        try:
            return self._aes_gcm.decrypt(nonce, ciphertext, context)
        except InvalidTag as e:
            raise DecodeError("Sealed token failed the integrity check", e)


class JWETokenCodec(SecureTokenCodec):
    """
    Compact JWE sealing (``alg=dir``, ``enc=A256GCM``).

    The context is carried in the integrity protected ``cty`` header.
    """

    SEGMENTS = 5

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("Token codec secret key must not be empty")

        self._key = hashlib.sha256(secret_key.encode("utf-8")).digest()

    def encrypt(self, payload: bytes, context: bytes) -> str:
        sealed = jwe.encrypt(
            payload,
            self._key,
            encryption=ALGORITHMS.A256GCM,
            algorithm=ALGORITHMS.DIR,
            cty=context.decode("ascii"),
        )
        return sealed.decode("ascii")

    def decrypt(self, sealed: str, context: bytes) -> bytes:
        segments = sealed.split(".")
        if len(segments) != self.SEGMENTS:
            raise DecodeError("Sealed token is not a compact JWE")

        for segment in segments:
            b64decode_strict(segment)

        try:
            header = jwe.get_unverified_header(sealed)
            payload = jwe.decrypt(sealed, self._key)
        except (JOSEError, InvalidTag, NotImplementedError, ValueError, KeyError, TypeError) as e:
            raise DecodeError("Sealed token failed the integrity check", e)

        if payload is None or header.get("cty") != context.decode("ascii"):
            raise DecodeError("Sealed token was issued for another purpose")

        return payload


def build_codec(
    secret_key: str,
    codec_name: str = AES_GCM_CODEC,
    salt: str = "bearer-server",
    iterations: int = 100_000,
) -> SecureTokenCodec:
    """
    Create the codec registered under ``codec_name``.

    Raises:
        ValueError: If the codec name is unknown
    """
    if codec_name == JWE_CODEC:
        return JWETokenCodec(secret_key)

    if codec_name == AES_GCM_CODEC:
        return AESGCMTokenCodec(secret_key, salt=salt, iterations=iterations)

    raise ValueError(f"Unknown token codec: {codec_name}")
