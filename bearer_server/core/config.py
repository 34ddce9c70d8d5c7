import logging
import os
import tomllib
from datetime import timedelta
from enum import StrEnum
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_DIR = Path(__file__).parent.parent.parent
PROJECT_TOML_PATH = PROJECT_DIR / "pyproject.toml"

with open(PROJECT_TOML_PATH, "rb") as f:
    PYPROJECT_CONTENT = tomllib.load(f)["project"]


class Environment(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


class TokenCodecName(StrEnum):
    AES_GCM = "aes-gcm"
    JWE = "jwe"


def convert_app_name(s: str) -> str:
    return " ".join(word.capitalize() for word in s.split("-"))


def parse_credential_pairs(s: str) -> dict[str, str]:
    """
    Parse a comma-separated list of ``name:secret`` pairs.

    Entries without a separator or with an empty name are ignored.
    """
    pairs: dict[str, str] = {}

    for entry in s.split(","):
        name, sep, secret = entry.strip().partition(":")
        if sep and name:
            pairs[name] = secret

    return pairs


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=False,
        extra="ignore",
    )

    # App variables
    app_name: str = PYPROJECT_CONTENT["name"]
    app_title: str = os.getenv("APP_TITLE", convert_app_name(app_name))
    app_version: str = PYPROJECT_CONTENT["version"]
    app_description: str = PYPROJECT_CONTENT["description"]

    backend_host: str = "127.0.0.1"
    backend_port: int = 8000

    cors_origins: str = "*"

    # Number of workers for uvicorn
    workers_count: int = 1

    # Enable uvicorn reloading
    reload_uvicorn: bool = False

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    log_to_file: bool = True
    debug: bool = False

    # Token security settings
    secret_key: str
    access_token_expire_seconds: int = int(timedelta(hours=1).total_seconds())
    refresh_token_expire_seconds: int = int(timedelta(hours=24).total_seconds())
    authorization_code_expire_seconds: int = int(timedelta(minutes=5).total_seconds())
    token_codec: TokenCodecName = TokenCodecName.AES_GCM
    token_key_salt: str = "bearer-server"
    token_key_iterations: int = 100_000

    # Reference verifier
    refresh_token_rotation: bool = True
    bootstrap_users: str = ""  # "alice:secret,bob:secret"
    bootstrap_clients: str = ""  # "client-id:secret,..."

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS origins from a comma-separated string.
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @computed_field
    @property
    def bootstrap_users_map(self) -> dict[str, str]:
        """
        Usernames and passwords loaded into the in-memory verifier on startup.
        """
        return parse_credential_pairs(self.bootstrap_users)

    @computed_field
    @property
    def bootstrap_clients_map(self) -> dict[str, str]:
        """
        Client ids and secrets loaded into the in-memory verifier on startup.
        """
        return parse_credential_pairs(self.bootstrap_clients)

    @computed_field
    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.access_token_expire_seconds)

    @computed_field
    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.refresh_token_expire_seconds)


settings = Settings()  # type: ignore
