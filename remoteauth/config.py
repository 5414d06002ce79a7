"""Remote authentication settings, loaded from the environment / .env."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENDPOINT_PATH = "/plugin/YubiKeyRemoteAuthenticator/auth/auth"
DEFAULT_TIMEOUT = 10.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


class RemoteAuthConfig(BaseModel):
    """Settings consumed by the remote authenticator. Passed explicitly, never global."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    server: str = ""  # Base URL of the remote identity server
    endpoint_path: str = DEFAULT_ENDPOINT_PATH
    identifier: str = ""  # Sent with every request to identify this installation
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)  # Seconds

    # Key material: inline PEM text wins over a path
    remote_public_key: Optional[str] = None
    remote_public_key_path: Optional[Path] = None
    local_private_key: Optional[str] = None
    local_private_key_path: Optional[Path] = None
    local_private_key_password: Optional[str] = None

    @property
    def endpoint_url(self) -> str:
        return f"{self.server.rstrip('/')}/{self.endpoint_path.lstrip('/')}"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "RemoteAuthConfig":
        """
        Build settings from environment variables.

        A .env file (the nearest one, or ``dotenv_path``) is loaded first;
        variables already set in the environment are not overridden.
        """
        load_dotenv(dotenv_path)

        return cls(
            enabled=_env_flag("REMOTE_AUTH_ENABLED"),
            server=os.getenv("REMOTE_AUTH_SERVER", ""),
            endpoint_path=os.getenv("REMOTE_AUTH_ENDPOINT", DEFAULT_ENDPOINT_PATH),
            identifier=os.getenv("REMOTE_AUTH_IDENTIFIER", ""),
            timeout=float(os.getenv("REMOTE_AUTH_TIMEOUT", DEFAULT_TIMEOUT)),
            remote_public_key=os.getenv("REMOTE_PUBLIC_KEY") or None,
            remote_public_key_path=_env_path("REMOTE_PUBLIC_KEY_PATH"),
            local_private_key=os.getenv("LOCAL_PRIVATE_KEY") or None,
            local_private_key_path=_env_path("LOCAL_PRIVATE_KEY_PATH"),
            local_private_key_password=os.getenv("LOCAL_PRIVATE_KEY_PASSWORD") or None,
        )
