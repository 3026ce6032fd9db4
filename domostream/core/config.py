"""Resolve stream upload configuration from profile, environment, and overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from domostream.core.auth import (
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)
from domostream.core.const import (
    API_URL,
    CONFIG_DIR_NAME,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SCOPES,
    TOKEN_URL,
)
from domostream.core.exceptions import ConfigError
from domostream.core.utils.byte_size import parse_bytes

_ENV_MAP: dict[str, str] = {
    "stream_id": "DOMO_STREAM_ID",
    "client_id": "DOMO_CLIENT_ID",
    "client_secret": "DOMO_CLIENT_SECRET",
    "access_token": "DOMO_ACCESS_TOKEN",
    "buffer_size": "DOMO_BUFFER_SIZE",
    "api_url": "DOMO_API_URL",
}


class StreamUploadConfig(BaseModel):
    """Configuration for a stream upload client.

    Attributes:
        stream_id: Domo stream to upload data parts to.
        client_id: Domo client application id.
        client_secret: Domo client application secret.
        access_token: Pre-issued access token, used instead of client credentials.
        buffer_size: Buffer size in bytes that triggers a data part upload.
        scopes: OAuth2 scopes requested with client credentials.
        api_url: Base URL of the Domo API.
        token_url: OAuth2 token endpoint.
        request_timeout: Timeout in seconds for each API request.
    """

    stream_id: int | None = None
    client_id: str | None = None
    client_secret: str | None = None
    access_token: str | None = None
    buffer_size: int = DEFAULT_BUFFER_SIZE
    scopes: list[str] = list(DEFAULT_SCOPES)
    api_url: str = API_URL
    token_url: str = TOKEN_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @field_validator("buffer_size", mode="before")
    @classmethod
    def _parse_buffer_size(cls, value: Any) -> int:
        size = parse_bytes(value)
        if size <= 0:
            raise ValueError("buffer_size must be positive")
        return size

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split()
        return value

    @property
    def initial_capacity(self) -> int:
        """Initial buffer capacity hint, 1.5 times the buffer size."""
        return (self.buffer_size * 3) // 2

    def build_token_provider(self) -> TokenProvider:
        """Build the token provider described by this configuration.

        Returns:
            A static provider when an access token is configured, otherwise a
            client-credentials provider.

        Raises:
            ConfigError: If neither an access token nor client credentials are set.
        """
        if self.access_token:
            return StaticTokenProvider(self.access_token)
        if self.client_id and self.client_secret:
            return ClientCredentialsTokenProvider(
                self.client_id,
                self.client_secret,
                scopes=self.scopes,
                token_url=self.token_url,
                timeout=self.request_timeout,
            )
        raise ConfigError(
            "Set DOMO_CLIENT_ID and DOMO_CLIENT_SECRET, or DOMO_ACCESS_TOKEN, "
            "to authenticate with Domo."
        )

    def require_stream_id(self) -> int:
        """Return the configured stream id or raise ConfigError."""
        if self.stream_id is None:
            raise ConfigError("No stream id configured")
        return self.stream_id


class ConfigManager:
    """Build the effective upload configuration from profile, env, and overrides."""

    def __init__(self, profile: str | None = None, home_path: Path | None = None):
        """Initialise ConfigManager.

        Args:
            profile: Name of the profile to load as the base configuration.
            home_path: Directory containing the ``.domostream`` folder.
        """
        self.profile = profile
        self._home_path = home_path or Path.home()

    def profiles_dir(self) -> Path:
        """Return the directory where profiles are stored."""
        return self._home_path / CONFIG_DIR_NAME / "profiles"

    def _profile_path(self) -> Path:
        if self.profile is None:
            raise ConfigError("No profile name given")
        return self.profiles_dir() / f"{self.profile}.yaml"

    def _load_profile(self) -> dict[str, Any]:
        if self.profile is None:
            return {}

        profile_path = self._profile_path()
        try:
            with profile_path.open("r") as profile_file:
                profile_data = yaml.safe_load(profile_file) or {}
        except FileNotFoundError as exc:
            raise ConfigError(f"Profile {self.profile!r} not found.") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Profile {self.profile!r} is not valid YAML.") from exc

        if not isinstance(profile_data, dict):
            raise ConfigError(f"Profile {self.profile!r} must be a mapping.")
        return profile_data

    def _read_env_overrides(self) -> dict[str, Any]:
        """Read configuration overrides from environment variables."""
        overrides: dict[str, Any] = {}
        for field_name, env_var_name in _ENV_MAP.items():
            env_value = os.getenv(env_var_name)
            if env_value:
                overrides[field_name] = env_value
        return overrides

    def resolve(self, overrides: dict[str, Any] | None = None) -> StreamUploadConfig:
        """Resolve the effective configuration.

        Args:
            overrides: Explicit values, e.g. from CLI options. ``None`` values
                are ignored.

        Returns:
            The merged ``StreamUploadConfig``.

        Raises:
            ConfigError: If the profile cannot be loaded or a value is invalid.
        """
        merged = self._load_profile()
        merged.update(self._read_env_overrides())
        if overrides:
            merged.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return StreamUploadConfig(**merged)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    def save_profile(self, config: StreamUploadConfig) -> Path:
        """Write a configuration to the current profile.

        Returns:
            Path of the written profile file.
        """
        profile_path = self._profile_path()
        profile_path.parent.mkdir(parents=True, exist_ok=True)
        with profile_path.open("w") as profile_file:
            yaml.safe_dump(config.model_dump(exclude_none=True), profile_file)
        return profile_path

    def update_profile(self, values: dict[str, Any]) -> Path:
        """Merge values into the current profile, creating it if missing.

        Fields not present in ``values``, or given as ``None``, keep their
        stored value.

        Returns:
            Path of the written profile file.

        Raises:
            ConfigError: If the stored profile is unreadable or the merged
                values are invalid.
        """
        merged = self._load_profile() if self._profile_path().exists() else {}
        merged.update({k: v for k, v in values.items() if v is not None})
        try:
            config = StreamUploadConfig(**merged)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
        return self.save_profile(config)
