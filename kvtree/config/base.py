"""
Base configuration for kvtree.

Shared settings fields and the helpers that load them. Only subclasses are
instantiated: the package reads one singleton built from the class that
declares every field (kvtree.config.etcd).
"""

from __future__ import annotations

import os
import pathlib
from typing import TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

T = TypeVar('T', bound='BaseKVTreeSettings')


class BaseKVTreeSettings(pydantic_settings.BaseSettings):
    """Shared configuration across the encoder, decoder and CLI."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown .env entries
    )

    # Application metadata
    APP_NAME: str = 'kvtree'
    VERSION: str = '0.1.0'

    # Deadline applied to a whole encode/decode call when the caller sets none
    CALL_TIMEOUT_SECONDS: float | None = None

    @pydantic.field_validator('CALL_TIMEOUT_SECONDS')
    @classmethod
    def validate_call_timeout(cls, v: float | None) -> float | None:
        """Validate the call timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError('CALL_TIMEOUT_SECONDS must be positive')
        return v


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Factory for creating settings with dynamic .env file loading.

    LOAD_ENV_FILE environment variable specifies custom .env file path.
    When unset, loads from environment variables only.

    Args:
        settings_class: Settings class to instantiate
        env_file: Optional path to .env file (overrides LOAD_ENV_FILE)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If specified .env file doesn't exist
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class()  # No .env file, load from environment only

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T]) -> T:
    """
    Lazy settings - defers instantiation until first access.

    Args:
        settings_class: Settings class to instantiate

    Returns:
        Proxy that instantiates settings on first access
    """
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))
