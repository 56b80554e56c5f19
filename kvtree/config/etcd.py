"""
etcd client configuration.

Extends base configuration with the connection settings of the etcd v2
keys API client. EtcdSettings declares every field the package reads, and
its singleton is the only settings instance.
"""

from __future__ import annotations

import pydantic

from kvtree.config.base import BaseKVTreeSettings, lazy_settings


class EtcdSettings(BaseKVTreeSettings):
    """etcd keys client configuration."""

    ETCD_ENDPOINT: str = 'http://127.0.0.1:2379'
    ETCD_REQUEST_TIMEOUT_SECONDS: float = 5.0
    ETCD_USERNAME: str | None = None
    ETCD_PASSWORD: pydantic.SecretStr | None = None

    @pydantic.field_validator('ETCD_ENDPOINT')
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an http(s) endpoint and drop the trailing slash."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('ETCD_ENDPOINT must start with http:// or https://')
        return v.rstrip('/')


# Module-level singleton (lazy-loaded)
settings = lazy_settings(EtcdSettings)


def call_timeout(explicit: float | None) -> float | None:
    """Deadline for one encode/decode call: the caller's, else the configured default."""
    return explicit if explicit is not None else settings.CALL_TIMEOUT_SECONDS
