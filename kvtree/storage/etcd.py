"""
etcd v2 keys API client.

Implements the KeysAPI protocol over HTTP with httpx. Connection settings
default to EtcdSettings (ETCD_ENDPOINT, ETCD_REQUEST_TIMEOUT_SECONDS,
ETCD_USERNAME, ETCD_PASSWORD).
"""

from __future__ import annotations

import urllib.parse
from types import TracebackType
from typing import Any, Self

import httpx
import pydantic

from kvtree.config.etcd import settings
from kvtree.exceptions import NodeNotFoundError, StoreError
from kvtree.schemas.etcd import EtcdErrorPayload, EtcdResponse
from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions


class EtcdKeysClient:
    """
    etcd v2 keys API client.

    One httpx.AsyncClient is shared by every request, so the client is safe
    for concurrent encode/decode calls. Use as an async context manager or
    call aclose() when done.
    """

    KEYS_PREFIX = '/v2/keys'
    KEY_NOT_FOUND = 100

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        timeout: float | None = None,
        username: str | None = None,
        password: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoint: Base URL, e.g. 'http://127.0.0.1:2379' (default: settings)
            timeout: Per-request timeout in seconds (default: settings)
            username: Basic auth user (default: settings)
            password: Basic auth password (default: settings)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        username = username if username is not None else settings.ETCD_USERNAME
        if password is None and settings.ETCD_PASSWORD is not None:
            password = settings.ETCD_PASSWORD.get_secret_value()

        self.endpoint = (endpoint or settings.ETCD_ENDPOINT).rstrip('/')
        self._client = httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=timeout if timeout is not None else settings.ETCD_REQUEST_TIMEOUT_SECONDS,
            auth=httpx.BasicAuth(username, password or '') if username else None,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    # ==========================================================================
    # KeysAPI
    # ==========================================================================

    async def get(self, path: str, options: GetOptions) -> Node:
        """Read the node at path (GET /v2/keys/<path>)."""
        params = _flags(recursive=options.recursive, sorted=options.sorted, quorum=options.quorum)
        response = await self._request('GET', path, params=params)
        return response.node.to_node()

    async def set(self, path: str, value: str, options: SetOptions) -> Node:
        """Write a leaf or create a directory (PUT /v2/keys/<path>)."""
        data: dict[str, str] = {} if options.dir else {'value': value}
        if options.dir:
            data['dir'] = 'true'
        if options.ttl is not None:
            data['ttl'] = str(options.ttl)
        if options.prev_value is not None:
            data['prevValue'] = options.prev_value
        if options.prev_exist is not None:
            data['prevExist'] = 'true' if options.prev_exist else 'false'

        response = await self._request('PUT', path, data=data)
        return response.node.to_node()

    async def delete(self, path: str, options: DeleteOptions) -> None:
        """Delete a key (DELETE /v2/keys/<path>)."""
        params = _flags(recursive=options.recursive, dir=options.dir)
        if options.prev_value is not None:
            params['prevValue'] = options.prev_value
        await self._request('DELETE', path, params=params)

    # ==========================================================================
    # HTTP
    # ==========================================================================

    def _url(self, path: str) -> str:
        return self.KEYS_PREFIX + urllib.parse.quote('/' + path.lstrip('/'), safe='/')

    async def _request(self, method: str, path: str, **kwargs: Any) -> EtcdResponse:
        """
        Send one keys API request and parse the response.

        Raises:
            NodeNotFoundError: For etcd error code 100
            StoreError: For any other error payload, HTTP failure or malformed body
        """
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(path, f'etcd request failed: {e}') from e

        if response.is_error:
            raise self._error(path, response)

        try:
            return EtcdResponse.model_validate_json(response.content)
        except pydantic.ValidationError as e:
            raise StoreError(path, f'Malformed etcd response: {e.error_count()} validation errors') from e

    def _error(self, path: str, response: httpx.Response) -> StoreError:
        try:
            payload = EtcdErrorPayload.model_validate_json(response.content)
        except pydantic.ValidationError:
            return StoreError(path, f'HTTP {response.status_code}: {response.text[:200]}')

        message = payload.message if not payload.cause else f'{payload.message}: {payload.cause}'
        if payload.errorCode == self.KEY_NOT_FOUND:
            return NodeNotFoundError(path, message, payload.errorCode)
        return StoreError(path, message, payload.errorCode)


def _flags(**flags: bool) -> dict[str, str]:
    """Query parameters for the boolean flags that are set."""
    return {name: 'true' for name, enabled in flags.items() if enabled}
