"""
HTTP transport for the Snake Ways API.

Thin wrapper over httpx that sends the API key and decodes JSON bodies.
"""

from typing import Any, Dict, Optional

import httpx

from snakeways_sync.config.loader import UpstreamConfig


class Transport:
    """Async HTTP transport bound to the appliance base URL.

    Non-2xx responses raise ``httpx.HTTPStatusError``; network failures
    raise the corresponding ``httpx.RequestError`` subclass.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 3.0,
        verify_ssl: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the transport.

        Args:
            base_url: Base URL of the appliance API
            api_key: Key sent in the ``X-API-KEY`` header
            timeout: Per-call timeout in seconds
            verify_ssl: Verify the server certificate
            transport: Optional httpx transport, used by tests
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-KEY"] = api_key
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: UpstreamConfig) -> "Transport":
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None if empty)."""
        response = await self._client.request(method, endpoint, params=params, json=json)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, payload: Optional[Any] = None) -> Any:
        return await self.request("POST", endpoint, json=payload)

    async def put(self, endpoint: str, payload: Optional[Any] = None) -> Any:
        return await self.request("PUT", endpoint, json=payload)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
