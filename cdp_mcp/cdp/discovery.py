"""
HTTP discovery endpoints of a browser's remote debugging port.

``/json/version`` reports the browser build, ``/json`` lists targets. Only
``type == "page"`` targets are addressable tabs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from cdp_mcp.cdp.errors import CDPConnectionError
from cdp_mcp.models import BrowserVersion, TabInfo

logger = logging.getLogger(__name__)


class DiscoveryClient:
    """Reads version and tab information from ``http://host:port``.

    Example:
        discovery = DiscoveryClient("localhost", 9222)
        version = await discovery.version()
        tabs = await discovery.list_tabs()
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 9222,
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.host = host
        self.port = port
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _get_json(self, path: str) -> object:
        try:
            async with self._client() as client:
                response = await client.get(path)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            raise CDPConnectionError(
                f"Could not reach CDP endpoint {self.base_url}{path}: {e}"
            ) from e
        except ValueError as e:
            raise CDPConnectionError(f"Invalid JSON from {self.base_url}{path}") from e

    async def version(self) -> BrowserVersion:
        """Fetch ``/json/version``.

        Raises:
            CDPConnectionError: If the endpoint is unreachable or the payload is
                not a version object.
        """
        data = await self._get_json("/json/version")
        try:
            return BrowserVersion.model_validate(data)
        except ValidationError as e:
            raise CDPConnectionError(
                f"Unexpected /json/version payload from {self.base_url}: {e}"
            ) from e

    async def list_targets(self) -> list[TabInfo]:
        """Fetch every target listed by ``/json`` in browser order."""
        data = await self._get_json("/json")
        if not isinstance(data, list):
            raise CDPConnectionError(f"Unexpected /json payload from {self.base_url}")
        try:
            return [TabInfo.model_validate(item) for item in data]
        except ValidationError as e:
            raise CDPConnectionError(
                f"Unexpected /json entry from {self.base_url}: {e}"
            ) from e

    async def list_tabs(self) -> list[TabInfo]:
        """Fetch the page-typed targets only."""
        return [tab for tab in await self.list_targets() if tab.is_page]

    async def wait_until_ready(
        self,
        timeout: float = 10.0,
        interval: float = 0.2,
    ) -> Optional[BrowserVersion]:
        """Poll ``/json/version`` until it answers or ``timeout`` elapses.

        Returns:
            The version payload, or None on timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                return await self.version()
            except CDPConnectionError as e:
                logger.debug(f"CDP endpoint not ready yet: {e}")

            if loop.time() >= deadline:
                return None
            await asyncio.sleep(interval)
