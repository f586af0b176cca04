# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_discovery

"""
Client facades owning the HTTP client used for discovery.
"""

from contextlib import AbstractContextManager
from typing import Any

import anyio
import httpx
from anyio.from_thread import BlockingPortal, start_blocking_portal
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_discovery.config import DiscoveryConfig
from coreason_discovery.discovery import get_discovery_document
from coreason_discovery.models import DiscoveryPolicy, DiscoveryRequest
from coreason_discovery.response import DiscoveryResponse


class DiscoveryClientAsync:
    """
    Async discovery client.
    Handles resources via async context manager.
    """

    def __init__(self, config: DiscoveryConfig | None = None, client: httpx.AsyncClient | None = None) -> None:
        """
        Initialize the DiscoveryClientAsync.

        Args:
            config: The configuration object. Loaded from the environment when omitted.
            client: External async client (optional). If not provided, one is created from `config`
                and closed on exit.
        """
        self.config = config or DiscoveryConfig()
        self._internal_client = client is None

        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(
                base_url=self.config.address or "",
                timeout=self.config.http_timeout,
            )
            # Instrument the client for distributed tracing
            HTTPXClientInstrumentor().instrument_client(self._client)

    async def __aenter__(self) -> "DiscoveryClientAsync":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._internal_client:
            await self._client.aclose()

    async def get_discovery_document(
        self,
        address: str | None = None,
        policy: DiscoveryPolicy | None = None,
        cancel_event: anyio.Event | None = None,
    ) -> DiscoveryResponse:
        """
        Retrieves the discovery document and key set.

        Args:
            address: Authority or discovery URL. Defaults to the configured address.
            policy: Security policy for this call. Defaults to the configured policy.
            cancel_event: Aborts the call when set.

        Returns:
            DiscoveryResponse: Check `is_error` before using the document.

        Raises:
            DiscoveryAddressError: If no address is given or configured.
        """
        request = DiscoveryRequest(
            address=address or self.config.address,
            policy=policy or self.config.to_policy(),
            cancel_event=cancel_event,
        )
        return await get_discovery_document(self._client, request, max_bytes=self.config.max_response_bytes)


class DiscoveryClient:
    """
    Sync facade for DiscoveryClientAsync.

    Runs the async client on a background event loop through an anyio blocking portal.
    """

    def __init__(self, config: DiscoveryConfig | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._portal_cm: AbstractContextManager[BlockingPortal] = start_blocking_portal()
        self._portal = self._portal_cm.__enter__()
        self._async = DiscoveryClientAsync(config, client)
        self._closed = False

    def __enter__(self) -> "DiscoveryClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Releases the async client and stops the portal."""
        if self._closed:
            return
        self._closed = True
        try:
            self._portal.call(self._async.__aexit__, None, None, None)
        finally:
            self._portal_cm.__exit__(None, None, None)

    def get_discovery_document(
        self,
        address: str | None = None,
        policy: DiscoveryPolicy | None = None,
    ) -> DiscoveryResponse:
        """
        Retrieves the discovery document and key set.

        See `DiscoveryClientAsync.get_discovery_document`.
        """
        return self._portal.call(self._async.get_discovery_document, address, policy)
