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
Bounded, cancellable GET requests on top of httpx.
"""

import anyio
import httpx

from coreason_discovery.exceptions import DiscoveryCancelledError, OversizedResponseError
from coreason_discovery.models import HttpContext
from coreason_discovery.utils.logger import logger

DEFAULT_MAX_BYTES = 1_000_000


async def read_response(client: httpx.AsyncClient, url: str, max_bytes: int = DEFAULT_MAX_BYTES) -> HttpContext:
    """
    Issues a GET and reads the body, whatever the status code.

    The body is streamed so a hostile provider cannot make us buffer more than `max_bytes`.

    Raises:
        OversizedResponseError: If the body exceeds `max_bytes`.
        httpx.HTTPError: On transport failures.
    """
    async with client.stream("GET", url, headers={"Accept": "application/json"}) as response:
        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > max_bytes:
            raise OversizedResponseError(f"Response size {content_length} exceeds limit of {max_bytes} bytes")

        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > max_bytes:
                raise OversizedResponseError(f"Response exceeds limit of {max_bytes} bytes")

        logger.debug(f"GET {url} -> {response.status_code} ({len(content)} bytes)")
        return HttpContext.from_httpx(response, bytes(content))


async def send_get(
    client: httpx.AsyncClient,
    url: str,
    *,
    cancel_event: anyio.Event | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> HttpContext:
    """
    Like `read_response`, but aborts when `cancel_event` is set.

    A set event is checked before anything is sent, so a request is never
    issued after cancellation was requested.

    Raises:
        DiscoveryCancelledError: If the event was set before or during the request.
        OversizedResponseError: If the body exceeds `max_bytes`.
        httpx.HTTPError: On transport failures.
    """
    if cancel_event is None:
        return await read_response(client, url, max_bytes)

    if cancel_event.is_set():
        raise DiscoveryCancelledError("The operation was cancelled")

    result: HttpContext | None = None
    failure: Exception | None = None

    async with anyio.create_task_group() as tg:

        async def _watch() -> None:
            await cancel_event.wait()
            tg.cancel_scope.cancel()

        tg.start_soon(_watch)
        try:
            result = await read_response(client, url, max_bytes)
        except Exception as e:
            # Raised outside the task group so callers see the bare exception
            failure = e
        tg.cancel_scope.cancel()

    if failure is not None:
        raise failure
    if result is None:
        raise DiscoveryCancelledError("The operation was cancelled")
    return result
