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
Discovery orchestrator: resolves the address, applies the security gate,
fetches the discovery document and then the provider's key set.
"""

import anyio
import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_discovery.endpoint import DiscoveryEndpoint, parse_url, resolve_address
from coreason_discovery.exceptions import InvalidOperationError
from coreason_discovery.models import DiscoveryPolicy, DiscoveryRequest, ErrorKind
from coreason_discovery.policy import bind_authority, is_secure_scheme
from coreason_discovery.response import DiscoveryResponse, KeySetResponse
from coreason_discovery.transport import DEFAULT_MAX_BYTES, send_get
from coreason_discovery.utils.logger import logger

tracer = trace.get_tracer(__name__)


def _describe(exc: Exception) -> str:
    return str(exc).strip().rstrip(".") or type(exc).__name__


async def fetch_discovery_document(
    client: httpx.AsyncClient,
    url: str,
    policy: DiscoveryPolicy,
    *,
    cancel_event: anyio.Event | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> DiscoveryResponse:
    """
    Fetches and parses the discovery document at `url`.

    Never raises: transport faults, HTTP errors and bad content all come back
    as error responses.

    Args:
        client: The HTTP client.
        url: The full discovery URL.
        policy: The (authority bound) policy used to validate the content.
        cancel_event: Aborts the request when set.
        max_bytes: Upper bound on the body size.

    Returns:
        DiscoveryResponse: The parsed document or the failure.
    """
    try:
        raw = await send_get(client, url, cancel_event=cancel_event, max_bytes=max_bytes)
    except Exception as e:
        logger.warning(f"Discovery request to {url} failed: {e!r}")
        return DiscoveryResponse.from_exception(e, f"Error connecting to {url}. {_describe(e)}.")

    if not raw.is_success:
        logger.warning(f"Discovery request to {url} returned HTTP {raw.status_code}")
        return DiscoveryResponse.from_http_response(raw, f"Error connecting to {url}: {raw.reason_phrase}")

    try:
        return DiscoveryResponse.from_http_response(raw, policy=policy)
    except Exception as e:
        logger.exception(f"Unexpected error while parsing discovery document from {url}")
        return DiscoveryResponse.from_exception(e, f"Error connecting to {url}. {_describe(e)}.", raw)


async def fetch_key_set(
    client: httpx.AsyncClient,
    jwks_uri: str,
    *,
    cancel_event: anyio.Event | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> KeySetResponse:
    """
    Fetches and parses the JSON Web Key Set at `jwks_uri`.

    Never raises; see `fetch_discovery_document`.
    """
    try:
        raw = await send_get(client, jwks_uri, cancel_event=cancel_event, max_bytes=max_bytes)
    except Exception as e:
        logger.warning(f"Key set request to {jwks_uri} failed: {e!r}")
        return KeySetResponse.from_exception(e, f"Error connecting to {jwks_uri}. {_describe(e)}.")

    if not raw.is_success:
        logger.warning(f"Key set request to {jwks_uri} returned HTTP {raw.status_code}")
        return KeySetResponse.from_http_response(raw, f"Error connecting to {jwks_uri}: {raw.reason_phrase}")

    try:
        return KeySetResponse.from_http_response(raw)
    except Exception as e:
        logger.exception(f"Unexpected error while parsing key set from {jwks_uri}")
        return KeySetResponse.from_exception(e, f"Error connecting to {jwks_uri}. {_describe(e)}.", raw)


async def _run(
    client: httpx.AsyncClient,
    endpoint: DiscoveryEndpoint,
    request: DiscoveryRequest,
    max_bytes: int,
) -> DiscoveryResponse:
    url = endpoint.url

    try:
        policy = bind_authority(request.policy, endpoint.authority)
    except InvalidOperationError as e:
        logger.warning(f"Refusing discovery for {url}: {e}")
        return DiscoveryResponse.from_exception(e, f"Error connecting to {url}. {_describe(e)}.")

    if not is_secure_scheme(url, policy):
        logger.warning(f"Refusing discovery for {url}: HTTPS required")
        return DiscoveryResponse.from_exception(
            InvalidOperationError("HTTPS required"), f"Error connecting to {url}. HTTPS required."
        )

    disco = await fetch_discovery_document(
        client, url, policy, cancel_event=request.cancel_event, max_bytes=max_bytes
    )
    if disco.is_error:
        return disco

    jwks_uri = disco.jwks_uri
    if not jwks_uri:
        logger.debug(f"Discovery document from {url} declares no jwks_uri")
        return disco

    if not is_secure_scheme(jwks_uri, policy):
        logger.warning(f"Refusing key set download from {jwks_uri}: HTTPS required")
        return DiscoveryResponse.from_exception(
            InvalidOperationError("HTTPS required"), f"Error connecting to {jwks_uri}. HTTPS required."
        )

    keys = await fetch_key_set(client, jwks_uri, cancel_event=request.cancel_event, max_bytes=max_bytes)
    if keys.is_error or keys.payload is None:
        # A key set failure fails the whole retrieval
        return DiscoveryResponse.from_error(
            keys.error_kind or ErrorKind.EXCEPTION,
            keys.error or f"Error connecting to {jwks_uri}.",
            keys.raw,
            keys.exception,
        )

    logger.debug(f"Loaded {len(keys.payload.keys)} signing key(s) from {jwks_uri}")
    return disco.with_key_set(keys.payload)


async def get_discovery_document(
    client: httpx.AsyncClient,
    request: DiscoveryRequest | str | None = None,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> DiscoveryResponse:
    """
    Retrieves and validates an OIDC discovery document and its signing keys.

    Emits an OpenTelemetry span `get_discovery_document`.

    Args:
        client: The HTTP client. Its `base_url` is used when the request carries no address.
        request: A `DiscoveryRequest`, a bare address, or None to use the client's base URL.
        max_bytes: Upper bound on each response body.

    Returns:
        DiscoveryResponse: Check `is_error` before using the document.

    Raises:
        DiscoveryAddressError: If no address is available or the address is malformed.
    """
    if request is None:
        request = DiscoveryRequest()
    elif isinstance(request, str):
        request = DiscoveryRequest(address=request)

    endpoint = parse_url(resolve_address(request.address, client))

    with tracer.start_as_current_span("get_discovery_document") as span:
        span.set_attribute("discovery.url", endpoint.url)
        span.set_attribute("discovery.authority", endpoint.authority)

        response = await _run(client, endpoint, request, max_bytes)

        if response.is_error:
            span.set_attribute("discovery.error_kind", str(response.error_kind))
            span.set_status(Status(StatusCode.ERROR, response.error))
        else:
            logger.info(f"Discovery document loaded from {endpoint.url}")

        return response
