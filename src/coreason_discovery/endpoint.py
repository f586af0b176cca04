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
Resolution of the discovery address into an authority and a discovery URL.
"""

from typing import NamedTuple

import httpx

from coreason_discovery.exceptions import DiscoveryAddressError

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class DiscoveryEndpoint(NamedTuple):
    """The authority a discovery document belongs to and the URL it is fetched from."""

    authority: str
    url: str


def resolve_address(address: str | None, client: httpx.AsyncClient | None = None) -> str:
    """
    Picks the address to discover from.

    Args:
        address: Explicit address from the request. Wins when present.
        client: The HTTP client; its `base_url` is used as a fallback.

    Returns:
        str: The address to parse.

    Raises:
        DiscoveryAddressError: If neither an address nor a base URL is available.
    """
    if address and address.strip():
        return address.strip()

    if client is not None:
        base_url = str(client.base_url)
        if base_url:
            return base_url

    raise DiscoveryAddressError("An address is required.")


def parse_url(address: str) -> DiscoveryEndpoint:
    """
    Splits an address into authority and discovery URL.

    Accepts either the authority itself (``https://idp.example.com``) or the full
    discovery URL (``https://idp.example.com/.well-known/openid-configuration``).

    Raises:
        DiscoveryAddressError: If the address is not an absolute http(s) URL.
    """
    try:
        parsed = httpx.URL(address)
    except httpx.InvalidURL as e:
        raise DiscoveryAddressError(f"Malformed URL: {address}") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise DiscoveryAddressError(f"Malformed URL: {address}")

    url = address.rstrip("/")
    if url.lower().endswith(WELL_KNOWN_PATH):
        authority = url[: -len(WELL_KNOWN_PATH)]
    else:
        authority = url
        url = f"{authority}{WELL_KNOWN_PATH}"

    return DiscoveryEndpoint(authority=authority, url=url)
