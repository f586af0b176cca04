# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_discovery

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

AUTHORITY = "https://idp.example.com"
DISCOVERY_URL = f"{AUTHORITY}/.well-known/openid-configuration"
JWKS_URL = f"{AUTHORITY}/.well-known/jwks.json"

RSA_KEY: dict[str, Any] = {
    "kty": "RSA",
    "use": "sig",
    "kid": "key-1",
    "alg": "RS256",
    "n": (
        "iZ8TVwG_ReWL7AFxUDcyRbuumZlTa4noIFkJwVZPDav5WZUdvhvLu2cwb3kB-tE5wfrR0ZMXWkl9SlLgjrcMtbMHamNzEgfJeJO_"
        "lNFAWIBXGrhLe3XmfgP7MW0pPc7M8UrFUZXHoXvnyeUrPhaUF04iObU9azWSsBqhr3zcWEGpwWmO-bMFYWpfoLcecQ7cF2wcDG2A"
        "Tb9ePqn7534aTSi5-l2rWUMCiNGKK9Q1Rk_cDMcHgMcYos0RntNmW-2Qq0SFdBXKm28VJVeSjO97cvDebrRtbHRs6clmY8-VT7oN"
        "c-PV1XpA-ngSRWtbzqQAq4b4o5i8NdvejjXgGWS5sQ"
    ),
    "e": "AQAB",
}

Route = httpx.Response | Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def discovery_json(authority: str = AUTHORITY, **overrides: Any) -> dict[str, Any]:
    """A typical provider metadata document rooted at `authority`."""
    document: dict[str, Any] = {
        "issuer": authority,
        "authorization_endpoint": f"{authority}/connect/authorize",
        "token_endpoint": f"{authority}/connect/token",
        "userinfo_endpoint": f"{authority}/connect/userinfo",
        "end_session_endpoint": f"{authority}/connect/endsession",
        "jwks_uri": f"{authority}/.well-known/jwks.json",
        "scopes_supported": ["openid", "profile", "email", "offline_access"],
        "response_types_supported": ["code", "id_token", "code id_token"],
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": ["RS256"],
        "frontchannel_logout_supported": True,
        "x_custom_feature": {"enabled": True},
    }
    for key, value in overrides.items():
        if value is None:
            document.pop(key, None)
        else:
            document[key] = value
    return document


def jwks_json(*keys: dict[str, Any]) -> dict[str, Any]:
    return {"keys": list(keys) if keys else [RSA_KEY]}


class FakeIdP:
    """
    In-memory identity provider served through httpx.MockTransport.
    Unknown URLs answer 404; every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    @property
    def requested_urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if isinstance(route, httpx.Response):
            return route
        result = route(request)
        if isinstance(result, httpx.Response):
            return result
        return await result

    def client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), **kwargs)


@pytest.fixture
def idp() -> FakeIdP:
    """A provider publishing a valid document and key set at the default authority."""
    fake = FakeIdP()
    fake.routes[DISCOVERY_URL] = httpx.Response(200, json=discovery_json())
    fake.routes[JWKS_URL] = httpx.Response(200, json=jwks_json())
    return fake
