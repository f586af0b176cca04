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
Data models for the coreason-discovery package.
"""

from enum import StrEnum
from typing import Any

import anyio
import httpx
from authlib.jose import JsonWebKey as AuthlibJsonWebKey
from authlib.jose import KeySet
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LOOPBACK_ADDRESSES = frozenset({"localhost", "127.0.0.1", "::1"})


class ErrorKind(StrEnum):
    """Classifies why a discovery call failed."""

    INVALID_OPERATION = "invalid_operation"
    EXCEPTION = "exception"
    HTTP = "http"
    POLICY_VIOLATION = "policy_violation"
    JSON = "json"
    PROTOCOL = "protocol"


class HttpContext(BaseModel):
    """
    The raw HTTP exchange behind a response, kept for diagnostics.

    Attributes:
        url (str): The URL that was requested.
        status_code (int): The HTTP status code.
        reason_phrase (str): The HTTP reason phrase (e.g. "Not Found").
        headers (dict[str, str]): Response headers.
        body (str | None): The undecoded-as-JSON response body.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int
    reason_phrase: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def from_httpx(cls, response: httpx.Response, content: bytes) -> "HttpContext":
        """
        Builds the context from a streamed httpx response and the bytes read from it.
        """
        encoding = response.charset_encoding or "utf-8"
        return cls(
            url=str(response.request.url),
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=dict(response.headers),
            body=content.decode(encoding, errors="replace") if content else None,
        )


class JsonWebKey(BaseModel):
    """A single JSON Web Key (RFC 7517). Unknown members are preserved."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    kty: str
    use: str | None = None
    kid: str | None = None
    alg: str | None = None
    key_ops: list[str] | None = None
    n: str | None = None
    e: str | None = None
    crv: str | None = None
    x: str | None = None
    y: str | None = None
    x5u: str | None = None
    x5c: list[str] | None = None
    x5t: str | None = None
    x5t_s256: str | None = Field(default=None, alias="x5t#S256")


class JsonWebKeySet(BaseModel):
    """
    Ordered collection of signing keys published at the provider's `jwks_uri`.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    keys: list[JsonWebKey]

    def find(self, kid: str) -> JsonWebKey | None:
        """Returns the key with the given key id, if published."""
        return next((key for key in self.keys if key.kid == kid), None)

    def to_dict(self) -> dict[str, Any]:
        """Returns the key set as it was published."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def to_authlib(self) -> KeySet:
        """
        Imports the key set into authlib for signature verification.

        Raises:
            ValueError: If a key cannot be imported (e.g. unsupported `kty`).
        """
        return AuthlibJsonWebKey.import_key_set(self.to_dict())


class DiscoveryDocument(BaseModel):
    """
    OIDC provider metadata from .well-known/openid-configuration.

    Only the commonly used members are typed; everything else the provider
    publishes is kept and reachable through the `try_get_*` helpers.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    issuer: str | None = None
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    jwks_uri: str | None = None
    registration_endpoint: str | None = None
    end_session_endpoint: str | None = None
    check_session_iframe: str | None = None
    introspection_endpoint: str | None = None
    revocation_endpoint: str | None = None
    device_authorization_endpoint: str | None = None
    pushed_authorization_request_endpoint: str | None = None
    backchannel_authentication_endpoint: str | None = None
    scopes_supported: list[str] | None = None
    claims_supported: list[str] | None = None
    response_types_supported: list[str] | None = None
    response_modes_supported: list[str] | None = None
    grant_types_supported: list[str] | None = None
    subject_types_supported: list[str] | None = None
    id_token_signing_alg_values_supported: list[str] | None = None
    token_endpoint_auth_methods_supported: list[str] | None = None
    token_endpoint_auth_signing_alg_values_supported: list[str] | None = None
    code_challenge_methods_supported: list[str] | None = None
    frontchannel_logout_supported: bool | None = None
    frontchannel_logout_session_supported: bool | None = None
    backchannel_logout_supported: bool | None = None
    backchannel_logout_session_supported: bool | None = None
    request_parameter_supported: bool | None = None
    request_uri_parameter_supported: bool | None = None
    require_pushed_authorization_requests: bool | None = None

    key_set: JsonWebKeySet | None = Field(default=None, exclude=True)

    def to_dict(self) -> dict[str, Any]:
        """Returns the document members exactly as the provider published them."""
        return self.model_dump(mode="json", exclude_unset=True)

    def with_key_set(self, key_set: JsonWebKeySet) -> "DiscoveryDocument":
        return self.model_copy(update={"key_set": key_set})

    def try_get_value(self, name: str) -> Any:
        return self.to_dict().get(name)

    def try_get_string(self, name: str) -> str | None:
        value = self.try_get_value(name)
        return value if isinstance(value, str) else None

    def try_get_boolean(self, name: str) -> bool | None:
        value = self.try_get_value(name)
        return value if isinstance(value, bool) else None

    def try_get_string_array(self, name: str) -> list[str]:
        value = self.try_get_value(name)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]


class DiscoveryPolicy(BaseModel):
    """
    Security policy applied to a discovery call.

    The policy is frozen; binding an authority produces a per-call copy and
    never changes the caller's object.

    Attributes:
        authority (str | None): Authority the result must belong to. Bound to the resolved authority when unset.
        require_https (bool): Reject plain `http` URLs.
        allow_http_on_loopback (bool): Accept `http` for loopback hosts even when HTTPS is required.
        loopback_addresses (frozenset[str]): Hosts treated as loopback.
        validate_issuer_name (bool): The document's `issuer` must equal the authority.
        validate_endpoints (bool): Endpoint URLs must be secure and live under the authority.
        endpoint_validation_excludes (frozenset[str]): Document members skipped by endpoint validation.
        additional_endpoint_base_addresses (tuple[str, ...]): Extra bases endpoints may live under.
        require_key_set (bool): The document must declare a `jwks_uri`.
    """

    model_config = ConfigDict(frozen=True)

    authority: str | None = None
    require_https: bool = True
    allow_http_on_loopback: bool = True
    loopback_addresses: frozenset[str] = DEFAULT_LOOPBACK_ADDRESSES
    validate_issuer_name: bool = True
    validate_endpoints: bool = True
    endpoint_validation_excludes: frozenset[str] = frozenset()
    additional_endpoint_base_addresses: tuple[str, ...] = ()
    require_key_set: bool = False


class DiscoveryRequest(BaseModel):
    """
    A single discovery call.

    Attributes:
        address (str | None): Authority or full discovery URL. Falls back to the client's base URL.
        policy (DiscoveryPolicy): The security policy for this call.
        cancel_event (anyio.Event | None): Setting this event aborts the call.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    address: str | None = None
    policy: DiscoveryPolicy = Field(default_factory=DiscoveryPolicy)
    cancel_event: anyio.Event | None = Field(default=None, exclude=True)
