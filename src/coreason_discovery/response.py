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
Success/error envelopes returned by the discovery fetchers.
"""

import json
from abc import abstractmethod
from typing import Any, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coreason_discovery.exceptions import InvalidOperationError, PolicyViolationError
from coreason_discovery.models import (
    DiscoveryDocument,
    DiscoveryPolicy,
    ErrorKind,
    HttpContext,
    JsonWebKeySet,
)
from coreason_discovery.policy import validate_document

PayloadT = TypeVar("PayloadT")


class ProtocolResponse(BaseModel, Generic[PayloadT]):
    """
    Tagged result of one protocol exchange.

    On success `payload` holds the parsed content and `error_kind` is None.
    On failure `error_kind` and `error` describe what went wrong; `raw`
    keeps the HTTP exchange whenever one took place.

    Build errors with `from_exception` or `from_http_response` only.
    Abstract: use a subclass that implements `parse_payload`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    payload: PayloadT | None = None
    raw: HttpContext | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    exception: Exception | None = Field(default=None, exclude=True, repr=False)

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None

    @property
    def http_status_code(self) -> int | None:
        return self.raw.status_code if self.raw else None

    @property
    def http_error_reason(self) -> str | None:
        if self.raw is None or self.raw.is_success:
            return None
        return self.raw.reason_phrase

    @classmethod
    def success(cls, payload: PayloadT, raw: HttpContext | None = None) -> Self:
        return cls(payload=payload, raw=raw)

    @classmethod
    def from_error(
        cls,
        kind: ErrorKind,
        message: str,
        raw: HttpContext | None = None,
        exception: Exception | None = None,
    ) -> Self:
        return cls(error_kind=kind, error=message, raw=raw, exception=exception)

    @classmethod
    def from_exception(cls, exception: Exception, message: str | None = None, raw: HttpContext | None = None) -> Self:
        """
        Wraps a caught fault.

        `InvalidOperationError` maps to `ErrorKind.INVALID_OPERATION`, everything else to `ErrorKind.EXCEPTION`.
        """
        kind = ErrorKind.INVALID_OPERATION if isinstance(exception, InvalidOperationError) else ErrorKind.EXCEPTION
        return cls.from_error(kind, message or str(exception) or type(exception).__name__, raw, exception)

    @classmethod
    def from_http_response(
        cls,
        raw: HttpContext,
        error: str | None = None,
        policy: DiscoveryPolicy | None = None,
    ) -> Self:
        """
        Wraps a completed HTTP exchange.

        Non-2xx responses become `ErrorKind.HTTP`. A 2xx body is parsed as a
        JSON object and handed to `parse_payload`; content problems become
        `JSON`, `PROTOCOL` or `POLICY_VIOLATION` errors.

        Args:
            raw: The exchange.
            error: Message for a non-2xx response.
            policy: Content policy handed to `parse_payload`.
        """
        if not raw.is_success:
            return cls.from_error(ErrorKind.HTTP, error or f"HTTP {raw.status_code}: {raw.reason_phrase}", raw)

        try:
            data = json.loads(raw.body or "")
        except json.JSONDecodeError as e:
            return cls.from_error(ErrorKind.JSON, f"Invalid JSON response from {raw.url}: {e}", raw, e)

        if not isinstance(data, dict):
            return cls.from_error(ErrorKind.JSON, f"Expected a JSON object from {raw.url}", raw)

        if "error" in data:
            message = str(data["error"])
            if data.get("error_description"):
                message = f"{message}: {data['error_description']}"
            return cls.from_error(ErrorKind.PROTOCOL, f"Error response from {raw.url}: {message}", raw)

        try:
            payload = cls.parse_payload(data, policy)
        except PolicyViolationError as e:
            return cls.from_error(ErrorKind.POLICY_VIOLATION, f"Policy violation for {raw.url}: {e}", raw, e)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "<root>"
            return cls.from_error(
                ErrorKind.JSON, f"Malformed response from {raw.url}: {location}: {first['msg']}", raw, e
            )

        return cls.success(payload, raw)

    @classmethod
    @abstractmethod
    def parse_payload(cls, data: dict[str, Any], policy: DiscoveryPolicy | None) -> PayloadT:
        """Builds the payload from a decoded JSON object."""


class KeySetResponse(ProtocolResponse[JsonWebKeySet]):
    """Result of fetching the provider's JSON Web Key Set."""

    @classmethod
    def parse_payload(cls, data: dict[str, Any], policy: DiscoveryPolicy | None) -> JsonWebKeySet:
        return JsonWebKeySet.model_validate(data)


class DiscoveryResponse(ProtocolResponse[DiscoveryDocument]):
    """
    Result of a discovery call.

    The document accessors return None when the call failed.
    """

    @classmethod
    def parse_payload(cls, data: dict[str, Any], policy: DiscoveryPolicy | None) -> DiscoveryDocument:
        document = DiscoveryDocument.model_validate(data)
        if policy is not None:
            validate_document(document, policy)
        return document

    @property
    def document(self) -> DiscoveryDocument | None:
        return self.payload

    @property
    def issuer(self) -> str | None:
        return self.payload.issuer if self.payload else None

    @property
    def authorization_endpoint(self) -> str | None:
        return self.payload.authorization_endpoint if self.payload else None

    @property
    def token_endpoint(self) -> str | None:
        return self.payload.token_endpoint if self.payload else None

    @property
    def userinfo_endpoint(self) -> str | None:
        return self.payload.userinfo_endpoint if self.payload else None

    @property
    def jwks_uri(self) -> str | None:
        return self.payload.jwks_uri if self.payload else None

    @property
    def key_set(self) -> JsonWebKeySet | None:
        return self.payload.key_set if self.payload else None

    def with_key_set(self, key_set: JsonWebKeySet) -> "DiscoveryResponse":
        """Returns a copy of this successful response with `key_set` attached to the document."""
        if self.payload is None:
            raise ValueError("Cannot attach a key set to a failed discovery response")
        return self.model_copy(update={"payload": self.payload.with_key_set(key_set)})
