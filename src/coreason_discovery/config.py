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
Configuration for the coreason-discovery package.
"""

import httpx
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_discovery.models import DEFAULT_LOOPBACK_ADDRESSES, DiscoveryPolicy
from coreason_discovery.transport import DEFAULT_MAX_BYTES


class DiscoveryConfig(BaseSettings):
    """
    Configuration settings for coreason-discovery.

    Attributes:
        address (str | None): Default authority or discovery URL (e.g. https://auth.coreason.com).
        http_timeout (float): Timeout in seconds for each IdP request.
        max_response_bytes (int): Upper bound on each response body.
        require_https (bool): Reject plain http URLs.
        allow_http_on_loopback (bool): Accept http for loopback hosts.
        validate_issuer_name (bool): Require the document issuer to equal the authority.
        validate_endpoints (bool): Require endpoints to be secure and under the authority.
        require_key_set (bool): Require the document to declare a jwks_uri.
        additional_endpoint_base_addresses (list[str]): Extra bases endpoints may live under.
        endpoint_validation_excludes (list[str]): Document members skipped by endpoint validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_DISCOVERY_",
        case_sensitive=False,
    )

    address: str | None = None
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for all IdP network operations.")
    max_response_bytes: int = Field(default=DEFAULT_MAX_BYTES, gt=0)
    require_https: bool = True
    allow_http_on_loopback: bool = True
    validate_issuer_name: bool = True
    validate_endpoints: bool = True
    require_key_set: bool = False
    additional_endpoint_base_addresses: list[str] = Field(default_factory=list)
    endpoint_validation_excludes: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_https(self) -> "DiscoveryConfig":
        """
        Ensures the default address uses HTTPS unless the policy relaxes it.
        """
        if not self.address or not self.address.startswith("http://") or not self.require_https:
            return self

        host = httpx.URL(self.address).host.lower()
        if self.allow_http_on_loopback and host in DEFAULT_LOOPBACK_ADDRESSES:
            return self

        raise ValueError(
            "HTTPS is required for the discovery address. "
            "Set 'require_https=False' only for local testing."
        )

    def to_policy(self, authority: str | None = None) -> DiscoveryPolicy:
        """
        Builds the discovery policy described by this configuration.

        Args:
            authority: Authority to bind the policy to. Left unbound when omitted.
        """
        return DiscoveryPolicy(
            authority=authority,
            require_https=self.require_https,
            allow_http_on_loopback=self.allow_http_on_loopback,
            validate_issuer_name=self.validate_issuer_name,
            validate_endpoints=self.validate_endpoints,
            require_key_set=self.require_key_set,
            additional_endpoint_base_addresses=tuple(self.additional_endpoint_base_addresses),
            endpoint_validation_excludes=frozenset(self.endpoint_validation_excludes),
        )
