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
Custom exceptions for the coreason-discovery package.
"""


class CoreasonDiscoveryError(Exception):
    """Base exception for all coreason-discovery errors."""


class DiscoveryAddressError(CoreasonDiscoveryError, ValueError):
    """
    Raised when no usable discovery address can be resolved.
    This is a caller error and is the only failure raised by `get_discovery_document`.
    """


class InvalidOperationError(CoreasonDiscoveryError):
    """Raised when the security gate refuses to contact a URL."""


class PolicyViolationError(CoreasonDiscoveryError):
    """Raised when a discovery document breaks the configured policy."""


class DiscoveryCancelledError(CoreasonDiscoveryError):
    """Raised when the caller's cancellation signal aborts a request."""


class OversizedResponseError(CoreasonDiscoveryError):
    """Raised when an HTTP response is too large."""
