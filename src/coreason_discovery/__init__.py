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
OpenID Connect discovery for relying parties: fetches and validates the provider
metadata document and its signing keys, reporting failures as response envelopes.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .client import DiscoveryClient, DiscoveryClientAsync
from .config import DiscoveryConfig
from .discovery import fetch_discovery_document, fetch_key_set, get_discovery_document
from .exceptions import CoreasonDiscoveryError, DiscoveryAddressError
from .models import (
    DiscoveryDocument,
    DiscoveryPolicy,
    DiscoveryRequest,
    ErrorKind,
    HttpContext,
    JsonWebKey,
    JsonWebKeySet,
)
from .response import DiscoveryResponse, KeySetResponse, ProtocolResponse

__all__ = [
    "CoreasonDiscoveryError",
    "DiscoveryAddressError",
    "DiscoveryClient",
    "DiscoveryClientAsync",
    "DiscoveryConfig",
    "DiscoveryDocument",
    "DiscoveryPolicy",
    "DiscoveryRequest",
    "DiscoveryResponse",
    "ErrorKind",
    "HttpContext",
    "JsonWebKey",
    "JsonWebKeySet",
    "KeySetResponse",
    "ProtocolResponse",
    "fetch_discovery_document",
    "fetch_key_set",
    "get_discovery_document",
]
