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
Security gate and content policy for discovery documents.
"""

import httpx

from coreason_discovery.exceptions import InvalidOperationError, PolicyViolationError
from coreason_discovery.models import DiscoveryDocument, DiscoveryPolicy

# Document members that hold URLs besides the "*endpoint" ones
_URL_MEMBERS = frozenset({"jwks_uri", "check_session_iframe"})


def _normalize_authority(authority: str) -> str:
    value = authority.strip().rstrip("/")
    scheme, separator, rest = value.partition("://")
    if not separator:
        return value
    # Scheme and host are case insensitive, the path is not
    host, slash, path = rest.partition("/")
    return f"{scheme.lower()}://{host.lower()}{slash}{path}"


def authorities_match(left: str, right: str) -> bool:
    """Compares two authorities, ignoring scheme and host case and a trailing slash."""
    return _normalize_authority(left) == _normalize_authority(right)


def is_loopback(url: httpx.URL, policy: DiscoveryPolicy) -> bool:
    return url.host.lower() in policy.loopback_addresses


def is_secure_scheme(url: str | httpx.URL, policy: DiscoveryPolicy) -> bool:
    """
    Checks whether the policy allows contacting `url`.

    `https` always passes. `http` passes when HTTPS is not required, or when
    loopback hosts are exempted and the host is one of them.
    """
    parsed = url if isinstance(url, httpx.URL) else httpx.URL(url)

    if parsed.scheme == "https":
        return True
    if parsed.scheme != "http":
        return False
    if not policy.require_https:
        return True
    return policy.allow_http_on_loopback and is_loopback(parsed, policy)


def bind_authority(policy: DiscoveryPolicy, authority: str) -> DiscoveryPolicy:
    """
    Returns the policy to apply for a call against `authority`.

    An unbound policy is bound on a copy; a bound policy must already name `authority`.

    Raises:
        InvalidOperationError: If the policy is bound to a different authority.
    """
    if not policy.authority:
        return policy.model_copy(update={"authority": authority})

    if not authorities_match(policy.authority, authority):
        raise InvalidOperationError(
            f"Authority mismatch: policy expects '{policy.authority}' but the address resolves to '{authority}'"
        )
    return policy


def _is_under(url: httpx.URL, base: str) -> bool:
    try:
        base_url = httpx.URL(base)
    except httpx.InvalidURL:
        return False

    if (url.scheme, url.host.lower(), url.port) != (base_url.scheme, base_url.host.lower(), base_url.port):
        return False

    base_path = base_url.path.rstrip("/") + "/"
    return (url.path.rstrip("/") + "/").startswith(base_path)


def _validate_issuer(document: DiscoveryDocument, policy: DiscoveryPolicy) -> None:
    if not document.issuer:
        raise PolicyViolationError("Issuer name is missing")
    if policy.authority and not authorities_match(document.issuer, policy.authority):
        raise PolicyViolationError(f"Issuer name does not match authority: {document.issuer}")


def _validate_endpoint_urls(document: DiscoveryDocument, policy: DiscoveryPolicy) -> None:
    bases = [base for base in (policy.authority, *policy.additional_endpoint_base_addresses) if base]

    for name, value in document.to_dict().items():
        if name in policy.endpoint_validation_excludes or not isinstance(value, str):
            continue
        if not (name.endswith("endpoint") or name in _URL_MEMBERS):
            continue

        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise PolicyViolationError(f"Malformed endpoint: {value}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise PolicyViolationError(f"Malformed endpoint: {value}")

        if not is_secure_scheme(url, policy):
            raise PolicyViolationError(f"Endpoint does not use HTTPS: {value}")

        if bases and not any(_is_under(url, base) for base in bases):
            raise PolicyViolationError(f"Endpoint is on a different host than authority: {value}")


def validate_document(document: DiscoveryDocument, policy: DiscoveryPolicy) -> None:
    """
    Applies the content rules of `policy` to a parsed discovery document.

    Raises:
        PolicyViolationError: On the first rule the document breaks.
    """
    if policy.validate_issuer_name:
        _validate_issuer(document, policy)

    if policy.validate_endpoints:
        _validate_endpoint_urls(document, policy)

    if policy.require_key_set and not document.jwks_uri:
        raise PolicyViolationError("Key set is missing")
