# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_discovery

import pytest

from coreason_discovery.exceptions import InvalidOperationError, PolicyViolationError
from coreason_discovery.models import DiscoveryDocument, DiscoveryPolicy
from coreason_discovery.policy import authorities_match, bind_authority, is_secure_scheme, validate_document
from tests.conftest import AUTHORITY, discovery_json


def _document(**overrides: object) -> DiscoveryDocument:
    return DiscoveryDocument.model_validate(discovery_json(**overrides))


class TestSecureScheme:
    def test_https_always_allowed(self) -> None:
        assert is_secure_scheme("https://idp.example.com", DiscoveryPolicy())

    def test_http_rejected_by_default(self) -> None:
        assert not is_secure_scheme("http://idp.example.com", DiscoveryPolicy())

    @pytest.mark.parametrize("url", ["http://localhost:8080", "http://127.0.0.1", "http://[::1]:5000"])
    def test_http_allowed_on_loopback(self, url: str) -> None:
        assert is_secure_scheme(url, DiscoveryPolicy())

    def test_loopback_exemption_can_be_disabled(self) -> None:
        assert not is_secure_scheme("http://localhost", DiscoveryPolicy(allow_http_on_loopback=False))

    def test_custom_loopback_addresses(self) -> None:
        policy = DiscoveryPolicy(loopback_addresses=frozenset({"idp.test"}))
        assert is_secure_scheme("http://idp.test", policy)
        assert not is_secure_scheme("http://localhost", policy)

    def test_http_allowed_when_https_not_required(self) -> None:
        assert is_secure_scheme("http://idp.example.com", DiscoveryPolicy(require_https=False))

    def test_other_schemes_never_allowed(self) -> None:
        assert not is_secure_scheme("ftp://idp.example.com", DiscoveryPolicy(require_https=False))


class TestAuthorityBinding:
    def test_unbound_policy_is_bound_on_a_copy(self) -> None:
        policy = DiscoveryPolicy()
        bound = bind_authority(policy, AUTHORITY)

        assert bound.authority == AUTHORITY
        assert policy.authority is None
        assert bound is not policy

    def test_matching_authority_is_kept(self) -> None:
        policy = DiscoveryPolicy(authority="HTTPS://IDP.example.com/")
        assert bind_authority(policy, AUTHORITY) is policy

    def test_mismatch_raises(self) -> None:
        policy = DiscoveryPolicy(authority="https://a.example")
        with pytest.raises(InvalidOperationError, match="Authority mismatch"):
            bind_authority(policy, "https://b.example")

    def test_authorities_match(self) -> None:
        assert authorities_match("https://a.example/", "https://A.example")
        assert not authorities_match("https://a.example", "https://a.example.evil")

    def test_authority_path_is_case_sensitive(self) -> None:
        assert authorities_match("HTTPS://IdP.example.com/Tenant", "https://idp.example.com/Tenant/")
        assert not authorities_match("https://idp.example.com/Tenant", "https://idp.example.com/tenant")


class TestValidateDocument:
    def test_valid_document(self) -> None:
        validate_document(_document(), DiscoveryPolicy(authority=AUTHORITY))

    def test_missing_issuer(self) -> None:
        with pytest.raises(PolicyViolationError, match="Issuer name is missing"):
            validate_document(_document(issuer=None), DiscoveryPolicy(authority=AUTHORITY))

    def test_issuer_mismatch(self) -> None:
        with pytest.raises(PolicyViolationError, match="Issuer name does not match authority"):
            validate_document(_document(issuer="https://other.example"), DiscoveryPolicy(authority=AUTHORITY))

    def test_issuer_check_can_be_disabled(self) -> None:
        policy = DiscoveryPolicy(authority=AUTHORITY, validate_issuer_name=False)
        validate_document(_document(issuer="https://other.example"), policy)

    def test_issuer_trailing_slash_tolerated(self) -> None:
        validate_document(_document(issuer=f"{AUTHORITY}/"), DiscoveryPolicy(authority=AUTHORITY))

    def test_endpoint_on_other_host(self) -> None:
        document = _document(userinfo_endpoint="https://userinfo.example.net/me")
        with pytest.raises(PolicyViolationError, match="different host"):
            validate_document(document, DiscoveryPolicy(authority=AUTHORITY))

    def test_endpoint_host_prefix_is_not_enough(self) -> None:
        document = _document(token_endpoint="https://idp.example.com.evil.net/token")
        with pytest.raises(PolicyViolationError, match="different host"):
            validate_document(document, DiscoveryPolicy(authority=AUTHORITY))

    def test_endpoint_outside_authority_path(self) -> None:
        authority = f"{AUTHORITY}/tenant-a"
        document = DiscoveryDocument.model_validate(
            discovery_json(authority, token_endpoint=f"{AUTHORITY}/tenant-b/token")
        )
        with pytest.raises(PolicyViolationError, match="different host"):
            validate_document(document, DiscoveryPolicy(authority=authority))

    def test_endpoint_without_https(self) -> None:
        document = _document(token_endpoint="http://idp.example.com/connect/token")
        with pytest.raises(PolicyViolationError, match="does not use HTTPS"):
            validate_document(document, DiscoveryPolicy(authority=AUTHORITY))

    def test_malformed_endpoint(self) -> None:
        document = _document(token_endpoint="not-a-url")
        with pytest.raises(PolicyViolationError, match="Malformed endpoint"):
            validate_document(document, DiscoveryPolicy(authority=AUTHORITY))

    def test_additional_base_address(self) -> None:
        document = _document(jwks_uri="https://keys.example.net/jwks")
        policy = DiscoveryPolicy(authority=AUTHORITY, additional_endpoint_base_addresses=("https://keys.example.net",))
        validate_document(document, policy)

    def test_excluded_endpoint_is_skipped(self) -> None:
        document = _document(end_session_endpoint="https://logout.example.net/bye")
        policy = DiscoveryPolicy(authority=AUTHORITY, endpoint_validation_excludes=frozenset({"end_session_endpoint"}))
        validate_document(document, policy)

    def test_extension_endpoints_are_checked(self) -> None:
        document = _document(mtls_token_endpoint="https://mtls.example.net/token")
        with pytest.raises(PolicyViolationError, match="mtls.example.net"):
            validate_document(document, DiscoveryPolicy(authority=AUTHORITY))

    def test_endpoint_check_can_be_disabled(self) -> None:
        document = _document(token_endpoint="http://elsewhere.example.net/token")
        validate_document(document, DiscoveryPolicy(authority=AUTHORITY, validate_endpoints=False))

    def test_require_key_set(self) -> None:
        policy = DiscoveryPolicy(authority=AUTHORITY, require_key_set=True)
        with pytest.raises(PolicyViolationError, match="Key set is missing"):
            validate_document(_document(jwks_uri=None), policy)
