"""Tests for hub_bootstrap.certificates.issuer — ServerCertificateIssuer."""
from __future__ import annotations

import ipaddress
import logging

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from hub_bootstrap.authority import AuthorityIdentity
from hub_bootstrap.certificates.issuer import (
    AltNames,
    IssuanceError,
    ServerCertificateIssuer,
    ServerCertRequest,
    parse_ips,
    sign_server_certificate,
)
from hub_bootstrap.config import HubConfig


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def authority() -> AuthorityIdentity:
    return AuthorityIdentity.generate()


@pytest.fixture()
def issuer(authority: AuthorityIdentity) -> ServerCertificateIssuer:
    return ServerCertificateIssuer(authority)


@pytest.fixture()
def request_() -> ServerCertRequest:
    return ServerCertRequest(
        common_name="hub",
        organization="Acme",
        alt_names=AltNames.from_strings(["hub.example.com"], ["10.0.0.1", "not-an-ip"]),
    )


def _san(cert_der: bytes) -> x509.SubjectAlternativeName:
    cert = x509.load_der_x509_certificate(cert_der)
    return cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value


# ---------------------------------------------------------------------------
# parse_ips
# ---------------------------------------------------------------------------


class TestParseIps:
    def test_valid_ipv4_and_ipv6(self) -> None:
        assert parse_ips(["10.0.0.1", "::1"]) == [
            ipaddress.ip_address("10.0.0.1"),
            ipaddress.ip_address("::1"),
        ]

    def test_malformed_entries_dropped(self) -> None:
        assert parse_ips(["not-an-ip", "300.1.1.1", ""]) == []

    def test_malformed_entry_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="hub_bootstrap.certificates.issuer"):
            parse_ips(["bogus"])
        assert "bogus" in caplog.text

    def test_surrounding_whitespace_ignored(self) -> None:
        assert parse_ips([" 192.168.1.5 "]) == [ipaddress.ip_address("192.168.1.5")]


# ---------------------------------------------------------------------------
# ServerCertRequest
# ---------------------------------------------------------------------------


class TestServerCertRequest:
    def test_empty_common_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="common_name"):
            ServerCertRequest(common_name=" ", organization="Acme")

    def test_empty_organization_rejected(self) -> None:
        with pytest.raises(ValueError, match="organization"):
            ServerCertRequest(common_name="hub", organization="")

    def test_default_usage_is_server_auth(self) -> None:
        req = ServerCertRequest(common_name="hub", organization="Acme")
        assert req.usages == (ExtendedKeyUsageOID.SERVER_AUTH,)


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TestIssue:
    def test_returns_der_cert_and_key(
        self, issuer: ServerCertificateIssuer, request_: ServerCertRequest
    ) -> None:
        cert_der, key_der = issuer.issue(request_)
        cert = x509.load_der_x509_certificate(cert_der)
        key = serialization.load_der_private_key(key_der, password=None)
        assert cert.public_key().public_numbers() == key.public_key().public_numbers()  # type: ignore[union-attr]

    def test_signed_by_authority(
        self,
        authority: AuthorityIdentity,
        issuer: ServerCertificateIssuer,
        request_: ServerCertRequest,
    ) -> None:
        cert_der, _ = issuer.issue(request_)
        cert = x509.load_der_x509_certificate(cert_der)
        cert.verify_directly_issued_by(authority.load_certificate())

    def test_subject(self, issuer: ServerCertificateIssuer, request_: ServerCertRequest) -> None:
        cert = x509.load_der_x509_certificate(issuer.issue(request_)[0])
        assert cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "hub"
        assert cert.subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)[0].value == "Acme"

    def test_restricted_to_server_auth(
        self, issuer: ServerCertificateIssuer, request_: ServerCertRequest
    ) -> None:
        cert = x509.load_der_x509_certificate(issuer.issue(request_)[0])
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        assert list(eku) == [ExtendedKeyUsageOID.SERVER_AUTH]

    def test_not_a_ca(self, issuer: ServerCertificateIssuer, request_: ServerCertRequest) -> None:
        cert = x509.load_der_x509_certificate(issuer.issue(request_)[0])
        assert cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca is False

    def test_san_contains_dns_and_parsed_ip_only(
        self, issuer: ServerCertificateIssuer, request_: ServerCertRequest
    ) -> None:
        san = _san(issuer.issue(request_)[0])
        assert san.get_values_for_type(x509.DNSName) == ["hub.example.com"]
        assert san.get_values_for_type(x509.IPAddress) == [ipaddress.ip_address("10.0.0.1")]

    def test_no_alt_names_omits_san(self, issuer: ServerCertificateIssuer) -> None:
        cert_der, _ = issuer.issue(ServerCertRequest(common_name="hub", organization="Acme"))
        cert = x509.load_der_x509_certificate(cert_der)
        with pytest.raises(x509.ExtensionNotFound):
            cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)

    def test_each_call_produces_fresh_material(
        self, issuer: ServerCertificateIssuer, request_: ServerCertRequest
    ) -> None:
        first_cert, first_key = issuer.issue(request_)
        second_cert, second_key = issuer.issue(request_)
        assert first_cert != second_cert
        assert first_key != second_key

    def test_validity_days_applied(
        self, authority: AuthorityIdentity, request_: ServerCertRequest
    ) -> None:
        cert_der, _ = ServerCertificateIssuer(authority, validity_days=30).issue(request_)
        cert = x509.load_der_x509_certificate(cert_der)
        lifetime = cert.not_valid_after_utc - cert.not_valid_before_utc
        assert lifetime.days == 30

    def test_non_positive_validity_rejected(self, authority: AuthorityIdentity) -> None:
        with pytest.raises(ValueError):
            ServerCertificateIssuer(authority, validity_days=0)


class TestIssuanceErrors:
    def test_malformed_authority_key(
        self, authority: AuthorityIdentity, request_: ServerCertRequest
    ) -> None:
        broken = AuthorityIdentity(
            certificate_der=authority.certificate_der, private_key_der=b"garbage"
        )
        with pytest.raises(IssuanceError):
            ServerCertificateIssuer(broken).issue(request_)

    def test_malformed_authority_certificate(
        self, authority: AuthorityIdentity, request_: ServerCertRequest
    ) -> None:
        broken = AuthorityIdentity(
            certificate_der=b"garbage", private_key_der=authority.private_key_der
        )
        with pytest.raises(IssuanceError):
            ServerCertificateIssuer(broken).issue(request_)

    def test_issuer_usable_after_failure(
        self, authority: AuthorityIdentity, request_: ServerCertRequest
    ) -> None:
        broken = AuthorityIdentity(
            certificate_der=authority.certificate_der, private_key_der=b"garbage"
        )
        with pytest.raises(IssuanceError):
            ServerCertificateIssuer(broken).issue(request_)
        cert_der, _ = ServerCertificateIssuer(authority).issue(request_)
        assert cert_der


# ---------------------------------------------------------------------------
# sign_server_certificate
# ---------------------------------------------------------------------------


class TestSignServerCertificate:
    def test_uses_config_identity(self, issuer: ServerCertificateIssuer) -> None:
        config = HubConfig(
            advertise_addresses=["10.0.0.1", "not-an-ip"],
            dns_names=["hub.example.com"],
            common_name="cloudhub",
            organization="Edge",
        )
        cert_der, _ = sign_server_certificate(config, issuer)
        cert = x509.load_der_x509_certificate(cert_der)
        assert cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "cloudhub"
        san = _san(cert_der)
        assert san.get_values_for_type(x509.DNSName) == ["hub.example.com"]
        assert san.get_values_for_type(x509.IPAddress) == [ipaddress.ip_address("10.0.0.1")]
