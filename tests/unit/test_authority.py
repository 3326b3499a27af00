"""Tests for hub_bootstrap.authority — AuthorityIdentity."""
from __future__ import annotations

from pathlib import Path

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from hub_bootstrap.authority import PROJECT_NAME, AuthorityIdentity, AuthorityProvider


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def authority() -> AuthorityIdentity:
    return AuthorityIdentity.generate()


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_is_provider(self, authority: AuthorityIdentity) -> None:
        assert isinstance(authority, AuthorityProvider)

    def test_certificate_is_ca(self, authority: AuthorityIdentity) -> None:
        cert = authority.load_certificate()
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
        assert constraints.value.ca is True

    def test_default_subject_uses_project_name(self, authority: AuthorityIdentity) -> None:
        cert = authority.load_certificate()
        cn = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
        assert cn == PROJECT_NAME

    def test_custom_subject(self) -> None:
        custom = AuthorityIdentity.generate(common_name="Edge CA", organization="Acme")
        cert = custom.load_certificate()
        assert cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "Edge CA"
        assert cert.subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)[0].value == "Acme"

    def test_small_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="2048"):
            AuthorityIdentity.generate(key_size=1024)

    def test_self_signed(self, authority: AuthorityIdentity) -> None:
        cert = authority.load_certificate()
        cert.verify_directly_issued_by(cert)


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


class TestAccessors:
    def test_accessors_return_der_bytes(self, authority: AuthorityIdentity) -> None:
        assert authority.get_authority_certificate() == authority.certificate_der
        assert authority.get_authority_private_key() == authority.private_key_der

    def test_accessors_are_stable(self, authority: AuthorityIdentity) -> None:
        assert authority.get_authority_certificate() == authority.get_authority_certificate()
        assert authority.get_authority_private_key() == authority.get_authority_private_key()

    def test_frozen(self, authority: AuthorityIdentity) -> None:
        with pytest.raises(Exception):
            authority.certificate_der = b""  # type: ignore[misc]


# ---------------------------------------------------------------------------
# PEM loading
# ---------------------------------------------------------------------------


class TestPem:
    def test_from_pem_round_trip(self, authority: AuthorityIdentity) -> None:
        loaded = AuthorityIdentity.from_pem(
            authority.certificate_pem(), authority.private_key_pem()
        )
        assert loaded == authority

    def test_load_from_files(self, authority: AuthorityIdentity, tmp_path: Path) -> None:
        cert_path = tmp_path / "ca.crt"
        key_path = tmp_path / "ca.key"
        cert_path.write_bytes(authority.certificate_pem())
        key_path.write_bytes(authority.private_key_pem())
        loaded = AuthorityIdentity.load(cert_path, key_path)
        assert loaded.certificate_der == authority.certificate_der

    def test_from_pem_rejects_garbage(self, authority: AuthorityIdentity) -> None:
        with pytest.raises(ValueError):
            AuthorityIdentity.from_pem(b"not a cert", authority.private_key_pem())
