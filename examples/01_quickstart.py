#!/usr/bin/env python3
"""Example: Quickstart

Creates an authority, issues the hub server certificate, publishes one
bootstrap credential, and verifies it the way a registration handler would.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install hub-bootstrap
"""
from __future__ import annotations

import datetime

import hub_bootstrap
from hub_bootstrap import (
    AuthorityIdentity,
    BootstrapRotator,
    CredentialVerifier,
    HubConfig,
    InMemoryPublisher,
    ServerCertificateIssuer,
    sign_server_certificate,
)


def main() -> None:
    print(f"hub-bootstrap version: {hub_bootstrap.__version__}")

    # Step 1: Create the authority
    authority = AuthorityIdentity.generate()

    # Step 2: Issue the server certificate ("not-an-ip" is dropped)
    config = HubConfig(
        refresh_period=datetime.timedelta(hours=1),
        advertise_addresses=["10.0.0.1", "not-an-ip"],
        dns_names=["hub.example.com"],
    )
    cert_der, _ = sign_server_certificate(config, ServerCertificateIssuer(authority))
    print(f"Server certificate: {len(cert_der)} DER bytes")

    # Step 3: Publish one bootstrap credential
    publisher = InMemoryPublisher()
    rotator = BootstrapRotator(authority, publisher, period=config.refresh_period)
    credential = rotator.rotate_once()
    print(f"Credential fingerprint: {credential.fingerprint}")

    # Step 4: Verify it as a registration handler would
    expires_at = CredentialVerifier(authority).verify(publisher.read() or b"")
    print(f"Credential valid until {expires_at.isoformat()}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
