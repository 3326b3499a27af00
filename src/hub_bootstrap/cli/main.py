"""CLI entry point for hub-bootstrap.

Invoked as::

    hub-bootstrap [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m hub_bootstrap.cli.main

Commands
--------
ca init          Generate a self-signed authority certificate and key
ca fingerprint   Print the fingerprint agents pin for the authority
server-cert      Issue the hub server certificate
token            Print one freshly signed bootstrap credential
verify           Verify a bootstrap credential against the authority
rotate           Publish a bootstrap credential every refresh period
"""
from __future__ import annotations

import datetime
import logging
import signal
import sys
from pathlib import Path

import click
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hub_bootstrap import __version__
from hub_bootstrap.authority import PROJECT_NAME, AuthorityIdentity
from hub_bootstrap.certificates.issuer import (
    IssuanceError,
    ServerCertificateIssuer,
    sign_server_certificate,
)
from hub_bootstrap.config import ConfigError, HubConfig
from hub_bootstrap.publish.publisher import FilesystemPublisher
from hub_bootstrap.rotation.rotator import BootstrapRotator, RotationError
from hub_bootstrap.tokens.credential import BootstrapCredential, CredentialVerifier
from hub_bootstrap.tokens.fingerprint import fingerprint
from hub_bootstrap.tokens.signer import SigningError, TokenError

console = Console()
logger = logging.getLogger(__name__)

_PEM_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)
_OUT_FILE = click.Path(dir_okay=False, path_type=Path)


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name=PROJECT_NAME)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level.",
)
def cli(log_level: str) -> None:
    """Server certificates and rotating bootstrap credentials for edge agents"""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]{PROJECT_NAME}[/bold] v{__version__}")


# ------------------------------------------------------------------
# ca command group
# ------------------------------------------------------------------


@cli.group(name="ca")
def ca_group() -> None:
    """Manage the hub certificate authority."""


@ca_group.command(name="init")
@click.option("--cert-out", type=_OUT_FILE, required=True, help="Where to write the CA certificate (PEM).")
@click.option("--key-out", type=_OUT_FILE, required=True, help="Where to write the CA private key (PEM).")
@click.option("--common-name", default=PROJECT_NAME, show_default=True, help="CA subject common name.")
@click.option("--organization", default=PROJECT_NAME, show_default=True, help="CA subject organization.")
@click.option("--validity-days", type=click.IntRange(min=1), default=3650, show_default=True)
def ca_init_command(
    cert_out: Path,
    key_out: Path,
    common_name: str,
    organization: str,
    validity_days: int,
) -> None:
    """Generate a self-signed authority certificate and private key."""
    for target in (cert_out, key_out):
        if target.exists():
            console.print(f"[red]Error:[/red] {target} already exists; refusing to overwrite.")
            sys.exit(1)

    authority = AuthorityIdentity.generate(
        common_name=common_name,
        organization=organization,
        validity_days=validity_days,
    )
    cert_out.parent.mkdir(parents=True, exist_ok=True)
    key_out.parent.mkdir(parents=True, exist_ok=True)
    cert_out.write_bytes(authority.certificate_pem())
    key_out.write_bytes(authority.private_key_pem())
    key_out.chmod(0o600)

    console.print(f"[green]Created[/green] authority [bold]{common_name}[/bold]")
    console.print(f"  Certificate: {cert_out}")
    console.print(f"  Key:         {key_out}")
    console.print(f"  Fingerprint: {fingerprint(authority.certificate_der)}")


@ca_group.command(name="fingerprint")
@click.option("--ca-cert", type=_PEM_FILE, required=True, help="CA certificate (PEM).")
def ca_fingerprint_command(ca_cert: Path) -> None:
    """Print the SHA-256 fingerprint of the CA certificate."""
    try:
        cert = x509.load_pem_x509_certificate(ca_cert.read_bytes())
    except ValueError as exc:
        console.print(f"[red]Error:[/red] cannot parse {ca_cert}: {escape(str(exc))}")
        sys.exit(1)
    click.echo(fingerprint(cert.public_bytes(serialization.Encoding.DER)))


# ------------------------------------------------------------------
# server-cert
# ------------------------------------------------------------------


@cli.command(name="server-cert")
@click.option("--ca-cert", type=_PEM_FILE, required=True, help="CA certificate (PEM).")
@click.option("--ca-key", type=_PEM_FILE, required=True, help="CA private key (PEM).")
@click.option("--config", "config_file", type=_PEM_FILE, default=None, help="JSON hub configuration.")
@click.option("--dns-name", multiple=True, help="DNS name (repeatable, overrides config).")
@click.option("--address", multiple=True, help="Advertised IP address (repeatable, overrides config).")
@click.option("--cert-out", type=_OUT_FILE, required=True, help="Where to write the server certificate (PEM).")
@click.option("--key-out", type=_OUT_FILE, required=True, help="Where to write the server key (PEM).")
def server_cert_command(
    ca_cert: Path,
    ca_key: Path,
    config_file: Path | None,
    dns_name: tuple[str, ...],
    address: tuple[str, ...],
    cert_out: Path,
    key_out: Path,
) -> None:
    """Issue a server certificate for the hub's DNS names and addresses."""
    config = _load_config(config_file)
    overrides: dict[str, object] = {}
    if dns_name:
        overrides["dns_names"] = list(dns_name)
    if address:
        overrides["advertise_addresses"] = list(address)
    if overrides:
        config = config.model_copy(update=overrides)

    authority = _load_authority(ca_cert, ca_key)
    issuer = ServerCertificateIssuer(authority, validity_days=config.server_cert_validity_days)

    try:
        cert_der, key_der = sign_server_certificate(config, issuer)
    except IssuanceError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    cert = x509.load_der_x509_certificate(cert_der)
    key = serialization.load_der_private_key(key_der, password=None)
    cert_out.parent.mkdir(parents=True, exist_ok=True)
    key_out.parent.mkdir(parents=True, exist_ok=True)
    cert_out.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_out.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    key_out.chmod(0o600)

    table = Table(title="Server certificate")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Common name", config.common_name)
    table.add_row("Serial", str(cert.serial_number))
    table.add_row("Not after", cert.not_valid_after_utc.isoformat())
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        table.add_row("DNS names", ", ".join(san.get_values_for_type(x509.DNSName)) or "(none)")
        table.add_row(
            "IP addresses",
            ", ".join(str(ip) for ip in san.get_values_for_type(x509.IPAddress)) or "(none)",
        )
    except x509.ExtensionNotFound:
        table.add_row("Alt names", "(none)")
    console.print(table)


# ------------------------------------------------------------------
# token / verify
# ------------------------------------------------------------------


@cli.command(name="token")
@click.option("--ca-cert", type=_PEM_FILE, required=True, help="CA certificate (PEM).")
@click.option("--ca-key", type=_PEM_FILE, required=True, help="CA private key (PEM).")
@click.option(
    "--period-hours",
    type=click.FloatRange(min=0, min_open=True),
    default=12.0,
    show_default=True,
    help="Refresh period; the token is valid for twice this long.",
)
def token_command(ca_cert: Path, ca_key: Path, period_hours: float) -> None:
    """Print one freshly signed bootstrap credential."""
    authority = _load_authority(ca_cert, ca_key)
    expires_at = datetime.datetime.now(datetime.timezone.utc) + 2 * datetime.timedelta(
        hours=period_hours
    )
    try:
        credential = BootstrapCredential.issue(authority, expires_at)
    except SigningError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)
    click.echo(credential.encode())


@cli.command(name="verify")
@click.argument("credential")
@click.option("--ca-cert", type=_PEM_FILE, required=True, help="CA certificate (PEM).")
@click.option("--ca-key", type=_PEM_FILE, required=True, help="CA private key (PEM).")
def verify_command(credential: str, ca_cert: Path, ca_key: Path) -> None:
    """Verify CREDENTIAL against the authority."""
    verifier = CredentialVerifier(_load_authority(ca_cert, ca_key))
    try:
        expires_at = verifier.verify(credential)
    except TokenError as exc:
        console.print(f"[red]INVALID[/red] {escape(str(exc))}")
        sys.exit(1)
    console.print(f"[green]VALID[/green] expires at {expires_at.isoformat()}")


# ------------------------------------------------------------------
# rotate
# ------------------------------------------------------------------


@cli.command(name="rotate")
@click.option("--ca-cert", type=_PEM_FILE, required=True, help="CA certificate (PEM).")
@click.option("--ca-key", type=_PEM_FILE, required=True, help="CA private key (PEM).")
@click.option("--output", type=_OUT_FILE, required=True, help="File the credential is published to.")
@click.option("--config", "config_file", type=_PEM_FILE, default=None, help="JSON hub configuration.")
@click.option(
    "--period-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Override the configured refresh period.",
)
@click.option("--once", is_flag=True, default=False, help="Publish a single credential and exit.")
def rotate_command(
    ca_cert: Path,
    ca_key: Path,
    output: Path,
    config_file: Path | None,
    period_seconds: float | None,
    once: bool,
) -> None:
    """Publish a fresh bootstrap credential every refresh period.

    Exits with status 1 if a credential cannot be signed or published.
    """
    config = _load_config(config_file)
    period = (
        datetime.timedelta(seconds=period_seconds)
        if period_seconds is not None
        else config.refresh_period
    )
    rotator = BootstrapRotator(
        _load_authority(ca_cert, ca_key),
        FilesystemPublisher(output),
        period=period,
    )

    if once:
        try:
            rotator.rotate_once()
        except RotationError as exc:
            _exit_on_rotation_failure(exc)
        console.print(f"[green]Published[/green] bootstrap credential to {output}")
        return

    previous_handler = signal.signal(signal.SIGTERM, lambda *_: rotator.stop(timeout=0))
    logger.info("Rotating bootstrap credential every %s into %s", period, output)
    rotator.start()
    try:
        while not rotator.wait(timeout=1.0):
            pass
    except RotationError as exc:
        _exit_on_rotation_failure(exc)
    except KeyboardInterrupt:
        rotator.stop()
    finally:
        signal.signal(signal.SIGTERM, previous_handler)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _exit_on_rotation_failure(exc: RotationError) -> None:
    logger.critical("Failed to create the bootstrap credential for edge registration: %s", exc)
    console.print(f"[red]Error:[/red] rotation failed while {exc.step}: {escape(str(exc.cause))}")
    sys.exit(1)


def _load_authority(cert_path: Path, key_path: Path) -> AuthorityIdentity:
    try:
        return AuthorityIdentity.load(cert_path, key_path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Error:[/red] cannot load authority material: {escape(str(exc))}")
        sys.exit(1)


def _load_config(config_file: Path | None) -> HubConfig:
    if config_file is None:
        return HubConfig()
    try:
        return HubConfig.from_file(config_file)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
