"""
Manager-host configuration: database client credentials, the web-UI
administrator, the feed import owner and the remote scanner.

The generated administrator password is kept in memory as a SecretStr
and in one 0600 file inside the root-only secrets directory of the run
workspace. It is shown exactly once, in the login box at the end of the
run, and the file is then removed; workspace cleanup removes it on any
other exit. It never goes through the logger.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import re
from pathlib import Path

import click
from pydantic import SecretStr

from gvm_provision.adapters.gvmd import FEED_IMPORT_OWNER_SETTING, GvmdAdmin
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import (
    CommandError,
    CredentialExtractionError,
    PermissionFailure,
    ServiceValidationError,
)
from gvm_provision.core.models.run import AdminCredential, WorkspaceLayout
from gvm_provision.core.services.configurator.certificates import PEER_CA, PEER_CERT, PEER_KEY

logger = logging.getLogger(__name__)

REMOTE_SCANNER_NAME = "RemoteOSPScanner"
ADMIN_PASSWORD_FILE = "admin_password"
_PASSWORD_RE = re.compile(r"User created with password '([^']+)'")


# ── Private files ──────────────────────────────────────────────


def write_private_file(runner: CommandRunner, settings: Settings, path: Path, content: str) -> Path:
    """Write ``content`` to a 0600 file owned by the service account.

    A symlink at ``path`` is refused rather than followed.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.fchmod(f.fileno(), 0o600)
            f.write(content)
    except OSError as e:
        logger.error("Failed to write %s.", path)
        raise PermissionFailure(f"Cannot write {path}: {e.strerror or e}") from e
    runner.run(["chown", "-h", f"{settings.service_user}:{settings.service_group}", path])
    return path


def admin_password_path(layout: WorkspaceLayout) -> Path:
    return layout.secrets_dir / ADMIN_PASSWORD_FILE


def write_pgpass(runner: CommandRunner, settings: Settings, *, db_host: str, password: str) -> Path:
    """Give gvmd a password file for the remote database."""
    logger.info("Configuring database credentials for %s...", settings.service_user)
    line = f"{db_host}:{settings.db_port}:{settings.db_name}:{settings.db_user}:{password}\n"
    target = settings.live_path(f"{settings.service_home}/.pgpass")
    path = write_private_file(runner, settings, target, line)
    logger.info("Database credentials written to %s.", path)
    return path


# ── Administrator ──────────────────────────────────────────────


def parse_admin_password(output: str) -> str:
    """Extract the generated password from ``gvmd --create-user`` output.

    Raises:
        CredentialExtractionError: The expected line is absent.
    """
    match = _PASSWORD_RE.search(output)
    if match is None:
        raise CredentialExtractionError("Failed to extract admin password from gvmd output")
    return match.group(1)


def create_admin_credential(
    runner: CommandRunner,
    settings: Settings,
    gvmd: GvmdAdmin,
    password_file: Path,
) -> AdminCredential:
    """Create the web-UI administrator and stash its password for the login box."""
    logger.info("Creating %s user...", settings.admin_user)
    try:
        output = gvmd.create_user(settings.admin_user)
    except CommandError as e:
        logger.error("Failed to create %s user.", settings.admin_user)
        raise CredentialExtractionError.wrap(e, f"Could not create {settings.admin_user}") from e

    try:
        password = parse_admin_password(output)
    except CredentialExtractionError:
        logger.error("Failed to extract admin password from gvmd output.")
        raise

    write_private_file(runner, settings, password_file, password)
    logger.info("%s user created. Login details will be shown at the end.", settings.admin_user)
    return AdminCredential(username=settings.admin_user, password=SecretStr(password))


def find_user_uuid(listing: str, username: str) -> str | None:
    """Pick ``username``'s uuid out of ``gvmd --get-users --verbose``."""
    for line in listing.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0] == username:
            return fields[1]
    return None


def set_feed_import_owner(gvmd: GvmdAdmin, username: str) -> str:
    """Make ``username`` the owner of imported feed objects."""
    logger.info("Setting feed import owner...")
    uuid = find_user_uuid(gvmd.get_users_verbose(), username)
    if uuid is None:
        logger.error("Failed to retrieve %s user UUID.", username)
        raise CredentialExtractionError(f"No uuid for {username} in gvmd user list")
    gvmd.modify_setting(FEED_IMPORT_OWNER_SETTING, uuid)
    logger.info("Feed import owner set to %s.", username)
    return uuid


# ── Scanner link ───────────────────────────────────────────────


def generate_scanner_certs(runner: CommandRunner, settings: Settings) -> None:
    """Create gvmd's own certificate set with ``gvm-manage-certs -a``."""
    logger.info("Generating GVM certificates...")
    try:
        runner.run(
            [settings.prefix_path("bin", "gvm-manage-certs"), "-a"],
            as_user=settings.service_user,
        )
    except CommandError as e:
        logger.error("Failed to generate GVM certificates.")
        raise ServiceValidationError.wrap(e, "gvm-manage-certs failed") from e


def register_remote_scanner(gvmd: GvmdAdmin, settings: Settings, scanner_host: str) -> None:
    """Register the remote ospd-openvas as an OSP sensor."""
    logger.info("Registering remote scanner at %s:%d...", scanner_host, settings.scanner_port)
    try:
        gvmd.create_scanner(
            REMOTE_SCANNER_NAME,
            host=scanner_host,
            port=settings.scanner_port,
            ca_pub=PEER_CA.target,
            key_pub=PEER_CERT.target,
            key_priv=PEER_KEY.target,
        )
    except CommandError as e:
        logger.error("Failed to create remote scanner.")
        raise ServiceValidationError.wrap(e, "Remote scanner registration failed") from e
    logger.info("Remote scanner registered.")


# ── Login handoff ──────────────────────────────────────────────


def host_ip(runner: CommandRunner) -> str | None:
    """First non-loopback IPv4 address of this host."""
    result = runner.run(["hostname", "-I"], tolerate=True)
    for token in result.stdout.split():
        try:
            address = ipaddress.ip_address(token)
        except ValueError:
            continue
        if address.version == 4 and not address.is_loopback:
            return str(address)
    return None


def login_box(username: str, password: str, url: str) -> str:
    lines = [
        "OpenVAS Web Interface Login",
        f"Username : {username}",
        f"Password : {password}",
        f"URL      : {url}",
    ]
    width = max(len(line) for line in lines)
    border = "+" + "-" * (width + 2) + "+"
    body = [f"| {line.ljust(width)} |" for line in lines]
    return "\n".join([border, body[0], border, *body[1:], border])


def display_login(runner: CommandRunner, settings: Settings, path: Path) -> None:
    """Show the administrator login once, then delete the password file at ``path``."""
    try:
        password = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.error("Admin password file %s not found.", path)
        raise CredentialExtractionError(f"Cannot read {path}: {e.strerror or e}") from e

    ip = host_ip(runner)
    if ip is None:
        logger.warning("Could not determine host IP. Using localhost.")
        ip = "localhost"
    url = f"https://{ip}:{settings.gsad_port}"

    click.echo()
    click.secho(login_box(settings.admin_user, password, url), fg="green", bold=True)
    click.echo()
    click.echo("Change the password after the first login:")
    click.echo(f"  sudo -u {settings.service_user} {settings.prefix_path('sbin', 'gvmd')} "
               f"--user={settings.admin_user} --new-password=<new password>")
    click.echo()

    try:
        path.unlink()
    except OSError:
        logger.warning("Failed to remove %s. Delete it manually.", path)
