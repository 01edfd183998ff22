"""
Database bootstrap for the database-host role.

Opens PostgreSQL to the manager host, creates the ``gvm`` login role
and the ``gvmd`` database. The login role never holds superuser itself;
it is granted the NOINHERIT ``dba`` role. Success is declared only
after an authenticated query.

Re-running is safe: an existing login role gets its password reset, an
existing database is kept, and pg_hba rules are only appended once.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from gvm_provision.adapters.postgres import PostgresAdmin
from gvm_provision.adapters.systemd import Systemctl
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import CommandError, ServiceValidationError

logger = logging.getLogger(__name__)

ELEVATED_ROLE = "dba"
_LISTEN_RE = re.compile(r"^\s*#?\s*listen_addresses\s*=.*$", re.MULTILINE)


def cluster_dir(settings: Settings, version: str, cluster: str = "main") -> Path:
    return settings.live_path(f"/etc/postgresql/{version}/{cluster}")


def enable_remote_listen(conf: Path) -> None:
    """Set ``listen_addresses = '*'`` in postgresql.conf."""
    text = conf.read_text(encoding="utf-8")
    line = "listen_addresses = '*'"
    if _LISTEN_RE.search(text):
        text = _LISTEN_RE.sub(line, text, count=1)
    else:
        text = text.rstrip("\n") + "\n" + line + "\n"
    conf.write_text(text, encoding="utf-8")


def hba_rules(settings: Settings, client_ip: str) -> list[str]:
    user = settings.db_user
    return [
        f"host\t{settings.db_name}\t{user}\t{client_ip}/32\tscram-sha-256",
        f"host\tall\t{user}\t{client_ip}/32\tscram-sha-256",
    ]


def allow_client(hba: Path, rules: list[str]) -> None:
    """Append pg_hba rules that are not already present."""
    existing = hba.read_text(encoding="utf-8") if hba.exists() else ""
    present = {" ".join(line.split()) for line in existing.splitlines()}
    missing = [r for r in rules if " ".join(r.split()) not in present]
    if not missing:
        return
    with open(hba, "a", encoding="utf-8") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        for rule in missing:
            f.write(rule + "\n")


def bootstrap_database(
    postgres: PostgresAdmin,
    systemctl: Systemctl,
    settings: Settings,
    *,
    client_ip: str,
    password: str,
) -> None:
    """Configure and seed the management database, then prove a login works."""
    logger.info("Setting up PostgreSQL for gvmd with remote access...")

    version = postgres.cluster_version()
    conf_dir = cluster_dir(settings, version)
    try:
        enable_remote_listen(conf_dir / "postgresql.conf")
        allow_client(conf_dir / "pg_hba.conf", hba_rules(settings, client_ip))
    except OSError as e:
        raise ServiceValidationError(f"Cannot update PostgreSQL configuration: {e}") from e

    try:
        postgres.restart_cluster(version)
    except CommandError as e:
        logger.error("Failed to start PostgreSQL service.")
        raise ServiceValidationError.wrap(e, "PostgreSQL restart failed") from e
    systemctl.enable("postgresql", tolerate=False)

    if postgres.role_exists(settings.db_user):
        logger.warning("Database role %s already exists. Resetting its password.", settings.db_user)
        postgres.set_password(settings.db_user, password)
    else:
        postgres.create_role(settings.db_user, password)

    if postgres.database_exists(settings.db_name):
        logger.warning("Database %s already exists. Skipping creation.", settings.db_name)
    else:
        postgres.create_database(settings.db_name, owner=settings.db_user)
    postgres.grant_role(ELEVATED_ROLE, settings.db_user, database=settings.db_name)

    try:
        postgres.check_login(
            host="localhost",
            user=settings.db_user,
            database=settings.db_name,
            password=password,
        )
    except CommandError as e:
        logger.error("PostgreSQL connection test failed with user %s.", settings.db_user)
        raise ServiceValidationError.wrap(e, "Database login check failed") from e

    logger.info("PostgreSQL setup completed.")
