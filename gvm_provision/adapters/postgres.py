"""
PostgreSQL adapter — cluster control and administrative SQL.

Administrative statements run as the ``postgres`` superuser through
``psql`` with the SQL piped on stdin, so passwords never appear in an
argument vector or a log line.
"""

from __future__ import annotations

import logging

from gvm_provision.adapters.shell.command import CommandResult, CommandRunner
from gvm_provision.core.errors import ServiceValidationError

logger = logging.getLogger(__name__)


def quote_literal(value: str) -> str:
    """Quote a value as an SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def quote_ident(name: str) -> str:
    """Quote a value as an SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


class PostgresAdmin:
    """Typed command builder for the local PostgreSQL server."""

    def __init__(self, runner: CommandRunner, superuser: str = "postgres"):
        self.runner = runner
        self.superuser = superuser

    # ── Cluster ──────────────────────────────────────────────

    def cluster_version(self) -> str:
        """Version of the first cluster reported by ``pg_lsclusters``."""
        out = self.runner.capture(["pg_lsclusters", "--no-header"])
        for line in out.splitlines():
            fields = line.split()
            if fields:
                return fields[0]
        raise ServiceValidationError("pg_lsclusters reported no PostgreSQL cluster")

    def restart_cluster(self, version: str, name: str = "main") -> CommandResult:
        return self.runner.run(["pg_ctlcluster", version, name, "restart"])

    # ── Administration (as superuser) ────────────────────────

    def execute(self, sql: str, *, database: str | None = None) -> CommandResult:
        """Run SQL as the superuser; the statement text goes over stdin."""
        argv = ["psql", "-v", "ON_ERROR_STOP=1", "-q"]
        if database:
            argv += ["-d", database]
        return self.runner.run(argv, input=sql, as_user=self.superuser)

    def query(self, sql: str) -> str:
        """Run a catalogue query as the superuser; returns unaligned output."""
        return self.runner.capture(["psql", "-tA", "-c", sql], as_user=self.superuser).strip()

    def role_exists(self, name: str) -> bool:
        return self.query(f"SELECT 1 FROM pg_roles WHERE rolname = {quote_literal(name)};") == "1"

    def database_exists(self, name: str) -> bool:
        return self.query(f"SELECT 1 FROM pg_database WHERE datname = {quote_literal(name)};") == "1"

    def create_role(self, name: str, password: str) -> CommandResult:
        logger.info("Creating database login role %s", name)
        return self.execute(
            f"CREATE USER {quote_ident(name)} WITH PASSWORD {quote_literal(password)};\n"
        )

    def set_password(self, name: str, password: str) -> CommandResult:
        logger.info("Updating password of database role %s", name)
        return self.execute(
            f"ALTER ROLE {quote_ident(name)} WITH PASSWORD {quote_literal(password)};\n"
        )

    def create_database(self, name: str, owner: str) -> CommandResult:
        return self.runner.run(["createdb", "-O", owner, name], as_user=self.superuser)

    def grant_role(self, role: str, grantee: str, *, database: str | None = None) -> CommandResult:
        """Ensure ``role`` exists as a NOINHERIT superuser role and grant it to ``grantee``."""
        return self.execute(
            "DO $$\n"
            "BEGIN\n"
            f"    IF NOT EXISTS (SELECT FROM pg_roles WHERE rolname = {quote_literal(role)}) THEN\n"
            f"        CREATE ROLE {quote_ident(role)} WITH SUPERUSER NOINHERIT;\n"
            "    END IF;\n"
            "END\n"
            "$$;\n"
            f"GRANT {quote_ident(role)} TO {quote_ident(grantee)};\n",
            database=database,
        )

    # ── Client check ─────────────────────────────────────────

    def check_login(
        self,
        *,
        host: str,
        user: str,
        database: str,
        password: str,
        query: str = "SELECT 1;",
    ) -> CommandResult:
        """Prove an authenticated connection works with a trivial query."""
        return self.runner.run(
            ["psql", "-h", host, "-U", user, "-d", database, "-c", query],
            env={"PGPASSWORD": password},
        )
