"""
gvmd administrative interface — typed command builder.

Every call runs as the service account against the configured
management database.
"""

from __future__ import annotations

from gvm_provision.adapters.shell.command import CommandResult, CommandRunner
from gvm_provision.core.config.loader import Settings

# gvmd setting holding the feed import owner
FEED_IMPORT_OWNER_SETTING = "78eceaec-3385-11ea-b237-28d24461215b"


class GvmdAdmin:
    def __init__(self, runner: CommandRunner, settings: Settings, db_host: str):
        self.runner = runner
        self.settings = settings
        self.db_host = db_host

    def _argv(self, *args: str) -> list[str]:
        s = self.settings
        return [
            s.prefix_path("sbin", "gvmd"),
            f"--db-host={self.db_host}",
            f"--db-port={s.db_port}",
            f"--database={s.db_name}",
            *args,
        ]

    def _run(self, *args: str) -> CommandResult:
        return self.runner.run(self._argv(*args), as_user=self.settings.service_user)

    def create_user(self, username: str) -> str:
        """Create a web user; returns gvmd's output (holds the generated password)."""
        result = self._run(f"--create-user={username}")
        return result.stdout + result.stderr

    def get_users_verbose(self) -> str:
        return self._run("--get-users", "--verbose").stdout

    def modify_setting(self, setting: str, value: str) -> CommandResult:
        return self._run("--modify-setting", setting, "--value", value)

    def create_scanner(
        self,
        name: str,
        *,
        host: str,
        port: int,
        ca_pub: str,
        key_pub: str,
        key_priv: str,
        scanner_type: str = "OSP-Sensor",
    ) -> CommandResult:
        return self._run(
            "--create-scanner", name,
            f"--scanner-host={host}",
            f"--scanner-port={port}",
            f"--scanner-type={scanner_type}",
            f"--scanner-ca-pub={ca_pub}",
            f"--scanner-key-pub={key_pub}",
            f"--scanner-key-priv={key_priv}",
        )
