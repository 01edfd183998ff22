"""
GnuPG adapter — one instance per isolated keyring (``--homedir``).

The artifact keyring and the feed keyring are separate instances and
never share a home directory.
"""

from __future__ import annotations

from pathlib import Path

from gvm_provision.adapters.shell.command import CommandResult, CommandRunner


class Gpg:
    """Typed command builder for ``gpg`` bound to one home directory."""

    def __init__(self, runner: CommandRunner, home: Path | str):
        self.runner = runner
        self.home = Path(home)

    def _argv(self, *args: str | Path) -> list[str | Path]:
        return ["gpg", "--homedir", self.home, "--batch", *args]

    def import_key(self, key_file: Path) -> CommandResult:
        return self.runner.run(self._argv("--import", key_file))

    def list_keys(self) -> str:
        return self.runner.capture(self._argv("--list-keys"))

    def verify(self, signature: Path, archive: Path) -> CommandResult:
        """Check a detached signature. Raises CommandError on a bad signature."""
        return self.runner.run(self._argv("--verify", signature, archive))

    def import_ownertrust(self, fingerprint: str, level: int = 6) -> CommandResult:
        """Mark a key as ultimately trusted (level 6) in this keyring."""
        return self.runner.run(
            self._argv("--import-ownertrust"),
            input=f"{fingerprint}:{level}:\n",
        )
