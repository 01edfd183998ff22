"""
Command runner — the SINGLE PLACE where ``subprocess.run`` is called.

Every external tool (apt, gpg, cmake, pip, cargo, systemctl, psql, ...)
goes through :class:`CommandRunner`. Commands are argument vectors,
never shell strings.

Failure handling is an explicit per-call choice:

- ``tolerate=False`` (default): a non-zero exit logs an ERROR and raises
  :class:`CommandError`, which aborts the run.
- ``tolerate=True``: a non-zero exit logs a WARN and the result is
  returned with ``ok == False``.

There is no timeout.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from gvm_provision.core.errors import CommandError

logger = logging.getLogger(__name__)

# Shown in logs in place of secret arguments
REDACTED = "********"

# Exit status used when the executable itself cannot be found
STATUS_NOT_FOUND = 127
STATUS_NOT_EXECUTABLE = 126


@dataclass
class CommandResult:
    """Outcome of one external command."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class CommandRunner:
    """Runs external commands with uniform logging and failure policy.

    Args:
        env: Base environment for every child process. Defaults to a
            snapshot of ``os.environ`` taken at construction.
    """

    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))

    def run(
        self,
        argv: Sequence[str | Path],
        *,
        tolerate: bool = False,
        input: str | None = None,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        as_user: str | None = None,
        secret: Iterable[str] = (),
    ) -> CommandResult:
        """Run one command.

        Args:
            argv: Program and arguments.
            tolerate: Return a failed result instead of raising.
            input: Text piped to stdin (used for SQL carrying passwords).
            cwd: Working directory.
            env: Extra variables for this child only.
            as_user: Run through ``sudo -u <user>``.
            secret: Argument values to mask in log lines.

        Returns:
            The CommandResult (always ``ok`` unless ``tolerate``).

        Raises:
            CommandError: Non-zero exit and ``tolerate`` is False.
        """
        cmd = [str(a) for a in argv]
        if as_user:
            cmd = ["sudo", "-u", as_user, *cmd]

        shown = format_argv(cmd, secret)
        logger.info("Executing command: %s", shown)

        child_env = dict(self.env)
        if env:
            child_env.update(env)

        result = self._execute(cmd, input=input, cwd=cwd, env=child_env)

        if result.ok:
            logger.info("Command '%s' completed successfully.", shown)
            return result

        if tolerate:
            logger.warning(
                "Command '%s' failed with status %d. Continuing.",
                shown, result.returncode,
            )
            return result

        logger.error("Command '%s' failed with status %d.", shown, result.returncode)
        tail = _tail(result.stderr)
        if tail:
            logger.error("stderr: %s", tail)
        raise CommandError(shown, result.returncode, tail)

    def capture(self, argv: Sequence[str | Path], **kwargs) -> str:
        """Run a command and return its stdout (fatal on failure)."""
        return self.run(argv, **kwargs).stdout

    def which(self, program: str, *, path: str | None = None) -> str | None:
        """Locate a program on ``path`` (default: the runner's PATH)."""
        return shutil.which(program, path=path or self.env.get("PATH"))

    # ── Execution ──────────────────────────────────────────────

    def _execute(
        self,
        argv: list[str],
        *,
        input: str | None,
        cwd: str | Path | None,
        env: dict[str, str],
    ) -> CommandResult:
        start = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                input=input,
                cwd=cwd,
                env=env,
            )
        except FileNotFoundError as e:
            return CommandResult(argv, STATUS_NOT_FOUND, stderr=str(e))
        except PermissionError as e:
            return CommandResult(argv, STATUS_NOT_EXECUTABLE, stderr=str(e))

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("%s finished in %dms", argv[0], elapsed_ms)
        return CommandResult(
            argv,
            proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            elapsed_ms=elapsed_ms,
        )


def format_argv(argv: Sequence[str], secret: Iterable[str] = ()) -> str:
    """Render argv for logging, masking any argument containing a secret."""
    hidden = [s for s in secret if s]
    parts = []
    for arg in argv:
        for value in hidden:
            if value in arg:
                arg = arg.replace(value, REDACTED)
        parts.append(shlex.quote(arg))
    return " ".join(parts)


def _tail(text: str, lines: int = 5) -> str:
    return " | ".join(line for line in text.strip().splitlines()[-lines:] if line)
