"""
Mock adapters — test doubles for the command runner and HTTP client.

``RecordingRunner`` never starts a process: it records every argv and
returns success unless a response was configured for a matching
command prefix. ``FakeHttpClient`` serves bytes from an in-memory URL
map.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandResult, CommandRunner
from gvm_provision.core.errors import DownloadError


@dataclass
class RecordedCall:
    argv: list[str]
    input: str | None = None
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    @property
    def command(self) -> list[str]:
        """argv without a leading ``sudo -u <user>``."""
        return _strip_sudo(self.argv)


Handler = Callable[[RecordedCall], CommandResult | None]


def _strip_sudo(argv: list[str]) -> list[str]:
    if len(argv) > 3 and argv[0] == "sudo" and argv[1] == "-u":
        return argv[3:]
    return argv


class RecordingRunner(CommandRunner):
    """Universal runner double.

    Responses are keyed by a command prefix, e.g. ``("gpg",)`` or
    ``("systemctl", "start")``. The longest matching prefix wins.
    """

    def __init__(self, missing: Sequence[str] = ()):
        super().__init__(env={"PATH": "/usr/local/bin:/usr/bin:/bin"})
        self.missing = set(missing)
        self._calls: list[RecordedCall] = []
        self._responses: dict[tuple[str, ...], CommandResult | Handler] = {}

    @property
    def calls(self) -> list[RecordedCall]:
        return self._calls

    @property
    def commands(self) -> list[list[str]]:
        """Every recorded argv, sudo wrapper removed."""
        return [c.command for c in self._calls]

    def ran(self, *prefix: str) -> bool:
        return any(cmd[: len(prefix)] == list(prefix) for cmd in self.commands)

    def calls_to(self, *prefix: str) -> list[RecordedCall]:
        return [c for c in self._calls if c.command[: len(prefix)] == list(prefix)]

    def set_failure(self, *prefix: str, returncode: int = 1, stderr: str = "mock failure") -> None:
        """Configure commands starting with ``prefix`` to fail."""
        self._responses[prefix] = CommandResult(list(prefix), returncode, stderr=stderr)

    def set_output(self, *prefix: str, stdout: str) -> None:
        self._responses[prefix] = CommandResult(list(prefix), 0, stdout=stdout)

    def set_handler(self, *prefix: str, handler: Handler) -> None:
        """Run ``handler`` for matching commands; returning None means success."""
        self._responses[prefix] = handler

    def which(self, program: str, *, path: str | None = None) -> str | None:
        if program in self.missing:
            return None
        return f"/usr/bin/{program}"

    def reset(self) -> None:
        self._calls.clear()
        self._responses.clear()

    def _execute(self, argv, *, input, cwd, env) -> CommandResult:
        extra = {k: v for k, v in env.items() if self.env.get(k) != v}
        call = RecordedCall(list(argv), input=input, cwd=str(cwd) if cwd else None, env=extra)
        self._calls.append(call)

        response = self._match(call.command)
        if response is None:
            return CommandResult(list(argv), 0)
        if isinstance(response, CommandResult):
            return CommandResult(list(argv), response.returncode, response.stdout, response.stderr)
        return response(call) or CommandResult(list(argv), 0)

    def _match(self, command: list[str]):
        best = None
        for prefix, response in self._responses.items():
            if tuple(command[: len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, response)
        return best[1] if best else None


class FakeHttpClient(HttpClient):
    """In-memory HTTP double.

    Args:
        routes: URL → body (bytes) or JSON-serialisable object.
        reachable_urls: URLs answering HEAD. None means every URL.
    """

    def __init__(
        self,
        routes: dict[str, Any] | None = None,
        reachable_urls: set[str] | None = None,
    ):
        super().__init__(user_agent="gvm-provision-test")
        self.routes: dict[str, Any] = dict(routes or {})
        self.reachable_urls = reachable_urls
        self.requested: list[str] = []

    def reachable(self, url: str) -> bool:
        self.requested.append(f"HEAD {url}")
        return self.reachable_urls is None or url in self.reachable_urls

    def fetch(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.routes:
            raise DownloadError(f"GET {url} returned HTTP 404")
        body = self.routes[url]
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode()
        return json.dumps(body).encode()

    def download(self, url: str, dest: Path) -> Path:
        body = self.fetch(url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(body)
        return dest
