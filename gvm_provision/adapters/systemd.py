"""systemd service manager adapter."""

from __future__ import annotations

from gvm_provision.adapters.shell.command import CommandResult, CommandRunner


class Systemctl:
    """Typed command builder for ``systemctl``.

    ``enable`` failures are tolerated (WARN) unless asked otherwise.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def daemon_reload(self) -> CommandResult:
        return self.runner.run(["systemctl", "daemon-reload"])

    def start(self, unit: str) -> CommandResult:
        return self.runner.run(["systemctl", "start", unit])

    def restart(self, unit: str) -> CommandResult:
        return self.runner.run(["systemctl", "restart", unit])

    def enable(self, unit: str, *, now: bool = False, tolerate: bool = True) -> CommandResult:
        argv = ["systemctl", "enable"]
        if now:
            argv.append("--now")
        argv.append(unit)
        return self.runner.run(argv, tolerate=tolerate)
