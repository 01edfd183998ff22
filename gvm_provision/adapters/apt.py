"""Debian package manager adapter."""

from __future__ import annotations

from collections.abc import Sequence

from gvm_provision.adapters.shell.command import CommandResult, CommandRunner

# Keep debconf from prompting
_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class Apt:
    """Typed command builder for ``apt``."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def clean(self) -> CommandResult:
        return self.runner.run(["apt", "clean"])

    def update(self) -> CommandResult:
        return self.runner.run(["apt", "update"])

    def install(
        self,
        packages: Sequence[str],
        *,
        tolerate: bool = False,
        no_install_recommends: bool = False,
    ) -> CommandResult:
        argv = ["apt", "install", "-y"]
        if no_install_recommends:
            argv.append("--no-install-recommends")
        argv.extend(packages)
        return self.runner.run(argv, tolerate=tolerate, env=_NONINTERACTIVE)
