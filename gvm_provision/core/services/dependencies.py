"""Dependency installer — apt package sets for a host role."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from gvm_provision.adapters.apt import Apt
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.adapters.systemd import Systemctl
from gvm_provision.core.errors import CommandError, PackageManagerFailure
from gvm_provision.core.models.component import DependencySet

logger = logging.getLogger(__name__)


class DependencyInstaller:
    def __init__(self, runner: CommandRunner):
        self.runner = runner
        self.apt = Apt(runner)
        self.systemctl = Systemctl(runner)

    def refresh(self) -> None:
        """``apt clean`` + ``apt update`` before any install."""
        try:
            self.apt.clean()
            self.apt.update()
        except CommandError as e:
            raise PackageManagerFailure.wrap(e, "Failed to refresh package lists.") from e

    def install(self, dep: DependencySet) -> None:
        """Install one dependency set.

        Raises:
            PackageManagerFailure: Required packages failed, or an expected
                binary is missing afterwards.
        """
        logger.info("Installing %s dependencies...", dep.name)
        if dep.required:
            try:
                self.apt.install(dep.required, no_install_recommends=dep.no_install_recommends)
            except CommandError as e:
                logger.error(
                    "Failed to install required dependencies for %s. Check apt configuration.",
                    dep.name,
                )
                raise PackageManagerFailure.wrap(
                    e, f"Required dependencies for {dep.name} not installed"
                ) from e

        if dep.optional:
            result = self.apt.install(
                dep.optional,
                tolerate=True,
                no_install_recommends=dep.optional_no_recommends,
            )
            if not result.ok:
                logger.warning(
                    "Optional %s dependencies (%s) not installed. Some features may be limited.",
                    dep.name, ", ".join(dep.optional),
                )

        for binary in dep.expect_binaries:
            if self.runner.which(binary) is None:
                logger.error("%s not found after installing %s dependencies.", binary, dep.name)
                raise PackageManagerFailure(f"{binary} missing after installing {dep.name}")

        for unit in dep.enable_services:
            try:
                self.systemctl.enable(unit, now=True, tolerate=False)
            except CommandError as e:
                raise PackageManagerFailure.wrap(e, f"Failed to enable {unit}") from e

        logger.info("%s dependencies installed.", dep.name)

    def install_all(self, deps: Sequence[DependencySet]) -> None:
        self.refresh()
        for dep in deps:
            self.install(dep)
