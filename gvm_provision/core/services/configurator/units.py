"""
Service unit installation and start-up.

Units are rendered into the build workspace, copied into the systemd
unit directory and picked up with ``daemon-reload``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.adapters.systemd import Systemctl
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import CommandError, PermissionFailure, ServiceValidationError
from gvm_provision.core.models.service import ServiceDescriptor

logger = logging.getLogger(__name__)


def write_units(descriptors: Sequence[ServiceDescriptor], dest_dir: Path) -> list[Path]:
    """Render each descriptor into ``dest_dir``; returns the written files."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for descriptor in descriptors:
        path = dest_dir / descriptor.unit_name
        path.write_text(descriptor.render(), encoding="utf-8")
        logger.debug("Rendered %s", path)
        written.append(path)
    return written


def install_units(
    runner: CommandRunner,
    settings: Settings,
    descriptors: Sequence[ServiceDescriptor],
    build_dir: Path,
) -> None:
    """Render, install and register unit files.

    Raises:
        PermissionFailure: A unit file could not be written or copied.
        ServiceValidationError: systemd refused to reload.
    """
    logger.info("Setting up systemd services...")
    systemd_dir = settings.live_path(settings.systemd_dir)
    try:
        rendered = write_units(descriptors, build_dir)
        systemd_dir.mkdir(parents=True, exist_ok=True)
        for path in rendered:
            shutil.copy2(path, systemd_dir / path.name)
    except OSError as e:
        logger.error("Failed to copy systemd service files to %s.", systemd_dir)
        raise PermissionFailure(f"Cannot install units into {systemd_dir}: {e.strerror or e}") from e

    try:
        Systemctl(runner).daemon_reload()
    except CommandError as e:
        logger.error("Failed to reload systemd daemon.")
        raise ServiceValidationError.wrap(e, "systemctl daemon-reload failed") from e
    logger.info("Systemd services configured.")


def start_services(runner: CommandRunner, units: Sequence[str]) -> None:
    """Start each unit in order (fatal), then enable it (warning only)."""
    systemctl = Systemctl(runner)
    for unit in units:
        logger.info("Starting %s...", unit)
        try:
            systemctl.start(unit)
        except CommandError as e:
            logger.error("Failed to start %s.", unit)
            raise ServiceValidationError.wrap(e, f"{unit} did not start") from e
        if not systemctl.enable(unit).ok:
            logger.warning("Failed to enable %s. It may not start on boot.", unit)
    logger.info("Services started.")
