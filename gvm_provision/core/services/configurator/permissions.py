"""
Permission normalization for runtime state directories.

Ownership drift after ``chown`` is reported as a warning, never fatal.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd
from collections.abc import Sequence
from pathlib import Path

from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import PermissionFailure
from gvm_provision.core.models.run import HostRole

logger = logging.getLogger(__name__)

ROLE_STATE_DIRS: dict[HostRole, tuple[str, ...]] = {
    HostRole.SCANNER: ("/var/lib/gvm", "/var/lib/openvas", "/var/lib/notus", "/var/log/gvm"),
    HostRole.MANAGER: (
        "/var/lib/gvm", "/var/lib/openvas", "/var/lib/notus", "/var/log/gvm", "/run/gvmd",
    ),
    HostRole.WEBUI: ("/var/log/gvm",),
}


def owner_of(path: Path) -> str:
    """``user:group`` of a path, numeric ids when unnamed."""
    st = os.stat(path)
    try:
        user = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        user = str(st.st_uid)
    try:
        group = grp.getgrgid(st.st_gid).gr_name
    except KeyError:
        group = str(st.st_gid)
    return f"{user}:{group}"


def normalize_directories(
    runner: CommandRunner,
    settings: Settings,
    directories: Sequence[str],
) -> None:
    """Create each directory, hand it to the service account, make it group-writable."""
    logger.info("Adjusting permissions for OpenVAS directories...")
    expected = f"{settings.service_user}:{settings.service_group}"

    for target in directories:
        path = settings.live_path(target)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create directory %s.", path)
            raise PermissionFailure(f"Cannot create {path}: {e.strerror or e}") from e

        runner.run(["chown", "-R", expected, path])
        runner.run(["chmod", "-R", "g+srw", path])

        actual = owner_of(path)
        if actual != expected:
            logger.warning(
                "Directory %s ownership is %s, not %s, after setting. Verify permissions.",
                path, actual, expected,
            )

    logger.info("Permissions adjusted.")


def restrict_binary(runner: CommandRunner, settings: Settings, binary: str, mode: str = "6750") -> None:
    """Give an installed binary to the service account with setuid/setgid bits."""
    path = settings.live_path(binary)
    runner.run(["chown", f"{settings.service_user}:{settings.service_group}", path])
    runner.run(["chmod", mode, path])
