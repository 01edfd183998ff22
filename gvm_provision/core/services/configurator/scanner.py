"""
Scanner runtime: the dedicated redis instance and the vulnerability feed.

Used by both the scanner and the manager role (the manager runs its own
local ospd-openvas next to gvmd).
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from gvm_provision.adapters.apt import Apt
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.adapters.systemd import Systemctl
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import (
    CommandError,
    PackageManagerFailure,
    PermissionFailure,
    ServiceValidationError,
)

logger = logging.getLogger(__name__)

REDIS_UNIT = "redis-server@openvas.service"
REDIS_CONF = "/etc/redis/redis-openvas.conf"
REDIS_SOCKET = "/run/redis-openvas/redis.sock"
OPENVAS_CONF = "/etc/openvas/openvas.conf"


def setup_redis(runner: CommandRunner, settings: Settings, scanner_tree: Path) -> None:
    """Install redis and point openvas at the ``redis-openvas`` socket.

    Args:
        scanner_tree: Unpacked openvas-scanner source (ships the config).

    Raises:
        PackageManagerFailure: redis-server could not be installed.
        PermissionFailure: The config could not be copied into place.
        ServiceValidationError: The redis instance did not start.
    """
    logger.info("Setting up Redis for OpenVAS Scanner...")
    try:
        Apt(runner).install(["redis-server"])
    except CommandError as e:
        logger.error("Failed to install redis-server.")
        raise PackageManagerFailure.wrap(e, "redis-server not installed") from e

    source = scanner_tree / "config" / "redis-openvas.conf"
    if not source.is_file():
        logger.error("Redis configuration file not found at %s", source)
        raise PermissionFailure(f"Missing {source}")

    conf = settings.live_path(REDIS_CONF)
    try:
        conf.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, conf)
    except OSError as e:
        logger.error("Failed to copy Redis configuration to %s", conf)
        raise PermissionFailure(f"Cannot install {conf}: {e.strerror or e}") from e
    runner.run(["chown", "redis:redis", conf])

    openvas_conf = settings.live_path(OPENVAS_CONF)
    line = f"db_address = {REDIS_SOCKET}"
    try:
        openvas_conf.parent.mkdir(parents=True, exist_ok=True)
        existing = openvas_conf.read_text(encoding="utf-8") if openvas_conf.exists() else ""
        if line not in (" ".join(entry.split()) for entry in existing.splitlines()):
            with open(openvas_conf, "a", encoding="utf-8") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(line + "\n")
    except OSError as e:
        raise PermissionFailure(f"Cannot update {openvas_conf}: {e.strerror or e}") from e

    systemctl = Systemctl(runner)
    try:
        systemctl.start(REDIS_UNIT)
    except CommandError as e:
        logger.error("Failed to start Redis service.")
        raise ServiceValidationError.wrap(e, f"{REDIS_UNIT} did not start") from e
    if not systemctl.enable(REDIS_UNIT).ok:
        logger.warning("Failed to enable Redis service. It may not start on boot.")

    runner.run(["usermod", "-aG", "redis", settings.service_user])
    logger.info("Redis setup completed.")


def sync_feed(runner: CommandRunner, settings: Settings) -> None:
    """Pull the vulnerability feed. Long-running; fatal on failure."""
    logger.info("Syncing Greenbone feed. This may take a while...")
    try:
        runner.run([settings.prefix_path("bin", "greenbone-feed-sync")])
    except CommandError as e:
        logger.error("Failed to sync Greenbone feed. Check network or feed configuration.")
        raise ServiceValidationError.wrap(e, "Feed synchronization failed") from e
    logger.info("Feed sync completed.")
