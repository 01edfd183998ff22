"""Service account provisioning — the ``gvm`` system user and group."""

from __future__ import annotations

import logging

from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings

logger = logging.getLogger(__name__)


def account_exists(runner: CommandRunner, name: str) -> bool:
    return runner.run(["getent", "passwd", name], tolerate=True).ok


def ensure_service_account(
    runner: CommandRunner,
    settings: Settings,
    *,
    operator: str | None,
    create_home: bool | None = None,
) -> bool:
    """Create the service account unless it already exists.

    Args:
        operator: Login added to the service group (failure only warns).
        create_home: True ``-m``, False ``-M``, None leaves useradd's default.

    Returns:
        True if the account was created, False if it already existed.
    """
    user = settings.service_user
    logger.info("Setting up %s user and group...", user)

    if account_exists(runner, user):
        logger.warning("%s user already exists, skipping creation. Verify user settings.", user)
        return False

    argv = ["useradd", "-r"]
    if create_home is True:
        argv.append("-m")
    elif create_home is False:
        argv.append("-M")
    argv += ["-U", "-G", "sudo", "-s", "/usr/sbin/nologin", user]
    runner.run(argv)

    if operator:
        result = runner.run(["usermod", "-aG", settings.service_group, operator], tolerate=True)
        if result.ok:
            logger.info("Created %s user and group, added %s to %s group.", user, operator, user)
        else:
            logger.warning(
                "Failed to add %s to %s group. Manual addition may be required.",
                operator, settings.service_group,
            )
    return True
