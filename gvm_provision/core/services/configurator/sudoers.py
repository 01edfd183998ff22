"""
Sudoers rule for the scanner binary.

The fragment is written to a temporary file next to its destination,
validated with ``visudo -c -f`` and only then moved into place, so an
invalid fragment never becomes active.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import CommandError, ServiceValidationError

logger = logging.getLogger(__name__)


def scanner_rule(settings: Settings) -> str:
    return f"%{settings.service_group} ALL = NOPASSWD: {settings.prefix_path('sbin', 'openvas')}"


def rule_present(path: Path, rule: str) -> bool:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return False
    return rule in (line.strip() for line in lines)


def install_sudoers_rule(runner: CommandRunner, settings: Settings) -> bool:
    """Install the service group's sudo rule.

    Returns:
        True if a new fragment was installed, False if already configured.

    Raises:
        ServiceValidationError: visudo rejected the fragment (nothing installed).
    """
    logger.info("Configuring sudo for %s group...", settings.service_group)
    rule = scanner_rule(settings)
    dest = settings.live_path(settings.sudoers_file)

    if rule_present(dest, rule):
        logger.info("Sudo already configured for %s group.", settings.service_group)
        return False

    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", dir=dest.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(rule + "\n")
        tmp.chmod(0o440)

        try:
            runner.run(["visudo", "-c", "-f", tmp])
        except CommandError as e:
            logger.error("Sudoers file validation failed for %s.", dest)
            raise ServiceValidationError.wrap(e, f"visudo rejected {dest}") from e

        os.replace(tmp, dest)
    finally:
        tmp.unlink(missing_ok=True)

    logger.info("Sudo configuration for %s group completed.", settings.service_group)
    return True
