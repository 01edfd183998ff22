"""
Environment preparer — the private per-run workspace.

``workspace()`` is the only way a run gets its directories. It creates
the source, build and staging roots, checks they are writable and warns
on low disk space, creates a root-only directory for credentials handed
over within the run, then removes all of them (plus the transient
keyring) when the ``with`` block exits, whether it exits normally or
with an exception.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import PermissionFailure
from gvm_provision.core.models.run import WorkspaceLayout

logger = logging.getLogger(__name__)


def layout_for(settings: Settings) -> WorkspaceLayout:
    return WorkspaceLayout(
        source_dir=settings.source_dir,
        build_dir=settings.build_dir,
        install_dir=settings.install_dir,
        gnupg_home=settings.gnupg_home,
        secrets_dir=settings.secrets_dir,
    )


def prepare_workspace(settings: Settings) -> WorkspaceLayout:
    """Create and check the workspace roots.

    Raises:
        PermissionFailure: A root cannot be created or is not writable.
    """
    layout = layout_for(settings)
    for directory in layout.roots:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "Failed to create directory %s. Check permissions or disk space.", directory
            )
            raise PermissionFailure(f"Cannot create {directory}: {e.strerror or e}") from e

        if not os.access(directory, os.W_OK):
            logger.error("Directory %s is not writable.", directory)
            raise PermissionFailure(f"{directory} is not writable")

        _check_free_space(directory, settings.min_free_bytes)

    _prepare_secrets_dir(layout.secrets_dir)

    logger.info("Workspace ready: source=%s build=%s install=%s", *layout.roots)
    return layout


def _prepare_secrets_dir(directory: Path) -> None:
    try:
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        directory.chmod(0o700)
    except OSError as e:
        logger.error("Failed to create private directory %s.", directory)
        raise PermissionFailure(f"Cannot create {directory}: {e.strerror or e}") from e


def _check_free_space(directory: Path, minimum: int) -> None:
    free = shutil.disk_usage(directory).free
    if free < minimum:
        logger.warning(
            "Low disk space in %s: %d MB available. Recommend at least %d MB.",
            directory, free // (1024 * 1024), minimum // (1024 * 1024),
        )


def cleanup_workspace(layout: WorkspaceLayout) -> bool:
    """Remove every workspace root. Returns False if anything was left behind."""
    logger.info("Cleaning up temporary directories...")
    complete = True
    for directory in (*layout.roots, layout.gnupg_home, layout.secrets_dir):
        shutil.rmtree(directory, ignore_errors=True)
        if directory.exists():
            complete = False
    if complete:
        logger.info("Cleanup completed.")
    else:
        logger.warning(
            "Failed to fully clean up temporary directories. Check permissions."
        )
    return complete


@contextmanager
def workspace(settings: Settings) -> Iterator[WorkspaceLayout]:
    """Yield a fresh workspace and always remove it afterwards."""
    layout = layout_for(settings)
    try:
        yield prepare_workspace(settings)
    finally:
        cleanup_workspace(layout)
