"""
Version resolver — latest upstream release per component, once per run.

The mapping returned by :func:`resolve_versions` is read-only and
:func:`pin_components` turns it into frozen ``Component`` models, so a
registry that changes mid-run cannot alter what gets downloaded.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from gvm_provision.adapters.http import HttpClient
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.data.components import get_spec, release_repositories
from gvm_provision.core.errors import ConnectivityError, DownloadError, VersionResolutionError
from gvm_provision.core.models.component import Component

logger = logging.getLogger(__name__)


def check_connectivity(http: HttpClient, settings: Settings) -> None:
    """Abort unless the release registry answers."""
    logger.info("Checking network connectivity to %s...", settings.github_api)
    if not http.reachable(settings.github_api):
        logger.error("No network connectivity to %s.", settings.github_api)
        raise ConnectivityError(f"Cannot reach {settings.github_api}")
    logger.info("Network connectivity confirmed.")


def latest_release(http: HttpClient, settings: Settings, repository: str) -> str:
    """Return the latest release tag of ``repository`` without a leading ``v``."""
    url = f"{settings.github_api}/repos/{settings.github_org}/{repository}/releases/latest"
    try:
        data = http.get_json(url)
    except DownloadError as e:
        raise VersionResolutionError(
            f"Failed to fetch latest version for {repository}: {e.message}"
        ) from e

    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag, str) or not tag.strip():
        raise VersionResolutionError(f"Failed to fetch latest version for {repository}")

    tag = tag.strip()
    return tag[1:] if tag.startswith("v") else tag


def resolve_versions(
    http: HttpClient,
    settings: Settings,
    components: Sequence[str],
) -> Mapping[str, str]:
    """Resolve every release repository behind ``components``.

    All or nothing: the first missing version aborts the run.

    Returns:
        Read-only mapping of repository name to version.
    """
    check_connectivity(http, settings)
    logger.info("Fetching latest component versions...")

    versions: dict[str, str] = {}
    for repository in release_repositories(components):
        version = latest_release(http, settings, repository)
        versions[repository] = version
        logger.info("Latest version for %s: %s", repository, version)

    return MappingProxyType(versions)


def pin_components(
    versions: Mapping[str, str],
    settings: Settings,
    components: Sequence[str],
) -> dict[str, Component]:
    """Bind resolved versions to the catalogue, yielding frozen components."""
    pinned: dict[str, Component] = {}
    for name in components:
        spec = get_spec(name)
        version = None if spec.from_index else versions[spec.release_repository]
        pinned[name] = spec.pin(
            version,
            org=settings.github_org,
            prefix=settings.install_prefix,
        )
    return pinned
