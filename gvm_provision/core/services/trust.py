"""
Trust store setup — isolated GnuPG keyrings.

Two separate trust domains, never sharing a home directory:

- the *artifact keyring* (transient, inside the workspace lifetime)
  verifies release tarballs before anything is unpacked;
- the *feed keyring* (persistent, owned by the service account) lets the
  scanner validate feed content at runtime and carries ultimate
  ownertrust for the signing key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from gvm_provision.adapters.gpg import Gpg
from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import CommandError, DownloadError, PermissionFailure

logger = logging.getLogger(__name__)

SIGNING_KEY_FILE = "GBCommunitySigningKey.asc"


@dataclass(frozen=True)
class TrustStore:
    home: Path
    fingerprint: str
    gpg: Gpg


def fetch_signing_key(http: HttpClient, settings: Settings, dest_dir: Path) -> Path:
    """Download the community signing key (single attempt)."""
    try:
        return http.download(settings.signing_key_url, dest_dir / SIGNING_KEY_FILE)
    except DownloadError:
        logger.error("Failed to download Greenbone signing key. Check network or URL.")
        raise


def _make_home(home: Path) -> None:
    try:
        home.mkdir(parents=True, exist_ok=True)
        home.chmod(0o700)
    except OSError as e:
        logger.error("Failed to create GPG home directory %s.", home)
        raise PermissionFailure(f"Cannot create {home}: {e.strerror or e}") from e


def setup_artifact_keyring(
    runner: CommandRunner,
    http: HttpClient,
    settings: Settings,
    home: Path,
    download_dir: Path,
) -> TrustStore:
    """Create the transient keyring used to verify release artifacts."""
    logger.info("Importing Greenbone Community Signing Key...")
    _make_home(home)
    key_file = fetch_signing_key(http, settings, download_dir)

    gpg = Gpg(runner, home)
    gpg.import_key(key_file)

    if settings.signing_key_owner not in gpg.list_keys():
        logger.warning(
            "%s key imported but not found in keyring. Verification may fail.",
            settings.signing_key_owner,
        )

    logger.info("Greenbone signing key imported.")
    return TrustStore(home=home, fingerprint=settings.signing_key_fingerprint, gpg=gpg)


def setup_feed_keyring(
    runner: CommandRunner,
    http: HttpClient,
    settings: Settings,
    download_dir: Path,
) -> TrustStore:
    """Create the service account's persistent feed-validation keyring."""
    logger.info("Setting up feed validation with GPG...")
    home = settings.live_path(settings.feed_gnupg_home)
    _make_home(home)
    key_file = fetch_signing_key(http, settings, download_dir)

    gpg = Gpg(runner, home)
    try:
        gpg.import_key(key_file)
        gpg.import_ownertrust(settings.signing_key_fingerprint)
    except CommandError:
        logger.error("Failed to import Greenbone signing key for feed validation.")
        raise

    runner.run([
        "chown", "-R", f"{settings.service_user}:{settings.service_group}", home,
    ])
    logger.info("Feed validation setup completed.")
    return TrustStore(home=home, fingerprint=settings.signing_key_fingerprint, gpg=gpg)
