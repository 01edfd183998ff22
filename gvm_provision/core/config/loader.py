"""
Configuration loader — reads provision.yml into a frozen Settings model.

Every path, URL and account name the installer uses lives here. The
loaded ``Settings`` object is passed explicitly to every component;
nothing reads configuration from the process environment after
startup, and nothing can change it mid-run.

No setting disables signature verification.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Default config filename, looked up in the working directory then here
SETTINGS_FILE = "provision.yml"
SYSTEM_SETTINGS_DIR = Path("/etc/gvm-provision")

ONE_GIB = 1024 * 1024 * 1024


class ConfigError(Exception):
    """Raised when the settings file is invalid or unreadable."""


class Settings(BaseModel):
    """Immutable run configuration.

    Absolute paths describe the target host. ``live_root`` relocates all
    of them at once (``/`` in production, a scratch directory in tests);
    use :meth:`live_path` whenever a path is touched from Python.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ── Logging ──
    log_file: str = "/var/log/openvas_install.log"

    # ── Filesystem layout ──
    live_root: Path = Path("/")
    workspace_root: Path = Path("/root")
    install_prefix: str = "/usr/local"
    systemd_dir: str = "/etc/systemd/system"
    sudoers_file: str = "/etc/sudoers.d/gvm"
    min_free_bytes: int = ONE_GIB

    # ── Trust ──
    gnupg_home: Path = Path("/tmp/openvas-gnupg")
    feed_gnupg_home: str = "/etc/openvas/gnupg"
    signing_key_url: str = "https://www.greenbone.net/GBCommunitySigningKey.asc"
    signing_key_owner: str = "Greenbone"
    signing_key_fingerprint: str = "8AE4BE429B60A59B311C2E739823FAA60ED1E580"

    # ── Release registry ──
    github_api: str = "https://api.github.com"
    github_org: str = "greenbone"

    # ── Toolchains ──
    rustup_url: str = "https://raw.githubusercontent.com/hamsterofyoursdreams/rust/main/rustup-init.sh"
    cargo_home: Path = Path("/root/.cargo")
    parallel_jobs: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)

    # ── Service account ──
    service_user: str = "gvm"
    service_group: str = "gvm"
    service_home: str = "/home/gvm"

    # ── Database ──
    db_name: str = "gvmd"
    db_user: str = "gvm"
    db_port: int = 5432

    # ── Service ports ──
    scanner_port: int = 9999
    gvmd_port: int = 9390
    gsad_port: int = 9392

    # ── Manager admin handoff ──
    admin_user: str = "admin"

    # ── Certificates for scanner <-> manager TLS ──
    certs_base_url: str = "https://raw.githubusercontent.com/hamsterofyoursdreams/openvas/main/certs"

    @property
    def source_dir(self) -> Path:
        return self.workspace_root / "source"

    @property
    def build_dir(self) -> Path:
        return self.workspace_root / "build"

    @property
    def install_dir(self) -> Path:
        return self.workspace_root / "install"

    @property
    def secrets_dir(self) -> Path:
        return self.workspace_root / "secrets"

    def live_path(self, path: str | PurePosixPath) -> Path:
        """Map an absolute target-host path under ``live_root``."""
        relative = PurePosixPath(path).relative_to("/")
        return self.live_root / relative

    def prefix_path(self, *parts: str) -> str:
        """Target-host path under the install prefix, e.g. ``sbin/gvmd``."""
        return str(PurePosixPath(self.install_prefix, *parts))


def find_settings_file() -> Path | None:
    """Return the first provision.yml on the search path, if any."""
    for base in (Path.cwd(), SYSTEM_SETTINGS_DIR):
        candidate = base / SETTINGS_FILE
        if candidate.is_file():
            return candidate
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate run settings.

    Args:
        path: Explicit settings file. If None, the search path is tried
            and built-in defaults are used when nothing is found.

    Returns:
        Frozen Settings model.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found, using built-in defaults", SETTINGS_FILE)
            return Settings()
    elif not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e
