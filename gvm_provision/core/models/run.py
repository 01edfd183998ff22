"""
Run models — workspace layout, installation steps, credentials, targets.

All of these live for one run only.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr


class HostRole(str, Enum):
    DATABASE = "database"
    SCANNER = "scanner"
    MANAGER = "manager"
    WEBUI = "webui"

    @property
    def display_name(self) -> str:
        return {
            HostRole.DATABASE: "Database",
            HostRole.SCANNER: "Scanner",
            HostRole.MANAGER: "Manager",
            HostRole.WEBUI: "Web UI",
        }[self]


class WorkspaceLayout(BaseModel):
    """Private per-run directories. Removed when the run ends, however it ends."""

    model_config = ConfigDict(frozen=True)

    source_dir: Path    # downloaded tarballs and unpacked trees
    build_dir: Path     # out-of-tree build directories, rendered unit files
    install_dir: Path   # per-component staging roots (DESTDIR / --root)
    gnupg_home: Path    # artifact-verification keyring
    secrets_dir: Path   # 0700, root only: one-run credential handoff

    @property
    def roots(self) -> tuple[Path, ...]:
        return (self.source_dir, self.build_dir, self.install_dir)

    def staging_root(self, component: str) -> Path:
        return self.install_dir / component


class HostTarget(BaseModel):
    """Role arguments from the command line."""

    model_config = ConfigDict(frozen=True)

    operator: str | None = None         # account added to the gvm group
    manager_ip: str | None = None       # database role: client allowed in pg_hba
    db_host: str | None = None
    db_password: SecretStr | None = None
    scanner_host: str | None = None
    gvmd_host: str | None = None
    gvmd_port: int | None = None


class AdminCredential(BaseModel):
    """Web-UI administrator login created on the manager host."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


# Called with the RunContext
StepAction = Callable[..., Any]


class InstallationStep(BaseModel):
    """One named entry in a role's fixed pipeline."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    ordinal: int
    action: StepAction
    required: bool = True   # optional steps log WARN on failure and continue
