"""
Run context — everything one installation run shares between steps.

Created by the orchestrator once the workspace exists; steps fill in
the resolved versions, the trust store and the fetcher as they go.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.models.component import Component
from gvm_provision.core.models.run import HostRole, HostTarget, WorkspaceLayout
from gvm_provision.core.services.artifacts import ArtifactFetcher
from gvm_provision.core.services.builders import BuildEnvironment
from gvm_provision.core.services.trust import TrustStore


@dataclass
class RunContext:
    settings: Settings
    role: HostRole
    target: HostTarget
    runner: CommandRunner
    http: HttpClient
    layout: WorkspaceLayout

    versions: Mapping[str, str] = field(default_factory=dict)
    components: dict[str, Component] = field(default_factory=dict)
    trust: TrustStore | None = None
    fetcher: ArtifactFetcher | None = None
    build_env: BuildEnvironment | None = None

    def component(self, name: str) -> Component:
        try:
            return self.components[name]
        except KeyError:
            raise RuntimeError(f"{name} has not been pinned for this run") from None

    def require_build_env(self) -> BuildEnvironment:
        if self.build_env is None:
            raise RuntimeError("Signing key not imported yet; nothing can be built")
        return self.build_env

    @property
    def db_password(self) -> str:
        if self.target.db_password is None:
            raise RuntimeError(f"{self.role.value} run has no database password")
        return self.target.db_password.get_secret_value()
