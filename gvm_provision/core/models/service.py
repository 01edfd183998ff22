"""
Service descriptor model — one systemd unit per long-running process.

Descriptors are plain data; :meth:`ServiceDescriptor.render` turns one
into unit-file text. Rendering is deterministic, so regenerating a unit
overwrites it with identical content.
"""

from __future__ import annotations

import shlex

from pydantic import BaseModel, ConfigDict


class ServiceDescriptor(BaseModel):
    """Everything needed to write ``<name>.service``."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    documentation: tuple[str, ...] = ()
    exec_start: tuple[str, ...]
    user: str = "gvm"
    group: str | None = "gvm"

    # ── Ordering ──
    after: tuple[str, ...] = ("network.target",)
    wants: tuple[str, ...] = ()
    condition_kernel_command_line: str | None = None

    # ── Runtime ──
    service_type: str = "exec"
    runtime_directory: str | None = None
    runtime_directory_mode: str = "2775"
    pid_file: str | None = None
    environment: tuple[tuple[str, str], ...] = ()
    success_exit_status: str | None = None
    restart: str = "always"
    restart_sec: int | None = None
    timeout_stop_sec: int | None = None

    # ── Install ──
    wanted_by: str = "multi-user.target"
    alias: str | None = None

    @property
    def unit_name(self) -> str:
        return f"{self.name}.service"

    def render(self) -> str:
        """Render the unit file text."""
        unit = [("Description", self.description)]
        if self.documentation:
            unit.append(("Documentation", " ".join(self.documentation)))
        if self.after:
            unit.append(("After", " ".join(self.after)))
        if self.wants:
            unit.append(("Wants", " ".join(self.wants)))
        if self.condition_kernel_command_line:
            unit.append(("ConditionKernelCommandLine", self.condition_kernel_command_line))

        service = [("Type", self.service_type), ("User", self.user)]
        if self.group:
            service.append(("Group", self.group))
        if self.runtime_directory:
            service.append(("RuntimeDirectory", self.runtime_directory))
            service.append(("RuntimeDirectoryMode", self.runtime_directory_mode))
        if self.pid_file:
            service.append(("PIDFile", self.pid_file))
        for key, value in self.environment:
            service.append(("Environment", f'"{key}={value}"'))
        service.append(("ExecStart", shlex.join(self.exec_start)))
        if self.success_exit_status:
            service.append(("SuccessExitStatus", self.success_exit_status))
        service.append(("Restart", self.restart))
        if self.restart_sec is not None:
            service.append(("RestartSec", str(self.restart_sec)))
        if self.timeout_stop_sec is not None:
            service.append(("TimeoutStopSec", str(self.timeout_stop_sec)))

        install = [("WantedBy", self.wanted_by)]
        if self.alias:
            install.append(("Alias", self.alias))

        sections = []
        for title, entries in (("Unit", unit), ("Service", service), ("Install", install)):
            body = "\n".join(f"{key}={value}" for key, value in entries)
            sections.append(f"[{title}]\n{body}\n")
        return "\n".join(sections)
