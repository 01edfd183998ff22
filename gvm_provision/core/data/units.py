"""
Service unit catalogue — descriptor factories per long-running process.

Start ordering is declared here: ospd-openvas waits for its redis
instance and openvasd, gvmd waits for PostgreSQL and ospd-openvas.
"""

from __future__ import annotations

from gvm_provision.core.config.loader import Settings
from gvm_provision.core.models.run import HostRole, HostTarget
from gvm_provision.core.models.service import ServiceDescriptor

_NOT_IN_RECOVERY = "!recovery"


def ospd_openvas(settings: Settings, *, listen_tcp: bool) -> ServiceDescriptor:
    """ospd-openvas. ``listen_tcp`` exposes it to a remote manager."""
    argv = [
        settings.prefix_path("bin", "ospd-openvas"),
        "--foreground",
        "--unix-socket", "/run/ospd/ospd-openvas.sock",
        "--pid-file", "/run/ospd/ospd-openvas.pid",
        "--log-file", "/var/log/gvm/ospd-openvas.log",
    ]
    if listen_tcp:
        argv += ["--port", str(settings.scanner_port), "--bind-address", "0.0.0.0"]
    argv += [
        "--lock-file-dir", "/var/lib/openvas",
        "--socket-mode", "0o770",
        "--notus-feed-dir", "/var/lib/notus/advisories",
    ]
    return ServiceDescriptor(
        name="ospd-openvas",
        description="OSPd Wrapper for the OpenVAS Scanner (ospd-openvas)",
        documentation=("man:ospd-openvas(8)", "man:openvas(8)"),
        after=(
            "network.target", "networking.service",
            "redis-server@openvas.service", "openvasd.service",
        ),
        wants=("redis-server@openvas.service", "openvasd.service"),
        condition_kernel_command_line=_NOT_IN_RECOVERY,
        user=settings.service_user,
        group=settings.service_group,
        runtime_directory="ospd",
        pid_file="/run/ospd/ospd-openvas.pid",
        exec_start=tuple(argv),
        success_exit_status="SIGKILL",
        restart_sec=60,
    )


def openvasd(settings: Settings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="openvasd",
        description="OpenVASD",
        documentation=("https://github.com/greenbone/openvas-scanner/tree/main/rust/openvasd",),
        after=(),
        condition_kernel_command_line=_NOT_IN_RECOVERY,
        user=settings.service_user,
        group=None,
        runtime_directory="openvasd",
        exec_start=(
            settings.prefix_path("bin", "openvasd"),
            "--mode", "service_notus",
            "--products", "/var/lib/notus/products",
            "--advisories", "/var/lib/notus/advisories",
            "--listening", "127.0.0.1:3000",
        ),
        success_exit_status="SIGKILL",
        restart_sec=60,
    )


def gvmd(settings: Settings, db_host: str) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="gvmd",
        description="Greenbone Vulnerability Manager Daemon (gvmd)",
        documentation=("man:gvmd(8)",),
        after=(
            "network.target", "networking.service",
            "postgresql.service", "ospd-openvas.service",
        ),
        wants=("postgresql.service", "ospd-openvas.service"),
        condition_kernel_command_line=_NOT_IN_RECOVERY,
        user=settings.service_user,
        group=settings.service_group,
        pid_file="/run/gvmd/gvmd.pid",
        runtime_directory="gvmd",
        environment=(("PGPASSFILE", f"{settings.service_home}/.pgpass"),),
        exec_start=(
            settings.prefix_path("sbin", "gvmd"),
            "--foreground",
            f"--db-host={db_host}",
            f"--db-port={settings.db_port}",
            f"--database={settings.db_name}",
            "--listen=0.0.0.0",
            f"--port={settings.gvmd_port}",
            f"--listen-group={settings.service_group}",
        ),
        timeout_stop_sec=10,
    )


def gsad(settings: Settings, gvmd_host: str, gvmd_port: int) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="gsad",
        description="Greenbone Security Assistant daemon (gsad)",
        documentation=("man:gsad(8)", "https://www.greenbone.net"),
        user=settings.service_user,
        group=settings.service_group,
        runtime_directory="gsad",
        pid_file="/run/gsad/gsad.pid",
        exec_start=(
            settings.prefix_path("sbin", "gsad"),
            "--foreground",
            "--listen=0.0.0.0",
            f"--port={settings.gsad_port}",
            "--http-only",
            f"--mport={gvmd_port}",
            f"--mlisten={gvmd_host}",
        ),
        timeout_stop_sec=10,
        alias="greenbone-security-assistant.service",
    )


def role_units(role: HostRole, settings: Settings, target: HostTarget) -> list[ServiceDescriptor]:
    """Descriptors a role installs, in the order they are started."""
    if role is HostRole.SCANNER:
        return [ospd_openvas(settings, listen_tcp=True), openvasd(settings)]
    if role is HostRole.MANAGER:
        return [
            ospd_openvas(settings, listen_tcp=False),
            gvmd(settings, target.db_host or "localhost"),
            openvasd(settings),
        ]
    if role is HostRole.WEBUI:
        return [
            gsad(
                settings,
                target.gvmd_host or "127.0.0.1",
                target.gvmd_port or settings.gvmd_port,
            )
        ]
    return []
