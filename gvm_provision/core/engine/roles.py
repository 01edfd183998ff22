"""
Role pipelines — the fixed, ordered steps each host role runs.

Every step is a plain function taking the :class:`RunContext`. Steps
never catch provisioning errors themselves; the orchestrator does.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial

from gvm_provision.adapters.gvmd import GvmdAdmin
from gvm_provision.adapters.postgres import PostgresAdmin
from gvm_provision.adapters.systemd import Systemctl
from gvm_provision.core.data.dependencies import ROLE_DEPENDENCIES
from gvm_provision.core.data.units import role_units
from gvm_provision.core.engine.context import RunContext
from gvm_provision.core.models.run import HostRole, InstallationStep
from gvm_provision.core.services.artifacts import ArtifactFetcher
from gvm_provision.core.services.builders import BuildEnvironment, build_component
from gvm_provision.core.services.configurator import certificates, manager, scanner
from gvm_provision.core.services.configurator.accounts import ensure_service_account
from gvm_provision.core.services.configurator.database import bootstrap_database
from gvm_provision.core.services.configurator.permissions import (
    ROLE_STATE_DIRS,
    normalize_directories,
    restrict_binary,
)
from gvm_provision.core.services.configurator.sudoers import install_sudoers_rule
from gvm_provision.core.services.configurator.units import install_units, start_services
from gvm_provision.core.services.dependencies import DependencyInstaller
from gvm_provision.core.services.trust import setup_artifact_keyring, setup_feed_keyring
from gvm_provision.core.services.versions import pin_components, resolve_versions

logger = logging.getLogger(__name__)

# Build order per role
ROLE_COMPONENTS: dict[HostRole, tuple[str, ...]] = {
    HostRole.DATABASE: ("gvm-libs", "pg-gvm"),
    HostRole.SCANNER: (
        "gvm-libs", "openvas-smb", "openvas-scanner", "ospd-openvas",
        "openvasd", "greenbone-feed-sync",
    ),
    HostRole.MANAGER: (
        "gvm-libs", "gvmd", "openvas-smb", "openvas-scanner", "ospd-openvas",
        "openvasd", "greenbone-feed-sync", "gvm-tools",
    ),
    HostRole.WEBUI: ("gvm-libs", "gsa", "gsad"),
}

# useradd home flag: True -m, False -M, None useradd default
_CREATE_HOME: dict[HostRole, bool | None] = {
    HostRole.SCANNER: False,
    HostRole.MANAGER: None,
    HostRole.WEBUI: True,
}


# ── Shared steps ───────────────────────────────────────────────


def install_dependencies(ctx: RunContext) -> None:
    DependencyInstaller(ctx.runner).install_all(ROLE_DEPENDENCIES[ctx.role])


def resolve_component_versions(ctx: RunContext) -> None:
    names = ROLE_COMPONENTS[ctx.role]
    ctx.versions = resolve_versions(ctx.http, ctx.settings, names)
    ctx.components = pin_components(ctx.versions, ctx.settings, names)


def create_service_account(ctx: RunContext) -> None:
    ensure_service_account(
        ctx.runner,
        ctx.settings,
        operator=ctx.target.operator,
        create_home=_CREATE_HOME.get(ctx.role),
    )


def import_signing_key(ctx: RunContext) -> None:
    ctx.trust = setup_artifact_keyring(
        ctx.runner, ctx.http, ctx.settings, ctx.layout.gnupg_home, ctx.layout.source_dir,
    )
    ctx.fetcher = ArtifactFetcher(ctx.http, ctx.trust, ctx.layout.source_dir)
    ctx.build_env = BuildEnvironment(
        runner=ctx.runner,
        http=ctx.http,
        settings=ctx.settings,
        layout=ctx.layout,
        fetcher=ctx.fetcher,
    )


def install_component(name: str, ctx: RunContext) -> None:
    build_component(ctx.component(name), ctx.require_build_env())


def setup_redis(ctx: RunContext) -> None:
    env = ctx.require_build_env()
    tree = env.fetcher.obtain(ctx.component("openvas-scanner"))
    scanner.setup_redis(ctx.runner, ctx.settings, tree)


def normalize_permissions(ctx: RunContext) -> None:
    normalize_directories(ctx.runner, ctx.settings, ROLE_STATE_DIRS[ctx.role])
    if ctx.role is HostRole.MANAGER:
        restrict_binary(ctx.runner, ctx.settings, ctx.settings.prefix_path("sbin", "gvmd"))


def setup_feed_validation(ctx: RunContext) -> None:
    setup_feed_keyring(ctx.runner, ctx.http, ctx.settings, ctx.layout.source_dir)


def configure_sudo(ctx: RunContext) -> None:
    install_sudoers_rule(ctx.runner, ctx.settings)


def install_service_units(ctx: RunContext) -> None:
    install_units(
        ctx.runner,
        ctx.settings,
        role_units(ctx.role, ctx.settings, ctx.target),
        ctx.layout.build_dir,
    )


def sync_feed(ctx: RunContext) -> None:
    scanner.sync_feed(ctx.runner, ctx.settings)


def start_role_services(ctx: RunContext) -> None:
    units = [d.unit_name for d in role_units(ctx.role, ctx.settings, ctx.target)]
    start_services(ctx.runner, units)


# ── Database host ──────────────────────────────────────────────


def setup_postgresql(ctx: RunContext) -> None:
    bootstrap_database(
        PostgresAdmin(ctx.runner),
        Systemctl(ctx.runner),
        ctx.settings,
        client_ip=ctx.target.manager_ip,
        password=ctx.db_password,
    )


# ── Scanner host ───────────────────────────────────────────────


def install_scanner_certificates(ctx: RunContext) -> None:
    certificates.install_certificates(
        ctx.http, ctx.runner, ctx.settings, certificates.SCANNER_CERTS,
    )


# ── Manager host ───────────────────────────────────────────────


def _gvmd(ctx: RunContext) -> GvmdAdmin:
    return GvmdAdmin(ctx.runner, ctx.settings, ctx.target.db_host)


def configure_database_client(ctx: RunContext) -> None:
    manager.write_pgpass(
        ctx.runner, ctx.settings, db_host=ctx.target.db_host, password=ctx.db_password,
    )


def create_admin_user(ctx: RunContext) -> None:
    manager.create_admin_credential(
        ctx.runner, ctx.settings, _gvmd(ctx), manager.admin_password_path(ctx.layout),
    )


def set_feed_import_owner(ctx: RunContext) -> None:
    manager.set_feed_import_owner(_gvmd(ctx), ctx.settings.admin_user)


def install_manager_units(ctx: RunContext) -> None:
    manager.generate_scanner_certs(ctx.runner, ctx.settings)
    install_service_units(ctx)


def register_remote_scanner(ctx: RunContext) -> None:
    certificates.install_certificates(
        ctx.http, ctx.runner, ctx.settings, certificates.PEER_CERTS,
    )
    manager.register_remote_scanner(_gvmd(ctx), ctx.settings, ctx.target.scanner_host)


def show_login(ctx: RunContext) -> None:
    manager.display_login(ctx.runner, ctx.settings, manager.admin_password_path(ctx.layout))


# ── Pipelines ──────────────────────────────────────────────────


def _builds(role: HostRole) -> list[tuple[str, Callable[[RunContext], None]]]:
    return [(f"Install {name}", partial(install_component, name)) for name in ROLE_COMPONENTS[role]]


def _pipeline(role: HostRole) -> list[tuple[str, Callable[[RunContext], None]]]:
    head = [
        ("Install dependencies", install_dependencies),
        ("Resolve component versions", resolve_component_versions),
    ]
    trust = [("Import Greenbone signing key", import_signing_key)]
    account = [("Create service account", create_service_account)]

    if role is HostRole.DATABASE:
        return head + trust + _builds(role) + [
            ("Set up PostgreSQL", setup_postgresql),
        ]

    if role is HostRole.SCANNER:
        return head + account + trust + _builds(role) + [
            ("Set up Redis", setup_redis),
            ("Adjust permissions", normalize_permissions),
            ("Set up feed validation", setup_feed_validation),
            ("Configure sudo", configure_sudo),
            ("Install scanner certificates", install_scanner_certificates),
            ("Install systemd services", install_service_units),
            ("Sync Greenbone feed", sync_feed),
            ("Start services", start_role_services),
        ]

    if role is HostRole.MANAGER:
        return head + account + trust + _builds(role) + [
            ("Set up Redis", setup_redis),
            ("Adjust permissions", normalize_permissions),
            ("Set up feed validation", setup_feed_validation),
            ("Configure sudo", configure_sudo),
            ("Configure database credentials", configure_database_client),
            ("Create admin user", create_admin_user),
            ("Set feed import owner", set_feed_import_owner),
            ("Install systemd services", install_manager_units),
            ("Register remote scanner", register_remote_scanner),
            ("Sync Greenbone feed", sync_feed),
            ("Start services", start_role_services),
            ("Display login information", show_login),
        ]

    return head + account + trust + _builds(role) + [
        ("Adjust permissions", normalize_permissions),
        ("Install systemd services", install_service_units),
        ("Start services", start_role_services),
    ]


def role_steps(role: HostRole) -> list[InstallationStep]:
    """The ordered installation steps for ``role``."""
    return [
        InstallationStep(name=name, ordinal=i, action=action)
        for i, (name, action) in enumerate(_pipeline(role), start=1)
    ]
