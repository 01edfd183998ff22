"""
gvm-provision — CLI entrypoint.

Usage:
    gvm-provision --help
    gvm-provision database MANAGER_IP DB_PASSWORD
    gvm-provision scanner OPERATOR
    gvm-provision manager OPERATOR DB_HOST DB_PASSWORD SCANNER_HOST
    gvm-provision webui OPERATOR GVMD_HOST GVMD_PORT

Each role command is also installed as its own script
(``gvm-install-database`` ...) taking the same positional arguments.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from gvm_provision import __version__
from gvm_provision.core.observability.logging_config import setup_logging


def _bootstrap(
    ctx: click.Context,
    *,
    verbose: bool = False,
    quiet: bool = False,
    debug: bool = False,
    config_path: str | None = None,
) -> None:
    """Load settings and configure logging, once per process."""
    from gvm_provision.core.config.loader import ConfigError, load_settings

    ctx.ensure_object(dict)
    if "settings" in ctx.obj:
        return

    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("GVM_PROVISION_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("GVM_PROVISION_LOG_FILE", settings.log_file),
        log_file_level=os.environ.get("GVM_PROVISION_LOG_FILE_LEVEL"),
    )

    ctx.obj["settings"] = settings
    ctx.obj["quiet"] = quiet


def _settings(ctx: click.Context):
    _bootstrap(ctx)
    return ctx.obj["settings"]


@click.group()
@click.version_option(version=__version__, prog_name="gvm-provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors to the console.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Provision Greenbone/OpenVAS hosts from verified upstream sources."""
    _bootstrap(ctx, verbose=verbose, quiet=quiet, debug=debug, config_path=config_path)


def _install(ctx: click.Context, role_name: str, **target_fields) -> None:
    from gvm_provision.core.engine.orchestrator import Orchestrator
    from gvm_provision.core.models.run import HostRole, HostTarget

    settings = _settings(ctx)
    role = HostRole(role_name)
    target = HostTarget(**target_fields)

    code = Orchestrator(settings).run(role, target)
    if code != 0:
        click.secho(
            f"❌ {role.display_name} installation failed. See {settings.log_file}.",
            fg="red",
            err=True,
        )
        sys.exit(code)


# ── Role commands ──────────────────────────────────────────────


@cli.command("database")
@click.argument("manager_ip")
@click.argument("db_password")
@click.pass_context
def database(ctx: click.Context, manager_ip: str, db_password: str) -> None:
    """Install PostgreSQL with pg-gvm and allow MANAGER_IP to connect."""
    _install(ctx, "database", manager_ip=manager_ip, db_password=db_password)


@cli.command("scanner")
@click.argument("operator")
@click.pass_context
def scanner(ctx: click.Context, operator: str) -> None:
    """Install openvas-scanner, ospd-openvas and openvasd."""
    _install(ctx, "scanner", operator=operator)


@cli.command("manager")
@click.argument("operator")
@click.argument("db_host")
@click.argument("db_password")
@click.argument("scanner_host")
@click.pass_context
def manager(
    ctx: click.Context,
    operator: str,
    db_host: str,
    db_password: str,
    scanner_host: str,
) -> None:
    """Install gvmd against DB_HOST and register SCANNER_HOST."""
    _install(
        ctx,
        "manager",
        operator=operator,
        db_host=db_host,
        db_password=db_password,
        scanner_host=scanner_host,
    )


@cli.command("webui")
@click.argument("operator")
@click.argument("gvmd_host")
@click.argument("gvmd_port", type=click.IntRange(1, 65535))
@click.pass_context
def webui(ctx: click.Context, operator: str, gvmd_host: str, gvmd_port: int) -> None:
    """Install gsa and gsad talking to gvmd on GVMD_HOST:GVMD_PORT."""
    _install(ctx, "webui", operator=operator, gvmd_host=gvmd_host, gvmd_port=gvmd_port)


# ── Read-only helpers ──────────────────────────────────────────


def _component_names() -> list[str]:
    from gvm_provision.core.data.components import CATALOGUE

    return sorted(name for name, spec in CATALOGUE.items() if not spec.from_index)


@cli.command("versions")
@click.argument("components", nargs=-1, type=click.Choice(_component_names()))
@click.pass_context
def versions(ctx: click.Context, components: tuple[str, ...]) -> None:
    """Show the latest upstream release of each component."""
    from gvm_provision.adapters.http import HttpClient
    from gvm_provision.core.data.components import get_spec
    from gvm_provision.core.errors import ProvisionError
    from gvm_provision.core.services.versions import resolve_versions

    settings = _settings(ctx)
    names = list(components) or _component_names()

    try:
        resolved = resolve_versions(HttpClient(), settings, names)
    except ProvisionError as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        sys.exit(1)

    width = max(len(n) for n in names)
    for name in names:
        version = resolved[get_spec(name).release_repository]
        click.echo(f"{name.ljust(width)}  {version}")


@cli.command("render-units")
@click.argument("role", type=click.Choice(["scanner", "manager", "webui"]))
@click.option("--db-host", default="localhost", show_default=True, help="Manager: database host.")
@click.option("--gvmd-host", default="127.0.0.1", show_default=True, help="Web UI: gvmd host.")
@click.option("--gvmd-port", type=click.IntRange(1, 65535), default=None, help="Web UI: gvmd port.")
@click.pass_context
def render_units(
    ctx: click.Context,
    role: str,
    db_host: str,
    gvmd_host: str,
    gvmd_port: int | None,
) -> None:
    """Print the systemd unit files ROLE would install."""
    from gvm_provision.core.data.units import role_units
    from gvm_provision.core.models.run import HostRole, HostTarget

    settings = _settings(ctx)
    target = HostTarget(db_host=db_host, gvmd_host=gvmd_host, gvmd_port=gvmd_port)

    for i, descriptor in enumerate(role_units(HostRole(role), settings, target)):
        if i:
            click.echo()
        click.secho(f"# {settings.systemd_dir}/{descriptor.unit_name}", fg="cyan", bold=True)
        click.echo(descriptor.render(), nl=False)


if __name__ == "__main__":
    cli()
