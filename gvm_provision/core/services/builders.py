"""
Component builders — one strategy per BuildKind.

Every builder stages into ``<install>/<component>`` first and only then
merges the staged tree onto the live filesystem root. A failure while
merging can leave a partially installed component; there is no
rollback.

    builder = builder_for(component, env)
    builder.build(component)
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import BuildError, CommandError
from gvm_provision.core.models.component import BuildKind, Component
from gvm_provision.core.models.run import WorkspaceLayout
from gvm_provision.core.services.artifacts import ArtifactFetcher

logger = logging.getLogger(__name__)


@dataclass
class BuildEnvironment:
    """What every builder needs, passed explicitly."""

    runner: CommandRunner
    http: HttpClient
    settings: Settings
    layout: WorkspaceLayout
    fetcher: ArtifactFetcher
    toolchain_path: str | None = None   # PATH with cargo, once installed


def merge_staged_tree(staging_root: Path, live_root: Path) -> None:
    """Copy a staged install tree onto the live root (``cp -r staged/* /``)."""
    logger.info("Installing %s onto %s", staging_root, live_root)
    try:
        for entry in staging_root.iterdir():
            target = live_root / entry.name
            if entry.is_dir() and not entry.is_symlink():
                shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, target, follow_symlinks=False)
    except (shutil.Error, OSError) as e:
        logger.error("Failed to copy installed files from %s to %s", staging_root, live_root)
        raise BuildError(f"Failed to merge {staging_root} onto {live_root}: {e}") from e


class Builder(ABC):
    kind: BuildKind

    def __init__(self, env: BuildEnvironment):
        self.env = env

    @abstractmethod
    def build(self, component: Component) -> None:
        """Fetch (if needed), build, stage and merge ``component``."""

    def _staging(self, component: Component) -> Path:
        staging = self.env.layout.staging_root(component.name)
        staging.mkdir(parents=True, exist_ok=True)
        return staging

    def _run(self, argv: list, failure: str, **kwargs) -> None:
        try:
            self.env.runner.run(argv, **kwargs)
        except CommandError as e:
            logger.error(failure)
            raise BuildError.wrap(e, failure) from e

    def _merge(self, component: Component) -> None:
        merge_staged_tree(self.env.layout.staging_root(component.name), self.env.settings.live_root)
        logger.info("Successfully built and installed %s", component.label)


class NativeBuilder(Builder):
    """CMake configure, compile, ``make DESTDIR=... install``, merge, ldconfig."""

    kind = BuildKind.NATIVE

    def build(self, component: Component) -> None:
        logger.info("Starting build and installation of %s...", component.label)
        tree = self.env.fetcher.obtain(component)
        build_dir = self.env.layout.build_dir / component.name
        build_dir.mkdir(parents=True, exist_ok=True)

        self._run(
            ["cmake", "-S", tree, "-B", build_dir, *component.cmake_args],
            f"CMake configuration failed for {component.label}",
        )
        self._run(
            ["cmake", "--build", build_dir, f"-j{self.env.settings.parallel_jobs}"],
            f"Build failed for {component.label}",
        )
        staging = self._staging(component)
        self._run(
            ["make", f"DESTDIR={staging}", "install"],
            f"Installation failed for {component.label}",
            cwd=build_dir,
        )
        self._merge(component)

        if component.shared_libraries:
            self._run(["ldconfig"], f"ldconfig failed after installing {component.label}")
            logger.info("Library cache updated with ldconfig for %s.", component.name)


class LanguagePackageBuilder(Builder):
    """``pip install --root`` from the unpacked tree or the package index."""

    kind = BuildKind.LANGUAGE_PACKAGE

    def build(self, component: Component) -> None:
        logger.info("Starting installation of %s...", component.label)
        cwd = None
        if component.pip_target:
            target = component.pip_target
        else:
            cwd = self.env.fetcher.obtain(component)
            target = "."

        staging = self._staging(component)
        self._run(
            [
                "python3", "-m", "pip", "install",
                f"--root={staging}", "--no-warn-script-location", target,
            ],
            f"pip installation failed for {component.label}",
            cwd=cwd,
        )
        self._merge(component)


class CompiledBinaryBuilder(Builder):
    """``cargo build --release`` per binary, copied into ``<prefix>/bin``."""

    kind = BuildKind.COMPILED_BINARY

    def build(self, component: Component) -> None:
        logger.info("Starting build and installation of %s...", component.label)
        path = ensure_rust_toolchain(self.env)
        tree = self.env.fetcher.obtain(component)

        for binary in component.binaries:
            self._run(
                ["cargo", "build", "--release"],
                f"Failed to build {binary}",
                cwd=tree / "rust" / "src" / binary,
                env={"PATH": path},
            )

        staging = self._staging(component)
        bin_dir = staging / self.env.settings.prefix_path("bin").lstrip("/")
        bin_dir.mkdir(parents=True, exist_ok=True)
        release_dir = tree / "rust" / "target" / "release"
        for binary in component.binaries:
            try:
                shutil.copy2(release_dir / binary, bin_dir / binary)
            except OSError as e:
                logger.error("Failed to copy %s binary.", binary)
                raise BuildError(f"Failed to copy {binary}: {e}") from e

        self._merge(component)


class StaticDistBuilder(Builder):
    """Pre-built web assets, copied into ``<prefix>/share/gvm/gsad/web``."""

    kind = BuildKind.STATIC_DIST

    def build(self, component: Component) -> None:
        logger.info("Starting installation of %s...", component.label)
        tree = self.env.fetcher.obtain(component)
        staging = self._staging(component)
        web_dir = staging / self.env.settings.prefix_path("share", "gvm", "gsad", "web").lstrip("/")
        try:
            shutil.copytree(tree, web_dir, dirs_exist_ok=True)
        except (shutil.Error, OSError) as e:
            raise BuildError(f"Failed to stage {component.label}: {e}") from e
        self._merge(component)


def ensure_rust_toolchain(env: BuildEnvironment) -> str:
    """Return a PATH with rustc and cargo on it, installing rustup once if needed."""
    if env.toolchain_path:
        return env.toolchain_path

    cargo_bin = env.settings.cargo_home / "bin"
    path = f"{cargo_bin}:{env.runner.env.get('PATH', '')}"

    if env.runner.which("rustc", path=path) and env.runner.which("cargo", path=path):
        logger.info("Rust and Cargo are already installed.")
    else:
        logger.info("Installing Rust toolchain via rustup...")
        installer = env.layout.build_dir / "rustup-init.sh"
        env.http.download(env.settings.rustup_url, installer)
        try:
            env.runner.run(["sh", installer, "-y", "--no-modify-path"])
        except CommandError as e:
            logger.error("Failed to install Rust and Cargo. Check installation script.")
            raise BuildError.wrap(e, "Rust toolchain installation failed") from e
        installer.unlink(missing_ok=True)

        if not (env.runner.which("rustc", path=path) and env.runner.which("cargo", path=path)):
            logger.error("Rust or Cargo not found after installation. Check PATH or installation.")
            raise BuildError("rustc/cargo missing after rustup installation")
        logger.info("Rust and Cargo installed successfully.")

    env.toolchain_path = path
    return path


_BUILDERS: dict[BuildKind, type[Builder]] = {
    cls.kind: cls
    for cls in (NativeBuilder, LanguagePackageBuilder, CompiledBinaryBuilder, StaticDistBuilder)
}


def builder_for(component: Component, env: BuildEnvironment) -> Builder:
    """Select the build strategy for a component's kind."""
    return _BUILDERS[component.kind](env)


def build_component(component: Component, env: BuildEnvironment) -> None:
    builder_for(component, env).build(component)
