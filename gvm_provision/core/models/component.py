"""
Component models — what gets fetched and how it gets built.

A ``ComponentSpec`` is a catalogue entry with no version. Pinning it
with the version resolved at the start of the run yields a frozen
``Component`` whose URLs are fully rendered; nothing downstream ever
formats a URL from a mutable version again.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

GITHUB = "https://github.com"


class BuildKind(str, Enum):
    """How a component goes from unpacked source to installed files."""

    NATIVE = "native"                      # cmake configure/build/stage
    LANGUAGE_PACKAGE = "language_package"  # pip install --root
    COMPILED_BINARY = "compiled_binary"    # cargo build --release
    STATIC_DIST = "static_dist"            # pre-built assets, copied as-is


class SignatureNaming(str, Enum):
    """Release-asset naming of the detached signature."""

    PLAIN = "plain"             # <name>-<version>.tar.gz.asc
    V_PREFIXED = "v_prefixed"   # <name>-v<version>.tar.gz.asc
    DIST = "dist"               # <name>-dist-<version>.tar.gz.asc


class Component(BaseModel):
    """A component pinned to one release. Immutable."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str | None = None          # None: fetched by name from the package index
    kind: BuildKind
    repository: str                     # upstream project providing the tarball
    source_url: str | None = None
    signature_url: str | None = None
    archive_name: str | None = None     # local file name of the tarball
    unpack_dir: str | None = None       # directory name under the source root
    cmake_args: tuple[str, ...] = ()
    shared_libraries: bool = False
    binaries: tuple[str, ...] = ()
    pip_target: str | None = None       # package name; None means the unpacked source tree
    bare_archive: bool = False          # tarball has no top-level directory

    @property
    def label(self) -> str:
        return f"{self.name}-{self.version}" if self.version else self.name

    @property
    def signed(self) -> bool:
        return self.source_url is not None


class ComponentSpec(BaseModel):
    """Catalogue entry: everything about a component except its version."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: BuildKind
    repository: str | None = None       # defaults to name
    signature_naming: SignatureNaming = SignatureNaming.PLAIN
    cmake_args: tuple[str, ...] = ()
    shared_libraries: bool = False
    binaries: tuple[str, ...] = ()
    pip_target: str | None = None
    from_index: bool = False            # pip package by name, no release tarball

    @property
    def release_repository(self) -> str:
        return self.repository or self.name

    def pin(
        self,
        version: str | None,
        *,
        org: str = "greenbone",
        prefix: str = "/usr/local",
    ) -> Component:
        """Bind a resolved version, rendering every URL and build argument."""
        repo = self.release_repository
        if self.from_index:
            return Component(
                name=self.name,
                kind=self.kind,
                repository=repo,
                pip_target=self.pip_target or self.name,
            )
        if not version:
            raise ValueError(f"{self.name} needs a resolved version")

        release = f"{GITHUB}/{org}/{repo}/releases/download/v{version}"
        if self.signature_naming is SignatureNaming.DIST:
            asset = f"{repo}-dist-{version}.tar.gz"
            source_url = f"{release}/{asset}"
        else:
            source_url = f"{GITHUB}/{org}/{repo}/archive/refs/tags/v{version}.tar.gz"
            if self.signature_naming is SignatureNaming.V_PREFIXED:
                asset = f"{repo}-v{version}.tar.gz"
            else:
                asset = f"{repo}-{version}.tar.gz"

        return Component(
            name=self.name,
            version=version,
            kind=self.kind,
            repository=repo,
            source_url=source_url,
            signature_url=f"{release}/{asset}.asc",
            archive_name=f"{repo}-{version}.tar.gz",
            unpack_dir=f"{repo}-{version}",
            cmake_args=tuple(a.replace("{prefix}", prefix) for a in self.cmake_args),
            shared_libraries=self.shared_libraries,
            binaries=self.binaries,
            pip_target=self.pip_target,
            bare_archive=self.signature_naming is SignatureNaming.DIST,
        )


class DependencySet(BaseModel):
    """OS packages one component needs before it can build."""

    model_config = ConfigDict(frozen=True)

    name: str
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    no_install_recommends: bool = False     # applies to the required set
    optional_no_recommends: bool = False
    expect_binaries: tuple[str, ...] = ()   # must be on PATH afterwards
    enable_services: tuple[str, ...] = ()   # systemctl enable --now afterwards
