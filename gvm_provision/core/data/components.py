"""
Component catalogue — every upstream project the installers build.

Build arguments use the target-host layout; ``{prefix}`` is replaced by
the configured install prefix when a component is pinned.
"""

from __future__ import annotations

from gvm_provision.core.models.component import BuildKind, ComponentSpec, SignatureNaming

_RELEASE = ("-DCMAKE_BUILD_TYPE=Release",)
_PREFIX = ("-DCMAKE_INSTALL_PREFIX={prefix}",)
_SYS_DIRS = ("-DSYSCONFDIR=/etc", "-DLOCALSTATEDIR=/var")

CATALOGUE: dict[str, ComponentSpec] = {
    spec.name: spec
    for spec in (
        ComponentSpec(
            name="gvm-libs",
            kind=BuildKind.NATIVE,
            cmake_args=_PREFIX + _RELEASE + _SYS_DIRS,
            shared_libraries=True,
        ),
        ComponentSpec(
            name="pg-gvm",
            kind=BuildKind.NATIVE,
            cmake_args=_RELEASE,
            shared_libraries=True,
        ),
        ComponentSpec(
            name="openvas-smb",
            kind=BuildKind.NATIVE,
            signature_naming=SignatureNaming.V_PREFIXED,
            cmake_args=_PREFIX + _RELEASE,
            shared_libraries=True,
        ),
        ComponentSpec(
            name="openvas-scanner",
            kind=BuildKind.NATIVE,
            signature_naming=SignatureNaming.V_PREFIXED,
            cmake_args=_PREFIX + _RELEASE + _SYS_DIRS + (
                "-DOPENVAS_FEED_LOCK_PATH=/var/lib/openvas/feed-update.lock",
                "-DOPENVAS_RUN_DIR=/run/ospd",
            ),
            shared_libraries=True,
        ),
        ComponentSpec(
            name="ospd-openvas",
            kind=BuildKind.LANGUAGE_PACKAGE,
            signature_naming=SignatureNaming.V_PREFIXED,
        ),
        ComponentSpec(
            name="openvasd",
            kind=BuildKind.COMPILED_BINARY,
            repository="openvas-scanner",
            signature_naming=SignatureNaming.V_PREFIXED,
            binaries=("openvasd", "scannerctl"),
        ),
        ComponentSpec(
            name="gvmd",
            kind=BuildKind.NATIVE,
            cmake_args=_PREFIX + _RELEASE + (
                "-DLOCALSTATEDIR=/var",
                "-DSYSCONFDIR=/etc",
                "-DGVM_DATA_DIR=/var",
                "-DGVM_LOG_DIR=/var/log/gvm",
                "-DGVMD_RUN_DIR=/run/gvmd",
                "-DOPENVAS_DEFAULT_SOCKET=/run/ospd/ospd-openvas.sock",
                "-DGVM_FEED_LOCK_PATH=/var/lib/gvm/feed-update.lock",
                "-DLOGROTATE_DIR=/etc/logrotate.d",
            ),
            shared_libraries=True,
        ),
        ComponentSpec(
            name="gsa",
            kind=BuildKind.STATIC_DIST,
            signature_naming=SignatureNaming.DIST,
        ),
        ComponentSpec(
            name="gsad",
            kind=BuildKind.NATIVE,
            cmake_args=_PREFIX + _RELEASE + _SYS_DIRS + (
                "-DGVMD_RUN_DIR=/run/gvmd",
                "-DGSAD_RUN_DIR=/run/gsad",
                "-DGVM_LOG_DIR=/var/log/gvm",
                "-DLOGROTATE_DIR=/etc/logrotate.d",
            ),
            shared_libraries=True,
        ),
        ComponentSpec(
            name="greenbone-feed-sync",
            kind=BuildKind.LANGUAGE_PACKAGE,
            from_index=True,
        ),
        ComponentSpec(
            name="gvm-tools",
            kind=BuildKind.LANGUAGE_PACKAGE,
            from_index=True,
        ),
    )
}


def get_spec(name: str) -> ComponentSpec:
    try:
        return CATALOGUE[name]
    except KeyError:
        raise KeyError(f"Unknown component: {name}") from None


def release_repositories(names: list[str] | tuple[str, ...]) -> list[str]:
    """Upstream repositories whose latest release must be resolved, in order."""
    seen: list[str] = []
    for name in names:
        spec = get_spec(name)
        if spec.from_index:
            continue
        repo = spec.release_repository
        if repo not in seen:
            seen.append(repo)
    return seen
