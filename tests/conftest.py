"""
Shared test fixtures and configuration.

Nothing here touches the real host: every test gets its own live root,
workspace and keyring under ``tmp_path``, a RecordingRunner in place of
subprocess, and a FakeHttpClient in place of the network.
"""

import io
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

from gvm_provision.adapters.mock import FakeHttpClient, RecordingRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.data.components import get_spec
from gvm_provision.core.models.component import Component


def _tarball(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with every host path relocated under tmp_path."""
    live = tmp_path / "live"
    live.mkdir()
    return Settings(
        live_root=live,
        workspace_root=tmp_path / "workspace",
        gnupg_home=tmp_path / "gnupg",
        cargo_home=tmp_path / "cargo",
        log_file=str(tmp_path / "install.log"),
        min_free_bytes=0,
        parallel_jobs=2,
    )


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def make_tarball() -> Callable[[dict[str, str]], bytes]:
    """Build an in-memory .tar.gz from ``{member path: text}``."""
    return _tarball


@pytest.fixture
def publish(settings: Settings, http: FakeHttpClient) -> Callable[..., Component]:
    """Publish a fake upstream release of a catalogue component.

    Registers the ``releases/latest`` answer, the source tarball and its
    signature on the FakeHttpClient, and returns the pinned Component.
    """

    def _publish(name: str, version: str, files: dict[str, str] | None = None) -> Component:
        spec = get_spec(name)
        component = spec.pin(version, org=settings.github_org, prefix=settings.install_prefix)
        repo = spec.release_repository
        latest = f"{settings.github_api}/repos/{settings.github_org}/{repo}/releases/latest"
        http.routes[latest] = {"tag_name": f"v{version}"}

        if files is None:
            top = "" if component.bare_archive else f"{component.unpack_dir}/"
            files = {f"{top}CMakeLists.txt": "project(test)\n"}
        http.routes[component.source_url] = _tarball(files)
        http.routes[component.signature_url] = b"-----BEGIN PGP SIGNATURE-----\n"
        return component

    return _publish


@pytest.fixture
def signing_key(settings: Settings, http: FakeHttpClient) -> bytes:
    key = b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n"
    http.routes[settings.signing_key_url] = key
    return key
