"""
Tests for component builders — argv shape, staging and merge.
"""

import pytest

from gvm_provision.adapters.gpg import Gpg
from gvm_provision.adapters.mock import RecordingRunner
from gvm_provision.core.data.components import get_spec
from gvm_provision.core.errors import BuildError
from gvm_provision.core.models.component import BuildKind
from gvm_provision.core.services.artifacts import ArtifactFetcher
from gvm_provision.core.services.builders import (
    BuildEnvironment,
    CompiledBinaryBuilder,
    LanguagePackageBuilder,
    NativeBuilder,
    StaticDistBuilder,
    build_component,
    builder_for,
    ensure_rust_toolchain,
    merge_staged_tree,
)
from gvm_provision.core.services.trust import TrustStore
from gvm_provision.core.services.workspace import prepare_workspace


def _env(settings, runner, http) -> BuildEnvironment:
    layout = prepare_workspace(settings)
    trust = TrustStore(
        home=settings.gnupg_home,
        fingerprint=settings.signing_key_fingerprint,
        gpg=Gpg(runner, settings.gnupg_home),
    )
    return BuildEnvironment(
        runner=runner,
        http=http,
        settings=settings,
        layout=layout,
        fetcher=ArtifactFetcher(http, trust, layout.source_dir),
    )


@pytest.fixture
def env(settings, runner, http):
    return _env(settings, runner, http)


class TestRegistry:
    @pytest.mark.parametrize(
        "name,cls",
        [
            ("gvm-libs", NativeBuilder),
            ("ospd-openvas", LanguagePackageBuilder),
            ("openvasd", CompiledBinaryBuilder),
            ("gsa", StaticDistBuilder),
        ],
    )
    def test_dispatch_by_kind(self, env, name, cls):
        assert isinstance(builder_for(get_spec(name).pin("1.0.0"), env), cls)

    def test_every_kind_registered(self, env):
        from gvm_provision.core.services.builders import _BUILDERS

        assert set(_BUILDERS) == set(BuildKind)


class TestNativeBuilder:
    def test_cmake_stage_merge_ldconfig(self, env, publish, runner, settings):
        component = publish("gvm-libs", "22.7.1")

        def stage(call):
            destdir = next(a for a in call.command if a.startswith("DESTDIR="))[len("DESTDIR="):]
            lib = env.layout.staging_root("gvm-libs") / "usr" / "local" / "lib"
            assert destdir == str(env.layout.staging_root("gvm-libs"))
            lib.mkdir(parents=True)
            (lib / "libgvm_base.so.22").write_text("elf")

        runner.set_handler("make", handler=stage)
        build_component(component, env)

        tree = env.layout.source_dir / "gvm-libs-22.7.1"
        build_dir = env.layout.build_dir / "gvm-libs"
        builds = [c for c in runner.commands if c[0] in ("cmake", "make", "ldconfig")]
        assert builds[0][:5] == ["cmake", "-S", str(tree), "-B", str(build_dir)]
        assert "-DCMAKE_INSTALL_PREFIX=/usr/local" in builds[0]
        assert builds[1] == ["cmake", "--build", str(build_dir), "-j2"]
        assert builds[2][0] == "make" and builds[2][-1] == "install"
        assert builds[3] == ["ldconfig"]
        assert runner.calls_to("make")[0].cwd == str(build_dir)

        assert (settings.live_root / "usr" / "local" / "lib" / "libgvm_base.so.22").read_text() == "elf"

    def test_compile_failure(self, env, publish, runner):
        component = publish("gvm-libs", "22.7.1")
        runner.set_failure("cmake", "--build", returncode=2)
        with pytest.raises(BuildError) as exc:
            build_component(component, env)
        assert exc.value.exit_code == 2
        assert not runner.ran("make")

    def test_no_ldconfig_without_shared_libraries(self, env, publish, runner):
        component = publish("pg-gvm", "22.6.5").model_copy(update={"shared_libraries": False})
        NativeBuilder(env).build(component)
        assert runner.ran("make")
        assert not runner.ran("ldconfig")


class TestLanguagePackageBuilder:
    def test_from_source_tree(self, env, publish, runner):
        component = publish("ospd-openvas", "22.7.1")
        build_component(component, env)
        pip = runner.calls_to("python3", "-m", "pip")[0]
        staging = env.layout.staging_root("ospd-openvas")
        assert pip.command == [
            "python3", "-m", "pip", "install", f"--root={staging}",
            "--no-warn-script-location", ".",
        ]
        assert pip.cwd == str(env.layout.source_dir / "ospd-openvas-22.7.1")

    def test_from_index(self, env, runner, http):
        build_component(get_spec("greenbone-feed-sync").pin(None), env)
        assert runner.commands[-1][-1] == "greenbone-feed-sync"
        assert not any(c[0] == "gpg" for c in runner.commands)
        assert http.requested == []


class TestCompiledBinaryBuilder:
    def test_builds_each_binary(self, env, publish, runner, settings):
        component = publish("openvasd", "23.4.1")
        tree = env.layout.source_dir / "openvas-scanner-23.4.1"

        def cargo(call):
            release = tree / "rust" / "target" / "release"
            release.mkdir(parents=True, exist_ok=True)
            name = call.cwd.rsplit("/", 1)[-1]
            (release / name).write_text(f"{name} binary")

        runner.set_handler("cargo", handler=cargo)
        build_component(component, env)

        cargo_calls = runner.calls_to("cargo", "build", "--release")
        assert [c.cwd for c in cargo_calls] == [
            str(tree / "rust" / "src" / "openvasd"),
            str(tree / "rust" / "src" / "scannerctl"),
        ]
        assert cargo_calls[0].env["PATH"].startswith(str(settings.cargo_home / "bin"))
        assert (settings.live_root / "usr" / "local" / "bin" / "openvasd").is_file()
        assert (settings.live_root / "usr" / "local" / "bin" / "scannerctl").is_file()

    def test_missing_binary_after_build(self, env, publish):
        component = publish("openvasd", "23.4.1")
        with pytest.raises(BuildError, match="openvasd"):
            build_component(component, env)


class TestRustToolchain:
    def test_present(self, env, runner):
        path = ensure_rust_toolchain(env)
        assert path.startswith(str(env.settings.cargo_home / "bin"))
        assert not runner.ran("sh")

    def test_installs_rustup(self, settings, http):
        runner = RecordingRunner(missing=["rustc", "cargo"])
        env = _env(settings, runner, http)
        http.routes[settings.rustup_url] = b"#!/bin/sh\n"

        def installed(call):
            runner.missing.clear()

        runner.set_handler("sh", handler=installed)
        ensure_rust_toolchain(env)
        assert runner.commands[-1][2:] == ["-y", "--no-modify-path"]
        assert ensure_rust_toolchain(env) == env.toolchain_path

    def test_still_missing_after_install(self, settings, http):
        runner = RecordingRunner(missing=["rustc", "cargo"])
        env = _env(settings, runner, http)
        http.routes[settings.rustup_url] = b"#!/bin/sh\n"
        with pytest.raises(BuildError, match="missing after rustup"):
            ensure_rust_toolchain(env)


class TestStaticDistBuilder:
    def test_copies_into_web_root(self, env, publish, settings, runner):
        component = publish("gsa", "23.2.0", files={"index.html": "<html/>", "js/app.js": "x"})
        build_component(component, env)
        web = settings.live_root / "usr" / "local" / "share" / "gvm" / "gsad" / "web"
        assert (web / "index.html").read_text() == "<html/>"
        assert (web / "js" / "app.js").is_file()
        assert not runner.ran("cmake")


class TestMerge:
    def test_merges_into_existing_tree(self, tmp_path):
        staging, live = tmp_path / "staging", tmp_path / "live"
        (staging / "usr" / "local" / "bin").mkdir(parents=True)
        (staging / "usr" / "local" / "bin" / "gvmd").write_text("new")
        (live / "usr" / "local" / "bin").mkdir(parents=True)
        (live / "usr" / "local" / "bin" / "other").write_text("keep")

        merge_staged_tree(staging, live)

        assert (live / "usr" / "local" / "bin" / "gvmd").read_text() == "new"
        assert (live / "usr" / "local" / "bin" / "other").read_text() == "keep"

    def test_missing_staging_root(self, tmp_path):
        with pytest.raises(BuildError):
            merge_staged_tree(tmp_path / "nope", tmp_path / "live")
