"""
Tests for CLI commands — role entry points, global options and helpers.
"""

import logging
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from gvm_provision.adapters.mock import FakeHttpClient
from gvm_provision.core.models.run import HostRole
from gvm_provision.main import cli, database

RUN = "gvm_provision.core.engine.orchestrator.Orchestrator.run"


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config(tmp_path: Path, monkeypatch) -> Path:
    """provision.yml keeping the log file inside tmp_path."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "provision.yml"
    path.write_text(textwrap.dedent(f"""\
        log_file: {tmp_path / "install.log"}
        workspace_root: {tmp_path / "workspace"}
    """))
    return path


def _invoke(config: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Greenbone/OpenVAS" in result.output
        for command in ("database", "scanner", "manager", "webui", "versions", "render-units"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.4.0" in result.output

    def test_missing_config_file(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yml"), "versions"])
        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_config_file(self, tmp_path: Path):
        bad = tmp_path / "provision.yml"
        bad.write_text("db_port: not-a-port\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "versions"])
        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_log_file_written(self, config: Path, tmp_path: Path):
        with patch(RUN, return_value=0):
            result = _invoke(config, "scanner", "alice")
        assert result.exit_code == 0
        assert (tmp_path / "install.log").is_file()


class TestRoleCommands:
    def test_database(self, config: Path):
        with patch(RUN, return_value=0) as run:
            result = _invoke(config, "database", "10.0.0.7", "s3cret")
        assert result.exit_code == 0
        role, target = run.call_args.args
        assert role is HostRole.DATABASE
        assert target.manager_ip == "10.0.0.7"
        assert target.db_password.get_secret_value() == "s3cret"
        assert "s3cret" not in repr(target)

    def test_manager(self, config: Path):
        with patch(RUN, return_value=0) as run:
            result = _invoke(config, "manager", "alice", "10.0.0.5", "pw", "10.0.0.9")
        assert result.exit_code == 0
        role, target = run.call_args.args
        assert role is HostRole.MANAGER
        assert (target.operator, target.db_host, target.scanner_host) == ("alice", "10.0.0.5", "10.0.0.9")

    def test_webui(self, config: Path):
        with patch(RUN, return_value=0) as run:
            result = _invoke(config, "webui", "alice", "10.0.0.5", "9390")
        assert result.exit_code == 0
        _, target = run.call_args.args
        assert target.gvmd_port == 9390

    def test_webui_rejects_bad_port(self, config: Path):
        with patch(RUN) as run:
            result = _invoke(config, "webui", "alice", "10.0.0.5", "70000")
        assert result.exit_code == 2
        run.assert_not_called()

    def test_missing_argument(self, config: Path):
        result = _invoke(config, "manager", "alice")
        assert result.exit_code == 2

    def test_failure_exit_code(self, config: Path, tmp_path: Path):
        with patch(RUN, return_value=100):
            result = _invoke(config, "scanner", "alice")
        assert result.exit_code == 100
        assert "Scanner installation failed" in result.output
        assert str(tmp_path / "install.log") in result.output

    def test_standalone_entry_point(self, config: Path, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GVM_PROVISION_LOG_FILE", str(tmp_path / "standalone.log"))
        with patch(RUN, return_value=0) as run:
            result = CliRunner().invoke(database, ["10.0.0.7", "pw"])
        assert result.exit_code == 0
        assert run.call_args.args[0] is HostRole.DATABASE
        assert (tmp_path / "standalone.log").is_file()


class TestVersionsCommand:
    def test_lists_versions(self, config: Path):
        http = FakeHttpClient({
            "https://api.github.com/repos/greenbone/gvmd/releases/latest": {"tag_name": "v23.10.0"},
            "https://api.github.com/repos/greenbone/gsa/releases/latest": {"tag_name": "v23.2.0"},
        })
        with patch("gvm_provision.adapters.http.HttpClient", return_value=http):
            result = CliRunner().invoke(cli, ["-q", "--config", str(config), "versions", "gvmd", "gsa"])
        assert result.exit_code == 0
        assert result.output.splitlines() == ["gvmd  23.10.0", "gsa   23.2.0"]

    def test_unreachable_registry(self, config: Path):
        http = FakeHttpClient(reachable_urls=set())
        with patch("gvm_provision.adapters.http.HttpClient", return_value=http):
            result = _invoke(config, "versions", "gvmd")
        assert result.exit_code == 1
        assert "Cannot reach https://api.github.com" in result.output

    def test_unknown_component(self, config: Path):
        result = _invoke(config, "versions", "not-a-component")
        assert result.exit_code == 2


class TestRenderUnits:
    def test_webui(self, config: Path):
        result = _invoke(config, "render-units", "webui", "--gvmd-host", "10.0.0.2", "--gvmd-port", "9390")
        assert result.exit_code == 0
        assert "# /etc/systemd/system/gsad.service" in result.output
        assert "--mlisten=10.0.0.2" in result.output
        assert "--mport=9390" in result.output

    def test_manager_units(self, config: Path):
        result = _invoke(config, "render-units", "manager", "--db-host", "10.0.0.5")
        assert result.exit_code == 0
        headers = [line for line in result.output.splitlines() if line.startswith("# ")]
        assert headers == [
            "# /etc/systemd/system/ospd-openvas.service",
            "# /etc/systemd/system/gvmd.service",
            "# /etc/systemd/system/openvasd.service",
        ]
        assert "--db-host=10.0.0.5" in result.output

    def test_database_has_no_units(self, config: Path):
        result = _invoke(config, "render-units", "database")
        assert result.exit_code == 2
