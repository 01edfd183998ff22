"""
Tests for the settings loader.
"""

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from gvm_provision.core.config.loader import (
    SETTINGS_FILE,
    ConfigError,
    Settings,
    find_settings_file,
    load_settings,
)


class TestSettingsDefaults:
    def test_defaults(self):
        s = Settings()
        assert s.log_file == "/var/log/openvas_install.log"
        assert s.install_prefix == "/usr/local"
        assert s.service_user == "gvm"
        assert s.db_name == "gvmd"
        assert s.source_dir == Path("/root/source")
        assert s.build_dir == Path("/root/build")
        assert s.install_dir == Path("/root/install")

    def test_frozen(self):
        s = Settings()
        with pytest.raises(ValidationError):
            s.service_user = "root"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            Settings(skip_signature_check=True)

    def test_live_path(self, tmp_path: Path):
        s = Settings(live_root=tmp_path)
        assert s.live_path("/etc/sudoers.d/gvm") == tmp_path / "etc" / "sudoers.d" / "gvm"

    def test_prefix_path(self):
        assert Settings(install_prefix="/opt/gvm").prefix_path("sbin", "gvmd") == "/opt/gvm/sbin/gvmd"


class TestLoadSettings:
    def test_explicit_file(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text(textwrap.dedent("""\
            service_user: scanner
            db_port: 6543
            workspace_root: /srv/build
        """))
        s = load_settings(path)
        assert s.service_user == "scanner"
        assert s.db_port == 6543
        assert s.workspace_root == Path("/srv/build")

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("")
        assert load_settings(path) == Settings()

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("db_port: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_invalid_value(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("parallel_jobs: 0\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(path)

    def test_search_path_in_cwd(self, tmp_path: Path, monkeypatch):
        (tmp_path / SETTINGS_FILE).write_text("gsad_port: 443\n")
        monkeypatch.chdir(tmp_path)
        assert find_settings_file() == tmp_path / SETTINGS_FILE
        assert load_settings().gsad_port == 443

    def test_no_file_anywhere(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "gvm_provision.core.config.loader.SYSTEM_SETTINGS_DIR", tmp_path / "etc"
        )
        assert load_settings() == Settings()
