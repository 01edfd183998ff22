"""
Tests for manager-host configuration: pgpass, admin credential handoff,
feed import owner, remote scanner registration and the login box.
"""

import logging

import pytest

from gvm_provision.adapters.gvmd import FEED_IMPORT_OWNER_SETTING, GvmdAdmin
from gvm_provision.core.errors import (
    CredentialExtractionError,
    PermissionFailure,
    ServiceValidationError,
)
from gvm_provision.core.services.configurator import manager
from gvm_provision.core.services.workspace import prepare_workspace

CREATED = "User created with password 'a1b2-c3d4-e5f6'.\n"
USERS = (
    "observer 11111111-2222-3333-4444-555555555555\n"
    "admin 6e1d4f0a-7c1b-4f57-9e4e-0c6c0f7a9b1d\n"
)


@pytest.fixture
def gvmd(runner, settings):
    return GvmdAdmin(runner, settings, "10.0.0.7")


@pytest.fixture
def stash(settings):
    """Admin password file location inside a prepared workspace."""
    return manager.admin_password_path(prepare_workspace(settings))


class TestPgpass:
    def test_written_private(self, runner, settings):
        path = manager.write_pgpass(runner, settings, db_host="10.0.0.7", password="pw")
        assert path == settings.live_path("/home/gvm/.pgpass")
        assert path.read_text() == "10.0.0.7:5432:gvmd:gvm:pw\n"
        assert path.stat().st_mode & 0o777 == 0o600
        assert runner.commands == [["chown", "-h", "gvm:gvm", str(path)]]

    def test_refuses_symlink(self, runner, settings, tmp_path):
        victim = tmp_path / "victim"
        victim.write_text("untouched")
        home = settings.live_path("/home/gvm")
        home.mkdir(parents=True)
        (home / ".pgpass").symlink_to(victim)

        with pytest.raises(PermissionFailure):
            manager.write_pgpass(runner, settings, db_host="10.0.0.7", password="pw")

        assert victim.read_text() == "untouched"
        assert not runner.ran("chown")


class TestAdminCredential:
    def test_parse(self):
        assert manager.parse_admin_password(CREATED) == "a1b2-c3d4-e5f6"

    def test_parse_missing(self):
        with pytest.raises(CredentialExtractionError):
            manager.parse_admin_password("Failed to create user: exists\n")

    def test_create(self, runner, settings, gvmd, stash, caplog):
        caplog.set_level(logging.INFO)
        runner.set_output("/usr/local/sbin/gvmd", stdout=CREATED)

        credential = manager.create_admin_credential(runner, settings, gvmd, stash)

        assert credential.username == "admin"
        assert credential.password.get_secret_value() == "a1b2-c3d4-e5f6"
        call = runner.calls_to("/usr/local/sbin/gvmd")[0]
        assert call.argv[:3] == ["sudo", "-u", "gvm"]
        assert call.command == [
            "/usr/local/sbin/gvmd", "--db-host=10.0.0.7", "--db-port=5432",
            "--database=gvmd", "--create-user=admin",
        ]
        assert stash.read_text() == "a1b2-c3d4-e5f6"
        assert stash.stat().st_mode & 0o777 == 0o600
        assert stash.parent == settings.secrets_dir
        assert stash.parent.stat().st_mode & 0o777 == 0o700
        assert "a1b2-c3d4-e5f6" not in caplog.text

    def test_create_unparseable(self, runner, settings, gvmd, stash):
        runner.set_output("/usr/local/sbin/gvmd", stdout="something else\n")
        with pytest.raises(CredentialExtractionError):
            manager.create_admin_credential(runner, settings, gvmd, stash)
        assert not stash.exists()

    def test_create_command_failure(self, runner, settings, gvmd, stash):
        runner.set_failure("/usr/local/sbin/gvmd", returncode=3)
        with pytest.raises(CredentialExtractionError) as exc:
            manager.create_admin_credential(runner, settings, gvmd, stash)
        assert exc.value.exit_code == 3


class TestFeedImportOwner:
    def test_find_uuid(self):
        assert manager.find_user_uuid(USERS, "admin") == "6e1d4f0a-7c1b-4f57-9e4e-0c6c0f7a9b1d"
        assert manager.find_user_uuid(USERS, "nobody") is None

    def test_sets_owner(self, runner, gvmd):
        runner.set_output("/usr/local/sbin/gvmd", stdout=USERS)
        uuid = manager.set_feed_import_owner(gvmd, "admin")
        assert runner.commands[-1][-4:] == [
            "--modify-setting", FEED_IMPORT_OWNER_SETTING, "--value", uuid,
        ]

    def test_unknown_user(self, runner, gvmd):
        runner.set_output("/usr/local/sbin/gvmd", stdout="")
        with pytest.raises(CredentialExtractionError):
            manager.set_feed_import_owner(gvmd, "admin")


class TestScannerLink:
    def test_generate_certs_as_service_user(self, runner, settings):
        manager.generate_scanner_certs(runner, settings)
        assert runner.calls[0].argv == ["sudo", "-u", "gvm", "/usr/local/bin/gvm-manage-certs", "-a"]

    def test_register(self, runner, settings, gvmd):
        manager.register_remote_scanner(gvmd, settings, "10.0.0.9")
        argv = runner.commands[0]
        assert "--create-scanner" in argv
        assert argv[argv.index("--create-scanner") + 1] == "RemoteOSPScanner"
        assert "--scanner-host=10.0.0.9" in argv
        assert "--scanner-port=9999" in argv
        assert "--scanner-type=OSP-Sensor" in argv
        assert "--scanner-ca-pub=/var/lib/gvm/CA/scancacert.pem" in argv
        assert "--scanner-key-pub=/var/lib/gvm/CA/scanclientcert.pem" in argv
        assert "--scanner-key-priv=/var/lib/gvm/private/CA/scanclientkey.pem" in argv

    def test_register_failure(self, runner, settings, gvmd):
        runner.set_failure("/usr/local/sbin/gvmd")
        with pytest.raises(ServiceValidationError):
            manager.register_remote_scanner(gvmd, settings, "10.0.0.9")


class TestLoginHandoff:
    def test_host_ip_skips_loopback_and_v6(self, runner):
        runner.set_output("hostname", "-I", stdout="127.0.1.1 fe80::1 192.168.1.20 10.0.0.3\n")
        assert manager.host_ip(runner) == "192.168.1.20"

    def test_host_ip_none(self, runner):
        runner.set_failure("hostname")
        assert manager.host_ip(runner) is None

    def test_box(self):
        box = manager.login_box("admin", "pw", "https://10.0.0.3:9392")
        lines = box.splitlines()
        assert len({len(line) for line in lines}) == 1
        assert "Username : admin" in box
        assert "URL      : https://10.0.0.3:9392" in box

    def test_display_once_then_delete(self, runner, settings, stash, capsys):
        stash.write_text("a1b2-c3d4-e5f6")
        runner.set_output("hostname", "-I", stdout="10.0.0.3\n")

        manager.display_login(runner, settings, stash)

        out = capsys.readouterr().out
        assert "OpenVAS Web Interface Login" in out
        assert "Password : a1b2-c3d4-e5f6" in out
        assert "https://10.0.0.3:9392" in out
        assert "--new-password=" in out
        assert not stash.exists()

    def test_display_without_ip(self, runner, settings, stash, capsys, caplog):
        stash.write_text("pw")
        runner.set_output("hostname", "-I", stdout="127.0.0.1\n")

        manager.display_login(runner, settings, stash)

        assert "https://localhost:9392" in capsys.readouterr().out
        assert "Could not determine host IP" in caplog.text

    def test_display_without_file(self, runner, settings, stash):
        with pytest.raises(CredentialExtractionError):
            manager.display_login(runner, settings, stash)
