"""
Tests for the dependency installer and the per-role package sets.
"""

import logging

import pytest

from gvm_provision.adapters.mock import RecordingRunner
from gvm_provision.core.data.dependencies import POSTGRESQL, ROLE_DEPENDENCIES
from gvm_provision.core.errors import PackageManagerFailure
from gvm_provision.core.models.component import DependencySet
from gvm_provision.core.models.run import HostRole
from gvm_provision.core.services.dependencies import DependencyInstaller

DEP = DependencySet(
    name="gvmd",
    required=("libglib2.0-dev", "libpq-dev"),
    optional=("texlive-latex-extra", "xmlstarlet"),
    optional_no_recommends=True,
)


class TestDependencyInstaller:
    def test_required_then_optional(self, runner):
        DependencyInstaller(runner).install(DEP)
        assert runner.commands == [
            ["apt", "install", "-y", "libglib2.0-dev", "libpq-dev"],
            ["apt", "install", "-y", "--no-install-recommends", "texlive-latex-extra", "xmlstarlet"],
        ]
        assert runner.calls[0].env == {"DEBIAN_FRONTEND": "noninteractive"}

    def test_optional_failure_warns_and_continues(self, runner, caplog):
        runner.set_failure("apt", "install", "-y", "--no-install-recommends")
        DependencyInstaller(runner).install(DEP)
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert any(
            "Optional gvmd dependencies" in m and "Some features may be limited" in m
            for m in warnings
        )

    def test_required_failure_aborts(self, runner, caplog):
        runner.set_failure("apt", "install", "-y", "libglib2.0-dev", returncode=100)
        with pytest.raises(PackageManagerFailure) as exc:
            DependencyInstaller(runner).install(DEP)
        assert exc.value.exit_code == 100
        assert "Failed to install required dependencies for gvmd" in caplog.text
        # optional set never attempted
        assert len(runner.commands) == 1

    def test_missing_expected_binary(self):
        runner = RecordingRunner(missing=["psql"])
        with pytest.raises(PackageManagerFailure, match="psql"):
            DependencyInstaller(runner).install(POSTGRESQL)

    def test_enable_services(self, runner):
        dep = DependencySet(name="openvasd", required=("mosquitto",), enable_services=("mosquitto",))
        DependencyInstaller(runner).install(dep)
        assert runner.commands[-1] == ["systemctl", "enable", "--now", "mosquitto"]

    def test_install_all_refreshes_once(self, runner):
        DependencyInstaller(runner).install_all([DEP, DEP])
        assert runner.commands[:2] == [["apt", "clean"], ["apt", "update"]]
        assert runner.commands.count(["apt", "update"]) == 1

    def test_refresh_failure(self, runner):
        runner.set_failure("apt", "update")
        with pytest.raises(PackageManagerFailure):
            DependencyInstaller(runner).refresh()


class TestRoleDependencies:
    def test_database_installs_postgresql_first(self):
        assert ROLE_DEPENDENCIES[HostRole.DATABASE][0] is POSTGRESQL

    def test_every_role_has_a_set(self):
        assert set(ROLE_DEPENDENCIES) == set(HostRole)

    def test_openvasd_enables_mosquitto(self):
        names = {d.name: d for d in ROLE_DEPENDENCIES[HostRole.SCANNER]}
        assert "mosquitto" in names["openvasd"].enable_services
