"""
OS dependency sets — apt packages per component and per host role.

Each role installs its sets in list order. Required packages failing
to install abort the run; optional packages only degrade features.
"""

from __future__ import annotations

from gvm_provision.core.models.component import DependencySet
from gvm_provision.core.models.run import HostRole

_COMMON_BASE = (
    "build-essential", "curl", "cmake", "pkg-config",
    "python3", "python3-pip", "gnupg",
)


def _common(*extra: str) -> DependencySet:
    return DependencySet(
        name="common",
        required=_COMMON_BASE + extra,
        no_install_recommends=True,
        expect_binaries=("cmake",),
    )


POSTGRESQL = DependencySet(
    name="postgresql",
    required=("postgresql", "postgresql-contrib"),
    expect_binaries=("psql",),
)

GVM_LIBS = DependencySet(
    name="gvm-libs",
    required=(
        "libcjson-dev", "libcurl4-gnutls-dev", "libgcrypt-dev", "libglib2.0-dev",
        "libgnutls28-dev", "libgpgme-dev", "libhiredis-dev", "libnet1-dev",
        "libpaho-mqtt-dev", "libpcap-dev", "libssh-dev", "libxml2-dev", "uuid-dev",
    ),
    optional=("libldap2-dev", "libradcli-dev"),
)

PG_GVM = DependencySet(
    name="pg-gvm",
    required=("libglib2.0-dev", "libical-dev", "postgresql-server-dev-all"),
)

OPENVAS_SMB = DependencySet(
    name="openvas-smb",
    required=(
        "gcc-mingw-w64", "libgnutls28-dev", "libglib2.0-dev", "libpopt-dev",
        "libunistring-dev", "heimdal-multidev", "perl-base",
    ),
)

_SCANNER_REQUIRED = (
    "bison", "libglib2.0-dev", "libgnutls28-dev", "libgcrypt20-dev", "libpcap-dev",
    "libgpgme-dev", "libksba-dev", "rsync", "nmap", "libjson-glib-dev",
    "libcurl4-gnutls-dev", "libbsd-dev", "krb5-multidev", "libmagic-dev", "file",
)

OPENVAS_SCANNER = DependencySet(name="openvas-scanner", required=_SCANNER_REQUIRED)

OPENVAS_SCANNER_MANAGER = DependencySet(
    name="openvas-scanner",
    required=_SCANNER_REQUIRED,
    optional=("python3-impacket", "libsnmp-dev"),
)

_OSPD_REQUIRED = (
    "python3", "python3-pip", "python3-setuptools", "python3-packaging",
    "python3-wrapt", "python3-cffi", "python3-psutil", "python3-lxml",
    "python3-defusedxml", "python3-paramiko", "python3-redis", "python3-gnupg",
    "python3-paho-mqtt",
)

OSPD_OPENVAS = DependencySet(name="ospd-openvas", required=_OSPD_REQUIRED)

OSPD_OPENVAS_MANAGER = DependencySet(
    name="ospd-openvas",
    required=_OSPD_REQUIRED + ("gvmd-common",),
)

OPENVASD = DependencySet(
    name="openvasd",
    required=("pkg-config", "libssl-dev", "mosquitto", "mosquitto-clients"),
    enable_services=("mosquitto",),
)

GVMD = DependencySet(
    name="gvmd",
    required=(
        "libbsd-dev", "libcjson-dev", "libglib2.0-dev", "libgnutls28-dev",
        "libgpgme-dev", "libical-dev", "libpq-dev", "postgresql-server-dev-all",
        "rsync", "xsltproc",
    ),
    optional=(
        "dpkg", "fakeroot", "gnupg", "gnutls-bin", "gpgsm", "nsis", "openssh-client",
        "python3", "python3-lxml", "rpm", "smbclient", "snmp", "socat", "sshpass",
        "texlive-fonts-recommended", "texlive-latex-extra", "wget", "xmlstarlet", "zip",
    ),
    optional_no_recommends=True,
)

GVM_TOOLS = DependencySet(
    name="gvm-tools",
    required=(
        "python3", "python3-lxml", "python3-packaging", "python3-paramiko",
        "python3-pip", "python3-setuptools", "python3-venv",
    ),
)

GSAD = DependencySet(
    name="gsad",
    required=(
        "libbrotli-dev", "libglib2.0-dev", "libgnutls28-dev",
        "libmicrohttpd-dev", "libxml2-dev",
    ),
)

ROLE_DEPENDENCIES: dict[HostRole, tuple[DependencySet, ...]] = {
    HostRole.DATABASE: (POSTGRESQL, _common(), GVM_LIBS, PG_GVM),
    HostRole.SCANNER: (
        _common("libsnmp-dev"), GVM_LIBS, OPENVAS_SMB, OPENVAS_SCANNER,
        OSPD_OPENVAS, OPENVASD,
    ),
    HostRole.MANAGER: (
        _common("libsnmp-dev", "systemd-resolved"), GVM_LIBS, OPENVAS_SMB,
        OPENVAS_SCANNER_MANAGER, OSPD_OPENVAS_MANAGER, OPENVASD, GVMD, GVM_TOOLS,
    ),
    HostRole.WEBUI: (_common(), GVM_LIBS, GSAD),
}
