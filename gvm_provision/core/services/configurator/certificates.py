"""
Scanner/manager TLS material.

Public certificates go to ``/var/lib/gvm/CA`` (0644), private keys to
``/var/lib/gvm/private/CA`` (0600). Failing to adjust ownership or
modes afterwards is only a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gvm_provision.adapters.http import HttpClient
from gvm_provision.adapters.shell.command import CommandRunner
from gvm_provision.core.config.loader import Settings
from gvm_provision.core.errors import DownloadError

logger = logging.getLogger(__name__)

CA_DIR = "/var/lib/gvm/CA"
PRIVATE_CA_DIR = "/var/lib/gvm/private/CA"


@dataclass(frozen=True)
class CertFile:
    source: str       # file name under certs_base_url
    target: str       # absolute target-host path
    private: bool = False


# Scanner host: the full CA / server / client set for ospd-openvas
SCANNER_CERTS = (
    CertFile("cacert.pem", f"{CA_DIR}/cacert.pem"),
    CertFile("cakey.pem", f"{PRIVATE_CA_DIR}/cakey.pem", private=True),
    CertFile("clientcert.pem", f"{CA_DIR}/clientcert.pem"),
    CertFile("clientkey.pem", f"{PRIVATE_CA_DIR}/clientkey.pem", private=True),
    CertFile("servercert.pem", f"{CA_DIR}/servercert.pem"),
    CertFile("serverkey.pem", f"{PRIVATE_CA_DIR}/serverkey.pem", private=True),
)

# Manager host: the client triple used to reach the remote scanner
PEER_CA = CertFile("cacert.pem", f"{CA_DIR}/scancacert.pem")
PEER_CERT = CertFile("clientcert.pem", f"{CA_DIR}/scanclientcert.pem")
PEER_KEY = CertFile("clientkey.pem", f"{PRIVATE_CA_DIR}/scanclientkey.pem", private=True)
PEER_CERTS = (PEER_CA, PEER_CERT, PEER_KEY)


def install_certificates(
    http: HttpClient,
    runner: CommandRunner,
    settings: Settings,
    certs: tuple[CertFile, ...],
) -> None:
    """Download certificate files into the gvm CA directories."""
    logger.info("Downloading scan certificates to GVM directories...")
    for directory in (CA_DIR, PRIVATE_CA_DIR):
        settings.live_path(directory).mkdir(parents=True, exist_ok=True)

    for cert in certs:
        url = f"{settings.certs_base_url}/{cert.source}"
        try:
            http.download(url, settings.live_path(cert.target))
        except DownloadError:
            logger.error("Failed to copy %s to %s", cert.source, cert.target)
            raise

    owner = f"{settings.service_user}:{settings.service_group}"
    paths = [settings.live_path(c.target) for c in certs]
    if not runner.run(["chown", owner, *paths], tolerate=True).ok:
        logger.warning("Failed to set ownership for scan certificates")

    public = [settings.live_path(c.target) for c in certs if not c.private]
    private = [settings.live_path(c.target) for c in certs if c.private]
    modes_ok = True
    if public:
        modes_ok &= runner.run(["chmod", "644", *public], tolerate=True).ok
    if private:
        modes_ok &= runner.run(["chmod", "600", *private], tolerate=True).ok
    if not modes_ok:
        logger.warning("Failed to set permissions for scan certificates")

    logger.info("Scan certificates successfully restored to GVM directories")
