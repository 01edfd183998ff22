"""
Artifact fetch-verify-unpack — the only path from a URL to a source tree.

Each artifact moves strictly forward through::

    NOT_FETCHED → SOURCE_DOWNLOADED → SIGNATURE_DOWNLOADED → VERIFIED → UNPACKED

Unpacking is refused unless the artifact is VERIFIED, and a failed
signature check is always fatal.
"""

from __future__ import annotations

import logging
import tarfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from gvm_provision.adapters.http import HttpClient
from gvm_provision.core.errors import (
    CommandError,
    DownloadError,
    ExtractionError,
    SignatureVerificationError,
)
from gvm_provision.core.models.component import Component
from gvm_provision.core.services.trust import TrustStore

logger = logging.getLogger(__name__)


class ArtifactState(str, Enum):
    NOT_FETCHED = "not_fetched"
    SOURCE_DOWNLOADED = "source_downloaded"
    SIGNATURE_DOWNLOADED = "signature_downloaded"
    VERIFIED = "verified"
    UNPACKED = "unpacked"


_ORDER = list(ArtifactState)


@dataclass
class Artifact:
    """One release tarball plus its detached signature."""

    component: Component
    archive: Path
    signature: Path
    state: ArtifactState = ArtifactState.NOT_FETCHED
    source_tree: Path | None = None

    def advance(self, new_state: ArtifactState) -> None:
        index = _ORDER.index(self.state)
        if index + 1 >= len(_ORDER) or _ORDER[index + 1] is not new_state:
            raise RuntimeError(
                f"{self.component.label}: illegal transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state


class ArtifactFetcher:
    """Downloads, verifies and unpacks release artifacts into the source root.

    Artifacts are cached per release for the run, so components built
    from the same upstream tarball (openvas-scanner and openvasd) share
    one verified tree.
    """

    def __init__(self, http: HttpClient, trust: TrustStore, source_dir: Path):
        self.http = http
        self.trust = trust
        self.source_dir = source_dir
        self._unpacked: dict[str, Artifact] = {}

    def obtain(self, component: Component) -> Path:
        """Fetch, verify and unpack ``component``; return its source tree."""
        if not component.signed:
            raise ValueError(f"{component.name} has no release artifact")

        cached = self._unpacked.get(component.unpack_dir)
        if cached is not None:
            logger.info("Reusing verified source tree %s", cached.source_tree)
            return cached.source_tree

        artifact = Artifact(
            component=component,
            archive=self.source_dir / component.archive_name,
            signature=self.source_dir / f"{component.archive_name}.asc",
        )
        self.fetch(artifact)
        self.verify(artifact)
        tree = self.unpack(artifact)
        self._unpacked[component.unpack_dir] = artifact
        return tree

    def fetch(self, artifact: Artifact) -> None:
        comp = artifact.component
        try:
            self.http.download(comp.source_url, artifact.archive)
        except DownloadError:
            logger.error("Failed to download source for %s from %s", comp.label, comp.source_url)
            raise
        artifact.advance(ArtifactState.SOURCE_DOWNLOADED)

        try:
            self.http.download(comp.signature_url, artifact.signature)
        except DownloadError:
            logger.error(
                "Failed to download signature for %s from %s", comp.label, comp.signature_url
            )
            raise
        artifact.advance(ArtifactState.SIGNATURE_DOWNLOADED)

    def verify(self, artifact: Artifact) -> None:
        if artifact.state is not ArtifactState.SIGNATURE_DOWNLOADED:
            raise RuntimeError(f"{artifact.component.label}: nothing to verify yet")
        try:
            self.trust.gpg.verify(artifact.signature, artifact.archive)
        except CommandError as e:
            logger.error("GPG signature verification failed for %s", artifact.component.label)
            raise SignatureVerificationError.wrap(
                e, f"GPG signature verification failed for {artifact.component.label}"
            ) from e
        artifact.advance(ArtifactState.VERIFIED)
        logger.info("Signature verified for %s", artifact.component.label)

    def unpack(self, artifact: Artifact) -> Path:
        if artifact.state is not ArtifactState.VERIFIED:
            raise ExtractionError(
                f"Refusing to unpack unverified artifact {artifact.component.label}"
            )

        comp = artifact.component
        tree = self.source_dir / comp.unpack_dir
        dest = tree if comp.bare_archive else self.source_dir
        dest.mkdir(parents=True, exist_ok=True)

        try:
            with tarfile.open(artifact.archive, "r:gz") as tar:
                tar.extractall(dest, filter="data")
        except (tarfile.TarError, OSError) as e:
            logger.error("Failed to extract source for %s", comp.label)
            raise ExtractionError(f"Failed to extract {artifact.archive.name}: {e}") from e

        if not tree.is_dir():
            raise ExtractionError(f"{artifact.archive.name} did not contain {comp.unpack_dir}/")

        artifact.source_tree = tree
        artifact.advance(ArtifactState.UNPACKED)
        logger.info("Unpacked %s into %s", comp.label, tree)
        return tree
