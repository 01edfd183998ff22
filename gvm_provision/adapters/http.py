"""
HTTP client — release registry queries and artifact downloads.

Thin wrapper over ``urllib.request``. One attempt per request, no
timeout; any network or HTTP error is raised as a provisioning error
and ends the run.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from gvm_provision import __version__
from gvm_provision.core.errors import DownloadError

logger = logging.getLogger(__name__)

_USER_AGENT = f"gvm-provision/{__version__}"
_CHUNK = 64 * 1024


class HttpClient:
    """Fetch-only HTTP(S) client."""

    def __init__(self, user_agent: str = _USER_AGENT):
        self.user_agent = user_agent

    def _request(self, url: str, *, method: str = "GET", accept: str | None = None):
        headers = {"User-Agent": self.user_agent}
        if accept:
            headers["Accept"] = accept
        req = urllib.request.Request(url, headers=headers, method=method)
        return urllib.request.urlopen(req)

    def reachable(self, url: str) -> bool:
        """HEAD the URL; True if any HTTP response comes back."""
        try:
            with self._request(url, method="HEAD"):
                return True
        except urllib.error.HTTPError:
            # Server answered, so the network path works
            return True
        except (urllib.error.URLError, OSError) as e:
            logger.debug("HEAD %s failed: %s", url, e)
            return False

    def fetch(self, url: str) -> bytes:
        """GET the URL and return the body."""
        try:
            with self._request(url) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise DownloadError(f"GET {url} returned HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise DownloadError(f"GET {url} failed: {e}") from e

    def get_json(self, url: str) -> Any:
        """GET the URL and decode a JSON body."""
        body = self.fetch(url)
        try:
            return json.loads(body)
        except ValueError as e:
            raise DownloadError(f"GET {url} returned invalid JSON: {e}") from e

    def download(self, url: str, dest: Path) -> Path:
        """Stream the URL to ``dest``. A partial file is removed on failure."""
        logger.info("Downloading %s", url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._request(url) as resp, open(dest, "wb") as f:
                while True:
                    chunk = resp.read(_CHUNK)
                    if not chunk:
                        break
                    f.write(chunk)
        except urllib.error.HTTPError as e:
            dest.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download {url}: HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            dest.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download {url}: {e}") from e
        logger.info("Saved %s (%d bytes)", dest, dest.stat().st_size)
        return dest
