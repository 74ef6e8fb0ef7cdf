"""HTTP downloader backed by httpx."""

import logging
import threading
from collections.abc import Mapping
from pathlib import Path

import httpx

from bucketctl.backends.base import Downloader, ProgressCallback
from bucketctl.core.errors import TransportError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def strip_fragment(url: str) -> str:
    """Drop the ``#...`` part of an artifact URL before requesting it."""
    return url.split("#", 1)[0]


def cookie_header(cookies: Mapping[str, str] | None) -> dict[str, str]:
    """Build a Cookie header from manifest cookies."""
    if not cookies:
        return {}
    return {"Cookie": "; ".join(f"{k}={v}" for k, v in cookies.items())}


class HttpDownloader(Downloader):
    """Streaming downloader sharing one httpx client across workers.

    Attributes:
        user_agent: User-Agent header sent with every request.
        timeout: Network timeout in seconds.
    """

    def __init__(
        self,
        user_agent: str = "bucketctl",
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client
        self._lock = threading.Lock()

    def client(self) -> httpx.Client:
        """Lazily created shared client."""
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    headers={"User-Agent": self.user_agent},
                    timeout=httpx.Timeout(self.timeout, connect=10.0),
                    follow_redirects=True,
                )
            return self._client

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None

    def fetch(
        self,
        url: str,
        dest: Path,
        *,
        cookies: Mapping[str, str] | None = None,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        target = strip_fragment(url)
        written = 0
        try:
            with self.client().stream("GET", target, headers=cookie_header(cookies)) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0)
                with open(dest, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                        if cancel is not None and cancel.is_set():
                            raise TransportError(url, "cancelled")
                        f.write(chunk)
                        written += len(chunk)
                        if progress is not None:
                            progress(written, total)
        except httpx.HTTPStatusError as e:
            raise TransportError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e
        except OSError as e:
            raise TransportError(url, f"cannot write {dest}: {e}") from e

        logger.debug("Downloaded %s (%d bytes)", target, written)
        return written

    def content_length(self, url: str, *, cookies: Mapping[str, str] | None = None) -> int | None:
        try:
            response = self.client().head(strip_fragment(url), headers=cookie_header(cookies))
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Size probe failed for %s: %s", url, e)
            return None
        length = response.headers.get("Content-Length")
        return int(length) if length and length.isdigit() else None
