"""HTTP page fetcher with per-source rate limiting, retries and failure classification."""

import logging
import time
from typing import Optional

import httpx

from .config import AppConfig
from .errors import NotFound, TransientFetchError

logger = logging.getLogger("film_scraper")

GONE_STATUSES = {404, 410}


def _retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class Downloader:
    def __init__(self, config: AppConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self._transport = transport
        self._last_request_time: dict = {}  # per-source monotonic timestamps
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.config.download.timeout, connect=10),
                follow_redirects=True,
                headers={"User-Agent": self.config.download.user_agent},
                transport=self._transport,
            )
        return self._client

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "Downloader":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def rate_limit(self, source: str, rate: float):
        """Block until at least ``rate`` seconds have passed since the last request to ``source``."""
        last = self._last_request_time.get(source)
        if last is not None:
            elapsed = time.monotonic() - last
            if elapsed < rate:
                time.sleep(rate - elapsed)
        self._last_request_time[source] = time.monotonic()

    def fetch_text(self, url: str, source: str, rate: Optional[float] = None) -> str:
        """Fetch an HTML page.

        Raises NotFound for 404/410, an unreachable host or a redirect loop, and
        TransientFetchError once retries are exhausted or for any other
        unexpected status.
        """
        r = self.config.download.default_rate_limit if rate is None else rate
        max_retries = max(1, self.config.download.max_retries)
        backoff = self.config.download.backoff_factor

        last_error = None
        for attempt in range(max_retries):
            self.rate_limit(source, r)
            try:
                resp = self.client.get(url)
            except httpx.ConnectError as e:
                # DNS failure or refused connection: treat as a dead link
                raise NotFound(f"Cannot reach {url}: {e}") from e
            except httpx.TooManyRedirects as e:
                # Redirect loops do not heal on retry
                raise NotFound(f"Redirect loop at {url}: {e}") from e
            except httpx.RequestError as e:
                # Timeouts, dropped connections, undecodable bodies
                last_error = f"{type(e).__name__}: {e}"
            else:
                if resp.status_code in GONE_STATUSES:
                    raise NotFound(f"HTTP {resp.status_code} for {url}")
                if resp.is_success:
                    return resp.text
                if not _retryable(resp.status_code):
                    raise TransientFetchError(f"HTTP {resp.status_code} for {url}")
                last_error = f"HTTP {resp.status_code}"

            if attempt + 1 < max_retries:
                wait = backoff * (2 ** attempt)
                logger.warning(f"Retry {attempt + 1}/{max_retries} for {url}: {last_error} (wait {wait}s)")
                time.sleep(wait)

        raise TransientFetchError(f"Giving up on {url} after {max_retries} attempts: {last_error}")
