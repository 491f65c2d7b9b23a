"""HTTP document fetcher built on ``httpx``.

Purpose
-------
Implement :class:`ks_libvirt.application.ports.DocumentFetcher` for remote
kickstarts, included snippets, mirror lists and metalinks.

Behaviour
---------
* One blocking request per call; no retries.
* Redirects are followed (mirror redirectors answer with 302).
* Transport errors, non-2xx statuses and empty bodies all raise
  :class:`FetchError`.
* An explicit timeout applies to every request.
"""

from __future__ import annotations

from types import TracebackType
from typing import Final

import httpx

from ...domain.errors import FetchError
from ...observability import log_debug, log_error

DEFAULT_TIMEOUT: Final[float] = 30.0
USER_AGENT: Final[str] = "ks-libvirt"


class HttpxFetcher:
    """Fetch documents with a dedicated :class:`httpx.Client`.

    Parameters
    ----------
    client:
        Pre-built client (tests pass one with an :class:`httpx.MockTransport`).
        When omitted a client is created and owned by the fetcher.
    timeout:
        Per-request timeout in seconds for the owned client.
    """

    def __init__(self, *, client: httpx.Client | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._owned = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def fetch(self, url: str) -> str:
        """Return the body of *url* or raise :class:`FetchError`."""

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log_error("fetch_failed", stage="fetch", ref=url, error=str(exc))
            raise FetchError(f"Failed to fetch {url}: {exc}") from exc
        body = response.text
        if not body.strip():
            log_error("fetch_empty", stage="fetch", ref=url, status=response.status_code)
            raise FetchError(f"Empty response from {url}")
        log_debug("fetch_completed", stage="fetch", ref=url, status=response.status_code, size=len(body))
        return body

    def close(self) -> None:
        """Close the underlying client when the fetcher created it."""

        if self._owned:
            self._client.close()

    def __enter__(self) -> HttpxFetcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
