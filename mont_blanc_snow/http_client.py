from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from .config import app_config
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = app_config.fetch.user_agent
DEFAULT_TIMEOUT = 12.0

REASON_TIMEOUT = "timeout"
REASON_HTTP_ERROR = "http_error"
REASON_NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single page fetch; ``reason`` is set when ``ok`` is false."""

    ok: bool
    html: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def failure(cls, reason: str, detail: str, status_code: Optional[int] = None) -> "FetchResult":
        return cls(ok=False, reason=reason, detail=detail, status_code=status_code)


class HttpFetcher:
    """Thin httpx wrapper that turns every outcome into a :class:`FetchResult`.

    There are no retries: a failed page is simply reported as unavailable
    and the caller falls back to the baseline for that source.
    """

    def __init__(self, client: Optional[httpx.Client] = None, *, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.client = client or httpx.Client(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self.user_agent = user_agent

    def close(self) -> None:
        self.client.close()

    def fetch_markup(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        trace_id: str | None = None,
    ) -> FetchResult:
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        logger.info("http.fetch", trace_id=trace_id, url=url, timeout=timeout)
        try:
            response = self.client.get(url, headers=request_headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            logger.warning("http.fetch.timeout", trace_id=trace_id, url=url, error=str(exc))
            return FetchResult.failure(REASON_TIMEOUT, f"Timeout fetching {url}")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("http.fetch.network_error", trace_id=trace_id, url=url, error=str(exc))
            return FetchResult.failure(REASON_NETWORK_ERROR, str(exc) or exc.__class__.__name__)

        if response.status_code >= 400:
            logger.warning(
                "http.fetch.http_error",
                trace_id=trace_id,
                url=url,
                status_code=response.status_code,
            )
            return FetchResult.failure(
                REASON_HTTP_ERROR,
                f"{url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return FetchResult(ok=True, html=response.text, status_code=response.status_code)
