from __future__ import annotations

import logging
import threading

import requests

from crawlers.base import get_with_retries
from crawlers.israel.config import HttpConfig
from crawlers.israel.errors import FetchFailure

logger = logging.getLogger(__name__)


class PageFetcher:
    """One GET per call with the svivaaqm header set.

    Each worker thread gets its own ``requests.Session``. Anything but a 200
    response, and any transport error left after retries, is a FetchFailure.
    """

    def __init__(self, http: HttpConfig | None = None) -> None:
        self.http = http or HttpConfig()
        self._local = threading.local()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def headers(self, referer: str) -> dict[str, str]:
        return {
            "User-Agent": self.http.user_agent,
            "Accept": self.http.accept,
            "Content-Type": self.http.content_type,
            "Referer": referer,
        }

    def get(self, url: str, *, referer: str) -> str:
        logger.debug(f"GET {url} (referer {referer})")
        try:
            resp = get_with_retries(
                self._session(),
                url,
                headers=self.headers(referer),
                timeout_seconds=self.http.timeout_seconds,
                max_retries=self.http.max_retries,
                backoff_base_seconds=self.http.backoff_base_seconds,
                backoff_jitter_seconds=self.http.backoff_jitter_seconds,
            )
        except requests.RequestException as exc:
            raise FetchFailure(url, reason=str(exc)) from exc

        if resp.status_code != 200:
            raise FetchFailure(url, status_code=resp.status_code)

        # Pages omit a charset now and then; requests then falls back to latin-1.
        enc = (resp.encoding or "").strip().lower()
        if not enc or enc in ("iso-8859-1", "latin-1"):
            resp.encoding = resp.apparent_encoding or "utf-8"
        return resp.text
