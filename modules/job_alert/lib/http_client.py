# job_alert/http_client.py
from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

LOG = logging.getLogger(__name__)

# Browser-like; job boards serve login walls to obvious bots.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 JobAlert/0.1"
)

# Longest Retry-After we honour for a rate-limited POST before giving up.
MAX_RATE_LIMIT_WAIT = 10.0


class HttpClient:
    """
    One requests session per adapter/channel.

    GET/HEAD are retried by urllib3 on 429/5xx with backoff. POST is not
    retried on 5xx (the message may have been accepted); a 429 is waited out
    once, since a rate-limited request was rejected before processing.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep=time.sleep,
    ):
        self.timeout = float(timeout)
        self._sleep = sleep
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

        read_retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "HEAD"]),
            respect_retry_after_header=True,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=read_retry, pool_connections=10, pool_maxsize=20)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _request(self, method: str, url: str, *, timeout: float | None = None, **kwargs: Any) -> requests.Response:
        t0 = time.perf_counter()
        resp = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        LOG.debug("%s %s -> %s in %.0fms", method, url, resp.status_code, (time.perf_counter() - t0) * 1000)
        return resp

    # ---- reads ----
    def get_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        encoding: str | None = None,
    ) -> str:
        """HTML pages; falls back to the sniffed charset when the server sends none."""
        resp = self._request("GET", url, params=params, headers=headers, timeout=timeout)
        resp.raise_for_status()
        if encoding:
            resp.encoding = encoding
        elif not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return resp.text

    def get_bytes(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """Raw body; feeds declare their own encoding in the XML prolog."""
        resp = self._request("GET", url, headers=headers, timeout=timeout)
        resp.raise_for_status()
        return resp.content

    def get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        resp = self._request("GET", url, params=params, headers=headers, timeout=timeout)
        resp.raise_for_status()
        return _decode_json(resp, url)

    # ---- writes ----
    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        POST a JSON body and return the decoded reply (None for 204 / empty).
        Raises requests.HTTPError for any non-2xx left after the 429 wait.
        """
        resp = self._request("POST", url, json=payload, headers=headers, timeout=timeout)
        if resp.status_code == 429:
            wait = _retry_after_seconds(resp)
            if wait is not None and wait <= MAX_RATE_LIMIT_WAIT:
                LOG.info("Rate limited by %s; retrying in %.1fs", url, wait)
                self._sleep(wait)
                resp = self._request("POST", url, json=payload, headers=headers, timeout=timeout)
        resp.raise_for_status()
        if resp.status_code == 204 or not resp.content:
            return None
        return _decode_json(resp, url)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() failed", exc_info=True)


def _retry_after_seconds(resp: requests.Response) -> float | None:
    """Retry-After header, or Discord's `retry_after` body field; None when absent."""
    raw = resp.headers.get("Retry-After")
    if raw is None:
        try:
            raw = (resp.json() or {}).get("retry_after")
        except (ValueError, AttributeError):
            raw = None
    try:
        return max(0.0, float(raw)) if raw is not None else None
    except (TypeError, ValueError):
        return None


def _decode_json(resp: requests.Response, url: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        # text/plain responses that still carry JSON
        try:
            return json.loads(resp.text)
        except ValueError:
            preview = resp.text[:200].replace("\n", " ")
            raise ValueError(f"JSON decode failed for {url!r}; body starts: {preview!r}") from e
