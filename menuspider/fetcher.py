"""HTTP fetching for menu pages and structured-data endpoints."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote, urlsplit, urlunsplit

import certifi
from curl_cffi import requests
from curl_cffi.requests import RequestsError

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

JSON_ACCEPT = "application/json, text/plain, */*"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _ensure_ascii_cert_path() -> Optional[str]:
    """Ensure CA bundle lives on an ASCII path (curl can't open non-ASCII)."""
    original = Path(certifi.where())
    try:
        str(original).encode("ascii")
        return str(original)
    except UnicodeEncodeError:
        ascii_copy = Path(tempfile.gettempdir()) / "certifi_cacert.pem"
        try:
            if not ascii_copy.exists() or original.stat().st_mtime > ascii_copy.stat().st_mtime:
                shutil.copy2(original, ascii_copy)
            return str(ascii_copy)
        except OSError as exc:
            logger.warning("[Fetcher] Failed to copy certifi bundle to ASCII path: %s", exc)
            return None


CERT_BUNDLE_PATH = _ensure_ascii_cert_path()


@dataclass
class FetchResult:
    """Outcome of a single GET: a usable body, or the reason there is none."""

    url: str
    body: str = ""
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Fetcher:
    """Issue GET requests with browser-like headers and classify the outcome."""

    def __init__(self, proxy: Optional[str] = None, config: Optional[Settings] = None) -> None:
        self.proxy = proxy
        self.config = config or default_settings
        self._cert_bundle = CERT_BUNDLE_PATH

    def json_headers(self, referer: Optional[str] = None) -> Dict[str, str]:
        headers = {"User-Agent": self.config.user_agent, "Accept": JSON_ACCEPT}
        if referer:
            headers["Referer"] = referer
        return headers

    def html_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": HTML_ACCEPT,
            "Upgrade-Insecure-Requests": "1",
        }

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        """GET ``url``; transport errors, non-2xx and blank bodies come back as failures."""
        try:
            status_code, body, final_url = self._get(url, headers or self.html_headers())
        except RequestsError as exc:
            logger.debug("[Fetcher] Transport error for %s: %s", url, exc)
            return FetchResult(url=url, error=f"transport error: {exc}")
        except Exception as exc:
            logger.warning("[Fetcher] Fetch error for %s: %s", url, exc)
            return FetchResult(url=url, error=f"fetch error: {exc}")

        if not 200 <= status_code < 300:
            logger.debug("[Fetcher] HTTP %s for %s", status_code, url)
            return FetchResult(url=final_url, status_code=status_code, error=f"HTTP {status_code}")
        if not body or not body.strip():
            logger.debug("[Fetcher] Empty body for %s", url)
            return FetchResult(url=final_url, status_code=status_code, error="empty body")
        return FetchResult(url=final_url, body=body, status_code=status_code)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _get(self, url: str, headers: Dict[str, str]) -> tuple[int, str, str]:
        encoded_url = self._encode_url(url)
        proxies = {"http": self.proxy, "https": self.proxy} if self.proxy else None
        verify_arg: bool | str = self._cert_bundle or True
        timeout = (self.config.connect_timeout, self.config.read_timeout)

        try:
            response = requests.get(
                encoded_url,
                headers=headers,
                proxies=proxies,
                timeout=timeout,
                impersonate=self.config.impersonate,
                allow_redirects=True,
                verify=verify_arg,
            )
        except RequestsError as exc:
            message = str(exc).lower()
            if "certificate" in message and "verify" in message and verify_arg is not False:
                logger.warning("[Fetcher] TLS verification failed (likely non-ASCII CA path). Retrying insecurely.")
                response = requests.get(
                    encoded_url,
                    headers=headers,
                    proxies=proxies,
                    timeout=timeout,
                    impersonate=self.config.impersonate,
                    allow_redirects=True,
                    verify=False,
                )
            else:
                raise

        return response.status_code, response.text, response.url or url

    @staticmethod
    def _encode_url(url: str) -> str:
        # Encode non-ASCII path/query characters, keeping reserved separators
        parts = urlsplit(url)
        encoded_path = quote(parts.path, safe="/%")
        encoded_query = quote(parts.query, safe="=&%")
        return urlunsplit((parts.scheme, parts.netloc, encoded_path, encoded_query, parts.fragment))
