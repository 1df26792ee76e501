"""Recover menu payloads or endpoint URLs embedded in the menu page HTML."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .config import Settings, settings as default_settings
from .fetcher import Fetcher
from .models import Stage, StageResult
from .structured_parser import StructuredParser
from .utils.json_utils import decode_object_at

logger = logging.getLogger(__name__)

_STATE_ASSIGNMENTS = (
    re.compile(r"window\.__INITIAL_STATE__\s*=\s*"),
    re.compile(r"window\.menuData\s*=\s*"),
    re.compile(r"\b(?:var|let|const)\s+menuData\s*=\s*"),
)
_LAZY_OBJECT_RE = re.compile(r"\s*(\{.*?\});", re.DOTALL)
_FETCH_CALL_RE = re.compile(r"""(?:fetch|axios\.get)\(\s*["'`]([^"'`]*menu[^"'`]*)["'`]""")
_API_PATH_RE = re.compile(r"/(?:menu/)?api/")


class EmbeddedDataStrategy:
    """Scan page HTML for inline state blobs and API URLs, parse or probe them."""

    def __init__(
        self,
        fetcher: Fetcher,
        parser: Optional[StructuredParser] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser or StructuredParser()
        self.config = config or default_settings
        self.platform = self.config.platform_domain.split(".")[0]
        keyword = re.escape(self.platform)
        self._url_patterns = (
            re.compile(rf"https?://[^\"'\s]*api\.{keyword}[^\"'\s]+"),
            re.compile(rf"https?://[^\"'\s]*{keyword}[^\"'\s]*/menu/api[^\"'\s]+"),
            re.compile(rf"https?://[^\"'\s]*{keyword}[^\"'\s]*/api[^\"'\s]+"),
            re.compile(rf"[\"']([^\"']*{keyword}[^\"']*menu[^\"']*\.json[^\"']*)[\"']"),
            re.compile(rf"[\"']([^\"']*{keyword}[^\"']*api[^\"']*menu[^\"']*)[\"']"),
        )

    def run(self, html: str, page_url: str) -> StageResult:
        soup = BeautifulSoup(html, "lxml")
        origin = _origin(page_url)

        for source, blob in self.find_blobs(soup):
            parsed = self.parser.parse(blob)
            if parsed.items:
                logger.info("[EmbeddedData] Parsed %d items from %s", len(parsed.items), source)
                return StageResult.from_parsed(Stage.EMBEDDED_DATA, parsed)

        urls = self.find_urls(html, soup, origin)
        headers = self.fetcher.json_headers(referer=page_url)
        for api_url in urls:
            logger.debug("[EmbeddedData] Probing discovered URL: %s", api_url)
            try:
                response = self.fetcher.fetch(api_url, headers)
                if not response.ok:
                    continue
                parsed = self.parser.parse(response.body)
            except Exception as exc:
                logger.warning("[EmbeddedData] Error probing %s: %s", api_url, exc)
                continue
            if parsed.items:
                logger.info("[EmbeddedData] Parsed %d items from %s", len(parsed.items), api_url)
                return StageResult.from_parsed(Stage.EMBEDDED_DATA, parsed)

        return StageResult.empty(Stage.EMBEDDED_DATA)

    # ------------------------------------------------------------------ #
    # Discovery helpers
    # ------------------------------------------------------------------ #
    def find_blobs(self, soup: BeautifulSoup) -> List[tuple[str, str]]:
        """Return (source label, raw JSON text) pairs found inline in the page."""
        blobs: List[tuple[str, str]] = []
        for script in soup.find_all("script"):
            content = script.string or script.get_text() or ""
            if not content.strip():
                continue
            script_type = (script.get("type") or "").lower()
            if script.get("id") == "__NEXT_DATA__" or script_type == "application/json":
                blobs.append(("json script", content))
                continue
            for pattern in _STATE_ASSIGNMENTS:
                match = pattern.search(content)
                if not match:
                    continue
                blob = decode_object_at(content, match.end())
                if blob is None:
                    lazy = _LAZY_OBJECT_RE.match(content, match.end())
                    blob = lazy.group(1) if lazy else None
                if blob:
                    blobs.append((pattern.pattern, blob))
        for node in soup.select("[data-menu-items]"):
            value = node.get("data-menu-items") or ""
            if value.strip():
                blobs.append(("data-menu-items", value))
        return blobs

    def find_urls(self, html: str, soup: BeautifulSoup, origin: str) -> List[str]:
        """Collect candidate endpoint URLs, de-duplicated in discovery order."""
        found: Dict[str, None] = {}
        text = html.replace("\\/", "/")

        for pattern in self._url_patterns:
            for match in pattern.finditer(text):
                url = match.group(1) if pattern.groups else match.group(0)
                if url.startswith("http") and self.platform in url:
                    found[url] = None

        for script in soup.find_all("script"):
            content = script.string or script.get_text() or ""
            for match in _FETCH_CALL_RE.finditer(content):
                url = match.group(1)
                if url.startswith("/") or self.platform in url:
                    found[urljoin(origin, url)] = None

        for url in self._attribute_urls(soup):
            if _API_PATH_RE.search(url):
                resolved = urljoin(origin, url)
                if self.platform in urlsplit(resolved).netloc:
                    found[resolved] = None

        return list(found)

    @staticmethod
    def _attribute_urls(soup: BeautifulSoup) -> Iterable[str]:
        for node in soup.select("a[href], script[src]"):
            value = node.get("href") or node.get("src") or ""
            value = value.strip()
            if value and not value.lower().startswith("javascript:"):
                yield value


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/"
