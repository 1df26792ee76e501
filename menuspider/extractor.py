"""Cascade orchestration: API discovery, embedded data, then HTML heuristics."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from bs4 import BeautifulSoup

from .api_discovery import ApiDiscovery
from .config import Settings, settings as default_settings
from .embedded_data import EmbeddedDataStrategy
from .fetcher import FetchResult, Fetcher
from .html_parser import HtmlMenuParser
from .models import (
    Category,
    ExtractionResult,
    ExtractionStatus,
    ParsedMenu,
    Stage,
    StageResult,
    StageStatus,
)

logger = logging.getLogger(__name__)


class MenuExtractor:
    """Run the extraction stages in priority order and stop at the first that finds items."""

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        api_discovery: Optional[ApiDiscovery] = None,
        embedded_data: Optional[EmbeddedDataStrategy] = None,
        html_parser_factory: Optional[Callable[[str], HtmlMenuParser]] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.config = config or default_settings
        self.fetcher = fetcher or Fetcher(config=self.config)
        self.api_discovery = api_discovery or ApiDiscovery(self.fetcher, config=self.config)
        self.embedded_data = embedded_data or EmbeddedDataStrategy(self.fetcher, config=self.config)
        self.html_parser_factory = html_parser_factory or (lambda url: HtmlMenuParser(url, config=self.config))

    def extract(self, url: str) -> ExtractionResult:
        location = self.location_label(url)

        api_result = self._run_stage(Stage.API_DISCOVERY, lambda: self.api_discovery.run(url))
        if api_result.found:
            return self._finish(api_result, location)

        try:
            page = self.fetcher.fetch(url, self.fetcher.html_headers())
        except Exception as exc:
            logger.exception("[Extractor] Unexpected error fetching %s", url)
            page = FetchResult(url=url, error=str(exc))
        if not page.ok:
            logger.warning("[Extractor] Failed to fetch menu page %s: %s", url, page.error)
            return ExtractionResult(
                items=[],
                categories=[],
                location=location,
                status=ExtractionStatus.FETCH_BLOCKED,
                error=page.error,
            )
        page_url = page.url or url

        embedded_result = self._run_stage(Stage.EMBEDDED_DATA, lambda: self.embedded_data.run(page.body, page_url))
        if embedded_result.found:
            return self._finish(embedded_result, location)

        soup = BeautifulSoup(page.body, "lxml")
        html_parser = self.html_parser_factory(page_url)

        selector_result = self._run_stage(Stage.HTML_SELECTORS, lambda: self._selector_stage(html_parser, soup))
        if selector_result.found:
            return self._finish(selector_result, location)

        aggressive_result = self._run_stage(
            Stage.HTML_AGGRESSIVE,
            lambda: StageResult.from_parsed(
                Stage.HTML_AGGRESSIVE,
                ParsedMenu(items=html_parser.extract_items_aggressive(soup)),
            ),
        )
        categories = selector_result.categories or self._aggressive_categories(html_parser, soup)
        if aggressive_result.found:
            return self._finish(aggressive_result, location, categories)

        logger.info("[Extractor] No menu items found for %s", url)
        return ExtractionResult(
            items=[],
            categories=categories,
            location=location,
            status=ExtractionStatus.EMPTY,
        )

    def extract_categories(self, url: str) -> List[Category]:
        return self.extract(url).categories

    def location_label(self, url: str) -> str:
        parsed = self.api_discovery.parse_menu_url(url)
        if not parsed:
            return self.config.default_location
        _, menu_id = parsed
        words = [word for word in menu_id.replace("_", "-").split("-") if word]
        return " ".join(word.capitalize() for word in words) or self.config.default_location

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _selector_stage(html_parser: HtmlMenuParser, soup: BeautifulSoup) -> StageResult:
        categories = html_parser.extract_categories(soup)
        items = html_parser.extract_items(soup, categories)
        return StageResult.from_parsed(Stage.HTML_SELECTORS, ParsedMenu(items=items, categories=categories))

    @staticmethod
    def _aggressive_categories(html_parser: HtmlMenuParser, soup: BeautifulSoup) -> List[Category]:
        try:
            return html_parser.extract_categories_aggressive(soup)
        except Exception:
            logger.exception("[Extractor] Aggressive category extraction failed")
            return []

    @staticmethod
    def _run_stage(stage: Stage, runner: Callable[[], StageResult]) -> StageResult:
        try:
            result = runner()
        except Exception as exc:
            logger.exception("[Extractor] Stage %s failed", stage.value)
            return StageResult(stage=stage, status=StageStatus.ERROR, error=str(exc))
        logger.info("[Extractor] Stage %s: %s (%d items)", stage.value, result.status.value, len(result.items))
        return result

    @staticmethod
    def _finish(
        result: StageResult,
        location: str,
        categories: Optional[List[Category]] = None,
    ) -> ExtractionResult:
        return ExtractionResult(
            items=list(result.items),
            categories=list(categories if categories is not None else result.categories),
            location=location,
            status=ExtractionStatus.ITEMS_FOUND,
            stage=result.stage,
        )
