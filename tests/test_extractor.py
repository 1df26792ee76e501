"""Tests for the stage cascade and result status reporting."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from menuspider import (
    ApiDiscovery,
    EmbeddedDataStrategy,
    ExtractionError,
    ExtractionStatus,
    FetchResult,
    Fetcher,
    MenuExtractor,
    MenuItem,
    ParsedMenu,
    Stage,
    StageResult,
)

FIXTURE_DIR = Path(__file__).parent / "fixtures"
PAGE_URL = "https://stonybrook.nutrislice.com/menu/east-side-dining"


class PageFetcher(Fetcher):
    def __init__(self, pages: Optional[Dict[str, str]] = None, status_code: int = 200) -> None:
        super().__init__()
        self.pages = pages or {}
        self.status_code = status_code
        self.calls: List[str] = []

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        self.calls.append(url)
        if url not in self.pages:
            return FetchResult(url=url, status_code=self.status_code, error=f"HTTP {self.status_code}")
        return FetchResult(url=url, body=self.pages[url], status_code=200)


class FakeApiDiscovery(ApiDiscovery):
    def __init__(self, items: Optional[List[MenuItem]] = None, error: Optional[Exception] = None) -> None:
        super().__init__(Fetcher())
        self.items = items or []
        self.error = error

    def run(self, url: str) -> StageResult:
        if self.error is not None:
            raise self.error
        return StageResult.from_parsed(Stage.API_DISCOVERY, ParsedMenu(items=list(self.items)))


class ExplodingEmbedded(EmbeddedDataStrategy):
    def __init__(self) -> None:
        super().__init__(Fetcher())
        self.calls = 0

    def run(self, html: str, page_url: str) -> StageResult:
        self.calls += 1
        raise RuntimeError("embedded stage blew up")


def _items(*names: str) -> List[MenuItem]:
    return [MenuItem(id=f"item_{index}", name=name, category="Grill", station="Grill") for index, name in enumerate(names)]


def _fixture(name: str) -> str:
    return (FIXTURE_DIR / name).read_text(encoding="utf-8")


def test_api_success_short_circuits_later_stages():
    fetcher = PageFetcher()
    embedded = ExplodingEmbedded()

    def factory(_url):
        raise AssertionError("HTML parser should not be built")

    extractor = MenuExtractor(
        fetcher=fetcher,
        api_discovery=FakeApiDiscovery(_items("Cheeseburger", "Hot Dog", "Fries")),
        embedded_data=embedded,
        html_parser_factory=factory,
    )
    result = extractor.extract(PAGE_URL)

    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.stage == Stage.API_DISCOVERY
    assert len(result.items) == 3
    assert fetcher.calls == []
    assert embedded.calls == 0


def test_page_fetch_failure_is_fetch_blocked_not_empty():
    extractor = MenuExtractor(fetcher=PageFetcher(status_code=403), api_discovery=FakeApiDiscovery())
    result = extractor.extract(PAGE_URL)

    assert result.status == ExtractionStatus.FETCH_BLOCKED
    assert result.items == []
    assert result.error == "HTTP 403"
    assert not result.ok
    with pytest.raises(ExtractionError):
        result.raise_for_status()


def test_embedded_data_found_after_api_comes_up_empty():
    fetcher = PageFetcher({PAGE_URL: _fixture("state_page.html")})
    result = MenuExtractor(fetcher=fetcher, api_discovery=FakeApiDiscovery()).extract(PAGE_URL)

    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.stage == Stage.EMBEDDED_DATA
    assert [item.name for item in result.items] == ["Chicken Ramen", "Tofu Pho"]


def test_html_selectors_used_when_structured_stages_are_empty():
    fetcher = PageFetcher({PAGE_URL: _fixture("menu_page.html")})
    result = MenuExtractor(fetcher=fetcher, api_discovery=FakeApiDiscovery()).extract(PAGE_URL)

    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.stage == Stage.HTML_SELECTORS
    assert [item.name for item in result.items] == ["Classic Cheeseburger", "Black Bean Burger", "Garden Salad"]
    assert [category.name for category in result.categories] == ["Grill", "Salad Bar"]
    assert result.location == "East Side Dining"
    result.raise_for_status()


def test_failing_stages_do_not_stop_the_cascade():
    fetcher = PageFetcher({PAGE_URL: _fixture("menu_page.html")})
    embedded = ExplodingEmbedded()
    extractor = MenuExtractor(
        fetcher=fetcher,
        api_discovery=FakeApiDiscovery(error=ValueError("bad payload")),
        embedded_data=embedded,
    )
    result = extractor.extract(PAGE_URL)

    assert embedded.calls == 1
    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.stage == Stage.HTML_SELECTORS


def test_aggressive_stage_runs_last():
    page = "<html><body><div class='card'><p>Beef Stew. Slow cooked</p></div></body></html>"
    fetcher = PageFetcher({PAGE_URL: page})
    result = MenuExtractor(fetcher=fetcher, api_discovery=FakeApiDiscovery()).extract(PAGE_URL)

    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.stage == Stage.HTML_AGGRESSIVE
    assert [(item.name, item.category, item.station) for item in result.items] == [
        ("Beef Stew", "Uncategorized", "Unknown"),
    ]


def test_no_items_anywhere_is_empty_with_heading_categories():
    page = "<html><body><h1>East Side Dining</h1><p>closed today</p></body></html>"
    fetcher = PageFetcher({PAGE_URL: page})
    result = MenuExtractor(fetcher=fetcher, api_discovery=FakeApiDiscovery()).extract(PAGE_URL)

    assert result.status == ExtractionStatus.EMPTY
    assert result.items == []
    assert [category.name for category in result.categories] == ["East Side Dining"]
    with pytest.raises(ExtractionError):
        result.raise_for_status()


def test_extract_categories_returns_result_categories():
    fetcher = PageFetcher({PAGE_URL: _fixture("menu_page.html")})
    extractor = MenuExtractor(fetcher=fetcher, api_discovery=FakeApiDiscovery())
    assert [category.name for category in extractor.extract_categories(PAGE_URL)] == ["Grill", "Salad Bar"]


def test_location_label_is_derived_from_menu_slug():
    extractor = MenuExtractor(fetcher=PageFetcher())
    assert extractor.location_label("https://stonybrook.nutrislice.com/menu/roth-food-court") == "Roth Food Court"
    assert extractor.location_label("https://example.com/dining") == "East Side Dining"
