"""Tests for endpoint guessing and ordered probing."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from menuspider import ApiDiscovery, FetchResult, Fetcher, StageStatus

MENU_URL = "https://stonybrook.nutrislice.com/menu/east-side-dining"
TODAY = date(2026, 3, 7)


class DummyFetcher(Fetcher):
    """Serve canned bodies by URL and record every request."""

    def __init__(self, mapping: Dict[str, str], failures: Optional[Dict[str, Exception]] = None) -> None:
        super().__init__()
        self.mapping = mapping
        self.failures = failures or {}
        self.calls: List[str] = []
        self.headers: List[Dict[str, str]] = []

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        self.calls.append(url)
        self.headers.append(headers or {})
        if url in self.failures:
            raise self.failures[url]
        if url not in self.mapping:
            return FetchResult(url=url, status_code=404, error="HTTP 404")
        return FetchResult(url=url, body=self.mapping[url], status_code=200)


def _discovery(fetcher: Fetcher) -> ApiDiscovery:
    return ApiDiscovery(fetcher, today=lambda: TODAY)


def test_parse_menu_url_extracts_site_and_menu():
    discovery = _discovery(DummyFetcher({}))
    assert discovery.parse_menu_url(MENU_URL) == ("stonybrook", "east-side-dining")
    assert discovery.parse_menu_url("https://stonybrook.nutrislice.com/menu/east-side-dining?date=x") == (
        "stonybrook",
        "east-side-dining",
    )
    assert discovery.parse_menu_url("https://example.com/menu/foo") is None
    assert discovery.parse_menu_url("not a url") is None


def test_candidates_use_derived_ids_and_zero_padded_date():
    discovery = _discovery(DummyFetcher({}))
    candidates = discovery.build_candidates(MENU_URL)
    urls = [candidate.url for candidate in candidates]

    assert urls
    assert urls[0] == "https://stonybrook.nutrislice.com/menu/api/weeks/menu/east-side-dining/2026/03/07/"
    assert urls[1] == "https://stonybrook.api.nutrislice.com/menu/api/weeks/menu/east-side-dining/2026/03/07/"
    assert len(urls) == len(set(urls))
    for meal_type in ("lunch", "breakfast", "dinner", "all-day"):
        assert (
            f"https://stonybrook.api.nutrislice.com/menu/api/weeks/school/stonybrook/menu-type/{meal_type}/2026/03/07/"
            in urls
        )
    assert "https://sbu.api.nutrislice.com/menu/api/weeks/school/sbu/menu-type/dinner/2026/03/07/" in urls
    assert "https://nutrislice.com/menu/api/weeks/school/sbu/menu-type/dinner/2026/03/07/" in urls


def test_candidates_for_unrecognized_url_fall_back_to_generic_guesses():
    discovery = _discovery(DummyFetcher({}))
    urls = [candidate.url for candidate in discovery.build_candidates("http://bad url")]

    assert urls
    assert all("nutrislice.com" in url for url in urls)
    assert "https://stonybrook.nutrislice.com/api/v1/menu/east-side-dining/" in urls


def test_run_stops_at_first_candidate_with_items():
    discovery = _discovery(DummyFetcher({}))
    candidates = discovery.build_candidates(MENU_URL)
    empty_url, winning_url = candidates[1].url, candidates[3].url
    fetcher = DummyFetcher(
        {
            empty_url: '{"days": []}',
            winning_url: '{"sections":[{"name":"Grill","menu_items":[{"name":"Cheeseburger"}]}]}',
        }
    )
    result = _discovery(fetcher).run(MENU_URL)

    assert result.status == StageStatus.FOUND
    assert [item.name for item in result.items] == ["Cheeseburger"]
    assert fetcher.calls == [candidate.url for candidate in candidates[:4]]


def test_probe_headers_request_json_with_referer():
    fetcher = DummyFetcher({})
    _discovery(fetcher).run(MENU_URL)

    headers = fetcher.headers[0]
    assert "application/json" in headers["Accept"]
    assert headers["Referer"] == MENU_URL
    assert headers["User-Agent"].startswith("Mozilla/5.0")


def test_items_from_meal_type_endpoint_carry_meal_time():
    discovery = _discovery(DummyFetcher({}))
    breakfast = next(c for c in discovery.build_candidates(MENU_URL) if c.meal_type == "breakfast")
    fetcher = DummyFetcher({breakfast.url: '{"menu_items":[{"name":"French Toast"}]}'})

    result = _discovery(fetcher).run(MENU_URL)
    assert result.items[0].meal_time == "breakfast"


def test_probe_exceptions_are_swallowed():
    discovery = _discovery(DummyFetcher({}))
    candidates = discovery.build_candidates(MENU_URL)
    fetcher = DummyFetcher(
        {candidates[2].url: '{"menu_items":[{"name":"Fish Tacos"}]}'},
        failures={candidates[0].url: TimeoutError("timed out"), candidates[1].url: ValueError("boom")},
    )
    result = _discovery(fetcher).run(MENU_URL)

    assert result.status == StageStatus.FOUND
    assert [item.name for item in result.items] == ["Fish Tacos"]


def test_exhausted_candidates_return_empty_not_error():
    fetcher = DummyFetcher({})
    discovery = _discovery(fetcher)
    result = discovery.run(MENU_URL)

    assert result.status == StageStatus.EMPTY
    assert result.items == []
    assert len(fetcher.calls) == len(discovery.build_candidates(MENU_URL))
