"""Basic smoke test for package imports and flow."""

from datetime import date

from menuspider import (
    ApiDiscovery,
    ExtractionStatus,
    FetchResult,
    Fetcher,
    MenuExtractor,
    PrintWriter,
)

PAGE_URL = "https://stonybrook.nutrislice.com/menu/east-side-dining"


class CannedFetcher(Fetcher):
    def __init__(self, pages):
        super().__init__()
        self.pages = pages

    def fetch(self, url, headers=None):
        if url in self.pages:
            return FetchResult(url=url, body=self.pages[url], status_code=200)
        return FetchResult(url=url, status_code=404, error="HTTP 404")


def test_smoke_flow(capsys):
    probe = ApiDiscovery(Fetcher(), today=lambda: date(2026, 10, 19))
    first_candidate = probe.build_candidates(PAGE_URL)[0].url
    fetcher = CannedFetcher(
        {first_candidate: '{"days":[{"sections":[{"name":"Grill","menu_items":[{"name":"Chicken Sandwich"}]}]}]}'}
    )
    extractor = MenuExtractor(
        fetcher=fetcher,
        api_discovery=ApiDiscovery(fetcher, today=lambda: date(2026, 10, 19)),
    )

    result = extractor.extract(PAGE_URL)
    assert result.status == ExtractionStatus.ITEMS_FOUND
    assert result.items[0].name == "Chicken Sandwich"

    PrintWriter().write(result)
    out = capsys.readouterr().out
    assert "East Side Dining" in out
    assert "Chicken Sandwich" in out
