"""Command line entry point for MenuSpider."""

from __future__ import annotations

import argparse
import logging

from .config import settings
from .extractor import MenuExtractor
from .fetcher import Fetcher
from .models import ExtractionStatus
from .output import CsvWriter, JsonWriter, PrintWriter, ResultWriter, SQLiteWriter

DEFAULT_URL = f"https://{settings.default_site_id}.{settings.platform_domain}/menu/{settings.default_menu_id}"


def _build_writer(mode: str, path: str | None) -> ResultWriter:
    if mode == "json":
        return JsonWriter(path or "menu.json")
    if mode == "csv":
        return CsvWriter(path or "menu.csv")
    if mode == "sqlite":
        return SQLiteWriter(path or "menu.db")
    return PrintWriter()


def main() -> None:
    parser = argparse.ArgumentParser("MenuSpider CLI")
    parser.add_argument("url", nargs="?", default=DEFAULT_URL, help="Menu page URL")
    parser.add_argument(
        "--output-mode",
        default="print",
        choices=["print", "json", "csv", "sqlite"],
        help="Output backend.",
    )
    parser.add_argument("--output-path", default=None, help="File path for json/csv/sqlite outputs.")
    parser.add_argument("--proxy", default=None, help="HTTP(S) proxy for all requests.")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Increase log verbosity (-v, -vv).")
    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    extractor = MenuExtractor(fetcher=Fetcher(proxy=args.proxy))
    result = extractor.extract(args.url)

    if result.status == ExtractionStatus.FETCH_BLOCKED:
        print(f"[ERROR] Failed to fetch menu page: {result.error}. Check the URL or network connectivity.")
        return
    if result.status == ExtractionStatus.EMPTY:
        print(f"[WARN] No menu items found for {result.location}; the page may render its menu client-side.")

    _build_writer(args.output_mode, args.output_path).write(result)


if __name__ == "__main__":
    main()
