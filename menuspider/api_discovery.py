"""Guess and probe structured menu endpoints without loading the menu page."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, List, Optional, Tuple

from .config import Settings, settings as default_settings
from .fetcher import Fetcher
from .models import ParsedMenu, Stage, StageResult
from .structured_parser import StructuredParser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A guessed endpoint, with the meal type encoded in its path when there is one."""

    url: str
    meal_type: Optional[str] = None


class ApiDiscovery:
    """Derive candidate endpoints from the menu URL and today's date, probe them in order."""

    def __init__(
        self,
        fetcher: Fetcher,
        parser: Optional[StructuredParser] = None,
        today: Callable[[], date] = date.today,
        config: Optional[Settings] = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser or StructuredParser()
        self.today = today
        self.config = config or default_settings
        domain = re.escape(self.config.platform_domain)
        self._url_re = re.compile(rf"https?://([^./]+)\.{domain}/menu/([^/?#]+)", re.IGNORECASE)

    def parse_menu_url(self, url: str) -> Optional[Tuple[str, str]]:
        """Return (site_id, menu_id) for ``https://{site}.{domain}/menu/{menu}`` URLs."""
        match = self._url_re.search(url or "")
        if not match:
            return None
        return match.group(1).lower(), match.group(2)

    def build_candidates(self, url: str, today: Optional[date] = None) -> List[Candidate]:
        day = today or self.today()
        ymd = f"{day.year}/{day.month:02d}/{day.day:02d}"
        domain = self.config.platform_domain

        candidates: List[Candidate] = []
        parsed = self.parse_menu_url(url)
        if parsed:
            site, menu = parsed
            candidates.append(Candidate(f"https://{site}.{domain}/menu/api/weeks/menu/{menu}/{ymd}/"))
            candidates.append(Candidate(f"https://{site}.api.{domain}/menu/api/weeks/menu/{menu}/{ymd}/"))
            for meal_type in self.config.meal_types:
                candidates.append(
                    Candidate(
                        f"https://{site}.api.{domain}/menu/api/weeks/school/{site}/menu-type/{meal_type}/{ymd}/",
                        meal_type,
                    )
                )
            candidates.append(Candidate(f"https://{site}.{domain}/api/menu/{menu}/{ymd}/"))
            candidates.append(Candidate(f"https://{site}.{domain}/api/v1/menu/{menu}/"))
            first_meal = self.config.meal_types[0] if self.config.meal_types else "lunch"
            candidates.append(
                Candidate(
                    f"https://api.{domain}/menu/api/weeks/school/{site}/menu-type/{first_meal}/{ymd}/",
                    first_meal,
                )
            )
        else:
            logger.debug("[ApiDiscovery] %s does not look like a menu URL; using generic guesses", url)
            site, menu = self.config.default_site_id, self.config.default_menu_id

        # Generic guesses: alternate site ids x meal types, with and without the api subdomain
        site_ids = [site] + [alt for alt in self.config.alternate_site_ids if alt != site]
        for site_id in site_ids:
            for meal_type in self.config.meal_types:
                path = f"menu/api/weeks/school/{site_id}/menu-type/{meal_type}/{ymd}/"
                candidates.append(Candidate(f"https://{site_id}.api.{domain}/{path}", meal_type))
                candidates.append(Candidate(f"https://{domain}/{path}", meal_type))

        candidates.append(Candidate(f"https://{site}.{domain}/menu/api/weeks/menu/{menu}/{ymd}/"))
        candidates.append(Candidate(f"https://{site}.{domain}/api/menu/{menu}/{ymd}/"))
        candidates.append(Candidate(f"https://{site}.{domain}/api/v1/menu/{menu}/"))

        return _dedupe(candidates)

    def run(self, url: str) -> StageResult:
        candidates = self.build_candidates(url)
        headers = self.fetcher.json_headers(referer=url)
        for candidate in candidates:
            logger.debug("[ApiDiscovery] Trying API endpoint: %s", candidate.url)
            try:
                response = self.fetcher.fetch(candidate.url, headers)
                if not response.ok:
                    logger.debug("[ApiDiscovery] %s failed: %s", candidate.url, response.error)
                    continue
                parsed = self.parser.parse(response.body)
            except Exception as exc:
                logger.warning("[ApiDiscovery] Error probing %s: %s", candidate.url, exc)
                continue
            if not parsed.items:
                logger.debug("[ApiDiscovery] Parsed response but got 0 items from %s", candidate.url)
                continue
            logger.info("[ApiDiscovery] Parsed %d items from %s", len(parsed.items), candidate.url)
            return StageResult.from_parsed(Stage.API_DISCOVERY, _with_meal_time(parsed, candidate.meal_type))
        return StageResult.empty(Stage.API_DISCOVERY)


def _dedupe(candidates: List[Candidate]) -> List[Candidate]:
    seen: set[str] = set()
    ordered: List[Candidate] = []
    for candidate in candidates:
        if candidate.url in seen:
            continue
        seen.add(candidate.url)
        ordered.append(candidate)
    return ordered


def _with_meal_time(parsed: ParsedMenu, meal_type: Optional[str]) -> ParsedMenu:
    if not meal_type:
        return parsed
    items = [item if item.meal_time else replace(item, meal_time=meal_type) for item in parsed.items]
    return ParsedMenu(items=items, categories=parsed.categories)
