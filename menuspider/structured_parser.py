"""Parse structured (JSON or JSON-ish) menu payloads into menu items."""

from __future__ import annotations

import itertools
import logging
import re
from typing import Any, Iterator, List, Mapping, Optional

from .models import MenuItem, ParsedMenu
from .normalizer import UNCATEGORIZED, build_categories, clean_text
from .utils.json_utils import decode_json, ensure_string_list, first_string

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r'"name"\s*:\s*"([^"]+)"')
_SECTION_RE = re.compile(r'"section_name"\s*:\s*"([^"]+)"')
_STATION_RE = re.compile(r'"station_name"\s*:\s*"([^"]+)"')
_REJECTED_FRAGMENTS = ("null", "undefined")

ITEM_ID_PREFIX = "item_"


class StructuredParser:
    """Walk the known menu payload shapes, falling back to regex scans.

    Every known shape is tried against the same object and results are
    accumulated, so payloads that mix shapes are still fully captured.
    """

    def parse(self, text: str) -> ParsedMenu:
        payload = decode_json(text or "")
        if isinstance(payload, Mapping):
            try:
                parsed = self._parse_object(payload)
            except Exception as exc:
                logger.warning("[StructuredParser] Primary parse failed, using regex fallback: %s", exc)
            else:
                if parsed.items:
                    return parsed
                logger.debug("[StructuredParser] No items in known shapes, using regex fallback")
        return self._parse_with_regex(text or "")

    # ------------------------------------------------------------------ #
    # Primary path
    # ------------------------------------------------------------------ #
    def _parse_object(self, payload: Mapping[str, Any]) -> ParsedMenu:
        counter = itertools.count()
        items: List[MenuItem] = []
        category_names: List[str] = []

        for day in _mappings(payload.get("days")):
            for section in _mappings(day.get("sections")):
                self._parse_section(section, items, category_names, counter)

        for section in _mappings(payload.get("sections")):
            self._parse_section(section, items, category_names, counter)

        for entry in _mappings(payload.get("menu_items")):
            self._parse_flat_item(entry, first_string(entry, "name"), items, category_names, counter)

        for entry in _mappings(payload.get("items")):
            self._parse_flat_item(entry, first_string(entry, "name", "title"), items, category_names, counter)

        return ParsedMenu(items=items, categories=build_categories(category_names))

    def _parse_section(
        self,
        section: Mapping[str, Any],
        items: List[MenuItem],
        category_names: List[str],
        counter: Iterator[int],
    ) -> None:
        section_name = clean_text(first_string(section, "name", "section_name")) or UNCATEGORIZED
        category_names.append(section_name)
        for entry in _mappings(section.get("menu_items")):
            name = first_string(entry, "name")
            if not _acceptable(name):
                continue
            station = first_string(entry, "station_name", "station") or section_name
            items.append(self._build_item(entry, next(counter), name, section_name, station))

    def _parse_flat_item(
        self,
        entry: Mapping[str, Any],
        name: Optional[str],
        items: List[MenuItem],
        category_names: List[str],
        counter: Iterator[int],
    ) -> None:
        if not _acceptable(name):
            return
        category = clean_text(first_string(entry, "section_name", "section", "category")) or UNCATEGORIZED
        station = first_string(entry, "station_name", "station") or category
        category_names.append(category)
        items.append(self._build_item(entry, next(counter), name, category, station))

    @staticmethod
    def _build_item(entry: Mapping[str, Any], index: int, name: str, category: str, station: str) -> MenuItem:
        return MenuItem(
            id=f"{ITEM_ID_PREFIX}{index}",
            name=name,
            category=category,
            station=station,
            description=first_string(entry, "description"),
            image_url=first_string(entry, "image_url", "image"),
            ingredients=ensure_string_list(entry.get("ingredients")),
        )

    # ------------------------------------------------------------------ #
    # Fallback path
    # ------------------------------------------------------------------ #
    def _parse_with_regex(self, text: str) -> ParsedMenu:
        names = _NAME_RE.findall(text)
        sections = _SECTION_RE.findall(text)
        stations = _STATION_RE.findall(text)

        counter = itertools.count()
        items: List[MenuItem] = []
        category_names: List[str] = []
        for index, raw_name in enumerate(names):
            name = raw_name.strip()
            if len(name) <= 2 or any(fragment in name for fragment in _REJECTED_FRAGMENTS):
                continue
            category = clean_text(sections[index]) if index < len(sections) else ""
            category = category or UNCATEGORIZED
            station = stations[index].strip() if index < len(stations) else ""
            category_names.append(category)
            items.append(
                MenuItem(
                    id=f"{ITEM_ID_PREFIX}{next(counter)}",
                    name=name,
                    category=category,
                    station=station or category,
                )
            )

        logger.debug("[StructuredParser] Regex fallback found %d items", len(items))
        return ParsedMenu(items=items, categories=build_categories(category_names))


def _mappings(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def _acceptable(name: Optional[str]) -> bool:
    return bool(name) and len(name) > 2
