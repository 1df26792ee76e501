"""De-duplication and noise filtering for extracted menu records."""

from __future__ import annotations

import re
from typing import Callable, Dict, Hashable, Iterable, List, Optional

from .models import Category, MenuItem

_WHITESPACE_RE = re.compile(r"\s+")
_LETTER_RE = re.compile(r"[^\W\d_]")

UNCATEGORIZED = "Uncategorized"
UNKNOWN_STATION = "Unknown"


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_plausible_name(text: Optional[str]) -> bool:
    """Reject blank, too-short and letterless text such as prices or separators."""
    cleaned = clean_text(text)
    return len(cleaned) > 2 and bool(_LETTER_RE.search(cleaned))


def word_count(text: str) -> int:
    return len(text.split(" "))


_ITEM_KEYS: Dict[str, Callable[[MenuItem], Hashable]] = {
    "pair": lambda item: (item.name, item.category),
    "name": lambda item: item.name.lower(),
}


def dedupe_items(items: Iterable[MenuItem], key: str = "pair") -> List[MenuItem]:
    """Keep the first item per key; ``pair`` is (name, category), ``name`` is the lowercased name."""
    key_func = _ITEM_KEYS[key]
    seen: set = set()
    results: List[MenuItem] = []
    for item in items:
        marker = key_func(item)
        if marker in seen:
            continue
        seen.add(marker)
        results.append(item)
    return results


def cap(items: List[MenuItem], limit: int) -> List[MenuItem]:
    return items[:limit] if limit >= 0 else items


def dedupe_categories(categories: Iterable[Category], casefold: bool = False) -> List[Category]:
    seen: set[str] = set()
    results: List[Category] = []
    for category in categories:
        marker = clean_text(category.name)
        if casefold:
            marker = marker.lower()
        if not marker or marker in seen:
            continue
        seen.add(marker)
        results.append(category)
    return results


def build_categories(names: Iterable[str], with_station: bool = True) -> List[Category]:
    """Turn raw category names into Category records, collapsing whitespace variants."""
    categories: List[Category] = []
    seen: set[str] = set()
    for raw in names:
        name = clean_text(raw)
        if not name or name in seen:
            continue
        seen.add(name)
        categories.append(
            Category(
                id=f"category_{len(categories)}",
                name=name,
                station=name if with_station else None,
            )
        )
    return categories
