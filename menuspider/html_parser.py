"""Heuristic menu extraction from rendered or server-side HTML."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from .config import Settings, settings as default_settings
from .models import Category, DietaryTag, MenuItem, NutritionFacts, ParsedMenu
from .normalizer import (
    UNCATEGORIZED,
    UNKNOWN_STATION,
    build_categories,
    cap,
    clean_text,
    dedupe_categories,
    dedupe_items,
    is_plausible_name,
    word_count,
)

logger = logging.getLogger(__name__)

# Ordered from most specific to most generic; the first selector with matches wins.
CATEGORY_SELECTORS = (
    "h2.menu-category-name",
    ".menu-category-name",
    ".menu-section-title",
    ".station-name",
    "h2[class*='category']",
    "h2[class*='station']",
    ".menu-station",
    ".menu-category",
)
CATEGORY_ATTRIBUTE_SELECTOR = "[data-category-name], [data-station-name]"
CATEGORY_HEADER_SELECTOR = "h2.menu-category-name, .menu-category-name, .station-name"

ITEM_SELECTORS = (
    ".menu-item",
    ".menu-item-name",
    "[data-menu-item]",
    ".food-item",
    ".item-name",
    "[data-item-name]",
    ".dish-name",
    ".food-name",
    "h3.menu-item-title",
    "h4.menu-item-title",
    ".ns-menu-item",
    ".nutrislice-menu-item",
    "[class*='menu-item']",
    "[class*='food-item']",
)
ITEM_NAME_SELECTOR = "h3, h4, .item-name, .menu-item-name, [data-item-name]"

SECTION_HEADER_SELECTOR = "h2, h3, h4, .menu-category-name, [class*='station'], [class*='category']"
SIBLING_NAME_SELECTOR = "h3, h4, h5, .item-name, .menu-item-name, [class*='item'], [class*='dish']"

NAME_ATTRIBUTES = ("data-name", "data-item-name", "data-dish-name")
CARD_SELECTOR = ".card, .item-card, .menu-card, [class*='card'], [class*='item']"
GENERIC_TEXT_SELECTOR = "div, li, span"
_AGGRESSIVE_STOPWORDS = ("click", "menu", "view")
_FOUR_DIGITS_RE = re.compile(r"\d{4}")
_FIRST_LINE_SPLIT_RE = re.compile(r"[\n.,]")

DESCRIPTION_SELECTOR = ".item-description, .description, [data-description]"
INGREDIENTS_SELECTOR = ".ingredients, .ingredient-list, [data-ingredients]"
NUTRITION_SELECTOR = ".nutrition-facts, .nutrition-info, [data-nutrition]"
DIETARY_ICON_SELECTOR = ".dietary-icon, .dietary-badge, [class*='vegan'], [class*='vegetarian']"
_INGREDIENT_SPLIT_RE = re.compile(r"[,;]")

# (field, sub-element selector, label pattern, default)
_NUTRIENT_FIELDS: Tuple[Tuple[str, str, str, str], ...] = (
    ("total_fat", "[data-fat], .fat, .total-fat", r"total\s+fat", "0g"),
    ("saturated_fat", "[data-saturated-fat], .saturated-fat", r"saturated\s+fat", "0g"),
    ("trans_fat", "[data-trans-fat], .trans-fat", r"trans\s+fat", "0g"),
    ("cholesterol", "[data-cholesterol], .cholesterol", r"cholesterol", "0mg"),
    ("sodium", "[data-sodium], .sodium", r"sodium", "0mg"),
    ("total_carbohydrate", "[data-carbs], .carbs, .total-carbohydrate", r"total\s+carbohydrates?", "0g"),
    ("dietary_fiber", "[data-fiber], .fiber, .dietary-fiber", r"dietary\s+fiber", "0g"),
    ("total_sugars", "[data-sugars], .sugars, .total-sugars", r"(?:total\s+)?sugars", "0g"),
)
_AMOUNT = r"(\d+(?:\.\d+)?)\s*(mcg|mg|g|%)"
_AMOUNT_RE = re.compile(_AMOUNT, re.IGNORECASE)
_CALORIES_LABEL_RE = re.compile(r"calories\s*:?\s*(\d+)", re.IGNORECASE)
_SERVING_LABEL_RE = re.compile(r"serving\s+size\s*:?\s*([^|;\n]+?)(?=\s+[A-Z][a-z]+\s*:|$)", re.IGNORECASE)
_NON_DIGITS_RE = re.compile(r"[^0-9]")

# keyword -> tag, checked against text, data-* attributes and icon class names
_DIETARY_KEYWORDS: Tuple[Tuple[str, DietaryTag], ...] = (
    ("vegan", DietaryTag.VEGAN),
    ("vegetarian", DietaryTag.VEGETARIAN),
    ("gluten-free", DietaryTag.GLUTEN_FREE),
    ("dairy", DietaryTag.CONTAINS_DAIRY),
    ("egg", DietaryTag.CONTAINS_EGG),
    ("fish", DietaryTag.CONTAINS_FISH),
)


class HtmlMenuParser:
    """Extract categories and items from a menu DOM using ranked selector heuristics."""

    def __init__(self, base_url: str = "", config: Optional[Settings] = None) -> None:
        self.base_url = base_url
        self.config = config or default_settings
        parts = urlsplit(base_url)
        self.origin = f"{parts.scheme}://{parts.netloc}/" if parts.scheme and parts.netloc else ""

    def parse(self, soup: BeautifulSoup) -> ParsedMenu:
        categories = self.extract_categories(soup)
        items = self.extract_items(soup, categories)
        if not items:
            items = self.extract_items_aggressive(soup)
        return ParsedMenu(items=items, categories=categories or self.extract_categories_aggressive(soup))

    # ------------------------------------------------------------------ #
    # Categories
    # ------------------------------------------------------------------ #
    def extract_categories(self, soup: BeautifulSoup) -> List[Category]:
        names: List[str] = []
        for selector in CATEGORY_SELECTORS:
            nodes = soup.select(selector)
            if nodes:
                names = [_text(node) for node in nodes]
                break

        if not any(names):
            names = []
            for node in soup.select(CATEGORY_ATTRIBUTE_SELECTOR):
                names.append(node.get("data-category-name", "").strip() or node.get("data-station-name", "").strip())

        return build_categories(names)

    def extract_categories_aggressive(self, soup: BeautifulSoup) -> List[Category]:
        candidates: List[Category] = []
        for header in soup.select("h1, h2, h3, h4"):
            text = _text(header)
            if (
                3 <= len(text) <= 50
                and word_count(text) <= 5
                and ":" not in text
                and not _FOUR_DIGITS_RE.search(text)
            ):
                candidates.append(Category(id=f"category_{len(candidates)}", name=text, station=text))
        return dedupe_categories(candidates, casefold=True)

    # ------------------------------------------------------------------ #
    # Items: selector and proximity steps
    # ------------------------------------------------------------------ #
    def extract_items(self, soup: BeautifulSoup, categories: List[Category]) -> List[MenuItem]:
        items = self._items_from_selectors(soup, categories)
        if not items and categories:
            items = self._items_near_headers(soup, categories)
        return dedupe_items(items, key="pair")

    def _items_from_selectors(self, soup: BeautifulSoup, categories: List[Category]) -> List[MenuItem]:
        items: List[MenuItem] = []
        index = 0
        for selector in ITEM_SELECTORS:
            nodes = soup.select(selector)
            if not nodes:
                continue
            for node in nodes:
                item_id = f"item_{index}"
                index += 1
                name = self._resolve_item_name(node)
                if not is_plausible_name(name):
                    continue
                category = self._category_for(node, categories)
                station = next((c.station for c in categories if c.name == category), None)
                items.append(self._build_item(node, item_id, name, category, station))
            if items:
                logger.debug("[HtmlParser] Selector %r produced %d items", selector, len(items))
                break
        return items

    @staticmethod
    def _resolve_item_name(node: Tag) -> str:
        nested = node.select_one(ITEM_NAME_SELECTOR)
        name = _text(nested) if nested is not None else ""
        return name or _text(node)

    def _category_for(self, node: Tag, categories: List[Category]) -> str:
        default = categories[0].name if categories else UNCATEGORIZED
        parent = node.parent
        steps = 0
        while isinstance(parent, Tag) and steps < self.config.max_ancestor_walk:
            header = parent.select_one(CATEGORY_HEADER_SELECTOR)
            if header is not None:
                return _text(header) or default
            parent = parent.parent
            steps += 1
        return default

    def _items_near_headers(self, soup: BeautifulSoup, categories: List[Category]) -> List[MenuItem]:
        items: List[MenuItem] = []
        headers = [(header, _text(header)) for header in soup.select(SECTION_HEADER_SELECTOR)]
        header_ids = {id(header) for header, _ in headers}
        category_names = {category.name.lower() for category in categories}
        for category in categories:
            wanted = category.name.lower()
            for header, header_text in headers:
                lowered = header_text.lower()
                if not lowered or (wanted not in lowered and lowered not in wanted):
                    continue
                accepted = 0
                steps = 0
                current = header.find_next_sibling()
                while (
                    current is not None
                    and accepted < self.config.max_sibling_items
                    and steps < self.config.max_sibling_steps
                    and not _starts_other_section(current, header_ids, category_names - {wanted})
                ):
                    name = self._sibling_item_name(current)
                    if name and is_plausible_name(name):
                        item_id = f"item_{len(items)}"
                        items.append(self._build_item(current, item_id, name, category.name, category.station))
                        accepted += 1
                    current = current.find_next_sibling()
                    steps += 1
        return items

    @staticmethod
    def _sibling_item_name(node: Tag) -> Optional[str]:
        nested = node.select_one(SIBLING_NAME_SELECTOR)
        if nested is not None:
            name = _text(nested)
            if name:
                return name
        text = _text(node)
        if 3 <= len(text) <= 100 and word_count(text) <= 5:
            return text
        return None

    # ------------------------------------------------------------------ #
    # Items: aggressive last resort
    # ------------------------------------------------------------------ #
    def extract_items_aggressive(self, soup: BeautifulSoup) -> List[MenuItem]:
        found: List[Tuple[Tag, str]] = []
        for node in soup.select(", ".join(f"[{attr}]" for attr in NAME_ATTRIBUTES)):
            name = next((node.get(attr, "").strip() for attr in NAME_ATTRIBUTES if node.get(attr, "").strip()), "")
            if len(name) > 2:
                found.append((node, name))

        if not found:
            for card in soup.select(CARD_SELECTOR):
                first_line = _first_line(card)
                if first_line and 3 <= len(first_line) <= 50 and word_count(first_line) <= 5:
                    found.append((card, first_line))

        if not found:
            for node in soup.select(GENERIC_TEXT_SELECTOR):
                text = _text(node)
                if _looks_like_food(node, text):
                    found.append((node, text))

        items = [
            self._build_item(node, f"item_{index}", name, UNCATEGORIZED, UNKNOWN_STATION)
            for index, (node, name) in enumerate(found)
        ]
        items = cap(dedupe_items(items, key="name"), self.config.max_aggressive_items)
        logger.debug("[HtmlParser] Aggressive pass found %d items", len(items))
        return items

    # ------------------------------------------------------------------ #
    # Per-item enrichment
    # ------------------------------------------------------------------ #
    def _build_item(
        self,
        node: Tag,
        item_id: str,
        name: str,
        category: str,
        station: Optional[str],
    ) -> MenuItem:
        description_node = node.select_one(DESCRIPTION_SELECTOR)
        description = _text(description_node) if description_node is not None else None
        return MenuItem(
            id=item_id,
            name=clean_text(name),
            category=category,
            station=station,
            description=description or None,
            image_url=self._image_url(node),
            nutrition_facts=extract_nutrition_facts(node),
            dietary_info=extract_dietary_info(node),
            ingredients=extract_ingredients(node),
        )

    def _image_url(self, node: Tag) -> Optional[str]:
        img = node if node.name == "img" else node.find("img")
        if img is None:
            return None
        src = (img.get("src") or "").strip()
        if not src:
            return None
        if src.startswith("http"):
            return src
        return urljoin(self.origin, src) if self.origin else src


def extract_nutrition_facts(node: Tag) -> Optional[NutritionFacts]:
    """Read a nutrition section under ``node``; None when there is no section at all."""
    section = node.select_one(NUTRITION_SELECTOR)
    if section is None:
        return None
    section_text = _text(section)

    values = {}
    for field_name, selector, label, default in _NUTRIENT_FIELDS:
        values[field_name] = _nutrient_value(section, section_text, selector, label) or default

    calories_node = section.select_one("[data-calories], .calories")
    if calories_node is not None:
        digits = _NON_DIGITS_RE.sub("", _text(calories_node))
    else:
        match = _CALORIES_LABEL_RE.search(section_text)
        digits = match.group(1) if match else ""
    try:
        calories = int(digits)
    except ValueError:
        calories = 0

    serving_node = section.select_one("[data-serving-size], .serving-size")
    if serving_node is not None:
        serving_size = _strip_label(_text(serving_node))
    else:
        match = _SERVING_LABEL_RE.search(section_text)
        serving_size = match.group(1).strip() if match else ""

    return NutritionFacts(serving_size=serving_size or "1 serving", calories=calories, **values)


def _nutrient_value(section: Tag, section_text: str, selector: str, label: str) -> Optional[str]:
    node = section.select_one(selector)
    if node is not None:
        text = _text(node)
        amount = _AMOUNT_RE.search(text)
        if amount:
            return f"{amount.group(1)}{amount.group(2).lower()}"
        return _strip_label(text) or None
    match = re.search(rf"{label}\s*:?\s*{_AMOUNT}", section_text, re.IGNORECASE)
    if match:
        return f"{match.group(1)}{match.group(2).lower()}"
    return None


def _strip_label(text: str) -> str:
    if ":" in text:
        return text.split(":", 1)[1].strip()
    return text.strip()


def extract_dietary_info(node: Tag) -> List[DietaryTag]:
    tags: List[DietaryTag] = []
    text = _text(node).lower()
    icon_classes = [" ".join(_classes(icon)).lower() for icon in node.select(DIETARY_ICON_SELECTOR)]
    for keyword, tag in _DIETARY_KEYWORDS:
        if (
            keyword in text
            or node.has_attr(f"data-{keyword}")
            or any(keyword in classes for classes in icon_classes)
        ):
            if tag not in tags:
                tags.append(tag)
    return tags


def extract_ingredients(node: Tag) -> List[str]:
    section = node.select_one(INGREDIENTS_SELECTOR)
    if section is None:
        return []
    return [part.strip() for part in _INGREDIENT_SPLIT_RE.split(_text(section)) if part.strip()]


def _text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text())


def _classes(node: Tag) -> Iterable[str]:
    classes = node.get("class") or []
    if isinstance(classes, str):
        return classes.split()
    return classes


def _starts_other_section(node: Tag, header_ids: Set[int], other_categories: Set[str]) -> bool:
    """True for a header sibling naming a different category, where the next section begins."""
    return id(node) in header_ids and _text(node).lower() in other_categories


def _first_line(node: Tag) -> str:
    for piece in _FIRST_LINE_SPLIT_RE.split(node.get_text("\n")):
        piece = clean_text(piece)
        if piece:
            return piece
    return ""


def _looks_like_food(node: Tag, text: str) -> bool:
    if not (3 <= len(text) <= 50) or word_count(text) > 5:
        return False
    if ":" in text or "@" in text or _FOUR_DIGITS_RE.search(text):
        return False
    if node.find(["a", "button"]) is not None:
        return False
    lowered = text.lower()
    if any(word in lowered for word in _AGGRESSIVE_STOPWORDS):
        return False
    return any(len(word) > 2 and word[0].isupper() for word in text.split(" "))
