"""Shared dataclasses and enumerations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DietaryTag(str, Enum):
    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    GLUTEN_FREE = "gluten_free"
    CONTAINS_DAIRY = "contains_dairy"
    CONTAINS_EGG = "contains_egg"
    CONTAINS_FISH = "contains_fish"


class Stage(str, Enum):
    API_DISCOVERY = "api_discovery"
    EMBEDDED_DATA = "embedded_data"
    HTML_SELECTORS = "html_selectors"
    HTML_AGGRESSIVE = "html_aggressive"


class StageStatus(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    ERROR = "error"


class ExtractionStatus(str, Enum):
    ITEMS_FOUND = "items_found"
    EMPTY = "empty"
    FETCH_BLOCKED = "fetch_blocked"


class ExtractionError(Exception):
    """Raised by ExtractionResult.raise_for_status for callers treating empty/blocked as failure."""


@dataclass
class NutritionFacts:
    serving_size: str
    calories: int
    total_fat: str
    saturated_fat: str
    trans_fat: str
    cholesterol: str
    sodium: str
    total_carbohydrate: str
    dietary_fiber: str
    total_sugars: str


@dataclass
class Category:
    id: str
    name: str
    description: Optional[str] = None
    station: Optional[str] = None


@dataclass
class MenuItem:
    id: str
    name: str
    category: str
    station: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    nutrition_facts: Optional[NutritionFacts] = None
    dietary_info: List[DietaryTag] = field(default_factory=list)
    ingredients: List[str] = field(default_factory=list)
    meal_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record["dietary_info"] = [tag.value for tag in self.dietary_info]
        return record


@dataclass
class ParsedMenu:
    """Intermediate items/categories produced by a single parser call."""

    items: List[MenuItem] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)


@dataclass
class StageResult:
    stage: Stage
    status: StageStatus
    items: List[MenuItem] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_parsed(cls, stage: Stage, parsed: ParsedMenu) -> "StageResult":
        status = StageStatus.FOUND if parsed.items else StageStatus.EMPTY
        return cls(stage=stage, status=status, items=parsed.items, categories=parsed.categories)

    @classmethod
    def empty(cls, stage: Stage, categories: Optional[List[Category]] = None) -> "StageResult":
        return cls(stage=stage, status=StageStatus.EMPTY, categories=categories or [])

    @property
    def found(self) -> bool:
        return self.status == StageStatus.FOUND


@dataclass(frozen=True)
class ExtractionResult:
    items: List[MenuItem]
    categories: List[Category]
    location: str
    status: ExtractionStatus
    stage: Optional[Stage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ExtractionStatus.ITEMS_FOUND

    def raise_for_status(self) -> None:
        if self.status == ExtractionStatus.FETCH_BLOCKED:
            raise ExtractionError(f"Menu page could not be fetched: {self.error or 'unknown error'}")
        if self.status == ExtractionStatus.EMPTY:
            raise ExtractionError(f"No menu items found for {self.location}")

    def to_records(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.items]
