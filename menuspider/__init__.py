"""MenuSpider package exports."""

from .models import (
    Category,
    DietaryTag,
    ExtractionError,
    ExtractionResult,
    ExtractionStatus,
    MenuItem,
    NutritionFacts,
    ParsedMenu,
    Stage,
    StageResult,
    StageStatus,
)
from .fetcher import Fetcher, FetchResult
from .api_discovery import ApiDiscovery, Candidate
from .embedded_data import EmbeddedDataStrategy
from .structured_parser import StructuredParser
from .html_parser import HtmlMenuParser
from .extractor import MenuExtractor
from .output import ResultWriter, PrintWriter, JsonWriter, CsvWriter, SQLiteWriter

__all__ = [
    "Category",
    "DietaryTag",
    "ExtractionError",
    "ExtractionResult",
    "ExtractionStatus",
    "MenuItem",
    "NutritionFacts",
    "ParsedMenu",
    "Stage",
    "StageResult",
    "StageStatus",
    "Fetcher",
    "FetchResult",
    "ApiDiscovery",
    "Candidate",
    "EmbeddedDataStrategy",
    "StructuredParser",
    "HtmlMenuParser",
    "MenuExtractor",
    "ResultWriter",
    "PrintWriter",
    "JsonWriter",
    "CsvWriter",
    "SQLiteWriter",
]
