"""Global settings for MenuSpider."""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class Settings:
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    impersonate: str = "chrome120"
    connect_timeout: float = 30.0
    read_timeout: float = 30.0

    platform_domain: str = "nutrislice.com"
    default_site_id: str = "stonybrook"
    default_menu_id: str = "east-side-dining"
    default_location: str = "East Side Dining"
    alternate_site_ids: Tuple[str, ...] = ("stony-brook", "sbu", "east-side-dining", "eastside")
    meal_types: Tuple[str, ...] = ("lunch", "breakfast", "dinner", "all-day")

    max_ancestor_walk: int = 25
    max_sibling_items: int = 50
    max_sibling_steps: int = 10
    max_aggressive_items: int = 100


settings = Settings()
