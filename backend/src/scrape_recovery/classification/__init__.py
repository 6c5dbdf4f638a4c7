"""Error classification for scraping failures."""
from .classifier import classify
from .patterns import ALL_PATTERNS, DEFAULT_KIND, KindPattern

__all__ = [
    "classify",
    "KindPattern",
    "ALL_PATTERNS",
    "DEFAULT_KIND",
]
