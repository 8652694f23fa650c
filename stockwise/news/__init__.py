"""
News module.

Financial news retrieval with provider fallback, and the keyword sentiment
heuristic applied to headlines.
"""

from .sentiment import SentimentLabel, SentimentScore, SentimentScorer
from .service import KNOWN_SYMBOLS, NewsService, extract_symbol

__all__ = [
    "KNOWN_SYMBOLS",
    "NewsService",
    "SentimentLabel",
    "SentimentScore",
    "SentimentScorer",
    "extract_symbol",
]
