"""
Keyword sentiment heuristic for news text.

This is a crude classifier, not an NLP model: each keyword found anywhere in
the lowercased text (as a substring) counts once toward its side, with no
negation handling and no weighting. Equal counts, including none at all,
are neutral.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class SentimentLabel(str, Enum):
    """Three-way sentiment classification."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"

    @property
    def polarity(self) -> str:
        """positive/negative/neutral naming used by the quote widgets."""
        return {
            SentimentLabel.BULLISH: "positive",
            SentimentLabel.BEARISH: "negative",
            SentimentLabel.NEUTRAL: "neutral",
        }[self]


BULLISH_KEYWORDS = (
    "growth", "profit", "gain", "rise", "increase", "positive", "strong",
    "beat", "exceed", "outperform", "bullish", "buy", "upgrade", "surge",
)

BEARISH_KEYWORDS = (
    "loss", "decline", "fall", "drop", "decrease", "negative", "weak",
    "miss", "underperform", "bearish", "sell", "downgrade", "plunge", "crash",
)


@dataclass(frozen=True)
class SentimentScore:
    """Label plus the keyword hits behind it."""
    label: SentimentLabel
    bullish_hits: tuple[str, ...]
    bearish_hits: tuple[str, ...]

    @property
    def net(self) -> int:
        return len(self.bullish_hits) - len(self.bearish_hits)


class SentimentScorer:
    """Pure, deterministic keyword-count classifier."""

    def __init__(self,
                 bullish_keywords: Optional[Iterable[str]] = None,
                 bearish_keywords: Optional[Iterable[str]] = None):
        self.bullish_keywords = tuple(
            k.lower() for k in (BULLISH_KEYWORDS if bullish_keywords is None else bullish_keywords)
        )
        self.bearish_keywords = tuple(
            k.lower() for k in (BEARISH_KEYWORDS if bearish_keywords is None else bearish_keywords)
        )

    def analyze(self, text: Optional[str]) -> SentimentScore:
        lowered = (text or "").lower()
        bullish = tuple(k for k in self.bullish_keywords if k in lowered)
        bearish = tuple(k for k in self.bearish_keywords if k in lowered)

        if len(bullish) > len(bearish):
            label = SentimentLabel.BULLISH
        elif len(bearish) > len(bullish):
            label = SentimentLabel.BEARISH
        else:
            label = SentimentLabel.NEUTRAL

        return SentimentScore(label=label, bullish_hits=bullish, bearish_hits=bearish)

    def score(self, text: Optional[str]) -> SentimentLabel:
        """Classify text as bullish, bearish or neutral."""
        return self.analyze(text).label
