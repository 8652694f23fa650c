"""Upstream quote providers and the fallback chain that orders them."""

from .alpha_vantage import AlphaVantageProvider
from .base import BaseQuoteProvider, HttpQuoteProvider
from .chain import DataSourceChain
from .synthetic import SyntheticQuoteGenerator
from .twelve_data import TwelveDataProvider

__all__ = [
    "AlphaVantageProvider",
    "BaseQuoteProvider",
    "DataSourceChain",
    "HttpQuoteProvider",
    "SyntheticQuoteGenerator",
    "TwelveDataProvider",
]
