"""
Stockwise - Live Market Data Aggregation Layer

Multiplexes unreliable upstream quote providers into a single normalized
feed, fans quotes out to per-symbol subscribers, and derives secondary
analytics (news sentiment, portfolio cost basis) for the dashboard.
"""

__version__ = "0.1.0"
__author__ = "Stockwise Team"
