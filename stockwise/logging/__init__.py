"""
Logging configuration module.

Centralized structlog setup shared by providers, the feed registry and
the portfolio components.
"""
