"""
Centralized logging configuration for the Stockwise market data layer.

This module provides standardized logging configuration using structlog
for all components. Providers, the data source chain and the subscription
registry log through the helpers below so that provider outcomes and
subscription lifecycle events share one event shape.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_feed_logger(name: str) -> FilteringBoundLogger:
    """Logger for subscription and poll-task lifecycle events."""
    return get_logger(name).bind(subsystem="feed")


def get_provider_logger(name: str) -> FilteringBoundLogger:
    """Logger for upstream provider calls and fallback decisions."""
    return get_logger(name).bind(subsystem="providers")


def log_provider_outcome(
    logger: FilteringBoundLogger,
    provider: str,
    symbol: str,
    outcome: str,
    detail: Optional[str] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the classified outcome of one provider fetch.

    Successes are logged at debug level, every other outcome as a warning
    so that a degraded feed is visible without enabling debug output.

    Args:
        logger: Structlog logger instance
        provider: Provider name
        symbol: Requested ticker
        outcome: FetchOutcome value
        detail: Human readable reason for a failure
        context: Additional context data
    """
    bound_logger = logger.bind(
        provider=provider,
        symbol=symbol,
        outcome=outcome,
    )

    if detail:
        bound_logger = bound_logger.bind(detail=detail)
    if context:
        bound_logger = bound_logger.bind(context=context)

    if outcome == "success":
        bound_logger.debug("Provider fetch succeeded")
    else:
        bound_logger.warning("Provider fetch failed")


def log_subscription_change(
    logger: FilteringBoundLogger,
    symbol: str,
    action: str,
    subscriber_count: int,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a subscribe/unsubscribe or poll task start/stop event.

    Args:
        logger: Structlog logger instance
        symbol: Ticker the subscription belongs to
        action: What happened (subscribe, unsubscribe, task_started, task_stopped)
        subscriber_count: Subscribers remaining after the change
        context: Additional context data
    """
    bound_logger = logger.bind(
        symbol=symbol,
        action=action,
        subscriber_count=subscriber_count,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Subscription changed")
