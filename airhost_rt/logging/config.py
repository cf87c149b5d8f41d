"""
Structured logging for the AirHost realtime system.

Every component logs through structlog on top of the standard library
handlers. The broadcast layer and the pricing engine get pre-bound loggers
so that connection lifecycle events and pricing decisions can be filtered
out of the stream as audit trails.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

SHARED_PROCESSORS: list[Processor] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def configure_logging(level: str = "INFO", format_json: bool = False) -> None:
    """
    Configure structlog and the root handler for the whole process.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        format_json: One JSON object per line instead of console output
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    renderer: Processor
    if format_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*SHARED_PROCESSORS, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_broadcast_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound to the realtime broadcast subsystem.

    Connection lifecycle events and delivery failures are logged through
    this logger so they can be filtered as one audit trail.
    """
    return get_logger(name).bind(
        subsystem="broadcast",
        audit_trail=True
    )


def get_pricing_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound to the pricing subsystem."""
    return get_logger(name).bind(
        subsystem="pricing",
        audit_trail=True
    )


def log_connection_transition(
    logger: FilteringBoundLogger,
    connection_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a connection state change with standardized format.

    Args:
        logger: Structlog logger instance
        connection_id: Identifier of the connection
        from_state: Previous state (unauthenticated, authenticated)
        to_state: New state (authenticated, removed)
        trigger: What caused the change (authenticate, disconnect, send_failure)
        context: Additional context data
    """
    bound_logger = logger.bind(
        connection_id=connection_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("connection_transition")


def log_pricing_decision(
    logger: FilteringBoundLogger,
    property_id: str,
    date: str,
    base_price: float,
    final_price: float,
    multiplier: float,
    factors: dict[str, float],
    clamped: bool = False
) -> None:
    """
    Log one priced day with the factors that produced it.

    Args:
        logger: Structlog logger instance
        property_id: Property being priced
        date: ISO date of the night being priced
        base_price: Reference price from the property record
        final_price: Price after clamping and rounding
        multiplier: Combined weighted multiplier
        factors: Individual factor values
        clamped: Whether the business-rule clamp changed the raw price
    """
    bound_logger = logger.bind(
        property_id=property_id,
        date=date,
        base_price=base_price,
        final_price=final_price,
        multiplier=round(multiplier, 3),
        factors=factors,
        clamped=clamped,
    )

    if clamped:
        bound_logger.info("pricing_decision_clamped")
    else:
        bound_logger.debug("pricing_decision")
