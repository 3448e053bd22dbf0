"""
Structured logging configuration for Medibill.

Uses structlog for structured, contextual logging.
"""

import logging
import sys
from decimal import Decimal
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output logs as JSON
        include_timestamp: If True, include timestamp in logs
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (optional)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


class BillingEventLogger:
    """
    Logger for bill and claim lifecycle events.

    Binds the aggregate identifiers once so every event carries them.

    Usage:
        events = BillingEventLogger(bill_id="BILL-20240101-000001")
        events.payment_recorded(Decimal("100.00"), "Cash", Decimal("50.00"))
        events.bill_transition("Submitted", "Paid", "record_full_payment")
    """

    def __init__(self, **context: Any):
        self._logger = structlog.get_logger().bind(**context)

    def bind(self, **kwargs: Any) -> "BillingEventLogger":
        """Bind additional context to the logger."""
        self._logger = self._logger.bind(**kwargs)
        return self

    def bill_transition(self, from_status: str, to_status: str, event: str, **kwargs: Any) -> None:
        """Log a bill status change."""
        self._logger.info(
            "bill_status_changed",
            from_status=from_status,
            to_status=to_status,
            trigger=event,
            **kwargs,
        )

    def payment_recorded(
        self,
        amount: Decimal,
        method: str,
        outstanding: Decimal,
        **kwargs: Any,
    ) -> None:
        """Log a payment against a bill."""
        self._logger.info(
            "payment_recorded",
            amount=str(amount),
            method=method,
            outstanding=str(outstanding),
            **kwargs,
        )

    def refund_completed(self, amount: Decimal, **kwargs: Any) -> None:
        """Log a completed refund."""
        self._logger.info("refund_completed", amount=str(amount), **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning."""
        self._logger.warning(message, **kwargs)
