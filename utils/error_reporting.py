"""
Error reporting helpers.

Both functions write through the ``utils.error_reporting`` logger, so attaching
an external tracker is a logging handler change.
"""
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _context(extra_context: Optional[Dict[str, Any]]) -> str:
    return f" | Context: {extra_context}" if extra_context else ""


def report_error(
    error: Exception,
    source: str,
    extra_context: Optional[Dict[str, Any]] = None,
    include_traceback: bool = True
) -> None:
    """
    Log an unexpected exception raised while serving ``source``.

    Call from an ``except`` block so the traceback is captured:

        try:
            services.create_daily_orders()
        except Exception as e:
            report_error(e, 'create_orders', {'admin_id': request.user.id})
    """
    message = f"[{source}] {type(error).__name__}: {error}{_context(extra_context)}"
    if include_traceback:
        logger.exception(message)
    else:
        logger.error(message)


def report_warning(
    message: str,
    source: str,
    extra_context: Optional[Dict[str, Any]] = None
) -> None:
    """A problem that did not raise but someone should look at (over-capacity kitchen, rejected payment)."""
    logger.warning(f"[{source}] {message}{_context(extra_context)}")
