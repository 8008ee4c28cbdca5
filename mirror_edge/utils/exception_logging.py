"""
Utility functions for exception logging that never raise themselves.

Exception groups (from task groups in the HTTP stack) are unpacked so every
sub-exception is visible in the log.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back when __str__ or __repr__ fail."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, including sub-exceptions of exception groups.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        message = _safe_str(exception) if exception is not None else "None"
        subs = _sub_exceptions(exception)

        if not subs:
            logger.log(
                level,
                f"{safe_prefix} Exception: {message}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{safe_prefix} Exception with {len(subs)} sub-exceptions: {message}",
        )
        for i, sub_exc in enumerate(subs):
            logger.log(
                level,
                f"{safe_prefix} Sub-exception {i+1}: {type(sub_exc).__name__}: {_safe_str(sub_exc)}",
                exc_info=sub_exc,
            )
    except Exception:
        # Logging must never take the request down with it
        try:
            logger.log(logging.ERROR, f"{prefix} Exception (logging failed)")
        except Exception:
            pass


def format_exception_message(exception: Exception) -> str:
    """One-line description of an exception, naming sub-exceptions if any."""
    try:
        if exception is None:
            return "None"
        subs = _sub_exceptions(exception)
        if not subs:
            return f"{type(exception).__name__}: {_safe_str(exception)}"
        joined = "; ".join(
            f"{type(sub).__name__}: {_safe_str(sub)}" for sub in subs
        )
        return f"{_safe_str(exception)} (Sub-exceptions: {joined})"
    except Exception:
        return "<exception (all formatting failed)>"
