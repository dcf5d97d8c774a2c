"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[render]"


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_render_start(template_identifier: str, engine: str) -> None:
    _log_debug(f"Rendering {template_identifier} with {engine}")


def log_engine_warnings(stderr: str) -> None:
    """Engines may print warnings (e.g. soft validation) alongside a zero exit status."""
    _log_warning(stderr.rstrip())


def log_cache_hit(template_identifier: str, cache_file) -> None:
    _log_debug(f"Cache hit for {template_identifier}: {cache_file.name}")


def log_cache_store(template_identifier: str, cache_file) -> None:
    _log_debug(f"Cached {template_identifier} as {cache_file.name}")


def log_render_failure(template_identifier: str, error: Exception, raised: bool) -> None:
    """
    Log a failed render.

    Args:
        template_identifier: Template that failed
        error: The exception raised by the renderer
        raised: Whether the error is propagated (False means degraded to "")
    """
    outcome = "raising" if raised else "returning empty output"
    _log_error(f"Rendering {template_identifier} failed ({outcome}): {error}")

    # Use opt(raw=True) to keep multi-line engine output readable
    stderr = getattr(error, "stderr", None)
    if stderr:
        logger.opt(raw=True).debug(f"\n{'=' * 80}\nMJML STDERR:\n{'=' * 80}\n{stderr}\n")
