"""
Discovery context logger.

Provides logging interface for engine discovery with automatic [engine] prefix.
All discovery modules should import from this module, not from loguru directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[engine]"


def _log_info(message: str) -> None:
    """Log info message with [engine] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [engine] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [engine] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [engine] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_strategy_result(strategy: str, descriptor) -> None:
    """Log the outcome of one discovery strategy."""
    if descriptor is None:
        _log_debug(f"  {strategy}: nothing found")
    else:
        _log_debug(f"  {strategy}: found {descriptor.path_or_handle}")


def log_resolution_result(descriptor, error_message: str, elapsed_time: float) -> None:
    """
    Log the outcome of a full discovery run.

    Args:
        descriptor: EngineDescriptor, or None when every strategy failed
        error_message: Message explaining the failure
        elapsed_time: Time spent running strategies
    """
    if descriptor is None:
        _log_error(f"No engine found ({elapsed_time:.2f}s): {error_message}")
        return

    _log_info(
        f"Using {descriptor.kind.value} engine {descriptor.path_or_handle} "
        f"(version {descriptor.validated_version}, {elapsed_time:.2f}s)"
    )
