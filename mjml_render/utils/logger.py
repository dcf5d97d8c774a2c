"""
Generic logger setup utilities.

Provides reusable loguru configuration with provenance tracking.
Context-specific wrappers are defined in contexts/{context}/logger.py.

The library never touches loguru sinks on import; hosts and scripts call
setup_logger() when they want file + console output.
"""

import sys
from pathlib import Path

from loguru import logger

# Default level colors for console output
LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(
    context_name: str,
    log_dir: Path = None,
    extra_provenance: dict = None,
    level_colors: dict = None,
    console_level: str = "INFO",
) -> Path:
    """
    Configure loguru for a context with provenance tracking.

    Sets up console output and, when log_dir is given, a DEBUG-level log file.
    Logs execution provenance (script, command, working directory, Python version).

    Args:
        context_name: Context identifier (e.g., "render", "engine")
        log_dir: Directory for this logging session (None for console only)
        extra_provenance: Additional key-value pairs for provenance header
        level_colors: Override default level colors (e.g., {"INFO": "<cyan>"})
        console_level: Minimum level written to stderr

    Returns:
        Path to log file, or None when logging to console only

    Example:
        from mjml_render.utils.logger import setup_logger

        log_file = setup_logger(
            context_name="render",
            log_dir=Path("tmp/logs"),
            extra_provenance={"MJML binary": "node_modules/.bin/mjml"}
        )
    """
    # Remove default logger
    logger.remove()

    colors = {**LEVEL_COLORS, **(level_colors or {})}
    for level_name, color in colors.items():
        logger.level(level_name, color=color)

    log_file = None
    if log_dir is not None:
        log_dir.mkdir(exist_ok=True, parents=True)
        log_file = log_dir / f"{context_name}.log"
        logger.add(
            log_file, format="{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}", level="DEBUG"
        )

    # stderr so rendered HTML on stdout stays clean
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>",
        level=console_level,
        colorize=True,
    )

    log_provenance(extra_provenance)

    return log_file


def log_provenance(extra_context: dict = None) -> None:
    """
    Log execution provenance to current logger.

    Logs standard context (script, command, working directory, Python version)
    plus any additional context provided.

    Args:
        extra_context: Additional key-value pairs to log
    """
    logger.debug("=" * 80)
    logger.debug(f"Script: {sys.argv[0]}")
    logger.debug(f"Command: {' '.join(sys.argv)}")
    logger.debug(f"Working directory: {Path.cwd()}")
    logger.debug(f"Python: {sys.version.split()[0]}")

    if extra_context:
        for key, value in extra_context.items():
            logger.debug(f"{key}: {value}")

    logger.debug("=" * 80)
