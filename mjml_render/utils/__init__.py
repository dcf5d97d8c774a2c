"""
Shared utilities for mjml_render.

Common functionality used across contexts:
- Configuration management
- External process execution
- Logger setup
"""

from mjml_render.utils.config import (
    MjmlConfig,
    RenderOptions,
    configure,
    get_config,
    load_config,
    reset_config,
    set_config,
)
from mjml_render.utils.process import ProcessResult, ProcessRunner

__all__ = [
    "MjmlConfig",
    "RenderOptions",
    "configure",
    "get_config",
    "load_config",
    "reset_config",
    "set_config",
    "ProcessResult",
    "ProcessRunner",
]
