"""
Discovery Context

Responsibilities:
- Locates a working MJML engine (configured binary, node_modules, package managers, PATH, mrml)
- Validates engine versions
- Memoizes the resolved engine for the process lifetime

Owns: Engine discovery and version validation
Never: Renders templates
"""

from mjml_render.contexts.discovery.locator import (
    EngineDescriptor,
    EngineKind,
    EngineLocator,
    ResolutionState,
    get_locator,
    reset_engine,
    valid_engine,
)

__all__ = [
    "EngineDescriptor",
    "EngineKind",
    "EngineLocator",
    "ResolutionState",
    "get_locator",
    "reset_engine",
    "valid_engine",
]
