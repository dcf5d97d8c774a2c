"""
Rendering Context

Responsibilities:
- Renders MJML to HTML with the mjml binary or the native mrml engine
- Caches rendered HTML keyed on template source fingerprints
- Applies the raise-or-degrade error policy
- Routes host templates (full documents vs. partials)

Owns: Engine invocation, HTML cache, error policy
Never: Parses or validates MJML itself
"""

from mjml_render.contexts.rendering.cache import CacheEntry, ContentCache
from mjml_render.contexts.rendering.gateway import (
    RenderGateway,
    get_gateway,
    render,
    reset_gateway,
)
from mjml_render.contexts.rendering.handler import (
    MjmlTemplateHandler,
    NamedTemplate,
    has_root_tag,
    render_compiled,
)
from mjml_render.contexts.rendering.native_renderer import NativeRenderer
from mjml_render.contexts.rendering.outcome import (
    Failure,
    FailureKind,
    RenderOutcome,
    RenderRequest,
    Success,
)
from mjml_render.contexts.rendering.subprocess_renderer import SubprocessRenderer

__all__ = [
    # Entry points
    "render",
    "RenderGateway",
    "get_gateway",
    "reset_gateway",
    # Renderers and cache
    "SubprocessRenderer",
    "NativeRenderer",
    "ContentCache",
    "CacheEntry",
    # Result types
    "RenderRequest",
    "RenderOutcome",
    "Success",
    "Failure",
    "FailureKind",
    # Host integration
    "MjmlTemplateHandler",
    "NamedTemplate",
    "has_root_tag",
    "render_compiled",
]
