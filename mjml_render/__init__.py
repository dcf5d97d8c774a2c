"""
mjml_render - MJML to HTML rendering for Python web frameworks

Converts MJML email templates to HTML by locating and invoking an MJML engine
(the mjml binary or the native mrml package) and caching the rendered HTML by
template source fingerprint.

Architecture:
- Discovery Context: Locates and validates the rendering engine
- Rendering Context: Engine invocation, HTML cache, error policy, host integration
"""

__version__ = "0.1.0"
