"""
Host template integration.

Adapts a host's view templates to the render gateway:

- Host template objects only need get_identifier() (TemplateSource protocol).
- Compiled markup containing the <mjml> root tag is rendered to HTML.
- Partials (no root tag) are returned verbatim so they can be included
  into a full document before rendering.

MjmlTemplateHandler expands <name>.mjml views with Jinja2 before routing them.
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from mjml_render.contexts.rendering.cache import SOURCE_EXTENSION, SourceReader, read_template_source
from mjml_render.contexts.rendering.gateway import RenderGateway, get_gateway
from mjml_render.utils.config import get_config

ROOT_TAG_PATTERN = re.compile(r"<mjml.*?>", re.IGNORECASE)


class TemplateSource(Protocol):
    def get_identifier(self) -> str: ...


class NamedTemplate:
    """TemplateSource for hosts that only have a template name."""

    def __init__(self, identifier: str):
        self.identifier = identifier

    def get_identifier(self) -> str:
        return self.identifier


def has_root_tag(markup_text: str) -> bool:
    """True for full MJML documents, False for partials."""
    return ROOT_TAG_PATTERN.search(markup_text) is not None


def render_compiled(
    template: TemplateSource,
    markup_text: str,
    gateway: RenderGateway = None,
    source_reader: SourceReader = None,
) -> str:
    """
    Route compiled markup: full documents are rendered, partials pass through.

    Args:
        template: Host template (anything with get_identifier())
        markup_text: Markup produced by the host's template expansion
        gateway: Gateway to render with (defaults to the process-wide one)
        source_reader: Reads the template source for cache fingerprinting

    Returns:
        HTML for full documents, the unchanged markup for partials
    """
    if not has_root_tag(markup_text):
        return markup_text

    gateway = gateway or get_gateway()
    return gateway.render(template.get_identifier(), markup_text, source_reader=source_reader)


class MjmlTemplateHandler:
    """
    Expands .mjml views with Jinja2 and renders them.

    Views live under views_root as <identifier>.mjml. The content cache
    fingerprints the same files, even when views_root is not the configured
    views directory.

    Args:
        views_root: Template directory (defaults to the configured views path)
        gateway: Gateway to render with (defaults to the process-wide one)
        env: Jinja2 environment to use instead of the default one

    Example:
        handler = MjmlTemplateHandler(Path("templates"))
        html = handler.render("mailer/welcome", user=user)
    """

    def __init__(
        self,
        views_root: Path = None,
        gateway: RenderGateway = None,
        env: Optional[Environment] = None,
    ):
        self.views_root = Path(views_root) if views_root is not None else get_config().views_path
        self._gateway = gateway

        self.env = env or Environment(
            loader=FileSystemLoader(str(self.views_root)),
            undefined=StrictUndefined,
            # Markup output is HTML-like; escape interpolated values
            autoescape=True,
            keep_trailing_newline=True,
        )

    @property
    def gateway(self) -> RenderGateway:
        return self._gateway or get_gateway()

    def compile_source(self, identifier: str, context: Dict[str, Any]) -> str:
        """Expand the view's Jinja2 markup without rendering MJML."""
        template = self.env.get_template(f"{identifier.lstrip('/')}{SOURCE_EXTENSION}")
        return template.render(**context)

    def read_source(self, identifier: str) -> bytes:
        return read_template_source(self.views_root, identifier)

    def render(self, identifier: str, **context) -> str:
        markup_text = self.compile_source(identifier, context)
        return render_compiled(
            NamedTemplate(identifier),
            markup_text,
            gateway=self.gateway,
            source_reader=self.read_source,
        )

    def __call__(self, template: TemplateSource, **context) -> str:
        return self.render(template.get_identifier(), **context)
