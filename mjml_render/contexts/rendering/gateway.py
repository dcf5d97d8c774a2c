"""
Render Gateway

Top-level entry point for the host: picks the renderer from configuration,
wraps it with the content cache and applies the raise_render_exception policy.

Error policy:
    - ConfigurationError subclasses (engine not found, misconfigured binary,
      missing template source, native engine unavailable) always propagate.
    - Anything else raised while rendering is re-raised unchanged when
      raise_render_exception is set, and degraded to "" otherwise.
"""

from typing import Optional

from mjml_render.contexts.discovery.locator import EngineLocator, get_locator
from mjml_render.contexts.rendering.cache import ContentCache, SourceReader
from mjml_render.contexts.rendering.logger import log_render_failure, log_render_start
from mjml_render.contexts.rendering.native_renderer import NativeRenderer
from mjml_render.contexts.rendering.outcome import Failure, RenderRequest
from mjml_render.contexts.rendering.subprocess_renderer import SubprocessRenderer
from mjml_render.exceptions import ConfigurationError
from mjml_render.utils.config import EnginePreference, MjmlConfig, get_config


class RenderGateway:
    """
    Renders MJML documents to HTML for the host.

    The renderer for the configured engine preference is built at construction,
    so a deployment without any engine fails here, not on the first render.

    Args:
        config: Fixed configuration (None reads the process-wide configuration on every call)
        locator: Engine locator for the subprocess renderer (defaults to the process-wide one)
        renderer: Renderer to use instead of selecting one from configuration
        cache: Cache to use instead of one built from configuration

    Raises:
        EngineNotFoundError: If no engine is available for the preferred renderer
        EngineMisconfiguredError: If the configured binary fails validation
    """

    def __init__(
        self,
        config: MjmlConfig = None,
        locator: EngineLocator = None,
        renderer=None,
        cache: ContentCache = None,
    ):
        self._config = config
        self.locator = locator
        self.cache = cache
        self._fixed_renderer = renderer
        self._renderers = {}

        if renderer is None:
            self.select_renderer(self.config.engine_preference)

    @property
    def config(self) -> MjmlConfig:
        return self._config if self._config is not None else get_config()

    def select_renderer(self, preference: EnginePreference):
        """Return the renderer for an engine preference, building it on first use."""
        if self._fixed_renderer is not None:
            return self._fixed_renderer

        if preference not in self._renderers:
            if preference is EnginePreference.NATIVE:
                self._renderers[preference] = NativeRenderer()
            else:
                self._renderers[preference] = SubprocessRenderer(
                    locator=self.locator or get_locator()
                )
        return self._renderers[preference]

    def render(
        self, template_identifier: str, markup_text: str, source_reader: SourceReader = None
    ) -> str:
        """
        Render an MJML document.

        Args:
            template_identifier: Logical template path (cache key, diagnostics)
            markup_text: Complete MJML document produced by the host
            source_reader: Returns the template source to fingerprint when the host
                keeps views outside the configured views directory

        Returns:
            HTML, or "" when rendering failed and raise_render_exception is off
        """
        request = RenderRequest(
            template_identifier=template_identifier,
            markup_text=markup_text,
            options=self.config.render_options(),
        )
        return self.render_request(request, source_reader=source_reader)

    def render_request(self, request: RenderRequest, source_reader: SourceReader = None) -> str:
        config = self.config
        renderer = self.select_renderer(request.options.engine_preference)
        cache = self.cache if self.cache is not None else ContentCache.from_config(config)

        log_render_start(request.template_identifier, type(renderer).__name__)

        def compute() -> str:
            outcome = renderer.render(request.markup_text, request.options)
            if isinstance(outcome, Failure):
                raise outcome.to_exception()
            return outcome.html

        try:
            return cache.fetch_or_compute(request.template_identifier, compute, source_reader)
        except ConfigurationError:
            raise
        except Exception as e:
            log_render_failure(request.template_identifier, e, raised=config.raise_render_exception)
            if config.raise_render_exception:
                raise
            return ""


# Process-wide gateway, built on first render
_default_gateway: Optional[RenderGateway] = None


def get_gateway() -> RenderGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = RenderGateway()
    return _default_gateway


def reset_gateway() -> None:
    global _default_gateway
    _default_gateway = None


def render(template_identifier: str, markup_text: str) -> str:
    """Render with the process-wide gateway."""
    return get_gateway().render(template_identifier, markup_text)
