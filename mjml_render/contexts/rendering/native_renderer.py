"""
Native Renderer

Renders MJML in-process with the mrml package. No subprocess and no temporary
files. beautify, minify, validation_level and fonts are not passed to mrml:
its output is whatever mrml.to_html() produces.
"""

from mjml_render.contexts.discovery.locator import NATIVE_MODULE, load_native_engine
from mjml_render.contexts.rendering.logger import _log_debug, _log_error, log_engine_warnings
from mjml_render.contexts.rendering.outcome import Failure, FailureKind, RenderOutcome, Success
from mjml_render.exceptions import NativeEngineUnavailableError
from mjml_render.utils.config import NATIVE_ENGINE_ERROR_STRING, RenderOptions


def _load_engine():
    try:
        return load_native_engine()
    except ImportError as e:
        _log_error(f"{NATIVE_MODULE} is not installed. Please `pip install mrml`.")
        raise NativeEngineUnavailableError(NATIVE_ENGINE_ERROR_STRING) from e


class NativeRenderer:
    """
    Renders markup with mrml.

    The module is imported at construction (fail fast) and again on every render,
    since it can disappear between resolution and use.

    Raises:
        NativeEngineUnavailableError: If mrml cannot be imported
    """

    def __init__(self):
        self.engine = _load_engine()

    def render(self, markup_text: str, options: RenderOptions = None) -> RenderOutcome:
        engine = _load_engine()

        if options is not None and (options.minify or options.fonts):
            _log_debug("minify/fonts options are not supported by the native engine; ignoring")

        try:
            result = engine.to_html(markup_text)
        except Exception as e:
            return Failure(FailureKind.PARSE_ERROR, str(e), diagnostic_detail=repr(e))

        # Newer mrml releases return an object with .content and .warnings
        warnings = getattr(result, "warnings", None)
        if warnings:
            log_engine_warnings("\n".join(str(w) for w in warnings))

        return Success(getattr(result, "content", result))
