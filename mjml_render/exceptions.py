"""Exceptions raised by the engine discovery and rendering contexts."""

from pathlib import Path
from typing import Optional


class MjmlError(Exception):
    """Base class for every error raised by mjml_render."""


class ConfigurationError(MjmlError):
    """
    Deployment or configuration defect.

    Always propagates to the host, regardless of the raise_render_exception policy.
    """


class EngineNotFoundError(ConfigurationError):
    """No discovery strategy yielded a validated rendering engine."""


class NativeEngineUnavailableError(EngineNotFoundError):
    """The native engine was selected but its module cannot be imported."""


class EngineMisconfiguredError(ConfigurationError):
    """
    Exception raised when an explicitly configured binary fails version validation.

    Attributes:
        binary: The configured binary value
    """

    def __init__(self, binary: str):
        self.binary = binary
        super().__init__(
            f"engine is configured to '{binary}' but could not be validated as a "
            "supported MJML binary. Please check your configuration."
        )


class TemplateSourceMissingError(ConfigurationError):
    """
    Exception raised when the cache cannot locate a template's source file.

    Attributes:
        template_identifier: Logical template path supplied by the host
        template_path: File the cache expected to fingerprint
    """

    def __init__(self, template_identifier: str, template_path: Optional[Path] = None):
        self.template_identifier = template_identifier
        self.template_path = template_path

        message = f"Template file not found: {template_path or template_identifier}"
        super().__init__(message)


class ParseError(MjmlError):
    """
    Exception raised when the engine ran but could not render the template.

    The only error category governed by the raise_render_exception policy.

    Attributes:
        message: Error description (engine diagnostics)
        status: Process exit status for subprocess engines (None for native)
        stderr: Raw captured diagnostic output
        retryable: Whether retrying the same input may succeed
    """

    retryable = False

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        self.message = message
        self.status = status
        self.stderr = stderr
        super().__init__(message)


class RenderTimeoutError(ParseError):
    """The engine process exceeded the configured timeout."""

    retryable = True
