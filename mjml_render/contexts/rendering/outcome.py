"""Request and result types shared by the renderers and the gateway."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from mjml_render.exceptions import ParseError, RenderTimeoutError
from mjml_render.utils.config import RenderOptions


class FailureKind(str, Enum):
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class RenderRequest:
    """
    One render call.

    Attributes:
        template_identifier: Logical template path (cache key, diagnostics)
        markup_text: MJML produced by the host's template expansion
        options: Settings snapshot for this call
    """

    template_identifier: str
    markup_text: str
    options: RenderOptions = field(default_factory=RenderOptions)


@dataclass(frozen=True)
class Success:
    html: str


@dataclass(frozen=True)
class Failure:
    """
    A render the engine could not complete.

    Attributes:
        kind: Parse error (bad template) or timeout (retryable)
        message: Error description shown to the host
        diagnostic_detail: Raw engine output
        status: Process exit status for subprocess engines
    """

    kind: FailureKind
    message: str
    diagnostic_detail: str = ""
    status: int = None

    def to_exception(self) -> ParseError:
        error_class = RenderTimeoutError if self.kind is FailureKind.TIMEOUT else ParseError
        return error_class(self.message, status=self.status, stderr=self.diagnostic_detail)


RenderOutcome = Union[Success, Failure]
