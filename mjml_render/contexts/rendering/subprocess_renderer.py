"""
MJML Binary Renderer

Renders MJML by running the discovered mjml binary with file-based I/O:

    mjml -r <in.mjml> -o <out.html> --config.beautify true --config.minify false
         --config.validationLevel strict [--config.fonts '<json>']

Both temporary files are private to one call and removed on every exit path.
"""

import json
import os
import subprocess
import tempfile
from pathlib import Path
from typing import List

from mjml_render.contexts.discovery.locator import (
    EngineDescriptor,
    EngineKind,
    EngineLocator,
    get_locator,
)
from mjml_render.contexts.rendering.logger import _log_debug, log_engine_warnings
from mjml_render.contexts.rendering.outcome import Failure, FailureKind, RenderOutcome, Success
from mjml_render.utils.config import RenderOptions, get_config
from mjml_render.utils.process import ProcessRunner


def _flag(value: bool) -> str:
    return "true" if value else "false"


class SubprocessRenderer:
    """
    Renders markup with an mjml binary.

    The engine is resolved when the renderer is constructed, so a missing
    engine fails immediately rather than on the first render. Without a fixed
    descriptor every render asks the locator again, which picks up a new
    engine after reset_engine().

    Args:
        descriptor: Fixed engine to use (None follows the locator)
        locator: Locator used when descriptor is None (defaults to the process-wide one)
        runner: Command runner
        temp_dir: Directory for temporary input/output files (None for the system default)

    Raises:
        EngineNotFoundError: If no engine can be resolved
        EngineMisconfiguredError: If the configured binary fails validation
    """

    def __init__(
        self,
        descriptor: EngineDescriptor = None,
        locator: EngineLocator = None,
        runner: ProcessRunner = None,
        temp_dir: Path = None,
    ):
        self.locator = None if descriptor is not None else (locator or get_locator())
        self._descriptor = descriptor
        self.runner = runner or ProcessRunner()
        self.temp_dir = temp_dir

        self.resolve_engine()

    @property
    def descriptor(self) -> EngineDescriptor:
        return self.resolve_engine()

    def resolve_engine(self) -> EngineDescriptor:
        """Return the fixed descriptor, or the locator's memoized one."""
        descriptor = self._descriptor or self.locator.require()
        if descriptor.kind is not EngineKind.SUBPROCESS:
            raise ValueError(f"SubprocessRenderer needs a binary engine, got {descriptor.kind.value}")
        return descriptor

    def render(self, markup_text: str, options: RenderOptions = None) -> RenderOutcome:
        """
        Render markup to HTML.

        Args:
            markup_text: Complete MJML document
            options: Settings snapshot (defaults to the active configuration)

        Returns:
            Success with the HTML, or Failure with the engine diagnostics
        """
        if options is None:
            options = get_config().render_options()

        in_file = None
        try:
            in_file = self._write_input(markup_text)
            return self.run(in_file, options)
        finally:
            if in_file is not None:
                in_file.unlink(missing_ok=True)

    def run(self, in_file: Path, options: RenderOptions) -> RenderOutcome:
        """Run the engine on an input file and collect the output file."""
        out_fd, out_path = tempfile.mkstemp(prefix="out", suffix=".html", dir=self.temp_dir)
        os.close(out_fd)
        out_file = Path(out_path)

        try:
            command = self.build_command(in_file, out_file, options)
            _log_debug(f"Running: {' '.join(command)}")

            try:
                result = self.runner.run(command, timeout=options.timeout_s)
            except subprocess.TimeoutExpired as e:
                stderr = e.stderr.decode("utf-8", "replace") if isinstance(e.stderr, bytes) else e.stderr
                return Failure(
                    FailureKind.TIMEOUT,
                    f"MJML process timed out after {e.timeout}s",
                    diagnostic_detail=stderr or "",
                )

            if not result.success:
                # The exit status helps when a dying process leaves stderr empty
                return Failure(
                    FailureKind.PARSE_ERROR,
                    f"{result.stderr.rstrip()}\n(process status: {result.status})",
                    diagnostic_detail=result.stderr,
                    status=result.returncode,
                )

            if result.stderr.strip():
                log_engine_warnings(result.stderr)

            return Success(out_file.read_bytes().decode("utf-8"))
        finally:
            out_file.unlink(missing_ok=True)

    def build_command(self, in_file: Path, out_file: Path, options: RenderOptions) -> List[str]:
        command = [
            *self.descriptor.command,
            "-r",
            str(in_file),
            "-o",
            str(out_file),
            "--config.beautify",
            _flag(options.beautify),
            "--config.minify",
            _flag(options.minify),
            "--config.validationLevel",
            options.validation_level,
        ]
        if options.fonts is not None:
            command += ["--config.fonts", json.dumps(dict(options.fonts))]
        return command

    def _write_input(self, markup_text: str) -> Path:
        in_fd, in_path = tempfile.mkstemp(prefix="in", suffix=".mjml", dir=self.temp_dir)
        try:
            with os.fdopen(in_fd, "w", encoding="utf-8") as f:
                f.write(markup_text)
        except Exception:
            os.unlink(in_path)
            raise
        return Path(in_path)
