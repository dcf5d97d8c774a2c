"""Unit tests for the mjml binary renderer (engine replaced by a fake runner)."""

import json
import subprocess
from pathlib import Path

import pytest

from mjml_render.contexts.discovery.locator import EngineDescriptor, EngineKind, EngineLocator
from mjml_render.contexts.rendering import subprocess_renderer as renderer_module
from mjml_render.contexts.rendering.outcome import Failure, FailureKind, Success
from mjml_render.contexts.rendering.subprocess_renderer import SubprocessRenderer
from mjml_render.exceptions import EngineNotFoundError, ParseError, RenderTimeoutError
from mjml_render.utils.config import RenderOptions, configure
from mjml_render.utils.process import ProcessResult

DESCRIPTOR = EngineDescriptor(EngineKind.SUBPROCESS, "/usr/bin/mjml", "4.15.3")
HELLO_WORLD = "<mjml><mj-body><mj-text>Hello World</mj-text></mj-body></mjml>"


class FakeEngine:
    """Runner double behaving like `mjml -r in -o out`."""

    def __init__(self, returncode=0, stderr="", html=None, error=None):
        self.returncode = returncode
        self.stderr = stderr
        self.html = html
        self.error = error
        self.commands = []
        self.inputs = []

    def run(self, command, timeout=None, input_text=None, cwd=None):
        self.commands.append(command)
        if self.error is not None:
            raise self.error

        in_file = Path(command[command.index("-r") + 1])
        out_file = Path(command[command.index("-o") + 1])
        markup = in_file.read_text(encoding="utf-8")
        self.inputs.append(markup)

        if self.returncode == 0:
            out_file.write_text(self.html or f"<html><body>{markup}</body></html>", encoding="utf-8")
        return ProcessResult(self.returncode, "", self.stderr)


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "render_tmp"
    path.mkdir()
    return path


def make_renderer(engine, temp_dir):
    return SubprocessRenderer(descriptor=DESCRIPTOR, runner=engine, temp_dir=temp_dir)


@pytest.mark.unit
def test_successful_render_returns_output_file(temp_dir):
    engine = FakeEngine(html="<html><body><div>Hello World</div></body></html>")

    outcome = make_renderer(engine, temp_dir).render(HELLO_WORLD, RenderOptions())

    assert outcome == Success("<html><body><div>Hello World</div></body></html>")
    assert engine.inputs == [HELLO_WORLD]


@pytest.mark.unit
def test_temp_files_removed_after_success(temp_dir):
    make_renderer(FakeEngine(), temp_dir).render(HELLO_WORLD, RenderOptions())

    assert list(temp_dir.iterdir()) == []


@pytest.mark.unit
def test_build_command_passes_options(temp_dir):
    renderer = make_renderer(FakeEngine(), temp_dir)
    options = RenderOptions(
        beautify=False,
        minify=True,
        validation_level="soft",
        fonts={"Lato": "https://fonts.googleapis.com/css?family=Lato:300,400,500,700"},
    )

    command = renderer.build_command(Path("/tmp/in.mjml"), Path("/tmp/out.html"), options)

    assert command == [
        "/usr/bin/mjml",
        "-r",
        "/tmp/in.mjml",
        "-o",
        "/tmp/out.html",
        "--config.beautify",
        "false",
        "--config.minify",
        "true",
        "--config.validationLevel",
        "soft",
        "--config.fonts",
        json.dumps({"Lato": "https://fonts.googleapis.com/css?family=Lato:300,400,500,700"}),
    ]


@pytest.mark.unit
def test_build_command_omits_fonts_when_unset(temp_dir):
    command = make_renderer(FakeEngine(), temp_dir).build_command(
        Path("in.mjml"), Path("out.html"), RenderOptions()
    )

    assert "--config.fonts" not in command
    assert command[command.index("--config.beautify") + 1] == "true"
    assert command[command.index("--config.validationLevel") + 1] == "strict"


@pytest.mark.unit
def test_failed_process_returns_parse_failure(temp_dir):
    engine = FakeEngine(returncode=1, stderr="Command line error:\nInvalid MJML\n")

    outcome = make_renderer(engine, temp_dir).render(HELLO_WORLD, RenderOptions())

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.PARSE_ERROR
    assert outcome.message == "Command line error:\nInvalid MJML\n(process status: exit 1)"
    assert outcome.status == 1
    assert list(temp_dir.iterdir()) == []

    error = outcome.to_exception()
    assert isinstance(error, ParseError)
    assert error.retryable is False
    assert "Command line error" in str(error)


@pytest.mark.unit
def test_stderr_on_success_is_logged_as_warning(temp_dir, log_messages):
    engine = FakeEngine(stderr="Line 3 of in.mjml (mj-text) - Attribute foo is illegal\n")

    outcome = make_renderer(engine, temp_dir).render(HELLO_WORLD, RenderOptions())

    assert isinstance(outcome, Success)
    assert any("Attribute foo is illegal" in message for message in log_messages)


@pytest.mark.unit
def test_timeout_is_a_retryable_failure(temp_dir):
    engine = FakeEngine(error=subprocess.TimeoutExpired(["mjml"], 5, stderr=b"still working"))

    outcome = make_renderer(engine, temp_dir).render(HELLO_WORLD, RenderOptions(timeout_s=5))

    assert outcome.kind is FailureKind.TIMEOUT
    assert outcome.diagnostic_detail == "still working"
    assert isinstance(outcome.to_exception(), RenderTimeoutError)
    assert outcome.to_exception().retryable is True
    assert list(temp_dir.iterdir()) == []


@pytest.mark.unit
def test_runner_exception_propagates_and_cleans_up(temp_dir):
    engine = FakeEngine(error=PermissionError("not executable"))

    with pytest.raises(PermissionError):
        make_renderer(engine, temp_dir).render(HELLO_WORLD, RenderOptions())

    assert list(temp_dir.iterdir()) == []


@pytest.mark.unit
def test_input_write_failure_leaves_no_file(temp_dir):
    engine = FakeEngine()

    # A lone surrogate cannot be encoded: the write fails after the file was created
    with pytest.raises(UnicodeEncodeError):
        make_renderer(engine, temp_dir).render("<mjml>\ud800</mjml>", RenderOptions())

    assert list(temp_dir.iterdir()) == []
    assert engine.commands == []


@pytest.mark.unit
def test_tempfile_creation_error_propagates_unchanged(temp_dir, monkeypatch):
    class TempfileError(Exception):
        pass

    def broken_mkstemp(*args, **kwargs):
        raise TempfileError("disk full")

    monkeypatch.setattr(renderer_module.tempfile, "mkstemp", broken_mkstemp)

    with pytest.raises(TempfileError, match="disk full"):
        make_renderer(FakeEngine(), temp_dir).render(HELLO_WORLD, RenderOptions())


@pytest.mark.unit
def test_construction_fails_eagerly_without_engine(monkeypatch):
    locator = EngineLocator()
    for name in EngineLocator.STRATEGIES:
        monkeypatch.setattr(locator, name, lambda: None)

    with pytest.raises(EngineNotFoundError):
        SubprocessRenderer(locator=locator)


@pytest.mark.unit
def test_renders_follow_locator_after_reset(monkeypatch, temp_dir):
    binaries = iter(["/old/mjml", "/new/mjml"])
    locator = EngineLocator()
    for name in EngineLocator.STRATEGIES:
        monkeypatch.setattr(locator, name, lambda: None)
    monkeypatch.setattr(
        locator,
        "check_global_binary",
        lambda: EngineDescriptor(EngineKind.SUBPROCESS, next(binaries), "4.15.3"),
    )
    engine = FakeEngine()
    renderer = SubprocessRenderer(locator=locator, runner=engine, temp_dir=temp_dir)

    renderer.render(HELLO_WORLD, RenderOptions())
    locator.reset()
    renderer.render(HELLO_WORLD, RenderOptions())

    assert [command[0] for command in engine.commands] == ["/old/mjml", "/new/mjml"]


@pytest.mark.unit
def test_native_descriptor_rejected():
    with pytest.raises(ValueError):
        SubprocessRenderer(descriptor=EngineDescriptor(EngineKind.NATIVE, "mrml", "5.1.0"))


@pytest.mark.unit
def test_default_options_come_from_configuration(temp_dir):
    configure(minify=True)
    engine = FakeEngine()

    make_renderer(engine, temp_dir).render(HELLO_WORLD)

    command = engine.commands[0]
    assert command[command.index("--config.minify") + 1] == "true"
