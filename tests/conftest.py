"""Shared fixtures: isolate process-wide configuration, engine memo and gateway."""

from pathlib import Path

import pytest
from loguru import logger

from mjml_render.contexts.discovery.locator import reset_engine
from mjml_render.contexts.rendering.gateway import reset_gateway
from mjml_render.utils.config import MjmlConfig, reset_config, set_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Every test starts from defaults rooted in its own tmp directory."""
    config = set_config(MjmlConfig(project_root=str(tmp_path)))
    reset_engine()
    reset_gateway()
    yield config
    reset_config()
    reset_engine()
    reset_gateway()


@pytest.fixture
def views_root(tmp_path) -> Path:
    views = tmp_path / "templates"
    views.mkdir()
    return views


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class StubRenderer:
    """Renderer double that counts calls and returns a fixed outcome or raises."""

    def __init__(self, outcome=None, error: Exception = None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    def render(self, markup_text, options=None):
        self.calls.append((markup_text, options))
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def stub_renderer_class():
    return StubRenderer
