"""Unit tests for the content-addressed HTML cache."""

import hashlib

import pytest

from mjml_render.contexts.rendering.cache import ContentCache, fingerprint_bytes
from mjml_render.exceptions import TemplateSourceMissingError
from mjml_render.utils.config import MjmlConfig

SOURCE = b"<mjml><mj-body><mj-text>{{ name }}</mj-text></mj-body></mjml>\n"


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "tmp" / "mjml_cache"


@pytest.fixture
def cache(cache_dir, views_root):
    return ContentCache(cache_dir, views_root, enabled=True)


@pytest.fixture
def welcome_source(views_root):
    path = views_root / "mailer" / "welcome.mjml"
    path.parent.mkdir(parents=True)
    path.write_bytes(SOURCE)
    return path


class CountingCompute:
    def __init__(self, html="<html>Hello</html>"):
        self.html = html
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.html


@pytest.mark.unit
def test_disabled_cache_always_computes(cache_dir, views_root):
    cache = ContentCache(cache_dir, views_root, enabled=False)
    compute = CountingCompute()

    # No source file exists: a disabled cache never looks for it
    assert cache.fetch_or_compute("mailer/missing", compute) == "<html>Hello</html>"
    assert cache.fetch_or_compute("mailer/missing", compute) == "<html>Hello</html>"

    assert compute.calls == 2
    assert not cache_dir.exists()


@pytest.mark.unit
def test_miss_then_hit(cache, cache_dir, welcome_source):
    compute = CountingCompute()

    first = cache.fetch_or_compute("mailer/welcome", compute)
    second = cache.fetch_or_compute("mailer/welcome", compute)

    assert first == second == "<html>Hello</html>"
    assert compute.calls == 1

    expected = cache_dir / f"{hashlib.sha256(SOURCE).hexdigest()}.html"
    assert expected.read_text(encoding="utf-8") == "<html>Hello</html>"


@pytest.mark.unit
def test_hit_returns_stored_content_verbatim(cache, welcome_source):
    cache.fetch_or_compute("mailer/welcome", CountingCompute("<p>café\r\n</p>"))

    # Different markup for the same source still hits
    result = cache.fetch_or_compute("mailer/welcome", CountingCompute("<p>other</p>"))

    assert result == "<p>café\r\n</p>"


@pytest.mark.unit
def test_fingerprint_is_deterministic(cache, welcome_source):
    assert cache.fingerprint("mailer/welcome") == cache.fingerprint("mailer/welcome")
    assert cache.fingerprint("mailer/welcome") == fingerprint_bytes(SOURCE)


@pytest.mark.unit
def test_one_byte_change_changes_entry_path(cache, welcome_source):
    before = cache.entry_path(cache.fingerprint("mailer/welcome"))

    welcome_source.write_bytes(SOURCE.replace(b"name", b"nama"))
    after = cache.entry_path(cache.fingerprint("mailer/welcome"))

    assert before != after


@pytest.mark.unit
def test_edited_source_is_recomputed_and_old_entry_kept(cache, cache_dir, welcome_source):
    cache.fetch_or_compute("mailer/welcome", CountingCompute("<p>v1</p>"))
    welcome_source.write_bytes(SOURCE + b"<!-- edited -->")

    assert cache.fetch_or_compute("mailer/welcome", CountingCompute("<p>v2</p>")) == "<p>v2</p>"
    assert len(list(cache_dir.glob("*.html"))) == 2


@pytest.mark.unit
def test_missing_source_raises(cache):
    with pytest.raises(TemplateSourceMissingError, match="Template file not found"):
        cache.fetch_or_compute("mailer/missing", CountingCompute())


@pytest.mark.unit
def test_source_reader_overrides_file_lookup(cache):
    compute = CountingCompute()

    def reader(identifier):
        return f"source of {identifier}".encode()

    cache.fetch_or_compute("virtual/template", compute, source_reader=reader)
    cache.fetch_or_compute("virtual/template", compute, source_reader=reader)

    assert compute.calls == 1


@pytest.mark.unit
def test_compute_failure_stores_nothing(cache, cache_dir, welcome_source):
    def failing():
        raise RuntimeError("engine crashed")

    with pytest.raises(RuntimeError):
        cache.fetch_or_compute("mailer/welcome", failing)

    assert not cache_dir.exists() or list(cache_dir.iterdir()) == []


@pytest.mark.unit
def test_repeated_writes_of_same_fingerprint_are_harmless(cache, cache_dir):
    path = cache.entry_path("abc123")

    cache._write_atomic(path, "<html>same</html>")
    cache._write_atomic(path, "<html>same</html>")

    assert path.read_text(encoding="utf-8") == "<html>same</html>"
    assert [p.name for p in cache_dir.iterdir()] == ["abc123.html"]


@pytest.mark.unit
def test_source_path_resolution(cache, views_root, tmp_path):
    assert cache.source_path("mailer/welcome") == views_root / "mailer" / "welcome.mjml"
    assert cache.source_path("/mailer/welcome") == views_root / "mailer" / "welcome.mjml"
    assert cache.source_path("mailer/welcome.mjml") == views_root / "mailer" / "welcome.mjml"

    absolute = tmp_path / "components" / "banner.mjml"
    absolute.parent.mkdir()
    absolute.write_text("<mjml></mjml>")
    assert cache.source_path(str(tmp_path / "components" / "banner")) == absolute


@pytest.mark.unit
def test_lookup(cache, welcome_source):
    assert cache.lookup("mailer/welcome") is None

    cache.fetch_or_compute("mailer/welcome", CountingCompute())
    entry = cache.lookup("mailer/welcome")

    assert entry.fingerprint == fingerprint_bytes(SOURCE)
    assert entry.html_content == "<html>Hello</html>"
    assert entry.storage_location.name == f"{entry.fingerprint}.html"


@pytest.mark.unit
def test_from_config(tmp_path):
    config = MjmlConfig(project_root=str(tmp_path), cache_enabled=True)
    cache = ContentCache.from_config(config)

    assert cache.enabled is True
    assert cache.cache_dir == tmp_path / "tmp" / "mjml_cache"
    assert cache.views_root == tmp_path / "templates"
