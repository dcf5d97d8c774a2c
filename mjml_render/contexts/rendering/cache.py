"""
Content-addressed cache for rendered HTML.

Entries are stored as <cache_dir>/<sha256>.html where the digest is taken from
the template's on-disk source file, not from the expanded markup, so repeated
compiles of an unmodified view hit the cache. Entries are never invalidated:
editing a template changes its fingerprint and orphans the old file.
"""

import hashlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from mjml_render.contexts.rendering.logger import log_cache_hit, log_cache_store
from mjml_render.exceptions import TemplateSourceMissingError
from mjml_render.utils.config import MjmlConfig

SOURCE_EXTENSION = ".mjml"
CACHE_EXTENSION = ".html"

SourceReader = Callable[[str], bytes]


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    html_content: str
    storage_location: Path


def fingerprint_bytes(source: bytes) -> str:
    """SHA-256 hex digest used as cache key."""
    return hashlib.sha256(source).hexdigest()


def template_source_path(views_root: Path, template_identifier: str) -> Path:
    """
    Locate the source file for a template identifier.

    Identifiers are logical paths below views_root (e.g. "mailer/welcome");
    absolute identifiers pointing at an existing file are used directly.
    """
    name = template_identifier
    if not name.endswith(SOURCE_EXTENSION):
        name = f"{name}{SOURCE_EXTENSION}"

    candidate = Path(name)
    if candidate.is_absolute() and candidate.is_file():
        return candidate
    return Path(views_root) / name.lstrip("/")


def read_template_source(views_root: Path, template_identifier: str) -> bytes:
    """
    Read a template's source bytes from views_root.

    Raises:
        TemplateSourceMissingError: If no source file exists for the identifier
    """
    path = template_source_path(views_root, template_identifier)
    if not path.is_file():
        raise TemplateSourceMissingError(template_identifier, path)
    return path.read_bytes()


class ContentCache:
    """
    Maps a template's source fingerprint to previously rendered HTML.

    Args:
        cache_dir: Directory holding cached .html files (created on demand)
        views_root: Directory holding <identifier>.mjml template sources
        enabled: When False, fetch_or_compute() always computes and never touches disk
    """

    def __init__(self, cache_dir: Path, views_root: Path, enabled: bool = True):
        self.cache_dir = Path(cache_dir)
        self.views_root = Path(views_root)
        self.enabled = enabled

    @classmethod
    def from_config(cls, config: MjmlConfig) -> "ContentCache":
        return cls(config.cache_path, config.views_path, enabled=config.cache_enabled)

    def source_path(self, template_identifier: str) -> Path:
        return template_source_path(self.views_root, template_identifier)

    def read_source(self, template_identifier: str) -> bytes:
        return read_template_source(self.views_root, template_identifier)

    def fingerprint(self, template_identifier: str, source_reader: SourceReader = None) -> str:
        reader = source_reader or self.read_source
        return fingerprint_bytes(reader(template_identifier))

    def entry_path(self, fingerprint: str) -> Path:
        return self.cache_dir / f"{fingerprint}{CACHE_EXTENSION}"

    def lookup(self, template_identifier: str, source_reader: SourceReader = None) -> Optional[CacheEntry]:
        """Return the stored entry for the template's current source, or None."""
        fingerprint = self.fingerprint(template_identifier, source_reader)
        path = self.entry_path(fingerprint)
        if not path.is_file():
            return None
        return CacheEntry(fingerprint, path.read_bytes().decode("utf-8"), path)

    def fetch_or_compute(
        self,
        template_identifier: str,
        compute: Callable[[], str],
        source_reader: SourceReader = None,
    ) -> str:
        """
        Return cached HTML for the template, computing and storing it on a miss.

        Args:
            template_identifier: Logical template path
            compute: Produces the HTML on a miss (exceptions propagate, nothing is stored)
            source_reader: Returns the source bytes to fingerprint (defaults to read_source)

        Returns:
            Rendered HTML

        Raises:
            TemplateSourceMissingError: If the template source file cannot be found
        """
        if not self.enabled:
            return compute()

        path = self.entry_path(self.fingerprint(template_identifier, source_reader))
        if path.is_file():
            log_cache_hit(template_identifier, path)
            return path.read_bytes().decode("utf-8")

        html_content = compute()

        self._write_atomic(path, html_content)
        log_cache_store(template_identifier, path)

        return html_content

    def _write_atomic(self, path: Path, content: str) -> None:
        """
        Write via a temp file in the cache directory, then rename into place.

        Concurrent writers of the same fingerprint each rename identical bytes,
        so the last rename wins without corrupting the entry.
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        temp_fd, temp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(content.encode("utf-8"))

            # Only replace the entry if the write succeeded
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
