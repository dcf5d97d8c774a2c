"""
Process-wide configuration for MJML rendering.

Configuration is an explicit MjmlConfig object built once at startup from
defaults, an optional YAML file (OmegaConf) and the environment (.env aware).
Renderers never read it directly: they receive a frozen RenderOptions snapshot.

Examples:
    # Startup: environment (+ .env) only
    >>> configure(beautify=False, validation_level="soft")

    # Startup: YAML file merged onto defaults, then environment overrides
    >>> set_config(MjmlConfig.from_env(base=load_config(Path("config/mjml.yaml"))))

    # Read side
    >>> get_config().render_options().minify
    False
"""

import json
import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger
from omegaconf import OmegaConf

VALIDATION_LEVELS = ("strict", "soft")
DEFAULT_VERSION_SUPPORTED = "4."
NATIVE_ENGINE_ERROR_STRING = "Couldn't find MRML - did you install the 'mrml' package?"

# Deprecated alias for MJML_BINARY, migrated once by from_env()
LEGACY_BINARY_ENV = "MJML_BIN"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(var: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(
        f"{var} must be one of {sorted(TRUE_VALUES | FALSE_VALUES)}, got '{raw}'"
    )


class EnginePreference(str, Enum):
    SUBPROCESS = "subprocess"
    NATIVE = "native"


@dataclass(frozen=True)
class RenderOptions:
    """
    Read-only view of the settings a renderer needs for one call.

    Attributes:
        beautify: Ask the engine to pretty-print HTML
        minify: Ask the engine to minify HTML
        validation_level: "strict" (invalid markup fails) or "soft" (warnings only)
        fonts: Optional mapping of font name to stylesheet URL
        engine_preference: Which renderer the gateway selects
        timeout_s: Upper bound for one engine process (None for no bound)
    """

    beautify: bool = True
    minify: bool = False
    validation_level: str = "strict"
    fonts: Optional[Mapping[str, str]] = None
    engine_preference: EnginePreference = EnginePreference.SUBPROCESS
    timeout_s: Optional[float] = 60.0


@dataclass
class MjmlConfig:
    """
    All configurable settings.

    Attributes:
        binary_path: Explicit engine command (validated, never silently ignored)
        binary_version_supported: Required version prefix, matched against "mjml-core: <prefix>"
        binary_error_string: Message used when no engine is found (None for the default)
        beautify: Default beautify flag
        minify: Default minify flag
        validation_level: Default validation level ("strict" or "soft")
        fonts: Default fonts mapping passed to the engine
        raise_render_exception: Re-raise render failures instead of returning ""
        use_native: Opt into the native (mrml) engine
        cache_enabled: Cache rendered HTML on disk keyed by source fingerprint
        project_root: Root of the host project (node_modules lookup, relative dirs)
        views_dir: Directory holding <identifier>.mjml sources, relative to project_root
        cache_dir: Cache directory, relative to project_root
        timeout_s: Upper bound for one engine process in seconds (None disables)
    """

    binary_path: Optional[str] = None
    binary_version_supported: str = DEFAULT_VERSION_SUPPORTED
    binary_error_string: Optional[str] = None
    beautify: bool = True
    minify: bool = False
    validation_level: str = "strict"
    fonts: Optional[Dict[str, str]] = None
    raise_render_exception: bool = True
    use_native: bool = False
    cache_enabled: bool = False
    project_root: str = "."
    views_dir: str = "templates"
    cache_dir: str = "tmp/mjml_cache"
    timeout_s: Optional[float] = 60.0

    def __post_init__(self):
        if self.validation_level not in VALIDATION_LEVELS:
            raise ValueError(
                f"validation_level must be one of {VALIDATION_LEVELS}, "
                f"got '{self.validation_level}'"
            )

    @property
    def engine_not_found_message(self) -> str:
        if self.binary_error_string:
            return self.binary_error_string
        return (
            f"Couldn't find the MJML {self.binary_version_supported} binary.. "
            "have you run $ npm install mjml?"
        )

    @property
    def engine_preference(self) -> EnginePreference:
        return EnginePreference.NATIVE if self.use_native else EnginePreference.SUBPROCESS

    @property
    def project_path(self) -> Path:
        return Path(self.project_root).expanduser().absolute()

    @property
    def views_path(self) -> Path:
        return self.project_path / self.views_dir

    @property
    def cache_path(self) -> Path:
        return self.project_path / self.cache_dir

    def render_options(self) -> RenderOptions:
        """Snapshot the renderer-facing settings."""
        return RenderOptions(
            beautify=self.beautify,
            minify=self.minify,
            validation_level=self.validation_level,
            fonts=dict(self.fonts) if self.fonts is not None else None,
            engine_preference=self.engine_preference,
            timeout_s=self.timeout_s,
        )

    @classmethod
    def from_env(cls, base: "MjmlConfig" = None, environ: Mapping[str, str] = None) -> "MjmlConfig":
        """
        Build configuration from environment variables (and .env).

        Only variables that are set override `base` (defaults when None).
        The deprecated MJML_BIN variable is migrated into binary_path here,
        with a deprecation warning, and never consulted again.

        Args:
            base: Configuration to override (e.g., from load_config())
            environ: Environment mapping (defaults to os.environ after load_dotenv())

        Returns:
            New MjmlConfig
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        config = base if base is not None else cls()
        changes = {}

        string_fields = {
            "MJML_BINARY": "binary_path",
            "MJML_BINARY_VERSION_SUPPORTED": "binary_version_supported",
            "MJML_BINARY_ERROR_STRING": "binary_error_string",
            "MJML_VALIDATION_LEVEL": "validation_level",
            "MJML_PROJECT_ROOT": "project_root",
            "MJML_VIEWS_DIR": "views_dir",
            "MJML_CACHE_DIR": "cache_dir",
        }
        bool_fields = {
            "MJML_BEAUTIFY": "beautify",
            "MJML_MINIFY": "minify",
            "MJML_RAISE_RENDER_EXCEPTION": "raise_render_exception",
            "MJML_USE_NATIVE": "use_native",
            "MJML_CACHE": "cache_enabled",
        }

        for var, field_name in string_fields.items():
            if environ.get(var):
                changes[field_name] = environ[var]
        for var, field_name in bool_fields.items():
            if environ.get(var):
                changes[field_name] = _parse_bool(var, environ[var])

        if environ.get("MJML_FONTS"):
            fonts = json.loads(environ["MJML_FONTS"])
            if not isinstance(fonts, dict):
                raise ValueError("MJML_FONTS must be a JSON object mapping font names to URLs")
            changes["fonts"] = fonts

        if environ.get("MJML_TIMEOUT"):
            timeout = float(environ["MJML_TIMEOUT"])
            changes["timeout_s"] = timeout if timeout > 0 else None

        legacy_binary = environ.get(LEGACY_BINARY_ENV, "").strip()
        if legacy_binary:
            logger.warning(
                f"Setting `{LEGACY_BINARY_ENV}` is deprecated and will be removed in a future "
                "version! Please use `MJML_BINARY` instead."
            )
            changes["binary_path"] = legacy_binary

        return replace(config, **changes)


def load_config(config_path: Path) -> MjmlConfig:
    """
    Load configuration from a YAML file merged onto the defaults.

    The file may hold the settings at the top level or under an `mjml:` key.
    Unknown keys and wrongly typed values are rejected by OmegaConf.

    Args:
        config_path: Path to YAML file

    Returns:
        MjmlConfig
    """
    loaded = OmegaConf.load(config_path)
    if "mjml" in loaded:
        loaded = loaded.mjml

    merged = OmegaConf.merge(OmegaConf.structured(MjmlConfig), loaded)
    return OmegaConf.to_object(merged)


# Process-wide state, written at startup only
_config: Optional[MjmlConfig] = None


def get_config() -> MjmlConfig:
    """Return the active configuration, building it from the environment on first use."""
    global _config
    if _config is None:
        _config = MjmlConfig.from_env()
    return _config


def set_config(config: MjmlConfig) -> MjmlConfig:
    global _config
    _config = config
    return _config


def configure(**changes) -> MjmlConfig:
    """
    Update the active configuration; takes effect for all subsequent renders.

    Example:
        configure(beautify=False, minify=True, validation_level="soft")
    """
    return set_config(replace(get_config(), **changes))


def reset_config() -> None:
    """Forget the active configuration (rebuilt from the environment on next read)."""
    global _config
    _config = None
