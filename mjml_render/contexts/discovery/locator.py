"""
Rendering Engine Discovery

Locates a validated MJML engine through an ordered chain of strategies:

    1. Explicit configuration (binary_path) - fatal if it fails validation
    2. Project-local install manifest (node_modules/mjml/package.json)
    3. Package-manager-resolved binary (bun, npm, yarn)
    4. Globally installed binary (mjml on PATH)
    5. Native in-process engine (mrml), only when use_native is configured

Each strategy returns an EngineDescriptor or None. The first descriptor wins and
is memoized until reset(); version checks shell out, so they run at most once
per process.
"""

import importlib
import json
import shlex
import shutil
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from mjml_render.contexts.discovery.logger import (
    _log_debug,
    _log_warning,
    log_resolution_result,
    log_strategy_result,
)
from mjml_render.exceptions import (
    EngineMisconfiguredError,
    EngineNotFoundError,
    NativeEngineUnavailableError,
)
from mjml_render.utils.config import NATIVE_ENGINE_ERROR_STRING, MjmlConfig, get_config
from mjml_render.utils.process import ProcessRunner

ENGINE_CORE_NAME = "mjml-core"
BINARY_NAME = "mjml"
NATIVE_MODULE = "mrml"
VERSION_CHECK_TIMEOUT_S = 30

# (manager, arguments printing its binary root, path of mjml below that root)
PACKAGE_MANAGERS = [
    ("bun", ["pm", "bin"], ["mjml"]),
    ("npm", ["root"], [".bin", "mjml"]),
    ("yarn", ["bin", "mjml"], []),
]


class EngineKind(str, Enum):
    SUBPROCESS = "subprocess"
    NATIVE = "native"


class ResolutionState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class EngineDescriptor:
    """
    A usable rendering engine.

    Attributes:
        kind: Subprocess binary or native module
        path_or_handle: Binary command (subprocess) or module name (native)
        validated_version: Version reported by the engine or its manifest
    """

    kind: EngineKind
    path_or_handle: str
    validated_version: str

    @property
    def command(self) -> List[str]:
        """Argument prefix used to invoke a subprocess engine."""
        return split_command(self.path_or_handle)


def split_command(binary: str) -> List[str]:
    """Existing paths are used as-is (spaces allowed); anything else is parsed like a shell command."""
    if Path(binary).exists():
        return [binary]
    return shlex.split(binary)


def load_native_engine():
    """Import the native engine module (raises ImportError when missing)."""
    return importlib.import_module(NATIVE_MODULE)


class EngineLocator:
    """
    Discovers and memoizes the rendering engine.

    Strategies are looked up by name at resolve time, so tests can replace any of
    them on an instance with monkeypatch.

    Args:
        config: Fixed configuration (None reads the process-wide configuration)
        runner: Command runner used for version checks and package-manager queries
    """

    STRATEGIES = (
        "check_custom_binary",
        "check_local_manifest",
        "check_package_managers",
        "check_global_binary",
        "check_native_engine",
    )

    def __init__(self, config: MjmlConfig = None, runner: ProcessRunner = None):
        self._config = config
        self.runner = runner or ProcessRunner()
        self.state = ResolutionState.UNRESOLVED
        self.error_message = None
        self.native_missing = False
        self._descriptor: Optional[EngineDescriptor] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> MjmlConfig:
        return self._config if self._config is not None else get_config()

    @property
    def descriptor(self) -> Optional[EngineDescriptor]:
        return self._descriptor

    def reset(self) -> None:
        """Forget the memoized engine so the next resolve() runs discovery again."""
        with self._lock:
            self._descriptor = None
            self.state = ResolutionState.UNRESOLVED
            self.error_message = None
            self.native_missing = False

    def resolve(self) -> Optional[EngineDescriptor]:
        """
        Return the memoized engine, running the strategy chain if needed.

        Returns:
            EngineDescriptor, or None when no strategy found an engine
            (error_message then explains why)

        Raises:
            EngineMisconfiguredError: If binary_path is set but fails validation
        """
        if self.state is ResolutionState.RESOLVED:
            return self._descriptor

        with self._lock:
            # Another thread may have finished discovery while we waited
            if self.state is ResolutionState.RESOLVED:
                return self._descriptor

            self.state = ResolutionState.RESOLVING
            self.error_message = self.config.engine_not_found_message
            self.native_missing = False
            start_time = time.time()

            try:
                descriptor = self._run_strategies()
            except Exception:
                self.state = ResolutionState.FAILED
                raise

            self._descriptor = descriptor
            self.state = ResolutionState.RESOLVED if descriptor else ResolutionState.FAILED
            log_resolution_result(descriptor, self.error_message, time.time() - start_time)
            return descriptor

    def require(self) -> EngineDescriptor:
        """
        Like resolve(), but absence of an engine raises.

        Raises:
            NativeEngineUnavailableError: If the native engine was opted into but is not installed
            EngineNotFoundError: If no strategy found an engine
        """
        descriptor = self.resolve()
        if descriptor is not None:
            return descriptor
        if self.native_missing:
            raise NativeEngineUnavailableError(self.error_message)
        raise EngineNotFoundError(self.error_message)

    def _run_strategies(self) -> Optional[EngineDescriptor]:
        for name in self.STRATEGIES:
            descriptor = getattr(self, name)()
            log_strategy_result(name, descriptor)
            if descriptor is not None:
                return descriptor
        return None

    # Version validation

    def detect_version(self, binary: str) -> Optional[str]:
        """
        Run `<binary> --version` and return the supported mjml-core version.

        Succeeds only when the process exits 0 and stdout contains
        "mjml-core: <supported prefix>". Any exception counts as failure.

        Returns:
            Version string (e.g., "4.15.3"), or None if the binary is not valid
        """
        expected = f"{ENGINE_CORE_NAME}: {self.config.binary_version_supported}"
        try:
            result = self.runner.run(
                [*split_command(binary), "--version"], timeout=VERSION_CHECK_TIMEOUT_S
            )
        except Exception as e:
            _log_debug(f"Version check failed for {binary}: {e}")
            return None

        if not result.success or expected not in result.stdout:
            _log_debug(f"{binary} is not a supported engine ({result.status})")
            return None

        version = result.stdout.split(f"{ENGINE_CORE_NAME}: ", 1)[1].split()
        return version[0] if version else self.config.binary_version_supported

    def _subprocess_descriptor(self, binary: str) -> Optional[EngineDescriptor]:
        version = self.detect_version(binary)
        if version is None:
            return None
        return EngineDescriptor(EngineKind.SUBPROCESS, binary, version)

    # Strategies

    def check_custom_binary(self) -> Optional[EngineDescriptor]:
        binary = (self.config.binary_path or "").strip()
        if not binary:
            return None

        descriptor = self._subprocess_descriptor(binary)
        if descriptor is None:
            raise EngineMisconfiguredError(binary)
        return descriptor

    def check_local_manifest(self) -> Optional[EngineDescriptor]:
        """Trust node_modules/mjml when its package.json declares a supported version."""
        node_modules = self.config.project_path / "node_modules"
        manifest = node_modules / BINARY_NAME / "package.json"
        if not manifest.is_file():
            return None

        try:
            version = json.loads(manifest.read_text(encoding="utf-8")).get("version", "")
        except (OSError, ValueError, AttributeError) as e:
            _log_warning(f"Could not read {manifest}: {e}")
            return None

        if not str(version).startswith(self.config.binary_version_supported):
            _log_debug(f"{manifest} declares unsupported version {version}")
            return None

        binary = node_modules / ".bin" / BINARY_NAME
        return EngineDescriptor(EngineKind.SUBPROCESS, str(binary), str(version))

    def check_package_managers(self) -> Optional[EngineDescriptor]:
        for manager, arguments, binary_parts in PACKAGE_MANAGERS:
            descriptor = self.check_package_manager(manager, arguments, binary_parts)
            if descriptor is not None:
                return descriptor
        return None

    def check_package_manager(
        self, manager: str, arguments: List[str], binary_parts: List[str]
    ) -> Optional[EngineDescriptor]:
        """
        Ask one package manager where binaries live and validate the mjml found there.

        A manager that is not installed, or whose query fails, yields None.
        """
        manager_bin = shutil.which(manager)
        if manager_bin is None:
            return None

        try:
            result = self.runner.run(
                [manager_bin, *arguments],
                timeout=VERSION_CHECK_TIMEOUT_S,
                cwd=self.config.project_path,
            )
        except Exception as e:
            _log_debug(f"{manager} query failed: {e}")
            return None

        lines = result.stdout.strip().splitlines()
        if not result.success or not lines:
            return None

        binary = Path(lines[-1].strip(), *binary_parts)
        return self._subprocess_descriptor(str(binary))

    def check_global_binary(self) -> Optional[EngineDescriptor]:
        binary = shutil.which(BINARY_NAME)
        if not binary:
            return None
        return self._subprocess_descriptor(binary)

    def check_native_engine(self) -> Optional[EngineDescriptor]:
        if not self.config.use_native:
            return None

        try:
            module = load_native_engine()
        except ImportError:
            self.error_message = NATIVE_ENGINE_ERROR_STRING
            self.native_missing = True
            return None

        version = getattr(module, "__version__", "unknown")
        return EngineDescriptor(EngineKind.NATIVE, NATIVE_MODULE, str(version))


# Process-wide locator, memoized for the process lifetime
_default_locator: Optional[EngineLocator] = None
_default_locator_lock = threading.Lock()


def get_locator() -> EngineLocator:
    global _default_locator
    if _default_locator is None:
        with _default_locator_lock:
            if _default_locator is None:
                _default_locator = EngineLocator()
    return _default_locator


def valid_engine() -> Optional[EngineDescriptor]:
    """Resolve the process-wide engine (None when nothing was found)."""
    return get_locator().resolve()


def reset_engine() -> None:
    """Force the next resolution to re-run discovery."""
    if _default_locator is not None:
        _default_locator.reset()
