"""
Supported build frameworks and project detection.

Each framework is described by an immutable FrameworkProfile. Detection
inspects marker files and package.json dependencies once per run; the
FrameworkResolver keeps the answer so later phases never re-read the
project.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Sentinel meaning "no override given, run detection".
DETECT: Any = object()

NUXT_MARKERS = ("nuxt.config.ts", "nuxt.config.js")
LOCK_FILES = ("yarn.lock", "pnpm-lock.yaml", "pnpm-lock.json")


class Framework(str, Enum):
    """Build frameworks sitefront knows how to deploy."""

    TANSTACK_START = "tanstack-start"
    NUXT = "nuxt"
    NITRO = "nitro"
    VITE = "vite"


@dataclass(frozen=True)
class FrameworkProfile:
    framework: Framework
    has_server_compute: bool
    build_output_dir: str
    public_dir: str
    immutable_asset_pattern: re.Pattern[str]
    compute_entry_point: str | None = None
    runtime_preset: str | None = None

    @property
    def server_dir(self) -> str | None:
        """Directory archived into the compute artifact."""
        if not self.has_server_compute:
            return None
        return self.build_output_dir


def _server_profile(framework: Framework, immutable_prefix: str) -> FrameworkProfile:
    return FrameworkProfile(
        framework=framework,
        has_server_compute=True,
        build_output_dir=".output",
        public_dir=".output/public",
        immutable_asset_pattern=re.compile(rf"^{re.escape(immutable_prefix)}"),
        compute_entry_point="server/index.handler",
        runtime_preset="aws-lambda",
    )


PROFILES: dict[Framework, FrameworkProfile] = {
    Framework.TANSTACK_START: _server_profile(Framework.TANSTACK_START, "assets/"),
    Framework.NUXT: _server_profile(Framework.NUXT, "_nuxt/"),
    Framework.NITRO: _server_profile(Framework.NITRO, "assets/"),
    Framework.VITE: FrameworkProfile(
        framework=Framework.VITE,
        has_server_compute=False,
        build_output_dir="dist",
        public_dir="dist",
        immutable_asset_pattern=re.compile(r"^assets/"),
    ),
}


def get_profile(identifier: str | Framework) -> FrameworkProfile:
    """Look up a profile by its identifier, e.g. ``"nuxt"``."""
    try:
        return PROFILES[Framework(identifier)]
    except ValueError:
        supported = ", ".join(f.value for f in Framework)
        raise ConfigurationError(
            f"Unsupported framework '{identifier}'. Supported frameworks: {supported}"
        ) from None


@dataclass(frozen=True)
class ProjectSignals:
    """Facts about the project that detection depends on."""

    dependencies: frozenset[str] = field(default_factory=frozenset)
    dev_dependencies: frozenset[str] = field(default_factory=frozenset)
    marker_files: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_project(cls, project_dir: Path) -> ProjectSignals:
        manifest: dict[str, Any] = {}
        package_json = project_dir / "package.json"
        if package_json.is_file():
            try:
                manifest = json.loads(package_json.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Could not parse {package_json}: {e}") from e

        markers = frozenset(
            name for name in (*NUXT_MARKERS, *LOCK_FILES) if (project_dir / name).is_file()
        )
        return cls(
            dependencies=frozenset(manifest.get("dependencies") or {}),
            dev_dependencies=frozenset(manifest.get("devDependencies") or {}),
            marker_files=markers,
        )

    @property
    def package_manager(self) -> str:
        if "yarn.lock" in self.marker_files:
            return "yarn"
        if "pnpm-lock.yaml" in self.marker_files or "pnpm-lock.json" in self.marker_files:
            return "pnpm"
        return "npm"


def detect(signals: ProjectSignals) -> Framework | None:
    """Detect the framework from project signals, in fixed priority order."""
    deps = signals.dependencies
    if "@tanstack/react-start" in deps:
        logger.info("Detected TanStack Start")
        return Framework.TANSTACK_START
    if "nuxt" in deps or any(m in signals.marker_files for m in NUXT_MARKERS):
        logger.info("Detected Nuxt")
        return Framework.NUXT
    if "nitro" in deps:
        logger.info("Detected Nitro-based frontend")
        return Framework.NITRO
    if "vite" in deps or "vite" in signals.dev_dependencies:
        logger.info("Detected Vite-based frontend")
        return Framework.VITE
    return None


def resolve(override: Any, signals: ProjectSignals) -> FrameworkProfile | None:
    """
    Resolve the profile for this deployment.

    An explicit override (including ``None``, which forces "no compute") is
    returned without detection. Pass ``DETECT`` to inspect the project.
    """
    if override is not DETECT:
        if override is None:
            return None
        return get_profile(override)

    framework = detect(signals)
    if framework is None:
        logger.info("No supported frontend framework detected")
        return None
    return PROFILES[framework]


class FrameworkResolver:
    """Resolves the framework once and answers from memory afterwards."""

    def __init__(self, project_dir: Path, override: Any = DETECT):
        self.project_dir = project_dir
        self.override = override
        self._signals: ProjectSignals | None = None
        self._profile: FrameworkProfile | None = None
        self._resolved = False

    @property
    def signals(self) -> ProjectSignals:
        if self._signals is None:
            self._signals = ProjectSignals.from_project(self.project_dir)
        return self._signals

    def profile(self) -> FrameworkProfile | None:
        if not self._resolved:
            signals = self.signals if self.override is DETECT else ProjectSignals()
            self._profile = resolve(self.override, signals)
            self._resolved = True
        return self._profile
