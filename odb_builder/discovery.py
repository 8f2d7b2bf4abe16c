# odb_builder/discovery.py
"""
Locate the ODB compiler and its runtime libraries.

Mirrors what a `find_package(ODB COMPONENTS ...)` module does:
  - compiler:   <root>/bin/odb (then PATH); version from `odb --version`
  - core:       include dir holding odb/core.hxx + library `odb` / `odb-<major.minor>`
  - components: per-component library + header probe (header falls back to the core include dir)

Unknown component names are logged and reported as not found; they never abort
discovery. Hard failures are raised only by `DiscoveryResult.require()`.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import structlog

from .components import CORE_LIBRARY, Component
from .config import Settings, get_settings
from .exceptions import DiscoveryError

logger = structlog.get_logger()

_VERSION_RE = re.compile(r"ODB[^\n]*compiler[^\n]*?([0-9]+\.[0-9]+\.[0-9]+)")

LIBRARY_SUFFIXES: Tuple[str, ...] = ("lib", "lib64", "lib/x86_64-linux-gnu")
INCLUDE_SUFFIXES: Tuple[str, ...] = ("include",)
PROGRAM_SUFFIXES: Tuple[str, ...] = ("bin",)


# -----------------------------------------------------------------------------
# Result
# -----------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ComponentStatus:
    name: str
    found: bool
    known: bool = True
    library: Optional[Path] = None
    include_dir: Optional[Path] = None

    @property
    def link_id(self) -> Optional[str]:
        comp = Component.lookup(self.name)
        return comp.link_id if comp else None


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    compiler: Optional[Path] = None
    version: str = ""
    include_dir: Optional[Path] = None
    core_library: Optional[Path] = None
    include_dirs: Tuple[Path, ...] = ()
    components: Dict[str, ComponentStatus] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return bool(self.compiler and self.core_library and self.include_dir)

    @property
    def version_mm(self) -> str:
        return major_minor(self.version)

    def component_found(self, name: str) -> bool:
        status = self.components.get((name or "").strip().lower())
        return bool(status and status.found)

    def available_libraries(self) -> FrozenSet[str]:
        libs = set()
        if self.core_library and self.include_dir:
            libs.add(CORE_LIBRARY)
        for status in self.components.values():
            if status.found and status.link_id:
                libs.add(status.link_id)
        return frozenset(libs)

    def require(self, components: Iterable[str] = ()) -> "DiscoveryResult":
        """Raise DiscoveryError unless the core and every listed component were found."""
        missing_core = [
            label
            for label, value in (
                ("ODB compiler", self.compiler),
                ("ODB core library", self.core_library),
                ("ODB include directory (odb/core.hxx)", self.include_dir),
            )
            if not value
        ]
        missing_comps = [c for c in components if not self.component_found(c)]
        if missing_core or missing_comps:
            parts = []
            if missing_core:
                parts.append("missing: " + ", ".join(missing_core))
            if missing_comps:
                parts.append("required components not found: " + ", ".join(missing_comps))
            raise DiscoveryError("Could NOT find ODB (" + "; ".join(parts) + ")")
        return self


# -----------------------------------------------------------------------------
# Probes
# -----------------------------------------------------------------------------
def major_minor(version: str) -> str:
    m = re.match(r"^([0-9]+\.[0-9]+)", version or "")
    return m.group(1) if m else ""


def parse_version(text: str) -> str:
    m = _VERSION_RE.search(text or "")
    return m.group(1) if m else ""


def _run_version(compiler: Path) -> str:
    try:
        proc = subprocess.run(
            [str(compiler), "--version"],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=30,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("odb_version_probe_failed", compiler=str(compiler), error=str(e))
        return ""
    return (proc.stdout or "") + "\n" + (proc.stderr or "")


def _candidates(roots: Sequence[Path], suffixes: Sequence[str]) -> List[Path]:
    dirs: List[Path] = []
    for root in roots:
        for s in suffixes:
            dirs.append(root / s)
        dirs.append(root)
    return dirs


def find_program(name: str, roots: Sequence[Path]) -> Optional[Path]:
    names = [name, f"{name}.exe"] if sys.platform.startswith("win") else [name]
    for d in _candidates(roots, PROGRAM_SUFFIXES):
        for n in names:
            p = d / n
            if p.is_file():
                return p.resolve()
    hit = shutil.which(name)
    return Path(hit).resolve() if hit else None


def find_path(relative: str, roots: Sequence[Path]) -> Optional[Path]:
    """Directory D such that D/relative exists (e.g. relative='odb/core.hxx')."""
    for d in _candidates(roots, INCLUDE_SUFFIXES):
        if (d / relative).is_file():
            return d.resolve()
    return None


def _library_filenames(name: str) -> List[str]:
    return [f"lib{name}.so", f"lib{name}.a", f"lib{name}.dylib", f"{name}.lib"]


def find_library(names: Sequence[str], roots: Sequence[Path]) -> Optional[Path]:
    for d in _candidates(roots, LIBRARY_SUFFIXES):
        for n in names:
            for fname in _library_filenames(n):
                p = d / fname
                if p.is_file():
                    return p.resolve()
    return None


# -----------------------------------------------------------------------------
# Locate
# -----------------------------------------------------------------------------
def locate(
    components: Iterable[str] = (),
    *,
    required: Iterable[str] = (),
    search_paths: Optional[Sequence[Path]] = None,
    settings: Optional[Settings] = None,
) -> DiscoveryResult:
    """
    Locate the ODB toolchain.

    Args:
        components: optional components to probe (pgsql, mysql, sqlite, oracle, mssql, boost, qt).
        required:   components that must be found; also probed. When non-empty, the
                    result is checked with `require()` (core + these components).
        search_paths: explicit roots; defaults to Settings.search_roots.
    """
    cfg = settings or get_settings()
    roots = [Path(p) for p in search_paths] if search_paths is not None else cfg.search_roots

    required = [c.strip().lower() for c in required if c and c.strip()]
    wanted: List[str] = []
    for c in [*components, *required]:
        c = (c or "").strip().lower()
        if c and c not in wanted:
            wanted.append(c)

    compiler = find_program("odb", roots)
    version = parse_version(_run_version(compiler)) if compiler else ""
    mm = major_minor(version)

    include_dir = find_path("odb/core.hxx", roots)
    core_names = ["odb"] + ([f"odb-{mm}"] if mm else [])
    core_library = find_library(core_names, roots)

    include_dirs: List[Path] = []
    if core_library and include_dir:
        include_dirs.append(include_dir)

    statuses: Dict[str, ComponentStatus] = {}
    for name in wanted:
        comp = Component.lookup(name)
        if comp is None:
            logger.warning("odb_unknown_component", component=name)
            statuses[name] = ComponentStatus(name=name, found=False, known=False)
            continue

        spec = comp.spec
        lib_names = [spec.library] + ([f"{spec.library}-{mm}"] if mm else [])
        library = find_library(lib_names, roots)
        comp_include = find_path(spec.header, roots) or include_dir

        if library:
            if comp_include and comp_include not in include_dirs:
                include_dirs.append(comp_include)
            statuses[name] = ComponentStatus(name=name, found=True, library=library, include_dir=comp_include)
        else:
            logger.warning("odb_component_not_found", component=name)
            statuses[name] = ComponentStatus(name=name, found=False, include_dir=comp_include)

    result = DiscoveryResult(
        compiler=compiler,
        version=version,
        include_dir=include_dir,
        core_library=core_library,
        include_dirs=tuple(include_dirs),
        components=statuses,
    )

    logger.info(
        "odb_discovery",
        found=result.found,
        compiler=str(compiler) if compiler else None,
        version=version or None,
        components={k: v.found for k, v in statuses.items()},
    )

    if required:
        result.require(required)
    return result


__all__ = [
    "ComponentStatus",
    "DiscoveryResult",
    "find_library",
    "find_path",
    "find_program",
    "locate",
    "major_minor",
    "parse_version",
]
