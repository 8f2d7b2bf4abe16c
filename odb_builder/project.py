# odb_builder/project.py
"""
Minimal in-process model of the host build system.

Only what the ODB wiring needs: named targets with their sources, include
directories, compile definitions, link libraries and target-level
dependencies, plus a project-wide registry of claimed output paths.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .exceptions import OutputConflictError, ValidationError

PathLike = Union[str, Path]


def _dedupe_keep_order(items: Iterable) -> List:
    seen: set = set()
    out: List = []
    for s in items:
        if s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


@dataclass
class Target:
    name: str
    sources: List[Path] = field(default_factory=list)
    include_dirs: List[Path] = field(default_factory=list)
    compile_definitions: List[str] = field(default_factory=list)
    link_libraries: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def add_sources(self, paths: Iterable[PathLike]) -> None:
        self.sources = _dedupe_keep_order([*self.sources, *(Path(p) for p in paths)])

    def add_include_dir(self, path: PathLike) -> None:
        self.include_dirs = _dedupe_keep_order([*self.include_dirs, Path(path)])

    def add_dependency(self, name: str) -> None:
        self.dependencies = _dedupe_keep_order([*self.dependencies, name])

    def link_private(self, libraries: Iterable[str]) -> None:
        self.link_libraries = _dedupe_keep_order([*self.link_libraries, *libraries])


class Project:
    """
    Host project: source/binary directories, the ambient C++ standard and
    the consuming targets.
    """

    def __init__(
        self,
        source_dir: PathLike,
        binary_dir: Optional[PathLike] = None,
        *,
        cxx_standard: Optional[str] = None,
    ):
        self.source_dir = Path(source_dir).resolve()
        self.binary_dir = Path(binary_dir).resolve() if binary_dir else self.source_dir / "build"
        self.cxx_standard = str(cxx_standard) if cxx_standard is not None else None
        self.targets: Dict[str, Target] = {}
        self._output_owners: Dict[Path, str] = {}

    def add_target(
        self,
        name: str,
        *,
        sources: Sequence[PathLike] = (),
        include_dirs: Sequence[PathLike] = (),
        compile_definitions: Sequence[str] = (),
    ) -> Target:
        if name in self.targets:
            raise ValidationError(f"Target '{name}' already exists")
        t = Target(
            name=name,
            sources=[Path(p) for p in sources],
            include_dirs=[Path(p) for p in include_dirs],
            compile_definitions=list(compile_definitions),
        )
        self.targets[name] = t
        return t

    def has_target(self, name: str) -> bool:
        return name in self.targets

    def get_target(self, name: str) -> Target:
        try:
            return self.targets[name]
        except KeyError:
            raise ValidationError(f"odb_compile: TARGET '{name}' does not exist") from None

    def output_owner(self, path: PathLike) -> Optional[str]:
        return self._output_owners.get(Path(path))

    def claim_outputs(self, claims: Mapping[str, Sequence[Path]]) -> None:
        """
        Register `{task_name: outputs}`. All-or-nothing: a path already owned by
        another task (here or in an earlier request) raises before anything is recorded.
        """
        pending: Dict[Path, str] = {}
        for owner, paths in claims.items():
            for p in paths:
                if p in self._output_owners:
                    raise OutputConflictError(p, self._output_owners[p], owner)
                prior = pending.get(p)
                if prior is not None and prior != owner:
                    raise OutputConflictError(p, prior, owner)
                pending[p] = owner
        self._output_owners.update(pending)


__all__ = ["Project", "Target"]
