# odb_builder/models.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .components import Backend, MultiDatabaseMode, Profile, SchemaFormat
from .exceptions import ValidationError

# -----------------------------------------------------------------------------
# Request (input payload)
# -----------------------------------------------------------------------------


class GenerationRequest(BaseModel):
    """
    One `odb_compile` call.

    Field names are the lowercase forms of the keywords the build helper
    accepts (TARGETS, DB, DATABASES, SOURCES, ...). Presence checks
    (targets/sources/backends) are done by the option resolver, not here,
    so that every incomplete request fails the same way.
    """

    model_config = ConfigDict(extra="forbid")

    targets: List[str] = Field(default_factory=list)
    sources: List[Path] = Field(default_factory=list)

    db: Optional[str] = None
    databases: List[str] = Field(default_factory=list)
    multi_database: Optional[str] = None

    output_dir: Optional[Path] = None
    header_suffix: str = ".hxx"
    source_suffix: str = ".cxx"
    inline_suffix: str = ".ixx"

    standard: Optional[str] = None
    include_dirs: List[Path] = Field(default_factory=list)
    definitions: List[str] = Field(default_factory=list)
    profiles: List[str] = Field(default_factory=list)
    odb_options: List[str] = Field(default_factory=list)

    generate_query: bool = False
    generate_session: bool = False
    generate_schema: bool = False
    generate_prepared: bool = False
    schema_format: str = SchemaFormat.SQL.value

    table_prefix: Optional[str] = None
    changelog: Optional[Path] = None
    changelog_dir: Optional[Path] = None

    at_once: bool = False
    no_auto_link: bool = False

    @field_validator("standard", mode="before")
    @classmethod
    def _standard_as_text(cls, v: Any) -> Any:
        # STANDARD 17 and STANDARD "17" mean the same thing.
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("targets", "databases", "profiles", "definitions", "odb_options", "sources", "include_dirs", mode="before")
    @classmethod
    def _single_value_as_list(cls, v: Any) -> Any:
        if isinstance(v, (str, Path)):
            return [v]
        return v

    @classmethod
    def from_keywords(cls, **keywords: Any) -> "GenerationRequest":
        """
        Build a request from CMake-style keywords:

            GenerationRequest.from_keywords(TARGETS=["app"], DATABASES=["pgsql", "sqlite"],
                                            SOURCES=["person.hxx"], GENERATE_SCHEMA=True)
        """
        data = {k.lower(): v for k, v in keywords.items() if k.lower() != "out_var"}
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"odb_compile: invalid arguments: {e}") from e


# -----------------------------------------------------------------------------
# Resolved options (derived once per request)
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResolvedOptions:
    targets: Tuple[str, ...]
    sources: Tuple[Path, ...]
    databases: Tuple[Backend, ...]
    multi_database: Optional[MultiDatabaseMode]
    standard: Optional[str]
    profiles: Tuple[str, ...]
    output_dir: Path
    changelog_dir: Path
    changelog: Optional[Path] = None
    header_suffix: str = ".hxx"
    source_suffix: str = ".cxx"
    inline_suffix: str = ".ixx"
    generate_query: bool = False
    generate_session: bool = False
    generate_schema: bool = False
    generate_prepared: bool = False
    schema_format: SchemaFormat = SchemaFormat.SQL
    table_prefix: Optional[str] = None
    include_dirs: Tuple[Path, ...] = ()
    definitions: Tuple[str, ...] = ()
    odb_options: Tuple[str, ...] = ()
    at_once: bool = False
    no_auto_link: bool = False

    @property
    def real_backends(self) -> Tuple[Backend, ...]:
        """Resolved backends other than `common`, in request order."""
        return tuple(b for b in self.databases if b.is_real)

    @property
    def is_multi_database(self) -> bool:
        return self.multi_database is not None

    @property
    def profile_roots(self) -> Tuple[Profile, ...]:
        seen: List[Profile] = []
        for token in self.profiles:
            p = Profile.from_token(token)
            if p not in seen:
                seen.append(p)
        return tuple(seen)


# -----------------------------------------------------------------------------
# Predicted outputs
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    """
    Predicted outputs for one input file, in the order the compiler writes them:
    the common triple, the per-backend triples, then the schema files.
    """

    stem: str
    files: Tuple[Path, ...]
    compilable: Tuple[Path, ...]

    def __iter__(self):
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


# -----------------------------------------------------------------------------
# Build graph
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationTask:
    """One external compiler invocation, declared as a build-graph node."""

    name: str
    inputs: Tuple[Path, ...]
    outputs: Tuple[Path, ...]
    command: Tuple[str, ...]
    compilable: Tuple[Path, ...] = ()
    stems: Tuple[str, ...] = ()
    comment: str = ""
    # Read by the compiler when present and possibly rewritten by it (the CHANGELOG file).
    side_inputs: Tuple[Path, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "comment": self.comment,
            "inputs": [str(p) for p in self.inputs],
            "outputs": [str(p) for p in self.outputs],
            "compilable": [str(p) for p in self.compilable],
            "side_inputs": [str(p) for p in self.side_inputs],
            "command": list(self.command),
        }


@dataclass(frozen=True, slots=True)
class GroupNode:
    """Barrier node `odb_gen_<target>`: done once every generated file for the target exists."""

    name: str
    target: str
    tasks: Tuple[str, ...]
    depends: Tuple[Path, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "target": self.target,
            "tasks": list(self.tasks),
            "depends": [str(p) for p in self.depends],
        }


@dataclass(frozen=True, slots=True)
class TargetUpdate:
    """Mutations applied to a consuming target: extra sources, include dir, dependency edge."""

    target: str
    sources: Tuple[Path, ...]
    include_dir: Path
    depends_on: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "sources": [str(p) for p in self.sources],
            "include_dir": str(self.include_dir),
            "depends_on": self.depends_on,
        }


@dataclass(frozen=True, slots=True)
class BuildGraph:
    tasks: Tuple[GenerationTask, ...]
    groups: Tuple[GroupNode, ...]
    updates: Tuple[TargetUpdate, ...]
    output_dir: Path
    changelog_dir: Path
    changelog: Optional[Path] = None

    @property
    def outputs(self) -> Tuple[Path, ...]:
        return tuple(p for t in self.tasks for p in t.outputs)

    @property
    def generated_sources(self) -> Tuple[Path, ...]:
        return tuple(p for t in self.tasks for p in t.compilable)

    def task(self, name: str) -> GenerationTask:
        for t in self.tasks:
            if t.name == name:
                return t
        raise KeyError(name)

    def tasks_for(self, target: str) -> Tuple[GenerationTask, ...]:
        for g in self.groups:
            if g.target == target:
                return tuple(self.task(n) for n in g.tasks)
        raise KeyError(target)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_dir": str(self.output_dir),
            "changelog_dir": str(self.changelog_dir),
            "changelog": str(self.changelog) if self.changelog else None,
            "tasks": [t.to_dict() for t in self.tasks],
            "groups": [g.to_dict() for g in self.groups],
            "updates": [u.to_dict() for u in self.updates],
        }


# -----------------------------------------------------------------------------
# Link set
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkSet:
    requested: Tuple[str, ...]
    libraries: Tuple[str, ...]

    @property
    def dropped(self) -> Tuple[str, ...]:
        return tuple(lib for lib in self.requested if lib not in self.libraries)

    def __contains__(self, item: object) -> bool:
        return item in self.libraries

    def __iter__(self):
        return iter(self.libraries)

    def to_dict(self) -> Dict[str, Any]:
        return {"requested": list(self.requested), "libraries": list(self.libraries)}


RequestLike = Union[GenerationRequest, Mapping[str, Any]]

__all__ = [
    "ArtifactSet",
    "BuildGraph",
    "GenerationRequest",
    "GenerationTask",
    "GroupNode",
    "LinkSet",
    "RequestLike",
    "ResolvedOptions",
    "TargetUpdate",
]
