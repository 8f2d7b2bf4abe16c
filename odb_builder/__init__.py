"""
odb_builder

Build-time orchestration for the ODB compiler: resolves backends and
generation mode, predicts generated files before they exist, emits the
generation build graph and wires sources, include dirs and runtime
libraries into consuming targets.

Public API:
  - odb_compile: configure generation for one request
  - locate:      find the ODB compiler and runtime components
  - GraphRunner: run a graph's stale generation tasks
"""

from __future__ import annotations

from typing import List, Optional, Sequence

__version__ = "0.3.0"

from .components import Backend, Component, MultiDatabaseMode, Profile, SchemaFormat
from .discovery import DiscoveryResult, locate
from .exceptions import (
    DiscoveryError,
    InvocationFailure,
    OdbBuildError,
    OutputConflictError,
    PredictionMismatch,
    ValidationError,
)
from .models import ArtifactSet, BuildGraph, GenerationRequest, GenerationTask, LinkSet, ResolvedOptions
from .pipeline import CompileResult, odb_compile
from .project import Project, Target
from .runner import GraphRunner

__all__ = [
    "ArtifactSet",
    "Backend",
    "BuildGraph",
    "CompileResult",
    "Component",
    "DiscoveryError",
    "DiscoveryResult",
    "GenerationRequest",
    "GenerationTask",
    "GraphRunner",
    "InvocationFailure",
    "LinkSet",
    "MultiDatabaseMode",
    "OdbBuildError",
    "OutputConflictError",
    "PredictionMismatch",
    "Profile",
    "Project",
    "ResolvedOptions",
    "SchemaFormat",
    "Target",
    "ValidationError",
    "locate",
    "main",
    "odb_compile",
    "__version__",
]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entrypoint.

    Kept as a thin wrapper so importing `odb_builder` doesn't pull in the
    argparse/dotenv front end.
    """
    from .cli import main as _main

    return _main(list(argv) if argv is not None else None)
