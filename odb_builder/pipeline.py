# odb_builder/pipeline.py
"""
`odb_compile`: resolve options -> predict outputs -> build graph -> resolve links,
then wire the result into the consuming targets.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import structlog

from .discovery import DiscoveryResult
from .graph import build_graph
from .links import resolve_links
from .models import BuildGraph, GenerationRequest, LinkSet, RequestLike, ResolvedOptions
from .options import resolve_options
from .project import Project

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CompileResult:
    options: ResolvedOptions
    graph: BuildGraph
    links: LinkSet

    @property
    def generated_sources(self) -> List[Path]:
        """The compilable generated sources (what OUT_VAR receives)."""
        return list(self.graph.generated_sources)

    @property
    def linked(self) -> Tuple[str, ...]:
        """Libraries actually attached to the targets (empty with NO_AUTO_LINK)."""
        return () if self.options.no_auto_link else self.links.libraries

    def to_dict(self) -> dict:
        return {
            "targets": list(self.options.targets),
            "databases": [b.value for b in self.options.databases],
            "multi_database": self.options.multi_database.value if self.options.multi_database else None,
            "graph": self.graph.to_dict(),
            "links": self.links.to_dict(),
            "linked": list(self.linked),
            "generated_sources": [str(p) for p in self.generated_sources],
        }


def _coerce_request(request: RequestLike) -> GenerationRequest:
    if isinstance(request, GenerationRequest):
        return request
    return GenerationRequest.from_keywords(**dict(request))


def apply_graph(result: CompileResult, project: Project, *, create_dirs: bool = True) -> None:
    """
    Wire a compile result into the project: claim outputs (one writer per path),
    add generated sources, the output include dir, the dependency on the barrier
    node and, unless suppressed, the private link libraries.
    """
    graph = result.graph
    project.claim_outputs({t.name: t.outputs for t in graph.tasks})

    if create_dirs:
        graph.output_dir.mkdir(parents=True, exist_ok=True)
        if graph.changelog_dir != graph.output_dir:
            graph.changelog_dir.mkdir(parents=True, exist_ok=True)

    for update in graph.updates:
        target = project.get_target(update.target)
        target.add_sources(update.sources)
        target.add_dependency(update.depends_on)
        target.add_include_dir(update.include_dir)
        if result.linked:
            target.link_private(result.linked)


def odb_compile(
    request: RequestLike,
    *,
    discovery: DiscoveryResult,
    project: Project,
    create_dirs: bool = True,
) -> CompileResult:
    """
    Configure ODB code generation for one or more targets.

    `request` is a GenerationRequest or a mapping of CMake-style keywords
    (TARGETS, DB/DATABASES, SOURCES, ...). Returns the CompileResult; its
    `generated_sources` is the list of compilable generated files.

    Raises ValidationError / OutputConflictError before anything is mutated.
    """
    req = _coerce_request(request)
    options = resolve_options(req, discovery, project)
    graph = build_graph(options, discovery, project)
    links = resolve_links(options, discovery)
    result = CompileResult(options=options, graph=graph, links=links)

    apply_graph(result, project, create_dirs=create_dirs)

    logger.info(
        "odb_compile_configured",
        targets=list(options.targets),
        databases=[b.value for b in options.databases],
        multi_database=options.multi_database.value if options.multi_database else None,
        tasks=len(graph.tasks),
        generated_sources=len(result.generated_sources),
        linked=list(result.linked),
    )
    return result


__all__ = ["CompileResult", "apply_graph", "odb_compile"]
