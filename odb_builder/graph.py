# odb_builder/graph.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import structlog

from .discovery import DiscoveryResult
from .exceptions import OutputConflictError, ValidationError
from .models import ArtifactSet, BuildGraph, GenerationTask, GroupNode, ResolvedOptions, TargetUpdate
from .outputs import predict_all
from .project import Project, Target

logger = structlog.get_logger()

GROUP_PREFIX = "odb_gen_"


# -----------------------------------------------------------------------------
# Command line
# -----------------------------------------------------------------------------
def assemble_flags(
    options: ResolvedOptions,
    discovery: DiscoveryResult,
    targets: Sequence[Target] = (),
) -> List[str]:
    """
    Compiler flags, in invocation order:
      mode, databases, standard, profiles, toggles, schema, prepared, table prefix,
      changelog, -I (request, toolchain, targets), -D (request, targets),
      passthrough options, suffixes, output dir.
    """
    args: List[str] = []

    if options.multi_database is not None:
        args += ["--multi-database", options.multi_database.value]

    # Every database, `common` included.
    for backend in options.databases:
        args += ["-d", backend.value]

    if options.standard:
        args += ["--std", options.standard]

    for profile in options.profiles:
        args += ["--profile", profile]

    if options.generate_query:
        args.append("--generate-query")
    if options.generate_session:
        args.append("--generate-session")
    if options.generate_schema:
        args += ["--generate-schema", "--schema-format", options.schema_format.value]
    if options.generate_prepared:
        args.append("--generate-prepared")
    if options.table_prefix:
        args += ["--table-prefix", options.table_prefix]

    if options.changelog:
        args += ["--changelog", str(options.changelog)]
    args += ["--changelog-dir", str(options.changelog_dir)]

    for inc in options.include_dirs:
        args += ["-I", str(inc)]
    for inc in discovery.include_dirs:
        args += ["-I", str(inc)]
    for tgt in targets:
        for inc in tgt.include_dirs:
            args += ["-I", str(inc)]

    for d in options.definitions:
        args.append(f"-D{d}")
    for tgt in targets:
        for d in tgt.compile_definitions:
            args.append(f"-D{d}")

    args += list(options.odb_options)

    args += [
        "--hxx-suffix", options.header_suffix,
        "--cxx-suffix", options.source_suffix,
        "--ixx-suffix", options.inline_suffix,
        "--output-dir", str(options.output_dir),
    ]
    return args


# -----------------------------------------------------------------------------
# Graph
# -----------------------------------------------------------------------------
def _check_single_writer(tasks: Sequence[GenerationTask]) -> None:
    owners: Dict[Path, str] = {}
    for task in tasks:
        for p in task.outputs:
            prior = owners.get(p)
            if prior is not None:
                raise OutputConflictError(p, prior, task.name)
            owners[p] = task.name


def _task(
    name: str,
    inputs: Sequence[Path],
    sets: Sequence[ArtifactSet],
    base: Sequence[str],
    comment: str,
    side_inputs: Sequence[Path] = (),
) -> GenerationTask:
    return GenerationTask(
        name=name,
        inputs=tuple(inputs),
        outputs=tuple(p for s in sets for p in s.files),
        command=(*base, *(str(p) for p in inputs)),
        compilable=tuple(p for s in sets for p in s.compilable),
        stems=tuple(s.stem for s in sets),
        comment=comment,
        side_inputs=tuple(side_inputs),
    )


def build_tasks(
    options: ResolvedOptions,
    artifacts: Sequence[ArtifactSet],
    base_command: Sequence[str],
) -> Tuple[GenerationTask, ...]:
    """One task per input, or a single batched task when AT_ONCE is set."""
    if len(artifacts) != len(options.sources):
        raise ValidationError("artifact sets do not line up with the request's sources")

    side = (options.changelog,) if options.changelog else ()

    if options.at_once:
        label = ", ".join(options.targets)
        return (
            _task(
                f"odb_at_once_{'_'.join(options.targets)}",
                options.sources,
                artifacts,
                base_command,
                f"ODB: Generating sources for {label} (at-once)",
                side,
            ),
        )

    return tuple(
        _task(
            f"odb_{aset.stem}",
            [src],
            [aset],
            base_command,
            f"ODB: Generating sources for {aset.stem}",
            side,
        )
        for src, aset in zip(options.sources, artifacts)
    )


def build_graph(
    options: ResolvedOptions,
    discovery: DiscoveryResult,
    project: Project,
) -> BuildGraph:
    """
    Pure graph description for one request: generation tasks, one barrier node per
    consuming target and the updates each target needs. Nothing is mutated here.
    """
    if discovery.compiler is None:
        raise ValidationError("odb_compile: the ODB compiler is not available")

    targets = [project.get_target(name) for name in options.targets]
    base = [str(discovery.compiler), *assemble_flags(options, discovery, targets)]

    artifacts = predict_all(options.sources, options)
    tasks = build_tasks(options, artifacts, base)
    _check_single_writer(tasks)

    all_outputs = tuple(p for t in tasks for p in t.outputs)
    compilable = tuple(p for t in tasks for p in t.compilable)
    task_names = tuple(t.name for t in tasks)

    groups: List[GroupNode] = []
    updates: List[TargetUpdate] = []
    for name in options.targets:
        group = GroupNode(name=f"{GROUP_PREFIX}{name}", target=name, tasks=task_names, depends=all_outputs)
        groups.append(group)
        updates.append(
            TargetUpdate(target=name, sources=compilable, include_dir=options.output_dir, depends_on=group.name)
        )

    logger.debug(
        "odb_graph_built",
        tasks=len(tasks),
        outputs=len(all_outputs),
        at_once=options.at_once,
        targets=list(options.targets),
    )

    return BuildGraph(
        tasks=tasks,
        groups=tuple(groups),
        updates=tuple(updates),
        output_dir=options.output_dir,
        changelog_dir=options.changelog_dir,
        changelog=options.changelog,
    )


__all__ = ["GROUP_PREFIX", "assemble_flags", "build_graph", "build_tasks"]
