# tests/test_graph.py
"""
Graph construction: task layout (per input or at once), the compiler
command line and the one-writer-per-path rule.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from odb_builder.exceptions import OutputConflictError
from odb_builder.graph import GROUP_PREFIX, assemble_flags, build_graph
from odb_builder.models import GenerationRequest
from odb_builder.options import resolve_options

from .conftest import ODB_PREFIX


def _graph(project, discovery, **kw):
    base = {"targets": ["app"], "sources": ["a.hxx", "b.hxx"], "databases": ["pgsql", "sqlite"]}
    base.update(kw)
    opts = resolve_options(GenerationRequest(**base), discovery, project)
    return opts, build_graph(opts, discovery, project)


def test_one_task_per_input(project, discovery) -> None:
    _, graph = _graph(project, discovery)

    assert [t.name for t in graph.tasks] == ["odb_a", "odb_b"]
    a, b = graph.tasks
    assert a.inputs == (project.source_dir / "a.hxx",)
    assert a.command[-1] == str(project.source_dir / "a.hxx")
    assert a.comment == "ODB: Generating sources for a"
    assert not set(a.outputs) & set(b.outputs)


def test_at_once_covers_the_same_outputs(project, discovery) -> None:
    _, per_input = _graph(project, discovery)
    _, batched = _graph(project, discovery, at_once=True)

    assert len(batched.tasks) == 1
    task = batched.tasks[0]
    assert task.name == "odb_at_once_app"
    assert task.comment == "ODB: Generating sources for app (at-once)"
    assert task.command[-2:] == (str(project.source_dir / "a.hxx"), str(project.source_dir / "b.hxx"))
    assert set(task.outputs) == set(per_input.outputs)
    assert len(task.outputs) == len(per_input.outputs)


def test_command_line_order(project, discovery, out_dir: Path) -> None:
    opts, graph = _graph(
        project,
        discovery,
        sources=["person.hxx"],
        standard="17",
        profiles=["boost/date-time"],
        generate_query=True,
        generate_session=True,
        generate_schema=True,
        generate_prepared=True,
        table_prefix="app_",
        include_dirs=["inc"],
        definitions=["FOO=1"],
        odb_options=["--hxx-prologue", "#include \"traits.hxx\""],
    )
    src = project.source_dir

    assert graph.tasks[0].command == (
        str(ODB_PREFIX / "bin" / "odb"),
        "--multi-database", "dynamic",
        "-d", "pgsql",
        "-d", "sqlite",
        "-d", "common",
        "--std", "c++17",
        "--profile", "boost/date-time",
        "--generate-query",
        "--generate-session",
        "--generate-schema", "--schema-format", "sql",
        "--generate-prepared",
        "--table-prefix", "app_",
        "--changelog-dir", str(out_dir),
        "-I", str(src / "inc"),
        "-I", str(ODB_PREFIX / "include"),
        "-I", str(src / "include"),
        "-DFOO=1",
        "-DAPP_BUILD=1",
        "--hxx-prologue", "#include \"traits.hxx\"",
        "--hxx-suffix", ".hxx",
        "--cxx-suffix", ".cxx",
        "--ixx-suffix", ".ixx",
        "--output-dir", str(out_dir),
        str(src / "person.hxx"),
    )


def test_single_database_flags(project, discovery) -> None:
    opts = resolve_options(
        GenerationRequest(targets=["tool"], sources=["person.hxx"], db="sqlite"), discovery, project
    )
    flags = assemble_flags(opts, discovery, [project.get_target("tool")])
    assert "--multi-database" not in flags
    assert flags[:2] == ["-d", "sqlite"]
    assert "common" not in flags
    assert "--generate-schema" not in flags


def test_changelog_flags(project, discovery, tmp_path: Path) -> None:
    opts, graph = _graph(
        project, discovery, changelog="schema/changelog.xml", changelog_dir=tmp_path / "changes"
    )
    cmd = list(graph.tasks[0].command)
    i = cmd.index("--changelog")
    assert cmd[i : i + 4] == [
        "--changelog",
        str(project.source_dir / "schema" / "changelog.xml"),
        "--changelog-dir",
        str(tmp_path / "changes"),
    ]
    assert graph.changelog_dir == tmp_path / "changes"
    changelog = project.source_dir / "schema" / "changelog.xml"
    assert graph.changelog == changelog
    for task in graph.tasks:
        assert task.side_inputs == (changelog,)
        assert changelog not in task.inputs
        assert task.command[-1] == str(task.inputs[-1])


def test_groups_and_updates_per_target(project, discovery, out_dir: Path) -> None:
    _, graph = _graph(project, discovery, targets=["app", "tool"])

    assert [g.name for g in graph.groups] == [f"{GROUP_PREFIX}app", f"{GROUP_PREFIX}tool"]
    for group in graph.groups:
        assert group.tasks == ("odb_a", "odb_b")
        assert group.depends == graph.outputs

    for update in graph.updates:
        assert update.include_dir == out_dir
        assert update.depends_on == f"{GROUP_PREFIX}{update.target}"
        assert update.sources == graph.generated_sources
        assert all(p.suffix == ".cxx" for p in update.sources)


def test_tasks_for_target(project, discovery) -> None:
    _, graph = _graph(project, discovery)
    assert [t.name for t in graph.tasks_for("app")] == ["odb_a", "odb_b"]
    with pytest.raises(KeyError):
        graph.tasks_for("tool")


def test_same_stem_in_one_request_conflicts(project, discovery) -> None:
    with pytest.raises(OutputConflictError) as exc:
        _graph(project, discovery, sources=["person.hxx", "models/person.hxx"])
    assert exc.value.path.name == "person-odb.hxx"
    assert exc.value.first == exc.value.second == "odb_person"


def test_same_stem_at_once_conflicts(project, discovery) -> None:
    with pytest.raises(OutputConflictError):
        _graph(project, discovery, sources=["person.hxx", "models/person.hxx"], at_once=True)


def test_building_a_graph_mutates_nothing(project, discovery) -> None:
    _graph(project, discovery)
    app = project.get_target("app")
    assert app.sources == []
    assert app.dependencies == []
    assert app.link_libraries == []
    assert not project.binary_dir.exists()
