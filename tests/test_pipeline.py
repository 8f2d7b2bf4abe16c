# tests/test_pipeline.py
"""
End-to-end configuration through odb_compile: target wiring, the
generated-source list and conflicts across requests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from odb_builder.exceptions import OutputConflictError, ValidationError
from odb_builder.pipeline import odb_compile


def test_targets_are_wired(project, discovery, out_dir: Path) -> None:
    result = odb_compile(
        {"TARGETS": ["app"], "DATABASES": ["pgsql", "sqlite"], "SOURCES": ["person.hxx"], "GENERATE_SCHEMA": True},
        discovery=discovery,
        project=project,
    )
    app = project.get_target("app")

    assert app.sources == [
        out_dir / "person-odb.cxx",
        out_dir / "person-odb-pgsql.cxx",
        out_dir / "person-odb-sqlite.cxx",
    ]
    assert app.include_dirs[-1] == out_dir
    assert app.dependencies == ["odb_gen_app"]
    assert app.link_libraries == ["ODB::ODB", "ODB::PostgreSQL", "ODB::SQLite"]
    assert result.generated_sources == app.sources
    assert out_dir.is_dir()

    # Untouched target stays untouched.
    assert project.get_target("tool").sources == []


def test_no_auto_link(project, discovery) -> None:
    result = odb_compile(
        {"TARGETS": ["app"], "DB": "sqlite", "SOURCES": ["person.hxx"], "NO_AUTO_LINK": True},
        discovery=discovery,
        project=project,
    )
    assert result.linked == ()
    assert result.links.libraries == ("ODB::ODB", "ODB::SQLite")
    assert project.get_target("app").link_libraries == []


def test_several_targets_share_the_tasks(project, discovery) -> None:
    result = odb_compile(
        {"TARGETS": ["app", "tool"], "DB": "sqlite", "SOURCES": ["a.hxx", "b.hxx"]},
        discovery=discovery,
        project=project,
    )
    assert len(result.graph.tasks) == 2
    assert project.get_target("app").sources == project.get_target("tool").sources
    assert project.get_target("tool").dependencies == ["odb_gen_tool"]


def test_second_request_for_same_stem_conflicts(project, discovery) -> None:
    odb_compile({"TARGETS": ["app"], "DB": "sqlite", "SOURCES": ["person.hxx"]}, discovery=discovery, project=project)

    before = list(project.get_target("tool").sources)
    with pytest.raises(OutputConflictError):
        odb_compile(
            {"TARGETS": ["tool"], "DB": "sqlite", "SOURCES": ["models/person.hxx"]},
            discovery=discovery,
            project=project,
        )
    assert project.get_target("tool").sources == before


def test_separate_output_dirs_do_not_conflict(project, discovery) -> None:
    odb_compile({"TARGETS": ["app"], "DB": "sqlite", "SOURCES": ["person.hxx"]}, discovery=discovery, project=project)
    result = odb_compile(
        {"TARGETS": ["tool"], "DB": "sqlite", "SOURCES": ["models/person.hxx"], "OUTPUT_DIR": "odb_tool"},
        discovery=discovery,
        project=project,
    )
    assert result.graph.output_dir == project.binary_dir / "odb_tool"
    assert project.output_owner(project.binary_dir / "odb_tool" / "person-odb.cxx") == "odb_person"


def test_validation_happens_before_mutation(project, discovery) -> None:
    with pytest.raises(ValidationError):
        odb_compile(
            {"TARGETS": ["app"], "DB": "sqlite", "SOURCES": ["missing.hxx"]}, discovery=discovery, project=project
        )
    assert project.get_target("app").sources == []
    assert not project.binary_dir.exists()


def test_out_var_keyword_is_accepted(project, discovery) -> None:
    result = odb_compile(
        {"TARGETS": ["app"], "DB": "sqlite", "SOURCES": ["person.hxx"], "OUT_VAR": "ODB_SOURCES"},
        discovery=discovery,
        project=project,
        create_dirs=False,
    )
    assert [p.name for p in result.generated_sources] == ["person-odb.cxx"]
    assert not result.graph.output_dir.exists()


def test_result_dict(project, discovery) -> None:
    result = odb_compile(
        {"TARGETS": ["app"], "DATABASES": ["pgsql"], "SOURCES": ["person.hxx"]}, discovery=discovery, project=project
    )
    d = result.to_dict()
    assert d["databases"] == ["pgsql", "common"]
    assert d["multi_database"] == "dynamic"
    assert d["graph"]["groups"][0]["name"] == "odb_gen_app"
    assert d["linked"] == ["ODB::ODB", "ODB::PostgreSQL"]
