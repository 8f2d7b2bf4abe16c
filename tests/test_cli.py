# tests/test_cli.py
"""
CLI front end: argument mapping, the emitted artifact on stdout and exit codes.
Discovery is replaced with a canned result.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from odb_builder import cli
from odb_builder import runner as runner_mod
from odb_builder.config import get_settings

from .conftest import make_discovery


@pytest.fixture
def fake_locate(monkeypatch):
    seen = {}

    def _locate(components=(), *, required=(), search_paths=None, settings=None):
        seen["components"] = list(components)
        seen["required"] = list(required)
        return make_discovery("pgsql", "sqlite")

    monkeypatch.setattr(cli, "locate", _locate)
    return seen


def _argv(source_dir: Path, tmp_path: Path, *extra: str):
    return ["--source-dir", str(source_dir), "--binary-dir", str(tmp_path / "build"), "--target", "app", *extra]


def test_emit_json(source_dir, tmp_path, fake_locate, capsys) -> None:
    rc = cli.main(_argv(source_dir, tmp_path, "--databases", "pgsql", "sqlite", "--sources", "person.hxx"))
    out = capsys.readouterr().out

    assert rc == 0
    data = json.loads(out)
    assert [t["name"] for t in data["tasks"]] == ["odb_person"]
    assert data["linked"] == ["ODB::ODB", "ODB::PostgreSQL", "ODB::SQLite"]
    assert len(data["generated_sources"]) == 3
    assert fake_locate["components"] == ["pgsql", "sqlite"]


def test_emit_sources(source_dir, tmp_path, fake_locate, capsys) -> None:
    rc = cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "a.hxx", "b.hxx", "--emit", "sources"))
    lines = capsys.readouterr().out.splitlines()

    assert rc == 0
    assert [Path(line).name for line in lines] == ["a-odb.cxx", "b-odb.cxx"]


def test_emit_ninja(source_dir, tmp_path, fake_locate, capsys) -> None:
    rc = cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "person.hxx", "--emit", "ninja"))
    assert rc == 0
    assert "build odb_gen_app: phony" in capsys.readouterr().out


def test_validation_error_exit_code(source_dir, tmp_path, fake_locate, capsys) -> None:
    rc = cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "missing.hxx"))
    captured = capsys.readouterr()

    assert rc == 1
    assert captured.out == ""
    assert "missing.hxx" in captured.err


def test_build_runs_tasks(source_dir, tmp_path, fake_locate, monkeypatch, capsys) -> None:
    import subprocess

    def _fake_run(cmd, cwd, timeout=None):
        out = Path(cmd[cmd.index("--output-dir") + 1])
        for suffix in (".hxx", ".ixx", ".cxx"):
            (out / f"person-odb{suffix}").write_text("//\n", encoding="utf-8")
        return subprocess.CompletedProcess(list(cmd), 0, stdout="", stderr="")

    monkeypatch.setattr(runner_mod, "_run", _fake_run)
    rc = cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "person.hxx", "--emit", "none", "--build"))

    assert rc == 0
    assert (tmp_path / "build" / "odb_gen" / "person-odb.cxx").is_file()
    assert capsys.readouterr().out == ""


def test_components_follow_databases_and_profiles() -> None:
    args = cli._parse_args(
        ["--target", "app", "--databases", "PGSQL", "common", "--profiles", "boost/date-time", "qt", "wx"]
    )
    assert cli._components_for(args) == ["pgsql", "boost", "qt"]


def test_required_components_are_forwarded(source_dir, tmp_path, fake_locate, capsys) -> None:
    cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "person.hxx", "--require", "sqlite"))
    assert fake_locate["required"] == ["sqlite"]


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_dotenv_values_reach_settings(source_dir, tmp_path, fake_locate, fresh_settings, monkeypatch, capsys) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / ".env").write_text("ODB_OUTPUT_SUBDIR=gen_from_env\n", encoding="utf-8")
    # Restored to "unset" on teardown even though load_dotenv writes os.environ.
    monkeypatch.setenv("ODB_OUTPUT_SUBDIR", "unused")
    monkeypatch.delenv("ODB_OUTPUT_SUBDIR")
    # Settings cached before .env was loaded, as at import time from another directory.
    assert get_settings().ODB_OUTPUT_SUBDIR == "odb_gen"
    monkeypatch.chdir(workdir)

    rc = cli.main(_argv(source_dir, tmp_path, "--db", "sqlite", "--sources", "person.hxx", "--emit", "sources"))

    assert rc == 0
    out = Path(capsys.readouterr().out.strip())
    assert out == tmp_path / "build" / "gen_from_env" / "person-odb.cxx"
