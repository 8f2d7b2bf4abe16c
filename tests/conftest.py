# tests/conftest.py
from __future__ import annotations

from pathlib import Path

import pytest

from odb_builder.components import Component
from odb_builder.discovery import ComponentStatus, DiscoveryResult
from odb_builder.project import Project

ODB_PREFIX = Path("/opt/odb")


def make_discovery(*found: str, missing: tuple = (), compiler: bool = True) -> DiscoveryResult:
    """DiscoveryResult with the core located and the given components found."""
    comps = {}
    for name in found:
        comp = Component(name)
        comps[name] = ComponentStatus(
            name=name,
            found=True,
            library=ODB_PREFIX / "lib" / f"lib{comp.spec.library}.so",
            include_dir=ODB_PREFIX / "include",
        )
    for name in missing:
        comps[name] = ComponentStatus(name=name, found=False, known=Component.lookup(name) is not None)
    return DiscoveryResult(
        compiler=(ODB_PREFIX / "bin" / "odb") if compiler else None,
        version="2.5.0",
        include_dir=ODB_PREFIX / "include",
        core_library=ODB_PREFIX / "lib" / "libodb.so",
        include_dirs=(ODB_PREFIX / "include",),
        components=comps,
    )


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    (src / "models").mkdir(parents=True)
    for name in ("person.hxx", "a.hxx", "b.hxx"):
        (src / name).write_text(f"// {name}\n#pragma db object\n", encoding="utf-8")
    # Same stem as person.hxx, different directory.
    (src / "models" / "person.hxx").write_text("// models/person.hxx\n", encoding="utf-8")
    return src


@pytest.fixture
def project(source_dir: Path, tmp_path: Path) -> Project:
    proj = Project(source_dir, tmp_path / "build")
    proj.add_target(
        "app",
        include_dirs=[source_dir / "include"],
        compile_definitions=["APP_BUILD=1"],
    )
    proj.add_target("tool")
    return proj


@pytest.fixture
def discovery() -> DiscoveryResult:
    return make_discovery("pgsql", "sqlite", "mysql", "boost")


@pytest.fixture
def out_dir(project: Project) -> Path:
    return project.binary_dir / "odb_gen"
