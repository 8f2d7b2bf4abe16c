# odb_builder/render.py
#
# Renderers for a BuildGraph:
#  - JSON description (stable key order, paths as strings)
#  - Ninja build file (one build edge per generation task, one phony per target group)

from __future__ import annotations

import json
import shlex
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import BuildGraph


def graph_to_dict(graph: BuildGraph, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    d = graph.to_dict()
    if extra:
        d.update(extra)
    return d


def graph_to_json(graph: BuildGraph, *, extra: Optional[Dict[str, Any]] = None, indent: int = 2) -> str:
    return json.dumps(graph_to_dict(graph, extra), indent=indent, ensure_ascii=False)


def _ninja_path(p: Path) -> str:
    # Ninja treats '$', ' ' and ':' specially in paths.
    return str(p).replace("$", "$$").replace(" ", "$ ").replace(":", "$:")


def _ninja_paths(paths: Iterable[Path]) -> str:
    return " ".join(_ninja_path(p) for p in paths)


def _ninja_value(s: str) -> str:
    return s.replace("$", "$$").replace("\n", " ")


def render_ninja(graph: BuildGraph) -> str:
    lines: List[str] = [
        "# Generated by odb-builder. Do not edit.",
        "",
        "rule odb",
        "  command = $cmd",
        "  description = $desc",
        "  restat = 1",
        "",
    ]
    for task in graph.tasks:
        deps = _ninja_paths(task.inputs)
        # Missing side inputs are created by the compiler itself.
        side = [p for p in task.side_inputs if p.exists()]
        if side:
            deps += f" | {_ninja_paths(side)}"
        lines.append(f"build {_ninja_paths(task.outputs)}: odb {deps}")
        lines.append(f"  cmd = {_ninja_value(shlex.join(task.command))}")
        lines.append(f"  desc = {_ninja_value(task.comment or task.name)}")
        lines.append("")
    for group in graph.groups:
        lines.append(f"build {group.name}: phony {_ninja_paths(group.depends)}")
    lines.append("")
    return "\n".join(lines)


__all__ = ["graph_to_dict", "graph_to_json", "render_ninja"]
