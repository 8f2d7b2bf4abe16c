# odb_builder/runner.py
"""
Reference executor for a BuildGraph.

Host build engines (Ninja, Make, ...) normally run the rendered graph; this
runner gives the same contract in-process:

  - a task is stale when a declared output is missing or older than its newest input
    (an existing CHANGELOG file counts as an input);
  - stale tasks run the compiler (independent tasks in parallel), up-to-date ones are DONE;
  - a non-zero exit is an InvocationFailure, a wrong set of written files a
    PredictionMismatch; either way the task's outputs are removed so the next
    build sees it stale again.
"""

from __future__ import annotations

import concurrent.futures
import os
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from .config import get_settings
from .exceptions import InvocationFailure, OdbBuildError, PredictionMismatch, ValidationError, first_error_line
from .models import BuildGraph, GenerationTask

logger = structlog.get_logger()


class TaskState(str, Enum):
    STALE = "stale"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TaskResult:
    name: str
    state: TaskState
    ran: bool = False
    duration_s: float = 0.0
    output: str = ""
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BuildReport:
    results: Tuple[TaskResult, ...]

    @property
    def ok(self) -> bool:
        return all(r.state is TaskState.DONE for r in self.results)

    @property
    def ran(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.results if r.ran)

    @property
    def up_to_date(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.results if r.state is TaskState.DONE and not r.ran)


# -----------------------------------------------------------------------------
# Subprocess helpers
# -----------------------------------------------------------------------------
def _run(cmd: Sequence[str], cwd: Path, timeout: Optional[int] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        list(cmd),
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout,
        check=False,
    )


def _mtime_ns(p: Path) -> Optional[int]:
    try:
        return p.stat().st_mtime_ns
    except OSError:
        return None


def is_stale(task: GenerationTask) -> bool:
    """Missing output, missing input, or newest input (or existing side input) newer than oldest output."""
    out_times = [_mtime_ns(p) for p in task.outputs]
    if not out_times or any(t is None for t in out_times):
        return True
    in_times = [_mtime_ns(p) for p in task.inputs]
    if any(t is None for t in in_times):
        return True
    oldest = min(out_times)  # type: ignore[type-var]
    if max(in_times) > oldest:  # type: ignore[type-var]
        return True
    side_times = [t for t in (_mtime_ns(p) for p in task.side_inputs) if t is not None]
    return bool(side_times) and max(side_times) > oldest


def _stem_files(directory: Path, stems: Iterable[str]) -> Dict[Path, Optional[int]]:
    """Files in `directory` that belong to one of the stems (`<stem>-*` or `<stem>.*`)."""
    if not directory.is_dir():
        return {}
    prefixes = tuple(p for s in stems for p in (f"{s}-", f"{s}."))
    snap: Dict[Path, Optional[int]] = {}
    for p in directory.iterdir():
        if p.is_file() and p.name.startswith(prefixes):
            snap[p] = _mtime_ns(p)
    return snap


# -----------------------------------------------------------------------------
# Runner
# -----------------------------------------------------------------------------
class GraphRunner:
    def __init__(
        self,
        graph: BuildGraph,
        *,
        max_workers: Optional[int] = None,
        cwd: Optional[Path] = None,
        timeout: Optional[int] = None,
    ):
        cfg = get_settings()
        self.graph = graph
        self.max_workers = max_workers or cfg.MAX_WORKERS or min(32, max(1, (os.cpu_count() or 4)))
        self.cwd = Path(cwd) if cwd else graph.output_dir
        self.timeout = timeout if timeout is not None else cfg.ODB_TIMEOUT_SEC
        self.states: Dict[str, TaskState] = {t.name: TaskState.STALE for t in graph.tasks}
        self._declared: Set[Path] = set(graph.outputs)

    # -- selection ---------------------------------------------------------
    def select(self, targets: Optional[Iterable[str]] = None) -> List[GenerationTask]:
        if targets is None:
            return list(self.graph.tasks)
        names: List[str] = []
        for tgt in targets:
            try:
                tasks = self.graph.tasks_for(tgt)
            except KeyError:
                raise ValidationError(f"No ODB generation is wired for target '{tgt}'") from None
            names += [t.name for t in tasks if t.name not in names]
        return [t for t in self.graph.tasks if t.name in names]

    def _ensure_dirs(self) -> None:
        self.graph.output_dir.mkdir(parents=True, exist_ok=True)
        self.graph.changelog_dir.mkdir(parents=True, exist_ok=True)
        if not self.cwd.exists():
            self.cwd.mkdir(parents=True, exist_ok=True)

    # -- execution ---------------------------------------------------------
    def _discard_outputs(self, task: GenerationTask) -> None:
        for p in task.outputs:
            try:
                p.unlink()
            except FileNotFoundError:
                pass

    def _is_changelog(self, p: Path) -> bool:
        """Changelog side files: the explicit CHANGELOG, or `<stem>*.xml` in the changelog dir."""
        if self.graph.changelog is not None and p == self.graph.changelog:
            return True
        return p.parent == self.graph.changelog_dir and p.suffix == ".xml"

    def _verify(self, task: GenerationTask, before: Dict[Path, Optional[int]]) -> None:
        missing = [p for p in task.outputs if not p.is_file()]
        after = _stem_files(self.graph.output_dir, task.stems)
        unexpected = sorted(
            p
            for p, m in after.items()
            if p not in self._declared and not self._is_changelog(p) and (p not in before or before[p] != m)
        )
        if missing or unexpected:
            raise PredictionMismatch(task.name, missing=missing, unexpected=unexpected)

    def _settle_side_inputs(self, task: GenerationTask, before: Dict[Path, Optional[int]]) -> None:
        # A side input rewritten by this run must not leave the outputs older than it.
        rewritten: List[int] = []
        for p in task.side_inputs:
            m = _mtime_ns(p)
            if m is not None and m != before.get(p):
                rewritten.append(m)
        if not rewritten:
            return
        stamp = max(rewritten)
        for p in task.outputs:
            m = _mtime_ns(p)
            if m is not None and m < stamp:
                os.utime(p, ns=(stamp, stamp))

    def run_task(self, task: GenerationTask) -> TaskResult:
        self.states[task.name] = TaskState.RUNNING
        logger.info("odb_task_running", task=task.name, comment=task.comment)

        before = _stem_files(self.graph.output_dir, task.stems)
        side_before = {p: _mtime_ns(p) for p in task.side_inputs}
        start = time.time()
        try:
            proc = _run(task.command, cwd=self.cwd, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.states[task.name] = TaskState.FAILED
            self._discard_outputs(task)
            raise InvocationFailure(task.name, task.command, -1, str(e)) from e

        duration = time.time() - start
        output = ((proc.stdout or "") + (proc.stderr or "")).strip()

        if proc.returncode != 0:
            self.states[task.name] = TaskState.FAILED
            self._discard_outputs(task)
            logger.error(
                "odb_task_failed",
                task=task.name,
                returncode=proc.returncode,
                error=first_error_line(output),
            )
            raise InvocationFailure(task.name, task.command, proc.returncode, output)

        try:
            self._verify(task, before)
        except PredictionMismatch:
            self.states[task.name] = TaskState.FAILED
            self._discard_outputs(task)
            raise

        self._settle_side_inputs(task, side_before)
        self.states[task.name] = TaskState.DONE
        logger.info("odb_task_done", task=task.name, duration_s=round(duration, 3))
        return TaskResult(name=task.name, state=TaskState.DONE, ran=True, duration_s=duration, output=output)

    def run(self, targets: Optional[Iterable[str]] = None) -> BuildReport:
        """
        Bring the selected tasks up to date. Raises the first failure (in graph
        order) after every started task has settled; tasks not yet started when
        a failure happens are cancelled and stay STALE.
        """
        selected = self.select(targets)
        self._ensure_dirs()

        results: Dict[str, TaskResult] = {}
        stale: List[GenerationTask] = []
        for task in selected:
            if is_stale(task):
                stale.append(task)
            else:
                self.states[task.name] = TaskState.DONE
                results[task.name] = TaskResult(name=task.name, state=TaskState.DONE)
                logger.debug("odb_task_up_to_date", task=task.name)

        failures: Dict[str, OdbBuildError] = {}
        if stale:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {executor.submit(self.run_task, t): t for t in stale}
                for future in concurrent.futures.as_completed(futures):
                    task = futures[future]
                    if future.cancelled():
                        continue
                    try:
                        results[task.name] = future.result()
                    except OdbBuildError as e:
                        failures[task.name] = e
                        results[task.name] = TaskResult(
                            name=task.name, state=TaskState.FAILED, ran=True, error=str(e)
                        )
                        for f in futures:
                            f.cancel()

        ordered = tuple(results[t.name] for t in selected if t.name in results)
        report = BuildReport(results=ordered)

        if failures:
            first = next(t.name for t in selected if t.name in failures)
            logger.error("odb_build_failed", failed=sorted(failures), first=first)
            raise failures[first]

        logger.info("odb_build_complete", ran=len(report.ran), up_to_date=len(report.up_to_date))
        return report


__all__ = ["BuildReport", "GraphRunner", "TaskResult", "TaskState", "is_stale"]
