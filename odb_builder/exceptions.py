# odb_builder/exceptions.py
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple


class OdbBuildError(Exception):
    """Base exception for everything raised by odb_builder."""


class ValidationError(OdbBuildError):
    """Malformed or incomplete generation request. Raised before any task is created."""


class OutputConflictError(ValidationError):
    """Two tasks declare the same output path (one writer per path)."""

    def __init__(self, path: Path, first: str, second: str):
        self.path = path
        self.first = first
        self.second = second
        super().__init__(
            f"Output '{path}' is declared by both '{first}' and '{second}'. "
            "Each generated file must have exactly one producing task."
        )


class DiscoveryError(OdbBuildError):
    """The ODB compiler or a required runtime component was not found."""


class InvocationFailure(OdbBuildError):
    """The ODB compiler exited with a non-zero status."""

    def __init__(self, task: str, command: Sequence[str], returncode: int, output: str = ""):
        self.task = task
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output
        tail = "\n".join((output or "").strip().splitlines()[-20:])
        msg = f"ODB compiler failed for '{task}' (exit code {returncode})"
        if tail:
            msg += f":\n{tail}"
        super().__init__(msg)


class PredictionMismatch(OdbBuildError):
    """
    The compiler's real outputs differ from the predicted ArtifactSet.

    Always fatal: a tolerated mismatch leaves the build graph either
    permanently stale (a declared output never appears) or blind to a file
    nobody declared.
    """

    def __init__(
        self,
        task: str,
        missing: Iterable[Path] = (),
        unexpected: Iterable[Path] = (),
    ):
        self.task = task
        self.missing: Tuple[Path, ...] = tuple(missing)
        self.unexpected: Tuple[Path, ...] = tuple(unexpected)
        lines = [f"ODB outputs for '{task}' do not match the prediction."]
        if self.missing:
            lines.append("  predicted but not written:")
            lines.extend(f"    - {p}" for p in self.missing)
        if self.unexpected:
            lines.append("  written but not predicted:")
            lines.extend(f"    - {p}" for p in self.unexpected)
        super().__init__("\n".join(lines))


def first_error_line(text: Optional[str]) -> str:
    """First line that looks like a compiler diagnostic; falls back to the first non-empty line."""
    lines = [s.strip() for s in (text or "").splitlines() if s.strip()]
    for s in lines:
        if "error:" in s.lower():
            return s
    return lines[0] if lines else "Unknown Error"


__all__ = [
    "DiscoveryError",
    "InvocationFailure",
    "OdbBuildError",
    "OutputConflictError",
    "PredictionMismatch",
    "ValidationError",
    "first_error_line",
]
