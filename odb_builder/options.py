# odb_builder/options.py
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from .components import Backend, Profile, SchemaFormat
from .config import get_settings
from .discovery import DiscoveryResult
from .exceptions import ValidationError
from .models import GenerationRequest, ResolvedOptions
from .modes import infer_mode
from .project import Project

logger = structlog.get_logger()

_STD_DIGITS = re.compile(r"^[0-9]+$")


# -----------------------------------------------------------------------------
# Normalizers
# -----------------------------------------------------------------------------
def normalize_standard(explicit: Optional[str], ambient: Optional[str] = None) -> Optional[str]:
    """
    Explicit request standard wins over the ambient project default; neither -> None.
    Digits-only tokens become `c++<digits>`.
    """
    for raw in (explicit, ambient):
        token = str(raw).strip().lower() if raw is not None else ""
        if not token:
            continue
        if _STD_DIGITS.match(token):
            return f"c++{token}"
        return token
    return None


def _parse_backend(token: str) -> Backend:
    try:
        return Backend((token or "").strip().lower())
    except ValueError:
        allowed = ", ".join(b.value for b in Backend)
        raise ValidationError(f"odb_compile: unknown database '{token}' (expected one of: {allowed})") from None


def normalize_databases(db: Optional[str], databases: Sequence[str]) -> Tuple[Backend, ...]:
    """
    DATABASES (multi-value) -> the list plus `common`, first occurrence kept.
    DB (singular)          -> exactly that backend, no implicit `common`.
    """
    picked: List[Backend] = []
    if databases:
        if db:
            logger.warning("odb_db_ignored", db=db, reason="DATABASES takes precedence over DB")
        picked = [_parse_backend(d) for d in databases] + [Backend.COMMON]
    elif db:
        picked = [_parse_backend(db)]

    out: List[Backend] = []
    for b in picked:
        if b not in out:
            out.append(b)
    return tuple(out)


def _validate_profiles(profiles: Iterable[str]) -> Tuple[str, ...]:
    out: List[str] = []
    for token in profiles:
        t = (token or "").strip().lower()
        if not t:
            continue
        try:
            Profile.from_token(t)
        except ValueError:
            allowed = ", ".join(p.value for p in Profile)
            raise ValidationError(f"odb_compile: unknown profile '{token}' (expected one of: {allowed})") from None
        if t not in out:
            out.append(t)
    return tuple(out)


def _schema_format(token: str) -> SchemaFormat:
    try:
        return SchemaFormat((token or SchemaFormat.SQL.value).strip().lower())
    except ValueError:
        allowed = ", ".join(f.value for f in SchemaFormat)
        raise ValidationError(f"odb_compile: unknown SCHEMA_FORMAT '{token}' (expected one of: {allowed})") from None


def _absolute(p: Path, base: Path) -> Path:
    p = Path(p).expanduser()
    return p if p.is_absolute() else base / p


# -----------------------------------------------------------------------------
# Resolver
# -----------------------------------------------------------------------------
def resolve_options(
    request: GenerationRequest,
    discovery: DiscoveryResult,
    project: Project,
) -> ResolvedOptions:
    """Validate a request and derive its immutable ResolvedOptions. No side effects."""
    if not request.targets:
        raise ValidationError("odb_compile: TARGETS is required")
    if not request.sources:
        raise ValidationError("odb_compile: SOURCES is required")
    if not request.db and not request.databases:
        raise ValidationError("odb_compile: DB or DATABASES must be specified")
    for name in request.targets:
        if not project.has_target(name):
            raise ValidationError(f"odb_compile: TARGET '{name}' does not exist")
    if discovery.compiler is None:
        raise ValidationError(
            "odb_compile: the ODB compiler is not available. "
            "Run discovery first (set ODB_ROOT or put 'odb' on PATH)."
        )

    sources: List[Path] = []
    for s in request.sources:
        p = _absolute(s, project.source_dir)
        if not p.is_file():
            raise ValidationError(f"odb_compile: source '{s}' does not exist (resolved to {p})")
        if p not in sources:
            sources.append(p)

    databases = normalize_databases(request.db, request.databases)
    mode = infer_mode(databases, request.multi_database)

    cfg = get_settings()
    output_dir = (
        _absolute(request.output_dir, project.binary_dir)
        if request.output_dir
        else project.binary_dir / cfg.ODB_OUTPUT_SUBDIR
    )
    changelog_dir = _absolute(request.changelog_dir, project.binary_dir) if request.changelog_dir else output_dir
    changelog = _absolute(request.changelog, project.source_dir) if request.changelog else None

    options = ResolvedOptions(
        targets=tuple(dict.fromkeys(request.targets)),
        sources=tuple(sources),
        databases=databases,
        multi_database=mode,
        standard=normalize_standard(request.standard, project.cxx_standard),
        profiles=_validate_profiles(request.profiles),
        output_dir=output_dir,
        changelog_dir=changelog_dir,
        changelog=changelog,
        header_suffix=request.header_suffix or ".hxx",
        source_suffix=request.source_suffix or ".cxx",
        inline_suffix=request.inline_suffix or ".ixx",
        generate_query=request.generate_query,
        generate_session=request.generate_session,
        generate_schema=request.generate_schema,
        generate_prepared=request.generate_prepared,
        schema_format=_schema_format(request.schema_format),
        table_prefix=request.table_prefix or None,
        include_dirs=tuple(_absolute(p, project.source_dir) for p in request.include_dirs),
        definitions=tuple(request.definitions),
        odb_options=tuple(request.odb_options),
        at_once=request.at_once,
        no_auto_link=request.no_auto_link,
    )

    logger.debug(
        "odb_options_resolved",
        targets=list(options.targets),
        databases=[b.value for b in options.databases],
        multi_database=mode.value if mode else None,
        standard=options.standard,
    )
    return options


__all__ = ["normalize_databases", "normalize_standard", "resolve_options"]
