# odb_builder/cli.py
#
# Command-line front end for odb_compile.
#
# What it does:
#   - builds a throwaway host project with the named targets
#   - locates the ODB toolchain (components derived from DB/DATABASES/PROFILES)
#   - configures generation and emits the graph (json | ninja | sources)
#   - optionally runs the generation tasks (--build)
#
# IMPORTANT:
#   - stdout carries only the emitted artifact; diagnostics go to stderr.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from . import __version__
from .components import Backend, Profile
from .config import get_settings
from .discovery import locate
from .exceptions import OdbBuildError
from .logging_setup import get_logger, init_logging
from .pipeline import odb_compile
from .project import Project
from .render import graph_to_json, render_ninja
from .runner import GraphRunner


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="odb-builder",
        description="Wire ODB code generation into a build: predict outputs, emit the graph, optionally run it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    odb-builder --target app --databases pgsql sqlite --sources person.hxx --generate-schema
    odb-builder --target app --db sqlite --sources person.hxx --emit ninja > odb.ninja
    odb-builder --target app --db sqlite --sources a.hxx b.hxx --at-once --build
        """,
    )
    p.add_argument("--target", dest="targets", action="append", default=[], help="Consuming target (repeatable).")
    p.add_argument("--sources", nargs="+", default=[], help="Annotated model headers.")
    db = p.add_argument_group("databases")
    db.add_argument("--db", default=None, help="Single database (no implicit 'common').")
    db.add_argument("--databases", nargs="+", default=[], help="Several databases ('common' is appended).")
    db.add_argument("--multi-database", default=None, help="Force multi-database mode: dynamic | static.")

    gen = p.add_argument_group("generation")
    gen.add_argument("--output-dir", default=None)
    gen.add_argument("--header-suffix", default=".hxx")
    gen.add_argument("--source-suffix", default=".cxx")
    gen.add_argument("--inline-suffix", default=".ixx")
    gen.add_argument("--std", dest="standard", default=None, help="C++ standard (17, c++20, ...).")
    gen.add_argument("--include-dir", dest="include_dirs", action="append", default=[])
    gen.add_argument("--define", dest="definitions", action="append", default=[])
    gen.add_argument("--profiles", nargs="+", default=[])
    gen.add_argument("--odb-option", dest="odb_options", action="append", default=[], help="Raw option passed to odb.")
    gen.add_argument("--generate-query", action="store_true")
    gen.add_argument("--generate-session", action="store_true")
    gen.add_argument("--generate-schema", action="store_true")
    gen.add_argument("--generate-prepared", action="store_true")
    gen.add_argument("--schema-format", default="sql")
    gen.add_argument("--table-prefix", default=None)
    gen.add_argument("--changelog", default=None)
    gen.add_argument("--changelog-dir", default=None)
    gen.add_argument("--at-once", action="store_true", help="One compiler invocation for all sources.")
    gen.add_argument("--no-auto-link", action="store_true")

    proj = p.add_argument_group("project")
    proj.add_argument("--source-dir", default=None, help="Base for relative sources (default: CWD).")
    proj.add_argument("--binary-dir", default=None, help="Build directory (default: <source-dir>/build).")
    proj.add_argument("--odb-root", default=None, help="Extra discovery root searched first.")
    proj.add_argument("--require", nargs="+", default=[], help="Components that must be found.")

    out = p.add_argument_group("output")
    out.add_argument("--emit", choices=["json", "ninja", "sources", "none"], default="json")
    out.add_argument("--build", action="store_true", help="Run stale generation tasks.")
    out.add_argument("--max-workers", type=int, default=None)
    out.add_argument("--verbose", action="store_true")
    out.add_argument("--version", "-V", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def _components_for(args: argparse.Namespace) -> List[str]:
    comps: List[str] = []
    for token in [*(args.databases or []), *([args.db] if args.db else [])]:
        t = token.strip().lower()
        if t != Backend.COMMON.value and t not in comps:
            comps.append(t)
    for token in args.profiles or []:
        root = token.strip().lower().split("/", 1)[0]
        if root in {p.value for p in Profile} and root not in comps:
            comps.append(root)
    return comps


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    # Settings may already be cached from import time; rebuild them with the .env values.
    get_settings.cache_clear()
    args = _parse_args(argv)

    init_logging(level=logging.DEBUG if args.verbose else None)
    log = get_logger("odb_builder.cli")
    cfg = get_settings()

    source_dir = Path(args.source_dir or Path.cwd())
    project = Project(source_dir, args.binary_dir, cxx_standard=cfg.CXX_STANDARD)
    for name in args.targets:
        if not project.has_target(name):
            project.add_target(name)

    try:
        roots = None
        if args.odb_root:
            roots = [Path(args.odb_root), *cfg.search_roots]
        discovery = locate(_components_for(args), required=args.require, search_paths=roots)

        result = odb_compile(
            {
                "targets": args.targets,
                "sources": args.sources,
                "db": args.db,
                "databases": args.databases,
                "multi_database": args.multi_database,
                "output_dir": args.output_dir,
                "header_suffix": args.header_suffix,
                "source_suffix": args.source_suffix,
                "inline_suffix": args.inline_suffix,
                "standard": args.standard,
                "include_dirs": args.include_dirs,
                "definitions": args.definitions,
                "profiles": args.profiles,
                "odb_options": args.odb_options,
                "generate_query": args.generate_query,
                "generate_session": args.generate_session,
                "generate_schema": args.generate_schema,
                "generate_prepared": args.generate_prepared,
                "schema_format": args.schema_format,
                "table_prefix": args.table_prefix,
                "changelog": args.changelog,
                "changelog_dir": args.changelog_dir,
                "at_once": args.at_once,
                "no_auto_link": args.no_auto_link,
            },
            discovery=discovery,
            project=project,
        )

        if args.emit == "json":
            print(graph_to_json(result.graph, extra={
                "links": result.links.to_dict(),
                "linked": list(result.linked),
                "generated_sources": [str(p) for p in result.generated_sources],
            }))
        elif args.emit == "ninja":
            print(render_ninja(result.graph), end="")
        elif args.emit == "sources":
            for src in result.generated_sources:
                print(src)

        if args.build:
            report = GraphRunner(result.graph, max_workers=args.max_workers).run()
            log.info("odb_build_summary", ran=list(report.ran), up_to_date=list(report.up_to_date))

    except OdbBuildError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
