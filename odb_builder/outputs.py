# odb_builder/outputs.py
"""
Predict the files the ODB compiler writes for one input, without running it.

For input `<stem>.hxx` and output dir OUT:

  always:                  OUT/<stem>-odb{.hxx,.ixx,.cxx}
  multi-database mode:     OUT/<stem>-odb-<db>{.hxx,.ixx,.cxx}    per backend != common
  schema, format=sql:      OUT/<stem>-<db>.sql                    per backend != common
  schema, format=separate: OUT/<stem>-schema-<db>.cxx             per backend != common
                           (OUT/<stem>-schema.cxx in single-database mode)
  schema, format=embedded: nothing extra (the schema lives in the generated source)

Suffixes follow the request's header/inline/source suffixes. In single-database
mode the one backend's code lives in the common triple.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

from .components import SchemaFormat
from .models import ArtifactSet, ResolvedOptions


def input_stem(path: Path) -> str:
    """`models/person.hxx` -> `person` (the compiler drops only the last extension)."""
    return Path(path).stem


def _triple(out: Path, base: str, options: ResolvedOptions) -> Tuple[Path, Path, Path]:
    return (
        out / f"{base}{options.header_suffix}",
        out / f"{base}{options.inline_suffix}",
        out / f"{base}{options.source_suffix}",
    )


def predict_artifacts(stem: str, options: ResolvedOptions) -> ArtifactSet:
    out = options.output_dir
    files: List[Path] = []
    compilable: List[Path] = []

    hxx, ixx, cxx = _triple(out, f"{stem}-odb", options)
    files += [hxx, ixx, cxx]
    compilable.append(cxx)

    if options.is_multi_database:
        for backend in options.real_backends:
            hxx, ixx, cxx = _triple(out, f"{stem}-odb-{backend.value}", options)
            files += [hxx, ixx, cxx]
            compilable.append(cxx)

    if options.generate_schema:
        for backend in options.real_backends:
            if options.schema_format is SchemaFormat.SQL:
                files.append(out / f"{stem}-{backend.value}.sql")
            elif options.schema_format is SchemaFormat.SEPARATE:
                # The compiler only adds the backend to the schema file name in multi-database mode.
                suffix = f"-schema-{backend.value}" if options.is_multi_database else "-schema"
                schema_cxx = out / f"{stem}{suffix}{options.source_suffix}"
                files.append(schema_cxx)
                compilable.append(schema_cxx)

    return ArtifactSet(stem=stem, files=tuple(files), compilable=tuple(compilable))


def predict_all(inputs: Sequence[Path], options: ResolvedOptions) -> Tuple[ArtifactSet, ...]:
    """ArtifactSets for every input, in input order."""
    return tuple(predict_artifacts(input_stem(p), options) for p in inputs)


__all__ = ["input_stem", "predict_all", "predict_artifacts"]
