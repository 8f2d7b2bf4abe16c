# odb_builder/modes.py
from __future__ import annotations

from typing import Optional, Sequence

from .components import Backend, MultiDatabaseMode
from .exceptions import ValidationError


def infer_mode(databases: Sequence[Backend], explicit: Optional[str] = None) -> Optional[MultiDatabaseMode]:
    """
    Decide the multi-database mode for a resolved backend list.

    Precedence:
      1) an explicit MULTI_DATABASE token (must be 'dynamic' or 'static');
      2) more than one backend -> dynamic;
      3) the only backend is `common` -> dynamic (shared code still needs the
         multi-database scaffolding);
      4) a single concrete backend -> None (ordinary single-database generation).
    """
    if explicit is not None and str(explicit).strip():
        token = str(explicit).strip().lower()
        try:
            return MultiDatabaseMode(token)
        except ValueError:
            raise ValidationError(
                f"odb_compile: MULTI_DATABASE must be 'dynamic' or 'static', got '{explicit}'."
            ) from None

    if len(databases) > 1:
        return MultiDatabaseMode.DYNAMIC
    if len(databases) == 1 and databases[0] is Backend.COMMON:
        return MultiDatabaseMode.DYNAMIC
    return None


__all__ = ["infer_mode"]
