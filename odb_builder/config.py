# odb_builder/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for odb-builder.
    Values come from the environment (or a local .env file).
    """

    # --- Toolchain discovery ---
    # Same roots FindODB honours: ODB_ROOT first, then ODB_DIR.
    ODB_ROOT: Optional[str] = None
    ODB_DIR: Optional[str] = None

    # --- Generation defaults ---
    ODB_OUTPUT_SUBDIR: str = "odb_gen"
    # Ambient project-wide C++ standard (e.g. "17"); an explicit request standard wins.
    CXX_STANDARD: Optional[str] = None

    # --- Execution ---
    MAX_WORKERS: Optional[int] = None
    ODB_TIMEOUT_SEC: Optional[int] = None

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" | "json"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def search_roots(self) -> List[Path]:
        """Discovery hint roots, most specific first."""
        roots: List[Path] = []
        for raw in (self.ODB_ROOT, self.ODB_DIR):
            if raw and raw.strip():
                roots.append(Path(raw.strip()).expanduser())
        roots.extend(
            Path(p)
            for p in (
                "/usr",
                "/usr/local",
                "/opt/odb",
                "/opt/local",
                "C:/Program Files",
                "C:/Program Files (x86)",
            )
        )
        return roots


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

