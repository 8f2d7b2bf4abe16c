# odb_builder/components.py
"""
Closed vocabularies for the ODB toolchain.

- Backend:   database selectors accepted by `odb -d` (plus the `common` pseudo-backend)
- Profile:   `odb --profile` roots (sub-profiles like `boost/date-time` share the root's library)
- Component: discoverable runtime libraries, each with its associated data
             (library base name, link identifier, header used to probe the install)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

CORE_LIBRARY = "ODB::ODB"


@dataclass(frozen=True, slots=True)
class ComponentSpec:
    library: str  # base library name, e.g. "odb-pgsql"
    link_id: str  # link identifier, e.g. "ODB::PostgreSQL"
    header: str  # header probe relative to an include dir


class Component(str, Enum):
    PGSQL = "pgsql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    ORACLE = "oracle"
    MSSQL = "mssql"
    BOOST = "boost"
    QT = "qt"

    @property
    def spec(self) -> ComponentSpec:
        return _COMPONENT_TABLE[self]

    @property
    def link_id(self) -> str:
        return self.spec.link_id

    @classmethod
    def lookup(cls, token: str) -> Optional["Component"]:
        try:
            return cls((token or "").strip().lower())
        except ValueError:
            return None


_COMPONENT_TABLE: Dict[Component, ComponentSpec] = {
    Component.PGSQL: ComponentSpec("odb-pgsql", "ODB::PostgreSQL", "odb/pgsql/database.hxx"),
    Component.MYSQL: ComponentSpec("odb-mysql", "ODB::MySQL", "odb/mysql/database.hxx"),
    Component.SQLITE: ComponentSpec("odb-sqlite", "ODB::SQLite", "odb/sqlite/database.hxx"),
    Component.ORACLE: ComponentSpec("odb-oracle", "ODB::Oracle", "odb/oracle/database.hxx"),
    Component.MSSQL: ComponentSpec("odb-mssql", "ODB::MSSQL", "odb/mssql/database.hxx"),
    Component.BOOST: ComponentSpec("odb-boost", "ODB::Boost", "odb/boost/version.hxx"),
    Component.QT: ComponentSpec("odb-qt", "ODB::Qt", "odb/qt/version.hxx"),
}


class Backend(str, Enum):
    COMMON = "common"
    MYSQL = "mysql"
    PGSQL = "pgsql"
    SQLITE = "sqlite"
    ORACLE = "oracle"
    MSSQL = "mssql"

    @property
    def component(self) -> Optional[Component]:
        """Runtime component for a real backend; `common` has none."""
        if self is Backend.COMMON:
            return None
        return Component(self.value)

    @property
    def is_real(self) -> bool:
        return self is not Backend.COMMON


class Profile(str, Enum):
    BOOST = "boost"
    QT = "qt"

    @property
    def component(self) -> Component:
        return Component(self.value)

    @classmethod
    def from_token(cls, token: str) -> "Profile":
        """`boost/date-time` -> Profile.BOOST. Raises ValueError for unknown roots."""
        root = (token or "").strip().lower().split("/", 1)[0]
        return cls(root)


class MultiDatabaseMode(str, Enum):
    DYNAMIC = "dynamic"
    STATIC = "static"


class SchemaFormat(str, Enum):
    SQL = "sql"
    EMBEDDED = "embedded"
    SEPARATE = "separate"


__all__ = [
    "CORE_LIBRARY",
    "Backend",
    "Component",
    "ComponentSpec",
    "MultiDatabaseMode",
    "Profile",
    "SchemaFormat",
]
