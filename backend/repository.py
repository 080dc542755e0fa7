"""Persistence for menu rows.

``MenuService`` only talks to the ``MenuRepository`` interface. Two stores
implement it: Oracle (``app_menus`` table) and a dict held in process memory.
Both return rows ordered by ``order`` with insertion order as tie-break, and
both hand back fresh ``MenuNode`` objects with ``children`` unset.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from database import DatabaseManager, db_manager, init_database
from models import MenuNode

logger = logging.getLogger(__name__)

# Fields a caller may write; everything else is owned by the store.
MENU_FIELDS = ("name", "description", "icon", "url", "order", "is_active", "parent_id")


class _Unset:
    def __repr__(self):
        return "UNSET"


# Distinguishes "no parent filter" from "parent_id IS NULL"
UNSET: Any = _Unset()


def _writable(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(MENU_FIELDS)
    if unknown:
        raise ValueError(f"Unknown menu field(s): {', '.join(sorted(unknown))}")
    return dict(fields)


def new_menu_id() -> str:
    return uuid.uuid4().hex


class MenuRepository(ABC):
    name: str = "abstract"

    def init_schema(self) -> None:
        """Prepare storage; no-op unless the store needs DDL."""

    @abstractmethod
    def find_by_id(self, menu_id: str) -> Optional[MenuNode]:
        ...

    @abstractmethod
    def find_many(
        self,
        parent_id: Any = UNSET,
        name: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> List[MenuNode]:
        ...

    @abstractmethod
    def create(self, fields: Dict[str, Any]) -> MenuNode:
        ...

    @abstractmethod
    def update(self, menu_id: str, fields: Dict[str, Any]) -> MenuNode:
        ...

    @abstractmethod
    def delete(self, menu_id: str) -> None:
        ...

    @abstractmethod
    def run_atomic(self, updates: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        """Apply every ``(menu_id, fields)`` update or none of them."""


class InMemoryMenuRepository(MenuRepository):
    """Dict-backed store for tests and database-less runs.

    Mirrors the table's foreign key: unknown parents and deleting a row that
    still has children raise ``ValueError``.
    """

    name = "memory"

    def __init__(self, id_factory=new_menu_id, clock=None):
        self._rows: Dict[str, MenuNode] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _check_parent(self, rows: Dict[str, MenuNode], parent_id: Optional[str]) -> None:
        if parent_id is not None and parent_id not in rows:
            raise ValueError(f"Parent menu {parent_id} does not exist")

    def find_by_id(self, menu_id: str) -> Optional[MenuNode]:
        with self._lock:
            row = self._rows.get(menu_id)
            return row.model_copy() if row else None

    def find_many(self, parent_id=UNSET, name=None, exclude_id=None) -> List[MenuNode]:
        with self._lock:
            rows = [
                row for row in self._rows.values()
                if (parent_id is UNSET or row.parent_id == parent_id)
                and (name is None or row.name == name)
                and (exclude_id is None or row.id != exclude_id)
            ]
            return [row.model_copy() for row in sorted(rows, key=lambda r: r.order)]

    def create(self, fields: Dict[str, Any]) -> MenuNode:
        data = _writable(fields)
        now = self._clock()
        with self._lock:
            self._check_parent(self._rows, data.get("parent_id"))
            row = MenuNode(id=self._id_factory(), created_at=now, updated_at=now, **data)
            self._rows[row.id] = row
            return row.model_copy()

    def update(self, menu_id: str, fields: Dict[str, Any]) -> MenuNode:
        data = _writable(fields)
        with self._lock:
            if menu_id not in self._rows:
                raise LookupError(f"Menu {menu_id} does not exist")
            if "parent_id" in data:
                self._check_parent(self._rows, data["parent_id"])
            row = self._rows[menu_id].model_copy(update={**data, "updated_at": self._clock()})
            self._rows[menu_id] = row
            return row.model_copy()

    def delete(self, menu_id: str) -> None:
        with self._lock:
            if any(row.parent_id == menu_id for row in self._rows.values()):
                raise ValueError(f"Menu {menu_id} still has children")
            self._rows.pop(menu_id, None)

    def run_atomic(self, updates: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        with self._lock:
            staged = dict(self._rows)
            now = self._clock()
            for menu_id, fields in updates:
                if menu_id not in staged:
                    raise LookupError(f"Menu {menu_id} does not exist")
                data = _writable(fields)
                if "parent_id" in data:
                    self._check_parent(staged, data["parent_id"])
                staged[menu_id] = staged[menu_id].model_copy(update={**data, "updated_at": now})
            self._rows = staged


class OracleMenuRepository(MenuRepository):
    """``app_menus`` table accessed through the shared connection pool."""

    name = "oracle"

    _COLUMNS = {
        "name": "name",
        "description": "description",
        "icon": "icon",
        "url": "url",
        "order": "sort_order",
        "is_active": "is_active",
        "parent_id": "parent_id",
    }

    _SELECT = """
    SELECT id, name, description, icon, url, sort_order, is_active, parent_id,
           created_at, updated_at
    FROM app_menus
    """

    def __init__(self, manager: Optional[DatabaseManager] = None):
        self.manager = manager or db_manager

    def init_schema(self) -> None:
        init_database(self.manager)

    @staticmethod
    def _row_to_node(row: Dict[str, Any]) -> MenuNode:
        return MenuNode(
            id=row["ID"],
            name=row["NAME"],
            description=row["DESCRIPTION"],
            icon=row["ICON"],
            url=row["URL"],
            order=int(row["SORT_ORDER"] or 0),
            is_active=bool(row["IS_ACTIVE"]),
            parent_id=row["PARENT_ID"],
            created_at=row["CREATED_AT"],
            updated_at=row["UPDATED_AT"],
        )

    def _column_values(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in _writable(fields).items():
            if key == "is_active":
                value = 1 if value else 0
            values[self._COLUMNS[key]] = value
        return values

    def find_by_id(self, menu_id: str) -> Optional[MenuNode]:
        rows = self.manager.execute_query(self._SELECT + " WHERE id = :id", {"id": menu_id})
        return self._row_to_node(rows[0]) if rows else None

    def find_many(self, parent_id=UNSET, name=None, exclude_id=None) -> List[MenuNode]:
        clauses: List[str] = []
        params: Dict[str, Any] = {}
        if parent_id is not UNSET:
            if parent_id is None:
                clauses.append("parent_id IS NULL")
            else:
                clauses.append("parent_id = :parent_id")
                params["parent_id"] = parent_id
        if name is not None:
            clauses.append("name = :name")
            params["name"] = name
        if exclude_id is not None:
            clauses.append("id <> :exclude_id")
            params["exclude_id"] = exclude_id

        sql = self._SELECT
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY sort_order, seq"
        return [self._row_to_node(row) for row in self.manager.execute_query(sql, params)]

    def create(self, fields: Dict[str, Any]) -> MenuNode:
        menu_id = new_menu_id()
        values = self._column_values(fields)
        values["id"] = menu_id
        columns = ", ".join(values)
        binds = ", ".join(f":v_{column}" for column in values)
        params = {f"v_{column}": value for column, value in values.items()}
        self.manager.execute_non_query(f"INSERT INTO app_menus ({columns}) VALUES ({binds})", params)
        return self.find_by_id(menu_id)

    def _update_statement(self, menu_id: str, fields: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        values = self._column_values(fields)
        assignments = [f"{column} = :v_{column}" for column in values]
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        params = {f"v_{column}": value for column, value in values.items()}
        params["menu_id"] = menu_id
        return f"UPDATE app_menus SET {', '.join(assignments)} WHERE id = :menu_id", params

    def update(self, menu_id: str, fields: Dict[str, Any]) -> MenuNode:
        sql, params = self._update_statement(menu_id, fields)
        if self.manager.execute_non_query(sql, params) == 0:
            raise LookupError(f"Menu {menu_id} does not exist")
        return self.find_by_id(menu_id)

    def delete(self, menu_id: str) -> None:
        self.manager.execute_non_query("DELETE FROM app_menus WHERE id = :id", {"id": menu_id})

    def run_atomic(self, updates: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        statements = [self._update_statement(menu_id, fields) for menu_id, fields in updates]
        self.manager.execute_batch(statements, require_rows=True)
        logger.debug(f"Committed batch of {len(statements)} menu update(s)")


def create_repository(store: str) -> MenuRepository:
    if store == "memory":
        return InMemoryMenuRepository()
    if store == "oracle":
        return OracleMenuRepository()
    raise ValueError(f"Unknown MENU_STORE '{store}' (expected 'oracle' or 'memory')")
