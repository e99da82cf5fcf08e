"""
In-memory state of one live board.

A BoardGrid holds the columns, items and cell rows of a board and changes
only through apply(). Messages come from two directions: the local user
(LocalEdit, followed by RemoteConfirm or RemoteFailure once the write
returns) and the change feed (RemoteEvent). Cell rows are keyed by
(item_id, column_id), so an optimistic temp row and the stored row for the
same cell never coexist.
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from app.modules.board_table import cells

TEMP_PREFIX = "temp-"

ITEMS_TABLE = "board_items"
COLUMNS_TABLE = "board_columns"
VALUES_TABLE = "item_values"

CellKey = Tuple[str, str]

_NO_PENDING = object()


@dataclass(frozen=True)
class LocalEdit:
    item_id: str
    column_id: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class RemoteConfirm:
    row: Dict[str, Any]


@dataclass(frozen=True)
class RemoteFailure:
    item_id: str
    column_id: str


@dataclass(frozen=True)
class RemoteEvent:
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)


GridMessage = Union[LocalEdit, RemoteConfirm, RemoteFailure, RemoteEvent]


def temp_id() -> str:
    return f"{TEMP_PREFIX}{uuid.uuid4()}"


def is_temp(row: Optional[Dict[str, Any]]) -> bool:
    return bool(row) and str(row.get("id", "")).startswith(TEMP_PREFIX)


def _sort_key(row: Dict[str, Any]):
    order = row.get("order")
    return (order is None, order if order is not None else 0)


class BoardGrid:
    def __init__(
        self,
        board_id: str,
        columns: List[Dict[str, Any]],
        items: List[Dict[str, Any]],
        values: List[Dict[str, Any]]
    ):
        self.board_id = board_id
        self.columns: Dict[str, Dict[str, Any]] = {c["id"]: dict(c) for c in columns}
        self.items: Dict[str, Dict[str, Any]] = {i["id"]: dict(i) for i in items}
        self.values: Dict[CellKey, Dict[str, Any]] = {}
        for row in values:
            if row.get("item_id") in self.items:
                self.values[(row["item_id"], row["column_id"])] = dict(row)
        # Row each cell had before its first unconfirmed local edit (None: no row)
        self.pending: Dict[CellKey, Optional[Dict[str, Any]]] = {}

    @classmethod
    def from_grid(cls, grid: Dict[str, Any]) -> "BoardGrid":
        return cls(grid["board_id"], grid["columns"], grid["items"], grid["values"])

    def ordered_columns(self) -> List[Dict[str, Any]]:
        return sorted(self.columns.values(), key=_sort_key)

    def ordered_items(self) -> List[Dict[str, Any]]:
        return sorted(self.items.values(), key=_sort_key)

    def cell_value(self, item_id: str, column_id: str) -> Any:
        column = self.columns.get(column_id)
        if column is None:
            return None
        row = self.values.get((item_id, column_id))
        if row is None:
            return cells.empty_editor_value(column)
        return cells.to_editor(cells.from_row(column, row))

    def cell_message(self, item_id: str, column_id: str) -> Dict[str, Any]:
        row = self.values.get((item_id, column_id))
        return {
            "type": "cell",
            "item_id": item_id,
            "column_id": column_id,
            "value": self.cell_value(item_id, column_id),
            "pending": (item_id, column_id) in self.pending,
            "row_id": row.get("id") if row else None,
        }

    def snapshot(self) -> Dict[str, Any]:
        columns = self.ordered_columns()
        return {
            "board_id": self.board_id,
            "columns": columns,
            "items": [
                {**item, "cells": {c["id"]: self.cell_value(item["id"], c["id"]) for c in columns}}
                for item in self.ordered_items()
            ],
        }

    def apply(self, message: GridMessage) -> bool:
        """Apply one message; False when it was discarded"""
        if isinstance(message, LocalEdit):
            return self._local_edit(message)
        if isinstance(message, RemoteConfirm):
            return self._confirm(message.row)
        if isinstance(message, RemoteFailure):
            return self._rollback((message.item_id, message.column_id))
        if isinstance(message, RemoteEvent):
            return self._remote_event(message)
        raise TypeError(f"Unknown grid message: {message!r}")

    def _local_edit(self, edit: LocalEdit) -> bool:
        if edit.item_id not in self.items:
            return False
        key = (edit.item_id, edit.column_id)
        current = self.values.get(key)
        if key not in self.pending:
            self.pending[key] = copy.deepcopy(current)
        if current is None:
            current = {"id": temp_id(), "item_id": edit.item_id, "column_id": edit.column_id}
        self.values[key] = {**current, **edit.fields}
        return True

    def _confirm(self, row: Dict[str, Any]) -> bool:
        key = (row["item_id"], row["column_id"])
        self.pending.pop(key, None)
        if row["item_id"] not in self.items:
            return False
        self.values[key] = dict(row)
        return True

    def _rollback(self, key: CellKey) -> bool:
        prior = self.pending.pop(key, _NO_PENDING)
        if prior is _NO_PENDING:
            return False
        if prior is None:
            self.values.pop(key, None)
        else:
            self.values[key] = prior
        return True

    def _remote_event(self, event: RemoteEvent) -> bool:
        event_type = event.event_type.upper()
        if event.table == VALUES_TABLE:
            return self._value_event(event_type, event.new, event.old)
        if event.table == ITEMS_TABLE:
            return self._row_event(self.items, event_type, event.new, event.old, self._drop_item_values)
        if event.table == COLUMNS_TABLE:
            return self._row_event(self.columns, event_type, event.new, event.old, self._drop_column_values)
        return False

    def _row_event(self, rows, event_type, new, old, on_delete) -> bool:
        if event_type == "DELETE":
            row_id = old.get("id")
            if row_id not in rows:
                return False
            del rows[row_id]
            on_delete(row_id)
            return True

        row_id = new.get("id")
        if not row_id or new.get("board_id", self.board_id) != self.board_id:
            return False
        if event_type == "INSERT":
            if row_id in rows:
                return False
            rows[row_id] = dict(new)
            return True
        if event_type == "UPDATE":
            rows[row_id] = {**rows.get(row_id, {}), **new}
            return True
        return False

    def _drop_item_values(self, item_id: str) -> None:
        for key in [k for k in self.values if k[0] == item_id]:
            del self.values[key]
            self.pending.pop(key, None)

    def _drop_column_values(self, column_id: str) -> None:
        for key in [k for k in self.values if k[1] == column_id]:
            del self.values[key]
            self.pending.pop(key, None)

    def _find_value(self, row_id: str) -> Optional[CellKey]:
        for key, row in self.values.items():
            if row.get("id") == row_id:
                return key
        return None

    def _stored_row_changed(self, key: CellKey, row: Optional[Dict[str, Any]]) -> None:
        # A failed local write must fall back to what the store now holds
        if key in self.pending:
            self.pending[key] = copy.deepcopy(row)

    def _value_event(self, event_type: str, new: Dict[str, Any], old: Dict[str, Any]) -> bool:
        if event_type == "DELETE":
            key = self._find_value(old.get("id"))
            if key is None:
                return False
            del self.values[key]
            self._stored_row_changed(key, None)
            return True

        if not new.get("id") or new.get("item_id") not in self.items:
            return False
        key = (new["item_id"], new["column_id"])

        if event_type == "INSERT":
            if self._find_value(new["id"]) is not None:
                return False
            existing = self.values.get(key)
            if existing is not None and not is_temp(existing):
                return False
            self.values[key] = dict(new)
            self._stored_row_changed(key, new)
            return True

        if event_type == "UPDATE":
            found = self._find_value(new["id"])
            if found is None:
                # Row created after the snapshot whose INSERT never reached us
                existing = self.values.get(key)
                if existing is not None and not is_temp(existing):
                    return False
                self.values[key] = dict(new)
                self._stored_row_changed(key, new)
                return True
            prior = self.pending.get(found) or {}
            self.values[found] = {**self.values[found], **new}
            self._stored_row_changed(found, {**prior, **new})
            return True
        return False
