from supabase import Client
from app.modules.board_table import cells
from app.modules.board_table.schemas import ColumnCreate, ColumnResponse, ItemResponse
from typing import Any, Dict, List, Optional
from datetime import date, datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

DONE = "Done"
WORKING = "Working on it"
STUCK = "Stuck"


def first_column_of_type(columns: List[Dict[str, Any]], column_type: str) -> Optional[Dict[str, Any]]:
    for column in columns:
        if column.get("type") == column_type:
            return column
    return None


def board_stats(grid: Dict[str, Any]) -> Dict[str, int]:
    """Item totals plus Done / Working on it / Stuck counts from the first status column"""
    items = grid["items"]
    stats = {"total": len(items), "done": 0, "in_progress": 0, "stuck": 0}
    status_column = first_column_of_type(grid["columns"], cells.STATUS)
    if status_column is None:
        return stats

    for item in items:
        value = cells.resolve_cell_value(item, status_column, grid["values"])
        if value == DONE:
            stats["done"] += 1
        elif value == WORKING:
            stats["in_progress"] += 1
        elif value == STUCK:
            stats["stuck"] += 1
    return stats


def filter_items(
    grid: Dict[str, Any],
    name: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Items whose name contains `name` (any case) and whose status/priority cells match exactly"""
    status_column = first_column_of_type(grid["columns"], cells.STATUS)
    priority_column = first_column_of_type(grid["columns"], cells.PRIORITY)
    needle = name.strip().lower() if name else ""

    matched = []
    for item in grid["items"]:
        if needle and needle not in (item.get("name") or "").lower():
            continue
        if status:
            if status_column is None:
                continue
            if cells.resolve_cell_value(item, status_column, grid["values"]) != status:
                continue
        if priority:
            if priority_column is None:
                continue
            if cells.resolve_cell_value(item, priority_column, grid["values"]) != priority:
                continue
        matched.append(item)
    return matched


class BoardTableService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_columns(self, board_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("board_columns")\
            .select("*")\
            .eq("board_id", board_id)\
            .order("order", nullsfirst=False)\
            .execute()
        return result.data or []

    def list_items(self, board_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("board_items")\
            .select("*")\
            .eq("board_id", board_id)\
            .order("order", nullsfirst=False)\
            .execute()
        return result.data or []

    def list_values(self, item_ids: List[str]) -> List[Dict[str, Any]]:
        if not item_ids:
            return []
        result = self.supabase.table("item_values")\
            .select("*")\
            .in_("item_id", item_ids)\
            .execute()
        return result.data or []

    def get_grid(self, board_id: str) -> Dict[str, Any]:
        """Columns, items and every value row of the loaded items"""
        try:
            columns = self.list_columns(board_id)
            items = self.list_items(board_id)
            values = self.list_values([item["id"] for item in items])
            return {"board_id": board_id, "columns": columns, "items": items, "values": values}
        except Exception as e:
            logger.error(f"Error loading grid for board {board_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def grid_view(self, grid: Dict[str, Any], items: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Grid with every cell resolved to its editor value, keyed by column id"""
        columns = grid["columns"]
        rows = []
        for item in (grid["items"] if items is None else items):
            rows.append({
                "item": ItemResponse(**item),
                "cells": {
                    column["id"]: cells.resolve_cell_value(item, column, grid["values"])
                    for column in columns
                },
            })
        return {
            "board_id": grid["board_id"],
            "columns": [ColumnResponse(**column) for column in columns],
            "rows": rows,
            "total_items": len(grid["items"]),
        }

    def _next_order(self, table: str, board_id: str) -> int:
        result = self.supabase.table(table)\
            .select("order")\
            .eq("board_id", board_id)\
            .order("order", desc=True, nullsfirst=False)\
            .limit(1)\
            .execute()
        if result.data and result.data[0].get("order") is not None:
            return result.data[0]["order"] + 1
        return 1

    def create_column(self, board_id: str, column_data: ColumnCreate) -> ColumnResponse:
        """Append a column; existing items get no value rows for it until edited"""
        name = column_data.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Column name is required")

        options = column_data.options
        if column_data.type in cells.OPTION_TYPES:
            options = [o for o in (options or []) if o] or list(cells.DEFAULT_OPTIONS[column_data.type])
        else:
            options = None

        try:
            result = self.supabase.table("board_columns").insert({
                "board_id": board_id,
                "name": name,
                "type": column_data.type,
                "order": self._next_order("board_columns", board_id),
                "options": options,
                "is_readonly": column_data.type in cells.TIMESTAMP_TYPES
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create column")

            logger.info(f"Column {result.data[0]['id']} ({column_data.type}) added to board {board_id}")
            return ColumnResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating column on board {board_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def create_item(self, board_id: str, name: str, today: Optional[date] = None) -> ItemResponse:
        """Append an item and seed one default value row per existing column"""
        name = name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Item name is required")

        try:
            result = self.supabase.table("board_items").insert({
                "board_id": board_id,
                "name": name,
                "order": self._next_order("board_items", board_id)
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create item")
            item = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating item on board {board_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        try:
            columns = self.list_columns(board_id)
            defaults = [
                {"item_id": item["id"], "column_id": column["id"], **cells.default_fields(column, today)}
                for column in columns
            ]
            if defaults:
                self.supabase.table("item_values").insert(defaults).execute()
        except Exception as e:
            # The item stays; missing cells resolve to their empty value
            logger.error(f"Error creating default values for item {item['id']}: {e}")

        logger.info(f"Item {item['id']} added to board {board_id}")
        return ItemResponse(**item)

    def _get_row(self, table: str, row_id: str, board_id: str, label: str) -> Dict[str, Any]:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("id", row_id)\
            .eq("board_id", board_id)\
            .maybe_single()\
            .execute()
        if result is None or not result.data:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return result.data

    def commit_cell_value(self, board_id: str, item_id: str, column_id: str, raw: Any) -> Dict[str, Any]:
        """Store one cell: the column type's field is set, the other typed fields are cleared"""
        try:
            column = self._get_row("board_columns", column_id, board_id, "Column")
            self._get_row("board_items", item_id, board_id, "Item")

            if cells.is_readonly(column):
                raise HTTPException(status_code=409, detail=f"Column '{column['name']}' is read-only")

            try:
                cell = cells.parse_input(column, raw)
            except cells.CellValueError as e:
                raise HTTPException(status_code=422, detail=str(e))

            result = self.supabase.table("item_values").upsert({
                "item_id": item_id,
                "column_id": column_id,
                **cells.to_storage(cell),
                "updated_at": datetime.now(timezone.utc).isoformat()
            }, on_conflict="item_id,column_id").execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save cell value")

            row = result.data[0]
            return {
                "item_id": item_id,
                "column_id": column_id,
                "value": cells.to_editor(cells.from_row(column, row)),
                "row": row,
            }
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error saving cell ({item_id}, {column_id}): {e}")
            raise HTTPException(status_code=500, detail=str(e))
