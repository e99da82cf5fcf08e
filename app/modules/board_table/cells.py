"""
Typed cell values.

Each board column declares a type; the type decides which item_values field
holds the cell (value, number_value, date_value or boolean_value), how raw
editor input is converted before it is stored, and what shape the editor gets
back. All of those conversions live here so routes, the grid reducer and the
live board socket agree on one mapping.

    editor input --parse_input--> CellValue --to_storage--> item_values fields
    item_values row --from_row--> CellValue --to_editor--> editor value
"""

import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Union

TEXT = "text"
NUMBER = "number"
DATE = "date"
TIMESTAMP = "timestamp"
LAST_UPDATED = "last updated"
STATUS = "status"
PRIORITY = "priority"
CHECKBOX = "checkbox"
TEXTAREA = "textarea"
NOTES = "notes"
FILE = "file"
DATE_RANGE = "date-range"

COLUMN_TYPES = [
    TEXT, NUMBER, DATE, TIMESTAMP, LAST_UPDATED, STATUS,
    PRIORITY, CHECKBOX, TEXTAREA, NOTES, FILE, DATE_RANGE,
]
TIMESTAMP_TYPES = {TIMESTAMP, LAST_UPDATED}
OPTION_TYPES = {STATUS, PRIORITY}

DEFAULT_OPTIONS = {
    STATUS: ["Not started", "Working on it", "Stuck", "Done"],
    PRIORITY: ["Low", "Medium", "High"],
}

TYPED_FIELDS = ("value", "number_value", "date_value", "boolean_value")


class CellValueError(ValueError):
    """Raw input cannot be stored in a column of this type"""


@dataclass(frozen=True)
class TextCell:
    text: Optional[str]


@dataclass(frozen=True)
class NumberCell:
    number: Optional[float]


@dataclass(frozen=True)
class DateCell:
    day: Optional[date]


@dataclass(frozen=True)
class BooleanCell:
    checked: Optional[bool]


@dataclass(frozen=True)
class DateRangeCell:
    start: Optional[date]
    end: Optional[date]


CellValue = Union[TextCell, NumberCell, DateCell, BooleanCell, DateRangeCell]


def storage_field(column_type: str) -> str:
    if column_type == NUMBER:
        return "number_value"
    if column_type == DATE or column_type in TIMESTAMP_TYPES:
        return "date_value"
    if column_type == CHECKBOX:
        return "boolean_value"
    return "value"


def is_readonly(column: Mapping[str, Any]) -> bool:
    return bool(column.get("is_readonly")) or column.get("type") in TIMESTAMP_TYPES


def column_options(column: Mapping[str, Any]) -> Optional[list]:
    options = column.get("options")
    return list(options) if isinstance(options, list) else None


def _parse_day(raw: Any) -> Optional[date]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    # "2024-05-01" and "2024-05-01T10:00:00.000Z" both keep only the date part
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise CellValueError(f"Invalid date: {text!r}")


def _parse_number(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        if isinstance(raw, bool):
            raise CellValueError("Invalid number: boolean")
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            raise CellValueError(f"Invalid number: {text!r}")
    if math.isnan(number) or math.isinf(number):
        raise CellValueError("Invalid number: not finite")
    return number


def _parse_bool(raw: Any) -> Optional[bool]:
    if raw is None or isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text == "":
        return None
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise CellValueError(f"Invalid checkbox value: {raw!r}")


def _parse_range(raw: Any) -> DateRangeCell:
    if raw is None or raw == "":
        return DateRangeCell(None, None)
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise CellValueError("Invalid date range: expected {start, end}")
    if not isinstance(raw, Mapping):
        raise CellValueError("Invalid date range: expected {start, end}")
    return DateRangeCell(_parse_day(raw.get("start")), _parse_day(raw.get("end")))


def parse_input(column: Mapping[str, Any], raw: Any) -> CellValue:
    """Convert editor input into the column type's cell value"""
    column_type = column.get("type")
    if column_type == NUMBER:
        return NumberCell(_parse_number(raw))
    if column_type == DATE or column_type in TIMESTAMP_TYPES:
        return DateCell(_parse_day(raw))
    if column_type == CHECKBOX:
        return BooleanCell(_parse_bool(raw))
    if column_type == DATE_RANGE:
        return _parse_range(raw)

    if raw is None:
        return TextCell(None)
    if isinstance(raw, (dict, list)):
        raise CellValueError("Invalid text value")
    text = str(raw)
    options = column_options(column)
    if column_type in OPTION_TYPES and options and text and text not in options:
        raise CellValueError(f"{text!r} is not one of: {', '.join(options)}")
    return TextCell(text)


def to_storage(cell: CellValue) -> Dict[str, Any]:
    """item_values fields for a cell: the active field set, every other typed field None"""
    fields = {name: None for name in TYPED_FIELDS}
    if isinstance(cell, NumberCell):
        fields["number_value"] = cell.number
    elif isinstance(cell, DateCell):
        fields["date_value"] = cell.day.isoformat() if cell.day else None
    elif isinstance(cell, BooleanCell):
        fields["boolean_value"] = cell.checked
    elif isinstance(cell, DateRangeCell):
        if cell.start or cell.end:
            fields["value"] = json.dumps({
                "start": cell.start.isoformat() if cell.start else "",
                "end": cell.end.isoformat() if cell.end else "",
            })
    else:
        fields["value"] = cell.text
    return fields


def from_row(column: Mapping[str, Any], row: Optional[Mapping[str, Any]]) -> CellValue:
    """Read the active field of a stored item_values row. Unreadable data resolves to the empty cell."""
    column_type = column.get("type")
    row = row or {}
    if column_type == NUMBER:
        number = row.get("number_value")
        return NumberCell(float(number) if number is not None else None)
    if column_type == DATE or column_type in TIMESTAMP_TYPES:
        try:
            return DateCell(_parse_day(row.get("date_value")))
        except CellValueError:
            return DateCell(None)
    if column_type == CHECKBOX:
        return BooleanCell(row.get("boolean_value"))
    if column_type == DATE_RANGE:
        try:
            return _parse_range(row.get("value"))
        except CellValueError:
            return DateRangeCell(None, None)
    return TextCell(row.get("value"))


def to_editor(cell: CellValue) -> Any:
    """The value an edit widget expects"""
    if isinstance(cell, NumberCell):
        if cell.number is None:
            return ""
        return int(cell.number) if cell.number.is_integer() else cell.number
    if isinstance(cell, DateCell):
        return cell.day.isoformat() if cell.day else ""
    if isinstance(cell, BooleanCell):
        return bool(cell.checked)
    if isinstance(cell, DateRangeCell):
        return {
            "start": cell.start.isoformat() if cell.start else "",
            "end": cell.end.isoformat() if cell.end else "",
        }
    return cell.text or ""


def empty_editor_value(column: Mapping[str, Any]) -> Any:
    column_type = column.get("type")
    if column_type == DATE_RANGE:
        return {"start": "", "end": ""}
    if column_type == CHECKBOX:
        return False
    return ""


def find_value_row(item_id: str, column_id: str, item_values: Iterable[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    for row in item_values:
        if row.get("item_id") == item_id and row.get("column_id") == column_id:
            return row
    return None


def resolve_cell_value(item: Mapping[str, Any], column: Mapping[str, Any], item_values: Iterable[Mapping[str, Any]]) -> Any:
    """Editor value of one (item, column) cell, or the type's empty value when no row exists"""
    row = find_value_row(item["id"], column["id"], item_values)
    if row is None:
        return empty_editor_value(column)
    return to_editor(from_row(column, row))


def default_fields(column: Mapping[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Fields of the value row created for a new item: timestamps get today, text-like types an empty string"""
    column_type = column.get("type")
    if column_type in TIMESTAMP_TYPES:
        return to_storage(DateCell(today or date.today()))
    if column_type in (NUMBER, DATE, CHECKBOX, DATE_RANGE):
        return {name: None for name in TYPED_FIELDS}
    return to_storage(TextCell(""))
