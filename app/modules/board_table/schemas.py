from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from app.modules.board_table.cells import COLUMN_TYPES


class ColumnCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = "text"
    options: Optional[List[str]] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in COLUMN_TYPES:
            raise ValueError(f"type must be one of {', '.join(COLUMN_TYPES)}")
        return value


class ColumnResponse(BaseModel):
    id: str
    board_id: str
    name: str
    type: str
    order: Optional[int] = None
    options: Optional[List[str]] = None
    is_readonly: Optional[bool] = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1)


class ItemResponse(BaseModel):
    id: str
    board_id: str
    name: str
    order: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemValueResponse(BaseModel):
    id: str
    item_id: str
    column_id: str
    value: Optional[str] = None
    number_value: Optional[float] = None
    date_value: Optional[str] = None
    boolean_value: Optional[bool] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CellUpdate(BaseModel):
    value: Any = None


class CellResponse(BaseModel):
    item_id: str
    column_id: str
    value: Any
    row: ItemValueResponse


class GridRow(BaseModel):
    item: ItemResponse
    cells: Dict[str, Any]


class GridResponse(BaseModel):
    board_id: str
    columns: List[ColumnResponse]
    rows: List[GridRow]
    total_items: int


class BoardStatsResponse(BaseModel):
    total: int
    done: int
    in_progress: int
    stuck: int
