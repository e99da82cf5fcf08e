from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_service_supabase
from app.modules.board_table.schemas import (
    ColumnCreate, ColumnResponse, ItemCreate, ItemResponse,
    CellUpdate, CellResponse, GridResponse, BoardStatsResponse
)
from app.modules.board_table.service import BoardTableService, board_stats, filter_items
from app.core.dependencies import require_board_permission
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/boards", tags=["board table"])


def get_board_table_service(supabase: Client = Depends(get_service_supabase)) -> BoardTableService:
    return BoardTableService(supabase)


@router.get("/{board_id}/grid", response_model=GridResponse)
async def get_grid(
    board_id: str,
    name: Optional[str] = Query(None, description="Case-insensitive item name filter"),
    status: Optional[str] = Query(None, description="Exact value of the first status column"),
    priority: Optional[str] = Query(None, description="Exact value of the first priority column"),
    _: Dict = Depends(require_board_permission("cells:read")),
    service: BoardTableService = Depends(get_board_table_service)
):
    """Columns and items of a board with every cell resolved"""
    grid = service.get_grid(board_id)
    items = None
    if name or status or priority:
        items = filter_items(grid, name=name, status=status, priority=priority)
    return service.grid_view(grid, items)


@router.get("/{board_id}/stats", response_model=BoardStatsResponse)
async def get_stats(
    board_id: str,
    _: Dict = Depends(require_board_permission("items:read")),
    service: BoardTableService = Depends(get_board_table_service)
):
    return board_stats(service.get_grid(board_id))


@router.post("/{board_id}/columns", response_model=ColumnResponse, status_code=201)
async def create_column(
    board_id: str,
    column_data: ColumnCreate,
    _: Dict = Depends(require_board_permission("columns:create")),
    service: BoardTableService = Depends(get_board_table_service)
):
    """Add a typed column (Admin or Member)"""
    return service.create_column(board_id, column_data)


@router.post("/{board_id}/items", response_model=ItemResponse, status_code=201)
async def create_item(
    board_id: str,
    item_data: ItemCreate,
    _: Dict = Depends(require_board_permission("items:create")),
    service: BoardTableService = Depends(get_board_table_service)
):
    """Add an item; each existing column gets its default cell"""
    return service.create_item(board_id, item_data.name)


@router.put("/{board_id}/items/{item_id}/values/{column_id}", response_model=CellResponse)
async def commit_cell_value(
    board_id: str,
    item_id: str,
    column_id: str,
    cell_data: CellUpdate,
    _: Dict = Depends(require_board_permission("cells:update")),
    service: BoardTableService = Depends(get_board_table_service)
):
    """Save one cell (last write wins)"""
    return service.commit_cell_value(board_id, item_id, column_id, cell_data.value)
