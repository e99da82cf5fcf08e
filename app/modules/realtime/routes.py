# Live board bridge: mirrors the Supabase change feed of one board over a WebSocket
import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from supabase import AsyncClient, Client

from app.config.permissions_config import role_has_permission
from app.core.dependencies import get_auth_service, get_board_row
from app.core.session import AuthContext
from app.database.supabase_client import get_service_supabase, get_async_supabase
from app.modules.auth.service import AuthService
from app.modules.board_table import cells
from app.modules.board_table.service import BoardTableService
from app.modules.realtime.feed import BoardFeed
from app.modules.realtime.grid_state import (
    BoardGrid, LocalEdit, RemoteConfirm, RemoteFailure, VALUES_TABLE
)

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)

CLOSE_AUTH_FAILED = 4001
CLOSE_FORBIDDEN = 4003
CLOSE_NOT_FOUND = 4004


async def _forward_events(websocket: WebSocket, grid: BoardGrid, feed: BoardFeed):
    """Apply feed events to the grid and push the ones that changed something"""
    async for event in feed.events():
        if not grid.apply(event):
            continue
        await websocket.send_json({
            "type": "event",
            "table": event.table,
            "event_type": event.event_type,
            "new": event.new,
            "old": event.old,
        })
        row = event.new or event.old
        if event.table == VALUES_TABLE and row.get("item_id") and row.get("column_id"):
            await websocket.send_json(grid.cell_message(row["item_id"], row["column_id"]))


async def _handle_commit(
    websocket: WebSocket,
    grid: BoardGrid,
    service: BoardTableService,
    data: Dict[str, Any],
    can_edit: bool
):
    item_id = data.get("item_id")
    column_id = data.get("column_id")
    raw = data.get("value")
    column = grid.columns.get(column_id)

    def error(detail: str) -> Dict[str, Any]:
        return {"type": "error", "item_id": item_id, "column_id": column_id, "detail": detail}

    if not can_edit:
        await websocket.send_json(error("Insufficient permissions. Required: cells:update"))
        return
    if column is None or item_id not in grid.items:
        await websocket.send_json(error("Unknown cell"))
        return
    if cells.is_readonly(column):
        await websocket.send_json(error(f"Column '{column['name']}' is read-only"))
        return
    try:
        cell = cells.parse_input(column, raw)
    except cells.CellValueError as e:
        await websocket.send_json(error(str(e)))
        return

    grid.apply(LocalEdit(item_id, column_id, cells.to_storage(cell)))
    await websocket.send_json(grid.cell_message(item_id, column_id))

    try:
        result = await run_in_threadpool(
            service.commit_cell_value, grid.board_id, item_id, column_id, raw
        )
        grid.apply(RemoteConfirm(result["row"]))
    except HTTPException as e:
        logger.warning(f"Cell ({item_id}, {column_id}) rolled back: {e.detail}")
        grid.apply(RemoteFailure(item_id, column_id))
        await websocket.send_json(error(str(e.detail)))
    await websocket.send_json(grid.cell_message(item_id, column_id))


@router.websocket("/boards/{board_id}/live")
async def live_board(
    websocket: WebSocket,
    board_id: str,
    token: str = Query(...),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_service_supabase),
    realtime_client: AsyncClient = Depends(get_async_supabase)
):
    """Snapshot of the board, then every change; accepts {"type": "commit"} cell edits"""
    try:
        user = await run_in_threadpool(auth_service.get_current_user, token)
    except HTTPException:
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    context = await run_in_threadpool(AuthContext(user, supabase).init)
    try:
        board = await run_in_threadpool(get_board_row, board_id, supabase)
        role = context.require(board["company_id"], "cells:read")
    except HTTPException as e:
        code = CLOSE_NOT_FOUND if e.status_code == 404 else CLOSE_FORBIDDEN
        await websocket.close(code=code, reason=str(e.detail))
        context.dispose()
        return

    service = BoardTableService(supabase)
    can_edit = role_has_permission(role, "cells:update")
    feed = BoardFeed(realtime_client, board_id)
    pump = None

    await websocket.accept()
    try:
        # Events arriving while the grid loads wait in the feed queue
        await feed.start()
        grid = BoardGrid.from_grid(await run_in_threadpool(service.get_grid, board_id))
        await websocket.send_json({"type": "snapshot", "role": role, **grid.snapshot()})

        pump = asyncio.create_task(_forward_events(websocket, grid, feed))
        logger.info(f"Live board {board_id} opened by user {context.user_id}")

        while True:
            data = await websocket.receive_json()
            msg_type = data.get("type", "")

            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif msg_type == "commit":
                await _handle_commit(websocket, grid, service, data, can_edit)
            elif msg_type == "snapshot":
                await websocket.send_json({"type": "snapshot", "role": role, **grid.snapshot()})
            else:
                await websocket.send_json({"type": "error", "detail": f"Unknown message type: {msg_type}"})

    except WebSocketDisconnect:
        logger.info(f"Live board {board_id} closed by user {context.user_id}")
    except HTTPException as e:
        logger.error(f"Live board {board_id} failed: {e.detail}")
        await websocket.close(code=1011, reason=str(e.detail))
    finally:
        if pump is not None:
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Live board {board_id} event forwarding stopped: {e}")
        await feed.stop()
        context.dispose()
