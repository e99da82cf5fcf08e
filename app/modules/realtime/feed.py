"""
Supabase realtime subscriptions for one live board.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import AsyncClient

from app.modules.realtime.grid_state import ITEMS_TABLE, COLUMNS_TABLE, VALUES_TABLE, RemoteEvent

logger = logging.getLogger(__name__)


def normalise_change(table: str, payload: Dict[str, Any]) -> RemoteEvent:
    """
    Flatten a postgres_changes payload into a RemoteEvent.

    The realtime client delivers either {"data": {"type", "record", "old_record"}}
    or the flat {"eventType", "new", "old"} layout depending on its version.
    """
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    event_type = data.get("type") or data.get("eventType") or data.get("event_type") or ""
    new = data["record"] if "record" in data else data.get("new")
    old = data["old_record"] if "old_record" in data else data.get("old")
    return RemoteEvent(
        table=data.get("table") or table,
        event_type=str(event_type).upper(),
        new=new or {},
        old=old or {},
    )


class BoardFeed:
    """Owns the channels of one board view; stop() removes exactly those"""

    def __init__(self, client: AsyncClient, board_id: str, queue: Optional[asyncio.Queue] = None):
        self.client = client
        self.board_id = board_id
        self.queue: asyncio.Queue = queue or asyncio.Queue()
        self.channels: List[Any] = []

    def _callback(self, table: str):
        def on_change(payload: Dict[str, Any]) -> None:
            self.queue.put_nowait(normalise_change(table, payload))
        return on_change

    async def start(self) -> "BoardFeed":
        board_filter = f"board_id=eq.{self.board_id}"
        subscriptions = [
            (ITEMS_TABLE, board_filter),
            (COLUMNS_TABLE, board_filter),
            # item_values has no board_id; events for other boards are discarded by the grid
            (VALUES_TABLE, None),
        ]
        try:
            for table, row_filter in subscriptions:
                channel = self.client.channel(f"board-{self.board_id}-{table}")
                channel.on_postgres_changes(
                    "*",
                    callback=self._callback(table),
                    table=table,
                    schema="public",
                    filter=row_filter,
                )
                await channel.subscribe()
                self.channels.append(channel)
        except Exception:
            await self.stop()
            raise
        logger.info(f"Realtime feed started for board {self.board_id}")
        return self

    async def stop(self) -> None:
        channels, self.channels = self.channels, []
        for channel in channels:
            try:
                await self.client.remove_channel(channel)
            except Exception as e:
                logger.error(f"Error removing realtime channel for board {self.board_id}: {e}")
        if channels:
            logger.info(f"Realtime feed stopped for board {self.board_id}")

    async def events(self):
        while True:
            yield await self.queue.get()
