# tests/test_feed.py: Realtime channel handling
import pytest

from app.modules.realtime.feed import BoardFeed, normalise_change


def test_normalise_nested_payload():
    event = normalise_change("item_values", {
        "data": {
            "table": "item_values",
            "type": "UPDATE",
            "record": {"id": "val-1", "value": "Done"},
            "old_record": {"id": "val-1"},
        },
        "ids": [1],
    })
    assert event.table == "item_values"
    assert event.event_type == "UPDATE"
    assert event.new == {"id": "val-1", "value": "Done"}
    assert event.old == {"id": "val-1"}


def test_normalise_flat_payload():
    event = normalise_change("board_items", {"eventType": "delete", "new": {}, "old": {"id": "item-1"}})
    assert event.table == "board_items"
    assert event.event_type == "DELETE"
    assert event.new == {}
    assert event.old == {"id": "item-1"}


@pytest.mark.asyncio
async def test_feed_subscribes_and_queues(realtime_client):
    feed = await BoardFeed(realtime_client, "board-1").start()

    bindings = {ch.bindings[0]["table"]: ch.bindings[0] for ch in realtime_client.channels}
    assert set(bindings) == {"board_items", "board_columns", "item_values"}
    assert bindings["board_items"]["filter"] == "board_id=eq.board-1"
    assert bindings["board_columns"]["filter"] == "board_id=eq.board-1"
    assert bindings["item_values"]["filter"] is None
    assert all(ch.subscribed for ch in realtime_client.channels)

    bindings["item_values"]["callback"]({"data": {"type": "INSERT", "record": {"id": "val-1"}, "old_record": None}})
    event = feed.queue.get_nowait()
    assert event.table == "item_values"
    assert event.event_type == "INSERT"
    assert event.old == {}

    await feed.stop()
    assert realtime_client.channels == []
    assert len(realtime_client.removed) == 3


@pytest.mark.asyncio
async def test_stop_removes_only_own_channels(realtime_client):
    other = realtime_client.channel("someone-elses-channel")
    first = await BoardFeed(realtime_client, "board-1").start()
    second = await BoardFeed(realtime_client, "board-1").start()

    await first.stop()
    assert other in realtime_client.channels
    assert len(realtime_client.channels) == 4
    assert all(ch in realtime_client.channels for ch in second.channels)

    await second.stop()
    assert realtime_client.channels == [other]
