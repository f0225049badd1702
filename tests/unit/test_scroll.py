"""Unit tests for the scroll module."""

import asyncio
from datetime import date

import pytest

from ganttflow.backend import InMemoryScrollStore
from ganttflow.date_index import DateIndex
from ganttflow.scroll import (
    ScrollPositionTracker,
    edge_to_extend,
    leftmost_visible_date,
    placement_scroll_offset,
)
from ganttflow.window import DateWindow, Edge, Placement


class TestEdgeToExtend:
    """Tests for edge_to_extend."""

    def test_middle_needs_nothing(self):
        assert edge_to_extend(2000, 1200, 7240) is None

    def test_near_end(self):
        """Test the end edge triggers within 500px."""
        assert edge_to_extend(5600, 1200, 7240) is Edge.END
        assert edge_to_extend(5540, 1200, 7240) is None

    def test_near_start(self):
        assert edge_to_extend(499, 1200, 7240) is Edge.START
        assert edge_to_extend(500, 1200, 7240) is None

    def test_empty_window(self):
        assert edge_to_extend(0, 1200, 0) is None


class TestPlacementScrollOffset:
    """Tests for placement_scroll_offset."""

    def test_start(self):
        assert placement_scroll_offset(90, Placement.START, 1200) == 3600

    def test_end(self):
        assert placement_scroll_offset(90, Placement.END, 1200) == 3600 - 1200 + 40

    def test_center(self):
        assert placement_scroll_offset(90, Placement.CENTER, 1200) == 3600 - 600 + 20

    def test_never_negative(self):
        assert placement_scroll_offset(2, Placement.CENTER, 1200) == 0


class TestLeftmostVisibleDate:
    def test_leftmost(self, today):
        window = DateWindow.default(today)
        index = DateIndex(window.cells)
        assert leftmost_visible_date(index, 60 * 40 + 10) == today
        assert leftmost_visible_date(index, -50) == window.first_date


class FailingStore:
    async def get(self, board_id):
        raise ConnectionError("down")

    async def set(self, board_id, value):
        raise ConnectionError("down")


class TestScrollPositionTracker:
    """Tests for ScrollPositionTracker."""

    def test_restore(self):
        tracker = ScrollPositionTracker(InMemoryScrollStore({"b1": "2024-07-01"}))
        assert asyncio.run(tracker.restore("b1")) == date(2024, 7, 1)
        assert asyncio.run(tracker.restore("b2")) is None
        assert asyncio.run(tracker.restore("")) is None

    def test_restore_malformed_value(self):
        tracker = ScrollPositionTracker(InMemoryScrollStore({"b1": "later"}))
        assert asyncio.run(tracker.restore("b1")) is None

    def test_restore_store_failure(self):
        assert asyncio.run(ScrollPositionTracker(FailingStore()).restore("b1")) is None

    def test_saves_are_debounced(self):
        """Test rapid saves write only the last value."""
        store = InMemoryScrollStore()
        tracker = ScrollPositionTracker(store, debounce=0.02)

        async def scenario():
            tracker.save("b1", date(2024, 6, 1))
            tracker.save("b1", date(2024, 6, 2))
            tracker.save("b1", date(2024, 6, 3))
            await asyncio.sleep(0.05)
            await tracker._timer.background.drain()

        asyncio.run(scenario())
        assert store.writes == [("b1", "2024-06-03")]

    def test_initializing_suppresses_saves(self):
        store = InMemoryScrollStore()
        tracker = ScrollPositionTracker(store, debounce=0.01)
        tracker.initializing = True
        assert not tracker.save("b1", date(2024, 6, 1))
        assert not tracker.pending

    def test_flush_writes_immediately(self):
        store = InMemoryScrollStore()
        tracker = ScrollPositionTracker(store, debounce=10)

        async def scenario():
            tracker.save("b1", date(2024, 6, 1))
            await tracker.flush()

        asyncio.run(scenario())
        assert store.values == {"b1": "2024-06-01"}
        assert not tracker.pending

    def test_write_failure_is_logged(self, caplog):
        tracker = ScrollPositionTracker(FailingStore(), debounce=10)

        async def scenario():
            tracker.save("b1", date(2024, 6, 1))
            await tracker.flush()

        asyncio.run(scenario())
        assert "Could not save scroll position" in caplog.text
