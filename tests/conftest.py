"""Pytest configuration and shared fixtures for ganttflow tests."""

import copy
from datetime import date

import pytest

from ganttflow import (
    BoardSnapshot,
    GanttEngine,
    GanttSettings,
    InMemoryScrollStore,
    InMemoryTaskBackend,
    Priority,
    RelationshipEdge,
    RelationshipKind,
)

TODAY = date(2024, 6, 5)
BOARD_ID = "b1"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


BOARD = {
    "c1": {
        "title": "To Do",
        "position": 0,
        "tasks": [
            {
                "id": "t1",
                "title": "Design",
                "ticket": "T-1",
                "position": 0,
                "startDate": "2024-06-03",
                "dueDate": "2024-06-10",
                "priority": "high",
            },
            {
                "id": "t2",
                "title": "Build",
                "ticket": "T-2",
                "position": 1,
                "startDate": "2024-06-10",
                "dueDate": "2024-06-14",
            },
            {
                "id": "t3",
                "title": "Review",
                "ticket": "T-3",
                "position": 2,
                "startDate": "2024-06-11",
                "dueDate": "2024-06-12",
            },
        ],
    },
    "c2": {
        "title": "Done",
        "position": 1,
        "is_finished": True,
        "tasks": [
            {
                "id": "t4",
                "title": "Kickoff",
                "ticket": "T-4",
                "position": 0,
                "startDate": "2024-06-01",
                "dueDate": "2024-06-05",
            },
            {"id": "t5", "title": "Someday", "ticket": "T-5", "position": 1},
        ],
    },
}


@pytest.fixture
def board_dict():
    """Raw column-grouped board export."""
    return copy.deepcopy(BOARD)


@pytest.fixture
def snapshot(board_dict):
    """Board snapshot with two columns and five tasks (one undated)."""
    return BoardSnapshot.from_dict(board_dict, board_id=BOARD_ID)


@pytest.fixture
def priorities():
    return [
        Priority(id="p1", priority="high", color="#FF0000"),
        Priority(id="p2", priority="medium", color="#00FF00"),
    ]


@pytest.fixture
def backend(snapshot):
    """In-memory backend serving the fixture board."""
    return InMemoryTaskBackend({BOARD_ID: snapshot})


@pytest.fixture
def parent_edges():
    """t1 -> t2 (blocked: same day), t1 -> t3 (not blocked), t4 -> t2 (finished parent)."""
    return [
        RelationshipEdge("e1", "t1", "t2", RelationshipKind.PARENT),
        RelationshipEdge("e2", "t1", "t3", RelationshipKind.PARENT),
        RelationshipEdge("e3", "t4", "t2", RelationshipKind.PARENT),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_settings():
    """Settings with short timers for async flow tests."""
    return GanttSettings(
        scroll_throttle=0.01,
        scroll_save_debounce=0.02,
        batch_debounce=0.05,
        arrow_key_guard=0.1,
    )


@pytest.fixture
def scroll_store():
    return InMemoryScrollStore()


@pytest.fixture
def engine(backend, scroll_store, fast_settings, priorities, clock):
    """Engine over the fixture board, pinned to TODAY. Not loaded yet."""
    messages = []
    engine = GanttEngine(
        backend,
        scroll_store=scroll_store,
        settings=fast_settings,
        priorities=priorities,
        notify=messages.append,
        clock=clock,
        today=lambda: TODAY,
    )
    engine.messages = messages
    return engine


@pytest.fixture
def today():
    return TODAY
