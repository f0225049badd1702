"""
Data models for the timeline engine.

This module contains the dataclasses shared by every component: the
calendar cells of the date window, the board snapshot consumed from the
surrounding application, the per-render Gantt projection of a task, its
screen rectangle, and the dependency edges between tasks.

Classes:
    DateCell: One calendar day of the date window.
    Priority: A priority option (name and color).
    Task: A domain task as delivered by the task store.
    Column: A board column with its tasks.
    BoardSnapshot: Tasks grouped by column for one board.
    GanttTask: Read-projection of a task with resolved dates.
    TaskPosition: Screen rectangle of a task bar.
    RelationshipEdge: A dependency edge between two tasks.
    DateOverride: A transient (start, due) pair for one task.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .dates import format_local_date, parse_local_date

TEMP_ID_PREFIX = "temp-"


class RelationshipKind(Enum):
    """Kind of a task relationship. Only PARENT edges are drawn."""

    PARENT = "parent"
    CHILD = "child"
    RELATED = "related"


class DragKind(Enum):
    """Which part of a task bar is being dragged."""

    MOVE = "move"
    RESIZE_START = "resizeStart"
    RESIZE_END = "resizeEnd"


@dataclass(frozen=True)
class DateCell:
    """
    One calendar day in the date window.

    Equality and hashing use the calendar day only; the flags are computed
    once at creation and carried along.

    Attributes:
        calendar_date: The calendar day.
        is_today: Whether the day was "today" when the cell was created.
        is_weekend: Saturday or Sunday.
    """

    calendar_date: date
    is_today: bool = field(default=False, compare=False)
    is_weekend: bool = field(default=False, compare=False)

    @property
    def key(self) -> str:
        return format_local_date(self.calendar_date)


@dataclass
class Priority:
    """A priority option."""

    id: Optional[str]
    priority: str
    color: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Priority":
        return cls(
            id=data.get("id"),
            priority=data.get("priority", ""),
            color=data.get("color", ""),
        )


@dataclass
class Task:
    """
    A domain task as delivered by the task store.

    Dates are kept as the store's "YYYY-MM-DD" strings (or None); the
    engine parses them into calendar dates when projecting.
    """

    id: str
    title: str = ""
    column_id: str = ""
    position: int = 0
    ticket: str = ""
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[str] = None
    priority_id: Optional[str] = None
    priority_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data.get("id"),
            title=data.get("title", ""),
            column_id=data.get("columnId", data.get("column_id", "")),
            position=data.get("position") or 0,
            ticket=data.get("ticket") or "",
            start_date=data.get("startDate", data.get("start_date")) or None,
            due_date=data.get("dueDate", data.get("due_date")) or None,
            priority=data.get("priority"),
            priority_id=data.get("priorityId", data.get("priority_id")),
            priority_name=data.get("priorityName", data.get("priority_name")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "columnId": self.column_id,
            "position": self.position,
            "ticket": self.ticket,
            "startDate": self.start_date,
            "dueDate": self.due_date,
            "priority": self.priority,
            "priorityId": self.priority_id,
            "priorityName": self.priority_name,
        }


@dataclass
class Column:
    """A board column and the tasks it holds."""

    id: str
    title: str = ""
    position: int = 0
    is_finished: bool = False
    is_archived: bool = False
    tasks: List[Task] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        column_id = data.get("id")
        tasks = []
        for raw in data.get("tasks") or []:
            if not isinstance(raw, (Task, dict)):
                raise ValueError(
                    f"task in column {column_id!r} must be an object; got {type(raw).__name__}"
                )
            task = raw if isinstance(raw, Task) else Task.from_dict(raw)
            if not task.column_id:
                task.column_id = column_id
            tasks.append(task)
        return cls(
            id=column_id,
            title=data.get("title", ""),
            position=data.get("position") or 0,
            is_finished=bool(data.get("is_finished", data.get("isFinished", False))),
            is_archived=bool(data.get("is_archived", data.get("isArchived", False))),
            tasks=tasks,
        )


@dataclass
class BoardSnapshot:
    """Tasks grouped by column for one board."""

    board_id: Optional[str] = None
    columns: Dict[str, Column] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], board_id: Optional[str] = None
    ) -> "BoardSnapshot":
        """
        Build a snapshot from a ``{column_id: column_dict}`` mapping.

        A ``{"boardId": ..., "columns": {...}}`` wrapper is accepted too.
        """
        if "columns" in data and isinstance(data["columns"], dict):
            board_id = board_id or data.get("boardId") or data.get("board_id")
            data = data["columns"]
        columns = {}
        for column_id, raw in data.items():
            if not isinstance(raw, dict):
                raise ValueError(
                    f"column {column_id!r} must be an object; got {type(raw).__name__}"
                )
            column = Column.from_dict({"id": column_id, **raw})
            columns[column.id] = column
        return cls(board_id=board_id, columns=columns)

    def sorted_columns(self) -> List[Column]:
        return sorted(self.columns.values(), key=lambda c: c.position)

    def iter_tasks(self) -> Iterator[Task]:
        for column in self.columns.values():
            yield from column.tasks

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.iter_tasks():
            if task.id == task_id:
                return task
        return None


@dataclass
class GanttTask:
    """
    Read-projection of a task for one render pass.

    ``start_date``/``end_date`` are always set: a missing start falls back
    to the due date and vice versa.
    """

    id: str
    title: str
    ticket: str
    start_date: date
    end_date: date
    column_id: str
    column_position: int
    task_position: int
    status: str
    priority: str
    priority_color: str
    is_column_finished: bool = False
    is_column_archived: bool = False

    @property
    def is_single_day(self) -> bool:
        return self.start_date == self.end_date


@dataclass
class TaskPosition:
    """Screen rectangle of a task bar, in timeline pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass
class RelationshipEdge:
    """
    A dependency edge between two tasks.

    For PARENT edges, ``from_task_id`` must finish before ``to_task_id``
    starts. An id starting with ``temp-`` marks an unconfirmed optimistic
    create.
    """

    id: str
    from_task_id: str
    to_task_id: str
    kind: RelationshipKind = RelationshipKind.PARENT
    from_ticket: str = ""
    to_ticket: str = ""

    @property
    def is_optimistic(self) -> bool:
        return str(self.id).startswith(TEMP_ID_PREFIX)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelationshipEdge":
        return cls(
            id=str(data.get("id")),
            from_task_id=data.get("task_id", data.get("fromTaskId")),
            to_task_id=data.get("to_task_id", data.get("toTaskId")),
            kind=RelationshipKind(data.get("relationship", data.get("kind", "parent"))),
            from_ticket=data.get("task_ticket") or "",
            to_ticket=data.get("related_task_ticket") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.from_task_id,
            "to_task_id": self.to_task_id,
            "relationship": self.kind.value,
            "task_ticket": self.from_ticket,
            "related_task_ticket": self.to_ticket,
        }


@dataclass(frozen=True)
class DateOverride:
    """A transient (start, due) pair applied to one task during a gesture."""

    start_date: date
    due_date: date

    @classmethod
    def from_strings(cls, start: str, due: str) -> "DateOverride":
        return cls(parse_local_date(start), parse_local_date(due))

    def to_fields(self) -> Dict[str, str]:
        """Mutation payload understood by the task-update collaborator."""
        return {
            "startDate": format_local_date(self.start_date),
            "dueDate": format_local_date(self.due_date),
        }
