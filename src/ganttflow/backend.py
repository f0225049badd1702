"""
Collaborator interfaces consumed by the engine, plus in-memory versions.

The engine never talks to a network itself. It calls the coroutines of a
``TaskBackend`` (task reads, single and batch updates, relationship
mutations, task creation) and a ``ScrollPositionStore``. The in-memory
implementations back the CLI and the test-suite and reproduce the
backend's validation rules for relationships.
"""

import copy
import itertools
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Protocol, Sequence

from .exceptions import BackendError, BatchUpdateError, RelationshipError
from .models import BoardSnapshot, RelationshipEdge, RelationshipKind, Task


class TaskBackend(Protocol):
    """Task store and relationship endpoints used by the engine."""

    async def fetch_tasks_by_column(self, board_id: str) -> BoardSnapshot:
        """Grouped task snapshot of one board."""
        ...

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        """Apply ``fields`` to one task and return the updated task."""
        ...

    async def batch_update_tasks(
        self, updates: Sequence[Mapping[str, Any]]
    ) -> List[Task]:
        """Apply ``[{"taskId": ..., "fields": {...}}, ...]`` atomically."""
        ...

    async def get_task_relationships(self, task_id: str) -> List[RelationshipEdge]:
        """Edges touching ``task_id``."""
        ...

    async def add_task_relationship(
        self, from_task_id: str, kind: RelationshipKind, to_task_id: str
    ) -> RelationshipEdge:
        """Create an edge; raises BackendError with a status on rejection."""
        ...

    async def remove_task_relationship(self, from_task_id: str, edge_id: str) -> None:
        """Delete an edge."""
        ...

    async def add_task(
        self, column_id: str, start_date: str, due_date: str
    ) -> Task:
        """Create a task in ``column_id`` spanning the given dates."""
        ...


class ScrollPositionStore(Protocol):
    """Opaque per-board key-value store for the leftmost visible date."""

    async def get(self, board_id: str) -> Optional[str]:
        ...

    async def set(self, board_id: str, value: str) -> None:
        ...


class InMemoryScrollStore:
    """Dictionary-backed ScrollPositionStore."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})
        self.writes: List[tuple] = []

    async def get(self, board_id: str) -> Optional[str]:
        return self.values.get(board_id)

    async def set(self, board_id: str, value: str) -> None:
        self.values[board_id] = value
        self.writes.append((board_id, value))


class InMemoryTaskBackend:
    """
    TaskBackend holding boards and relationships in memory.

    Every call is recorded in ``calls`` as ``(method_name, args)``. Errors
    queued with ``fail_next`` are raised by the next call of that method.

    Example:
        >>> backend = InMemoryTaskBackend({"b1": snapshot})
        >>> backend.fail_next("batch_update_tasks", BackendError("boom", 500))
    """

    def __init__(
        self,
        boards: Optional[Dict[str, BoardSnapshot]] = None,
        relationships: Optional[Sequence[RelationshipEdge]] = None,
    ):
        self.boards: Dict[str, BoardSnapshot] = dict(boards or {})
        self.relationships: List[RelationshipEdge] = list(relationships or [])
        self.calls: List[tuple] = []
        self._failures: Dict[str, Deque[BaseException]] = defaultdict(deque)
        self._ids = itertools.count(1)

    def fail_next(self, method: str, error: BaseException) -> None:
        self._failures[method].append(error)

    def calls_to(self, method: str) -> List[tuple]:
        return [args for name, args in self.calls if name == method]

    def _enter(self, method: str, *args) -> None:
        self.calls.append((method, args))
        if self._failures[method]:
            raise self._failures[method].popleft()

    def _find(self, task_id: str) -> Optional[Task]:
        for snapshot in self.boards.values():
            task = snapshot.find_task(task_id)
            if task is not None:
                return task
        return None

    @staticmethod
    def _apply(task: Task, fields: Mapping[str, Any]) -> None:
        if "startDate" in fields:
            task.start_date = fields["startDate"] or None
        if "dueDate" in fields:
            task.due_date = fields["dueDate"] or None
        if "title" in fields:
            task.title = fields["title"]
        if "position" in fields:
            task.position = fields["position"]

    async def fetch_tasks_by_column(self, board_id: str) -> BoardSnapshot:
        self._enter("fetch_tasks_by_column", board_id)
        snapshot = self.boards.get(board_id)
        if snapshot is None:
            raise BackendError(f"Board {board_id} not found", 404)
        return copy.deepcopy(snapshot)

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        self._enter("update_task", task_id, dict(fields))
        task = self._find(task_id)
        if task is None:
            raise BackendError(f"Task {task_id} not found", 404)
        self._apply(task, fields)
        return copy.deepcopy(task)

    async def batch_update_tasks(
        self, updates: Sequence[Mapping[str, Any]]
    ) -> List[Task]:
        self._enter("batch_update_tasks", [dict(u) for u in updates])
        tasks = []
        for update in updates:
            task = self._find(update["taskId"])
            if task is None:
                raise BatchUpdateError(f"Task {update['taskId']} not found", 404)
            tasks.append(task)
        for task, update in zip(tasks, updates):
            self._apply(task, update["fields"])
        return [copy.deepcopy(task) for task in tasks]

    async def get_task_relationships(self, task_id: str) -> List[RelationshipEdge]:
        self._enter("get_task_relationships", task_id)
        return [
            copy.copy(edge)
            for edge in self.relationships
            if task_id in (edge.from_task_id, edge.to_task_id)
        ]

    async def add_task_relationship(
        self, from_task_id: str, kind: RelationshipKind, to_task_id: str
    ) -> RelationshipEdge:
        kind = RelationshipKind(kind)
        self._enter("add_task_relationship", from_task_id, kind, to_task_id)

        source = self._find(from_task_id)
        target = self._find(to_task_id)
        if source is None or target is None:
            raise RelationshipError("Task not found", 404)
        if from_task_id == to_task_id:
            raise RelationshipError("A task cannot relate to itself", 400)
        for edge in self.relationships:
            if (edge.from_task_id, edge.to_task_id, edge.kind) == (
                from_task_id,
                to_task_id,
                kind,
            ):
                raise RelationshipError("Relationship already exists", 409)
            if (
                kind is RelationshipKind.PARENT
                and edge.kind is RelationshipKind.PARENT
                and (edge.from_task_id, edge.to_task_id) == (to_task_id, from_task_id)
            ):
                raise RelationshipError(
                    f"{source.ticket or from_task_id} is already child of "
                    f"{target.ticket or to_task_id}",
                    409,
                )

        edge = RelationshipEdge(
            id=str(next(self._ids)),
            from_task_id=from_task_id,
            to_task_id=to_task_id,
            kind=kind,
            from_ticket=source.ticket,
            to_ticket=target.ticket,
        )
        self.relationships.append(edge)
        return copy.copy(edge)

    async def remove_task_relationship(self, from_task_id: str, edge_id: str) -> None:
        self._enter("remove_task_relationship", from_task_id, edge_id)
        for position, edge in enumerate(self.relationships):
            if edge.id == edge_id:
                del self.relationships[position]
                return
        raise RelationshipError("Relationship not found", 404)

    async def add_task(self, column_id: str, start_date: str, due_date: str) -> Task:
        self._enter("add_task", column_id, start_date, due_date)
        for snapshot in self.boards.values():
            column = snapshot.columns.get(column_id)
            if column is None:
                continue
            for task in column.tasks:
                task.position += 1
            task = Task(
                id=f"task-{next(self._ids)}",
                title="New Task",
                column_id=column_id,
                position=0,
                start_date=start_date,
                due_date=due_date,
            )
            column.tasks.insert(0, task)
            return copy.deepcopy(task)
        raise BackendError(f"Column {column_id} not found", 404)
