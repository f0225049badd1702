"""
Drag/resize controller for task bars.

A small state machine: ``idle -> dragging(kind) -> idle``. Pointer-down on
a bar's move handle or one of its resize handles snapshots the task's
dates; every hover over a day cell recomputes a local (start, due) override
for that task only; pointer-up on a day cell commits the final override
through the task-update collaborator. Every exit path (drop, cancel,
escape) discards the gesture state.

Also contains the task-creation gesture: press on an empty day, sweep,
release to create a task spanning the swept days.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .dates import format_local_date, inclusive_days
from .models import DateOverride, DragKind, GanttTask, Task

logger = logging.getLogger(__name__)

UpdateTask = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


def compute_drag_dates(
    kind: DragKind, original: DateOverride, hovered: date
) -> DateOverride:
    """
    New (start, due) for a bar dragged over ``hovered``.

    - MOVE keeps the inclusive duration and anchors the start on ``hovered``.
    - RESIZE_START moves the start, clamped to the due date.
    - RESIZE_END moves the due date, clamped to the start.
    """
    kind = DragKind(kind)
    if kind is DragKind.MOVE:
        duration = inclusive_days(original.start_date, original.due_date)
        return DateOverride(hovered, hovered + timedelta(days=max(duration, 1) - 1))
    if kind is DragKind.RESIZE_START:
        return replace(original, start_date=min(hovered, original.due_date))
    return replace(original, due_date=max(hovered, original.start_date))


@dataclass
class DragState:
    """
    State of the single active drag gesture.

    Attributes:
        task_id: The dragged task.
        kind: Which handle is being dragged.
        original: Dates snapshotted at pointer-down.
        local: Latest computed dates, shown instead of the source dates.
    """

    task_id: str
    kind: DragKind
    original: DateOverride
    local: DateOverride

    @property
    def local_override(self) -> Dict[str, DateOverride]:
        return {self.task_id: self.local}

    @property
    def original_override(self) -> Dict[str, DateOverride]:
        return {self.task_id: self.original}


class DragController:
    """
    Tracks at most one drag of a task bar.

    Args:
        update_task: Coroutine function ``(task_id, fields)`` committing dates.
        on_drag_start: Called with the GanttTask when a drag begins.
        on_drag_end: Called when a drag ends, on every exit path.
    """

    def __init__(
        self,
        update_task: UpdateTask,
        on_drag_start: Optional[Callable[[GanttTask], None]] = None,
        on_drag_end: Optional[Callable[[], None]] = None,
    ):
        self.update_task = update_task
        self.on_drag_start = on_drag_start
        self.on_drag_end = on_drag_end
        self.state: Optional[DragState] = None

    @property
    def is_dragging(self) -> bool:
        return self.state is not None

    def overrides(self) -> Dict[str, DateOverride]:
        """Date overrides to apply in the current render pass."""
        return self.state.local_override if self.state else {}

    def pointer_down(self, task: GanttTask, kind: DragKind) -> bool:
        """
        Start dragging ``task`` by the handle ``kind``.

        Returns:
            False if another drag is already active (the press is ignored).
        """
        kind = DragKind(kind)
        if self.state is not None:
            logger.debug("Ignoring pointer-down on %s: drag in progress", task.id)
            return False

        snapshot = DateOverride(task.start_date, task.end_date)
        self.state = DragState(task.id, kind, snapshot, snapshot)
        logger.debug("Drag started: %s (%s)", task.id, kind.value)
        if self.on_drag_start:
            self.on_drag_start(task)
        return True

    def pointer_over(self, hovered: date) -> Optional[DateOverride]:
        """Recompute the local override for the day under the pointer."""
        if self.state is None:
            return None
        self.state.local = compute_drag_dates(
            self.state.kind, self.state.original, hovered
        )
        return self.state.local

    async def pointer_up(self, dropped_on: Optional[date] = None) -> Optional[DateOverride]:
        """
        End the drag and commit the final dates.

        A drop on a day cell always commits, even when the dates did not
        change. A release outside the timeline (``dropped_on`` is None)
        ends the drag without a commit.

        Returns:
            The committed dates, or None if nothing was committed.
        """
        if self.state is None:
            return None
        if dropped_on is None:
            self.cancel()
            return None

        self.pointer_over(dropped_on)
        state = self.state
        self._finish()

        fields = state.local.to_fields()
        try:
            await self.update_task(state.task_id, fields)
        except Exception:
            logger.exception(
                "Failed to save dates %s..%s for task %s",
                fields["startDate"],
                fields["dueDate"],
                state.task_id,
            )
        else:
            logger.info(
                "Saved task %s: %s..%s",
                state.task_id,
                fields["startDate"],
                fields["dueDate"],
            )
        return state.local

    def cancel(self) -> None:
        """Abort the drag (pointer-cancel, escape) without committing."""
        if self.state is not None:
            logger.debug("Drag cancelled: %s", self.state.task_id)
            self._finish()

    def _finish(self) -> None:
        self.state = None
        if self.on_drag_end:
            self.on_drag_end()


class TaskCreationGesture:
    """
    Press-sweep-release creation of a new task on empty day cells.

    Args:
        add_task: Coroutine function ``(column_id, start, due)``.
    """

    def __init__(self, add_task: Callable[[str, str, str], Awaitable[Task]]):
        self.add_task = add_task
        self.start: Optional[date] = None
        self.end: Optional[date] = None

    @property
    def active(self) -> bool:
        return self.start is not None

    def press(self, day: date) -> None:
        self.start = day
        self.end = day

    def hover(self, day: date) -> None:
        if self.active:
            self.end = day

    def cancel(self) -> None:
        self.start = None
        self.end = None

    async def release(self, column_id: Optional[str]) -> Optional[Task]:
        """Create the task in ``column_id`` with the swept days in order."""
        if not self.active:
            return None
        first, last = sorted((self.start, self.end))
        self.cancel()
        if column_id is None:
            return None
        try:
            return await self.add_task(
                column_id, format_local_date(first), format_local_date(last)
            )
        except Exception:
            logger.exception("Failed to create task in column %s", column_id)
            return None
