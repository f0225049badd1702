"""
Multi-select batch mover.

Keyboard-driven rescheduling of several tasks at once. While multi-select
mode is on, ArrowLeft/ArrowRight shifts every selected task by one calendar
day. Moves are staged per task id and committed together by a single batch
update once the keyboard has been quiet for ``batch_debounce`` seconds. A
repeated keystroke while a move is "in flight" is ignored; the guard clears
on key release, or by itself after ``arrow_key_guard`` seconds.

If the batch update fails, each staged task is sent through the single-task
update instead, one after the other; individual failures are logged.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .config import GanttSettings
from .dates import parse_local_date, shift_days
from .models import DateOverride, Task
from .scheduling import BackgroundTasks, Timer

logger = logging.getLogger(__name__)

ARROW_KEYS = {"ArrowLeft": -1, "ArrowRight": 1}


@dataclass
class BatchResult:
    """Outcome of one commit."""

    task_ids: List[str]
    used_fallback: bool = False
    failed: Optional[List[str]] = None


class MultiSelectBatchMover:
    """
    Selection state plus the debounced arrow-key mover.

    Args:
        backend: Provides ``batch_update_tasks`` and ``update_task``.
        find_task: Returns the current source task for an id (or None).
        settings: Debounce and guard durations.
        on_commit: Called with the tasks returned by a successful commit.
        background: Where timer-fired commits run.
    """

    def __init__(
        self,
        backend,
        find_task: Callable[[str], Optional[Task]],
        settings: Optional[GanttSettings] = None,
        on_commit: Optional[Callable[[List[Task]], None]] = None,
        background: Optional[BackgroundTasks] = None,
    ):
        self.backend = backend
        self.find_task = find_task
        self.settings = settings or GanttSettings()
        self.on_commit = on_commit
        self.background = background or BackgroundTasks()

        self.active = False
        self.selected: List[str] = []
        self.pending: Dict[str, DateOverride] = {}
        self.in_flight = False
        self.last_result: Optional[BatchResult] = None

        self._commit_timer = Timer(
            self.settings.batch_debounce, self.flush, self.background
        )
        self._guard_timer = Timer(self.settings.arrow_key_guard, self._clear_guard)

    # --- mode and selection ---

    def enter(self) -> None:
        self.active = True
        self.selected = []

    def exit(self) -> None:
        """Leave multi-select mode. Staged moves still commit."""
        self.active = False
        self.selected = []
        self._clear_guard()

    def toggle(self, task_id: str) -> bool:
        """Add or remove ``task_id``; ignored outside multi-select mode."""
        if not self.active:
            return False
        if task_id in self.selected:
            self.selected.remove(task_id)
        else:
            self.selected.append(task_id)
        return True

    def reset(self) -> None:
        """Drop staged moves and all timers."""
        self._commit_timer.cancel()
        self._clear_guard()
        self.pending.clear()

    def overrides(self) -> Dict[str, DateOverride]:
        """Staged dates, for previewing moves that are not yet committed."""
        return dict(self.pending)

    # --- keyboard ---

    def key_down(self, key: str, modifiers: Iterable[str] = ()) -> bool:
        """
        Handle a key press.

        Returns:
            True if the key was consumed as a move (or swallowed by the
            in-flight guard), False if it is not a move key here.
        """
        if not self.active or not self.selected:
            return False
        if key not in ARROW_KEYS or any(modifiers):
            return False
        if self.in_flight:
            logger.debug("Ignoring %s: move in flight", key)
            return True

        self.in_flight = True
        self._guard_timer.schedule()
        self._stage(ARROW_KEYS[key])
        self._commit_timer.schedule()
        return True

    def key_up(self, key: str) -> None:
        if key in ARROW_KEYS:
            self._clear_guard()

    def _clear_guard(self) -> None:
        self.in_flight = False
        self._guard_timer.cancel()

    def _stage(self, days: int) -> None:
        for task_id in self.selected:
            task = self.find_task(task_id)
            if task is None or not task.start_date or not task.due_date:
                continue
            try:
                start = parse_local_date(task.start_date)
                due = parse_local_date(task.due_date)
            except ValueError:
                logger.warning("Not moving task %s with malformed dates", task_id)
                continue
            self.pending[task_id] = DateOverride(
                shift_days(start, days), shift_days(due, days)
            )

    # --- commit ---

    async def flush(self) -> Optional[BatchResult]:
        """Commit every staged move now, in one batch update if possible."""
        self._commit_timer.cancel()
        if not self.pending:
            return None

        staged = dict(self.pending)
        self.pending.clear()
        updates = [
            {"taskId": task_id, "fields": override.to_fields()}
            for task_id, override in staged.items()
        ]

        try:
            tasks = await self.backend.batch_update_tasks(updates)
        except Exception as error:
            logger.warning(
                "Batch update of %d task(s) failed, updating one by one: %s",
                len(updates),
                error,
            )
            result = await self._fallback(updates)
        else:
            tasks = list(tasks or [])
            missing = set(staged) - {task.id for task in tasks}
            if missing:
                logger.warning(
                    "Batch update skipped %d of %d task(s), updating one by one",
                    len(missing),
                    len(updates),
                )
                result = await self._fallback(updates)
            else:
                logger.info("Batch updated %d task(s)", len(updates))
                result = BatchResult(task_ids=list(staged))
                if self.on_commit:
                    self.on_commit(tasks)

        self.last_result = result
        return result

    async def _fallback(self, updates: List[dict]) -> BatchResult:
        updated: List[Task] = []
        failed: List[str] = []
        for update in updates:
            try:
                task = await self.backend.update_task(update["taskId"], update["fields"])
            except Exception:
                logger.error("Failed to update task %s", update["taskId"], exc_info=True)
                failed.append(update["taskId"])
            else:
                if task is not None:
                    updated.append(task)
        if updated and self.on_commit:
            self.on_commit(updated)
        return BatchResult(
            task_ids=[u["taskId"] for u in updates], used_fallback=True, failed=failed
        )
