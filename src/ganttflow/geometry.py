"""
Task geometry: rows, grid columns and screen rectangles of task bars.

Horizontal placement comes from two date-index lookups; a task whose start
or end is outside the window is not positioned. Vertical placement comes
from an explicit row layout computed from the column grouping, so the
whole geometry is a deterministic function of (tasks, window).
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .config import GanttSettings
from .date_index import DateIndex
from .models import GanttTask, TaskPosition

logger = logging.getLogger(__name__)


@dataclass
class GridPosition:
    """First and last day column covered by a task bar (inclusive)."""

    start_column: int
    end_column: int

    @property
    def span(self) -> int:
        return self.end_column - self.start_column + 1


@dataclass
class RowSlot:
    """Vertical slot of one task row."""

    row: int
    top: float
    height: float


class RowLayout:
    """
    Assigns every task a row in grouping order.

    Each column group starts with a header row of ``group_header_height``
    followed by one ``row_height`` row per task.
    """

    def __init__(self, settings: Optional[GanttSettings] = None):
        self.settings = settings or GanttSettings()

    def layout(self, groups: Mapping[str, Sequence[GanttTask]]) -> Dict[str, RowSlot]:
        slots: Dict[str, RowSlot] = {}
        top = 0.0
        row = 0
        for column_tasks in groups.values():
            top += self.settings.group_header_height
            for task in column_tasks:
                slots[task.id] = RowSlot(row=row, top=top, height=self.settings.row_height)
                top += self.settings.row_height
                row += 1
        return slots

    def group_bands(
        self, groups: Mapping[str, Sequence[GanttTask]]
    ) -> Dict[str, Tuple[float, float]]:
        """(top, bottom) of every group header row, keyed by column id."""
        bands: Dict[str, Tuple[float, float]] = {}
        top = 0.0
        for column_id, column_tasks in groups.items():
            bottom = top + self.settings.group_header_height
            bands[column_id] = (top, bottom)
            top = bottom + len(column_tasks) * self.settings.row_height
        return bands

    def total_height(self, groups: Mapping[str, Sequence[GanttTask]]) -> float:
        task_count = sum(len(tasks) for tasks in groups.values())
        return (
            len(groups) * self.settings.group_header_height
            + task_count * self.settings.row_height
        )


class TaskGeometryProjector:
    """Converts Gantt tasks into bar rectangles keyed by task id."""

    def __init__(self, settings: Optional[GanttSettings] = None):
        self.settings = settings or GanttSettings()

    def grid_position(
        self, task: GanttTask, index: DateIndex
    ) -> Optional[GridPosition]:
        """
        Columns covered by ``task``, or None when it is out of the window.

        A single-day task covers exactly one column.
        """
        if task.start_date is None or task.end_date is None:
            return None
        start_column = index.get(task.start_date)
        end_column = index.get(task.end_date)
        if start_column is None or end_column is None:
            return None
        return GridPosition(start_column, max(start_column, end_column))

    def bar_rect(self, grid: GridPosition, slot: RowSlot) -> TaskPosition:
        width = self.settings.column_width
        bar_height = min(self.settings.bar_height, slot.height)
        return TaskPosition(
            x=grid.start_column * width,
            y=slot.top + (slot.height - bar_height) / 2,
            width=grid.span * width,
            height=bar_height,
        )

    def project(
        self,
        tasks: Iterable[GanttTask],
        index: DateIndex,
        rows: Mapping[str, RowSlot],
    ) -> Dict[str, TaskPosition]:
        """
        Rectangles for every task that is both laid out and in the window.

        Args:
            tasks: Tasks of the current render pass.
            index: Date index of the current window.
            rows: Row slots from ``RowLayout.layout``.

        Returns:
            Mapping of task id to its TaskPosition.
        """
        positions: Dict[str, TaskPosition] = {}
        skipped = 0
        for task in tasks:
            slot = rows.get(task.id)
            grid = self.grid_position(task, index)
            if slot is None or grid is None:
                skipped += 1
                continue
            positions[task.id] = self.bar_rect(grid, slot)
        if skipped:
            logger.debug("%d task(s) outside the current window", skipped)
        return positions
