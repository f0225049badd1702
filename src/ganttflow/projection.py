"""
Projection of a board snapshot into Gantt tasks.

Turns the column-grouped task snapshot into the ordered list of
``GanttTask`` rows drawn by the timeline, resolving dates, priority labels
and colors, and the column flags used for the blocked check. A transient
date override (an in-progress drag) replaces the dates of its task only.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_PRIORITY, DEFAULT_PRIORITY_COLOR
from .dates import parse_local_date
from .models import BoardSnapshot, Column, DateOverride, GanttTask, Priority, Task

logger = logging.getLogger(__name__)


def resolve_priority(
    task: Task, priorities: Sequence[Priority] = ()
) -> Tuple[str, str]:
    """
    Resolve the display name and color of a task's priority.

    The name comes from ``priority_id`` looked up in ``priorities`` when
    possible, then the task's ``priority_name``, then ``priority``, then
    "medium". The color is the matching option's color or gray.
    """
    name = None
    if task.priority_id and priorities:
        for option in priorities:
            if option.id == task.priority_id:
                name = option.priority
                break
    name = name or task.priority_name or task.priority or DEFAULT_PRIORITY

    color = DEFAULT_PRIORITY_COLOR
    for option in priorities:
        if option.priority == name:
            color = option.color or DEFAULT_PRIORITY_COLOR
            break
    return name, color


def _task_dates(task: Task, override: Optional[DateOverride]):
    if override is not None:
        return override.start_date, override.due_date

    start = parse_local_date(task.start_date)
    due = parse_local_date(task.due_date)
    if start is not None:
        return start, due or start
    if due is not None:
        return due, due
    return None, None


def project_task(
    task: Task,
    column: Column,
    priorities: Sequence[Priority] = (),
    override: Optional[DateOverride] = None,
) -> Optional[GanttTask]:
    """Project one task, or None if it has no id or no usable date."""
    if not task or not task.id:
        return None
    try:
        start, end = _task_dates(task, override)
    except ValueError:
        logger.warning("Skipping task %s with malformed dates", task.id)
        return None
    if start is None:
        return None

    priority, color = resolve_priority(task, priorities)
    return GanttTask(
        id=task.id,
        title=task.title,
        ticket=task.ticket or "",
        start_date=start,
        end_date=end,
        column_id=task.column_id or column.id,
        column_position=column.position,
        task_position=task.position or 0,
        status=column.title,
        priority=priority,
        priority_color=color,
        is_column_finished=column.is_finished,
        is_column_archived=column.is_archived,
    )


def project_tasks(
    snapshot: BoardSnapshot,
    priorities: Sequence[Priority] = (),
    overrides: Optional[Mapping[str, DateOverride]] = None,
) -> List[GanttTask]:
    """
    Project every dated task of ``snapshot``.

    Returns:
        GanttTasks ordered by (column position, task position).
    """
    overrides = overrides or {}
    tasks: List[GanttTask] = []
    for column in snapshot.columns.values():
        for task in column.tasks:
            gantt_task = project_task(
                task, column, priorities, overrides.get(task.id) if task else None
            )
            if gantt_task is not None:
                tasks.append(gantt_task)

    tasks.sort(key=lambda t: (t.column_position, t.task_position))
    return tasks


def group_by_column(
    snapshot: BoardSnapshot, tasks: Sequence[GanttTask]
) -> Dict[str, List[GanttTask]]:
    """
    Group projected tasks under their columns, columns in board order.

    Every column gets a group, empty ones included; tasks whose column is
    not on the board are dropped.
    """
    groups: Dict[str, List[GanttTask]] = OrderedDict(
        (column.id, []) for column in snapshot.sorted_columns()
    )
    for task in tasks:
        if task.column_id in groups:
            groups[task.column_id].append(task)
    for column_tasks in groups.values():
        column_tasks.sort(key=lambda t: t.task_position)
    return groups
