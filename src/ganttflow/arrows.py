"""
Dependency arrows between task bars.

Routes an orthogonal path from the right edge of a parent's bar to the left
edge of its child's bar, flags the edge as blocked when the parent can
still delay the child, and keeps arrow objects stable across render passes:
an arrow is rebuilt only when its endpoint geometry or blocked flag changed.

Only parent edges are drawn; child/related edges are bookkeeping kinds.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import (
    BLOCKED_COLOR,
    BLOCKED_STROKE_WIDTH,
    CENTER_OFFSET,
    COLUMN_WIDTH,
    ON_TRACK_COLOR,
    ON_TRACK_STROKE_WIDTH,
    RAIL_OFFSET,
    STEP_OUT_COLUMNS,
)
from .models import GanttTask, RelationshipEdge, RelationshipKind, TaskPosition

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass
class DependencyArrow:
    """A routed finish-to-start arrow. Derived, never persisted."""

    id: str
    edge_id: str
    from_task_id: str
    to_task_id: str
    from_position: TaskPosition
    to_position: TaskPosition
    points: List[Point] = field(default_factory=list)
    is_blocked: bool = False

    @property
    def color(self) -> str:
        return BLOCKED_COLOR if self.is_blocked else ON_TRACK_COLOR

    @property
    def stroke_width(self) -> int:
        return BLOCKED_STROKE_WIDTH if self.is_blocked else ON_TRACK_STROKE_WIDTH

    @property
    def path(self) -> str:
        return points_to_path(self.points)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def points_to_path(points: List[Point]) -> str:
    """SVG path data ("M x y L x y ...") through ``points``."""
    if not points:
        return ""
    head, *tail = points
    parts = [f"M {_fmt(head[0])} {_fmt(head[1])}"]
    parts.extend(f"L {_fmt(x)} {_fmt(y)}" for x, y in tail)
    return " ".join(parts)


def route_points(
    from_pos: TaskPosition, to_pos: TaskPosition, column_width: int = COLUMN_WIDTH
) -> List[Point]:
    """
    Orthogonal route from the parent's right edge to the child's left edge.

    The path steps out 1.5 columns from the parent, turns onto a horizontal
    rail 30px above the parent's center when the parent sits below the
    child (below it otherwise), runs to 1.5 columns before the child and
    turns in. Both ends sit 2px off the bars' centers, on the rail side.
    """
    from_x = from_pos.x + from_pos.width
    from_y = from_pos.y + from_pos.height / 2
    to_x = to_pos.x
    to_y = to_pos.y + to_pos.height / 2

    step = column_width * STEP_OUT_COLUMNS
    step_out_x = from_x + step
    approach_x = to_x - step

    parent_below = from_y > to_y
    sign = -1 if parent_below else 1
    rail_y = from_y + sign * RAIL_OFFSET
    from_y_adjusted = from_y + sign * CENTER_OFFSET
    to_y_adjusted = to_y + sign * CENTER_OFFSET

    return [
        (from_x, from_y_adjusted),
        (step_out_x, from_y_adjusted),
        (step_out_x, rail_y),
        (approach_x, rail_y),
        (approach_x, to_y_adjusted),
        (to_x, to_y_adjusted),
    ]


def route_path(
    from_pos: TaskPosition, to_pos: TaskPosition, column_width: int = COLUMN_WIDTH
) -> str:
    return points_to_path(route_points(from_pos, to_pos, column_width))


def is_blocked(parent: GanttTask, child: GanttTask) -> bool:
    """
    Whether ``parent`` still blocks ``child``.

    Blocked when the parent's column is neither finished nor archived, the
    child has a start date, and the parent has no end date or the child
    starts on or before the parent's end date.
    """
    if parent.is_column_finished or parent.is_column_archived:
        return False
    if child.start_date is None:
        return False
    if parent.end_date is None:
        return True
    return child.start_date <= parent.end_date


def _same_geometry(arrow: DependencyArrow, from_pos: TaskPosition, to_pos: TaskPosition) -> bool:
    a, b = arrow.from_position, arrow.to_position
    return (a.x, a.y, a.width) == (from_pos.x, from_pos.y, from_pos.width) and (
        b.x,
        b.y,
        b.width,
    ) == (to_pos.x, to_pos.y, to_pos.width)


class ArrowRouter:
    """
    Maintains the arrow list across render passes.

    Example:
        >>> router = ArrowRouter()
        >>> arrows = router.update(edges, tasks, positions)
        >>> router.last_rebuilt
        2
    """

    def __init__(self, column_width: int = COLUMN_WIDTH):
        self.column_width = column_width
        self.arrows: List[DependencyArrow] = []
        self.last_rebuilt = 0

    def update(
        self,
        edges: Iterable[RelationshipEdge],
        tasks: Iterable[GanttTask],
        positions: Mapping[str, TaskPosition],
    ) -> List[DependencyArrow]:
        """
        Recompute arrows for ``edges`` over the current geometry.

        Edges whose endpoints are not both drawn are skipped; a (from, to)
        pair is drawn once. Unchanged arrows are reused as the same objects.
        """
        tasks_by_id: Dict[str, GanttTask] = {task.id: task for task in tasks}
        previous = {arrow.id: arrow for arrow in self.arrows}
        arrows: List[DependencyArrow] = []
        seen_pairs = set()
        rebuilt = 0

        for edge in edges:
            if edge.kind is not RelationshipKind.PARENT:
                continue
            parent = tasks_by_id.get(edge.from_task_id)
            child = tasks_by_id.get(edge.to_task_id)
            if parent is None or child is None:
                continue
            pair = (edge.from_task_id, edge.to_task_id)
            if pair in seen_pairs:
                continue
            seen_pairs.add(pair)

            from_pos = positions.get(parent.id)
            to_pos = positions.get(child.id)
            if from_pos is None or to_pos is None:
                continue

            arrow_id = f"{edge.id}-{edge.from_task_id}-{edge.to_task_id}"
            blocked = is_blocked(parent, child)
            existing: Optional[DependencyArrow] = previous.get(arrow_id)
            if (
                existing is not None
                and existing.is_blocked == blocked
                and _same_geometry(existing, from_pos, to_pos)
            ):
                arrows.append(existing)
                continue

            arrows.append(
                DependencyArrow(
                    id=arrow_id,
                    edge_id=edge.id,
                    from_task_id=edge.from_task_id,
                    to_task_id=edge.to_task_id,
                    from_position=from_pos,
                    to_position=to_pos,
                    points=route_points(from_pos, to_pos, self.column_width),
                    is_blocked=blocked,
                )
            )
            rebuilt += 1

        self.arrows = arrows
        self.last_rebuilt = rebuilt
        if rebuilt:
            logger.debug("Rebuilt %d of %d arrow(s)", rebuilt, len(arrows))
        return arrows

    def delete_button_anchor(self, arrow: DependencyArrow) -> Point:
        """Where the delete control of ``arrow`` sits: 20px left of the child."""
        to_pos = arrow.to_position
        return to_pos.x - 20, to_pos.center_y
