"""
Date window for the timeline.

The window is a bounded, ordered run of calendar-day cells. It grows by
``buffer_days`` when the viewport nears one of its edges and is trimmed from
the opposite edge when it would exceed ``max_days_in_view``. Every change
replaces the cell tuple wholesale, so readers holding the previous tuple (or
an index built from it) never observe a half-applied mutation.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterator, Optional, Tuple

from .config import INITIAL_FUTURE_DAYS, INITIAL_PAST_DAYS, PLACEMENT_MARGIN_DAYS
from .config import GanttSettings
from .dates import date_range, is_weekend
from .models import DateCell

logger = logging.getLogger(__name__)


class Edge(Enum):
    """Edge of the window that is being extended."""

    START = "start"
    END = "end"


class Placement(Enum):
    """Where a jump target should land in the rebuilt window."""

    START = "start"
    CENTER = "center"
    END = "end"


@dataclass
class ExtendResult:
    """
    Outcome of one window extension.

    Attributes:
        edge: The edge that received new cells.
        added: Number of cells added on ``edge``.
        trimmed: Number of cells removed from the opposite edge.
        scroll_delta: Pixels to add to the scroll offset so the same dates
            stay under the viewport.
    """

    edge: Edge
    added: int = 0
    trimmed: int = 0
    scroll_delta: int = 0


def make_cells(start: date, end: date, today: date) -> Tuple[DateCell, ...]:
    """Create cells for [start, end] with today/weekend flags fixed at creation."""
    return tuple(
        DateCell(calendar_date=day, is_today=(day == today), is_weekend=is_weekend(day))
        for day in date_range(start, end)
    )


class DateWindow:
    """
    Bounded sliding window of calendar days.

    Example:
        >>> window = DateWindow.around(date(2024, 6, 1), today=date(2024, 6, 1))
        >>> len(window)
        181
        >>> result = window.extend(Edge.END)
        >>> result.added
        60
    """

    def __init__(
        self,
        cells: Tuple[DateCell, ...] = (),
        settings: Optional[GanttSettings] = None,
    ):
        self.settings = settings or GanttSettings()
        self._cells: Tuple[DateCell, ...] = tuple(cells)
        self.version = 0
        if len(self._cells) > self.settings.max_days_in_view:
            raise ValueError(
                f"Window of {len(self._cells)} days exceeds "
                f"{self.settings.max_days_in_view}"
            )

    @classmethod
    def default(
        cls, today: Optional[date] = None, settings: Optional[GanttSettings] = None
    ) -> "DateWindow":
        """Window used before any board is loaded: 60 days back, 120 ahead."""
        today = today or date.today()
        cells = make_cells(
            today - timedelta(days=INITIAL_PAST_DAYS),
            today + timedelta(days=INITIAL_FUTURE_DAYS),
            today,
        )
        return cls(cells, settings)

    @classmethod
    def around(
        cls,
        target: date,
        placement: Placement = Placement.CENTER,
        today: Optional[date] = None,
        settings: Optional[GanttSettings] = None,
    ) -> "DateWindow":
        """Window built around ``target`` (see ``recenter``)."""
        window = cls(settings=settings)
        window.recenter(target, placement, today)
        return window

    @property
    def cells(self) -> Tuple[DateCell, ...]:
        return self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[DateCell]:
        return iter(self._cells)

    def __getitem__(self, index: int) -> DateCell:
        return self._cells[index]

    @property
    def first_date(self) -> Optional[date]:
        return self._cells[0].calendar_date if self._cells else None

    @property
    def last_date(self) -> Optional[date]:
        return self._cells[-1].calendar_date if self._cells else None

    @property
    def scroll_width(self) -> int:
        """Total pixel width of the materialized timeline."""
        return len(self._cells) * self.settings.column_width

    def _replace(self, cells: Tuple[DateCell, ...]) -> None:
        self._cells = cells
        self.version += 1

    def extend(self, edge: Edge, today: Optional[date] = None) -> ExtendResult:
        """
        Add ``buffer_days`` cells on ``edge``, trimming the far edge if needed.

        Args:
            edge: Edge.START to prepend earlier days, Edge.END to append later.
            today: Reference day for the ``is_today`` flag of the new cells.

        Returns:
            ExtendResult with the scroll compensation in pixels. Prepending
            always shifts existing content right by the added width;
            appending shifts it left only when cells were trimmed at the start.
        """
        edge = Edge(edge)
        if not self._cells:
            return ExtendResult(edge)

        today = today or date.today()
        buffer_days = self.settings.buffer_days
        max_days = self.settings.max_days_in_view
        width = self.settings.column_width

        if edge is Edge.END:
            last = self._cells[-1].calendar_date
            added = make_cells(
                last + timedelta(days=1), last + timedelta(days=buffer_days), today
            )
            cells = self._cells + added
            trimmed = 0
            if len(cells) > max_days:
                trimmed = max(buffer_days, len(cells) - max_days)
                cells = cells[trimmed:]
            scroll_delta = -trimmed * width
        else:
            first = self._cells[0].calendar_date
            added = make_cells(
                first - timedelta(days=buffer_days), first - timedelta(days=1), today
            )
            cells = added + self._cells
            trimmed = 0
            if len(cells) > max_days:
                trimmed = max(buffer_days, len(cells) - max_days)
                cells = cells[: len(cells) - trimmed]
            scroll_delta = len(added) * width

        self._replace(cells)
        logger.debug(
            "Extended window at %s: +%d, -%d (now %d days, %s..%s)",
            edge.value,
            len(added),
            trimmed,
            len(cells),
            self.first_date,
            self.last_date,
        )
        return ExtendResult(edge, len(added), trimmed, scroll_delta)

    def recenter(
        self,
        target: date,
        placement: Placement = Placement.CENTER,
        today: Optional[date] = None,
    ) -> None:
        """
        Discard the window and rebuild it around ``target``.

        Center placement keeps ``viewport_days / 2`` on each side; start and
        end placement keep a short margin before (or after) the target and
        the rest of the viewport span on the other side.
        """
        placement = Placement(placement)
        today = today or date.today()
        span = self.settings.viewport_days
        margin = PLACEMENT_MARGIN_DAYS

        if placement is Placement.START:
            start = target - timedelta(days=margin)
            end = target + timedelta(days=span - margin)
        elif placement is Placement.END:
            start = target - timedelta(days=span - margin)
            end = target + timedelta(days=margin)
        else:
            start = target - timedelta(days=span // 2)
            end = target + timedelta(days=span // 2)

        cells = make_cells(start, end, today)
        if len(cells) > self.settings.max_days_in_view:
            cells = cells[: self.settings.max_days_in_view]
        self._replace(cells)
        logger.debug("Recentered window on %s (%s)", target, placement.value)
