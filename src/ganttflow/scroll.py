"""
Viewport arithmetic and scroll-position persistence.

Pure helpers decide when the window must grow, where to scroll so a target
day lands at the start, center or end of the viewport, and which day is
leftmost in view. ``ScrollPositionTracker`` restores the saved leftmost day
of a board once and writes it back, debounced, while the user scrolls.
"""

import logging
from datetime import date
from typing import Optional

from .config import COLUMN_WIDTH, EDGE_THRESHOLD_PX, SCROLL_SAVE_DEBOUNCE_SECONDS
from .date_index import DateIndex
from .dates import format_local_date, parse_local_date
from .scheduling import BackgroundTasks, Timer
from .window import Edge, Placement

logger = logging.getLogger(__name__)


def edge_to_extend(
    scroll_left: float,
    client_width: float,
    scroll_width: float,
    threshold: float = EDGE_THRESHOLD_PX,
) -> Optional[Edge]:
    """
    Which edge of the window the viewport is close to, if any.

    The end edge wins when the viewport is close to both.
    """
    if scroll_width <= 0:
        return None
    if scroll_left + client_width > scroll_width - threshold:
        return Edge.END
    if scroll_left < threshold:
        return Edge.START
    return None


def placement_scroll_offset(
    column: int,
    placement: Placement,
    client_width: float,
    column_width: int = COLUMN_WIDTH,
) -> float:
    """
    Scroll offset that puts ``column`` at the requested spot of the viewport.

    Never negative.
    """
    placement = Placement(placement)
    left = column * column_width
    if placement is Placement.START:
        offset = left
    elif placement is Placement.END:
        offset = left - client_width + column_width
    else:
        offset = left - client_width / 2 + column_width / 2
    return max(0, offset)


def leftmost_visible_date(
    index: DateIndex, scroll_left: float, column_width: int = COLUMN_WIDTH
) -> Optional[date]:
    return index.date_at_x(max(0, scroll_left), column_width)


class ScrollPositionTracker:
    """
    Reads and writes the saved leftmost day of a board.

    Args:
        store: A ScrollPositionStore.
        debounce: Quiet period before a save is written.
        background: Where timer-fired writes run.
    """

    def __init__(
        self,
        store,
        debounce: float = SCROLL_SAVE_DEBOUNCE_SECONDS,
        background: Optional[BackgroundTasks] = None,
    ):
        self.store = store
        self.initializing = False
        self._pending: Optional[tuple] = None
        self._timer = Timer(debounce, self._write, background)

    async def restore(self, board_id: str) -> Optional[date]:
        """Saved day for ``board_id``, or None if missing or unreadable."""
        if not board_id:
            return None
        try:
            raw = await self.store.get(board_id)
        except Exception:
            logger.warning("Could not read scroll position of %s", board_id, exc_info=True)
            return None
        try:
            return parse_local_date(raw)
        except ValueError:
            logger.warning("Ignoring malformed scroll position %r", raw)
            return None

    def save(self, board_id: Optional[str], day: Optional[date]) -> bool:
        """Schedule a write of ``day``; ignored while the engine initializes."""
        if self.initializing or not board_id or day is None:
            return False
        self._pending = (board_id, format_local_date(day))
        self._timer.schedule()
        return True

    @property
    def pending(self) -> bool:
        return self._pending is not None

    async def flush(self) -> None:
        """Write a scheduled save immediately."""
        self._timer.cancel()
        await self._write()

    async def _write(self) -> None:
        if self._pending is None:
            return
        board_id, value = self._pending
        self._pending = None
        try:
            await self.store.set(board_id, value)
        except Exception:
            logger.warning("Could not save scroll position of %s", board_id, exc_info=True)
        else:
            logger.debug("Saved scroll position %s for %s", value, board_id)
