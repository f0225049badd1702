"""
Date index: O(1) lookup from a calendar day to its column in the window.

The index is a pure function of one window state. It is rebuilt in a single
pass whenever the window changes and is never patched in place. Keys are
local "YYYY-MM-DD" strings; a missing key means "not currently in view".
"""

from datetime import date
from typing import Dict, Iterable, Optional, Union

from .dates import format_local_date
from .models import DateCell


class DateIndex:
    """Mapping from local date key to column index."""

    def __init__(self, cells: Iterable[DateCell] = ()):
        self._index: Dict[str, int] = {}
        self._dates = []
        for position, cell in enumerate(cells):
            self._index[format_local_date(cell.calendar_date)] = position
            self._dates.append(cell.calendar_date)

    @staticmethod
    def _key(value: Union[str, date]) -> str:
        return value if isinstance(value, str) else format_local_date(value)

    def get(self, value: Union[str, date, None]) -> Optional[int]:
        """Column of ``value`` in the window, or None when out of view."""
        if value is None:
            return None
        return self._index.get(self._key(value))

    def __contains__(self, value) -> bool:
        return self.get(value) is not None

    def __len__(self) -> int:
        return len(self._index)

    def date_at(self, position: int) -> Optional[date]:
        """Calendar day of column ``position``, or None if out of range."""
        if 0 <= position < len(self._dates):
            return self._dates[position]
        return None

    def date_at_x(self, x: float, column_width: int) -> Optional[date]:
        """Calendar day under timeline pixel ``x``."""
        if x < 0:
            return None
        return self.date_at(int(x // column_width))
