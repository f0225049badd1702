"""
Configuration for the timeline engine.

Module-level constants hold the reference behaviour of the Gantt view. The
subset that deployments commonly tune is collected in ``GanttSettings``,
which components accept in their constructors. ``GanttSettings.from_env``
reads ``GANTTFLOW_*`` variables, optionally from a ``.env`` file.
"""

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError

# =============================================================================
# TIMELINE CONFIGURATION - Adjust these values to tune timeline behavior
# =============================================================================

# --- Date window (in days) ---

# Hard upper bound on materialized day cells
MAX_DAYS_IN_VIEW = 365

# Days added on one edge when scrolling near it
BUFFER_DAYS = 60

# Span built around a target when jumping to a date
VIEWPORT_DAYS = 180

# Span of the default window when no board is loaded
INITIAL_PAST_DAYS = 60
INITIAL_FUTURE_DAYS = 120

# Days kept before/after the target for "start"/"end" placement
PLACEMENT_MARGIN_DAYS = 30

# --- Geometry (in pixels) ---

# Width of one day column
COLUMN_WIDTH = 40

# Height of a task row and of a column group header row
ROW_HEIGHT = 40
GROUP_HEADER_HEIGHT = 32

# Height of a task bar inside its row
BAR_HEIGHT = 24

# Distance from a scroll edge that triggers window extension
EDGE_THRESHOLD_PX = 500

# --- Arrow routing ---

# Horizontal step-out from the source bar, in column widths
STEP_OUT_COLUMNS = 1.5

# Vertical distance of the routing rail from the source center
RAIL_OFFSET = 30

# Offset from each bar's exact vertical center
CENTER_OFFSET = 2

BLOCKED_COLOR = "#EF4444"
ON_TRACK_COLOR = "#3B82F6"
BLOCKED_STROKE_WIDTH = 4
ON_TRACK_STROKE_WIDTH = 3

DEFAULT_PRIORITY = "medium"
DEFAULT_PRIORITY_COLOR = "#808080"

# --- Timers (in seconds) ---

SCROLL_THROTTLE_SECONDS = 0.1
SCROLL_SAVE_DEBOUNCE_SECONDS = 1.0
RELATIONSHIP_DEBOUNCE_SECONDS = 0.5
BATCH_DEBOUNCE_SECONDS = 0.15
ARROW_KEY_GUARD_SECONDS = 0.2

# =============================================================================

ENV_PREFIX = "GANTTFLOW_"


@dataclass
class GanttSettings:
    """
    Runtime-tunable settings shared by the engine components.

    Attributes:
        column_width: Pixel width of one day column.
        max_days_in_view: Upper bound on the date window length.
        buffer_days: Cells appended/prepended per extension.
        viewport_days: Span rebuilt around a jump target.
        edge_threshold_px: Scroll distance from an edge that triggers extension.
        row_height: Pixel height of a task row.
        group_header_height: Pixel height of a column group header.
        bar_height: Pixel height of a task bar.
        scroll_throttle: Delay before a scroll event is evaluated.
        scroll_save_debounce: Quiet period before a scroll position is saved.
        relationship_debounce: Window in which repeated creates are dropped.
        batch_debounce: Quiet period before staged moves are committed.
        arrow_key_guard: Time after which the key-repeat guard self-clears.
    """

    column_width: int = COLUMN_WIDTH
    max_days_in_view: int = MAX_DAYS_IN_VIEW
    buffer_days: int = BUFFER_DAYS
    viewport_days: int = VIEWPORT_DAYS
    edge_threshold_px: int = EDGE_THRESHOLD_PX
    row_height: int = ROW_HEIGHT
    group_header_height: int = GROUP_HEADER_HEIGHT
    bar_height: int = BAR_HEIGHT
    scroll_throttle: float = SCROLL_THROTTLE_SECONDS
    scroll_save_debounce: float = SCROLL_SAVE_DEBOUNCE_SECONDS
    relationship_debounce: float = RELATIONSHIP_DEBOUNCE_SECONDS
    batch_debounce: float = BATCH_DEBOUNCE_SECONDS
    arrow_key_guard: float = ARROW_KEY_GUARD_SECONDS

    def __post_init__(self):
        if self.column_width <= 0:
            raise ConfigurationError("column_width must be positive")
        if self.buffer_days <= 0:
            raise ConfigurationError("buffer_days must be positive")
        if self.max_days_in_view < self.buffer_days:
            raise ConfigurationError("max_days_in_view must be >= buffer_days")
        if self.viewport_days < 2 * PLACEMENT_MARGIN_DAYS:
            raise ConfigurationError(
                f"viewport_days must be >= {2 * PLACEMENT_MARGIN_DAYS}"
            )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "GanttSettings":
        """
        Build settings from ``GANTTFLOW_*`` environment variables.

        Args:
            dotenv_path: Optional path to a .env file loaded first; when
                omitted, the nearest .env at or above the working directory
                is used. Values already present in the environment take
                precedence.

        Returns:
            GanttSettings with every variable that is set applied.

        Raises:
            ConfigurationError: If a variable cannot be parsed.
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))

        values = {}
        for f in fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[f.name] = float(raw) if f.type in (float, "float") else int(raw)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}"
                )
        return cls(**values)
