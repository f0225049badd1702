"""
GanttFlow - Gantt timeline engine

A Python library for the date axis, task geometry, drag interactions,
dependency arrows and keyboard batch moves of a Gantt board view.

Example:
    >>> from ganttflow import GanttEngine, InMemoryTaskBackend
    >>> engine = GanttEngine(InMemoryTaskBackend({"b1": snapshot}))
    >>> await engine.load("b1", client_width=1200)
    >>> frame = engine.render()
    >>> [arrow.is_blocked for arrow in frame.arrows]
    [True]

Rendering Example:
    >>> from ganttflow import TimelinePNGRenderer
    >>> TimelinePNGRenderer().render(frame, "timeline.png")
"""

from .arrows import ArrowRouter, DependencyArrow, is_blocked, route_path, route_points
from .backend import InMemoryScrollStore, InMemoryTaskBackend, ScrollPositionStore, TaskBackend
from .batch import BatchResult, MultiSelectBatchMover
from .config import GanttSettings
from .date_index import DateIndex
from .drag import DragController, DragState, TaskCreationGesture, compute_drag_dates
from .engine import GanttEngine, GanttFrame
from .exceptions import (
    BackendError,
    BatchUpdateError,
    ConfigurationError,
    GanttError,
    RelationshipError,
)
from .geometry import RowLayout, TaskGeometryProjector
from .models import (
    BoardSnapshot,
    Column,
    DateCell,
    DateOverride,
    DragKind,
    GanttTask,
    Priority,
    RelationshipEdge,
    RelationshipKind,
    Task,
    TaskPosition,
)
from .png_renderer import TimelinePNGRenderer, render_to_png
from .projection import project_tasks
from .relationships import RelationshipPicker, RelationshipStore
from .scroll import ScrollPositionTracker
from .window import DateWindow, Edge, ExtendResult, Placement

__version__ = "0.1.0"

__all__ = [
    # Main API
    "GanttEngine",
    "GanttFrame",
    "GanttSettings",
    # Date axis
    "DateWindow",
    "DateIndex",
    "Edge",
    "ExtendResult",
    "Placement",
    # Geometry
    "RowLayout",
    "TaskGeometryProjector",
    "project_tasks",
    # Interactions
    "DragController",
    "DragState",
    "TaskCreationGesture",
    "compute_drag_dates",
    "MultiSelectBatchMover",
    "BatchResult",
    # Relationships
    "RelationshipStore",
    "RelationshipPicker",
    "ArrowRouter",
    "DependencyArrow",
    "is_blocked",
    "route_path",
    "route_points",
    "ScrollPositionTracker",
    # Collaborators
    "TaskBackend",
    "ScrollPositionStore",
    "InMemoryTaskBackend",
    "InMemoryScrollStore",
    # Models
    "BoardSnapshot",
    "Column",
    "DateCell",
    "DateOverride",
    "DragKind",
    "GanttTask",
    "Priority",
    "RelationshipEdge",
    "RelationshipKind",
    "Task",
    "TaskPosition",
    # Rendering
    "TimelinePNGRenderer",
    "render_to_png",
    # Errors
    "GanttError",
    "ConfigurationError",
    "BackendError",
    "RelationshipError",
    "BatchUpdateError",
]
