"""
Gantt timeline engine.

``GanttEngine`` wires the components into one object driven by view events
(scroll, pointer, keyboard, remote notifications) and produces a
``GanttFrame`` per render pass:

    snapshot --projection--> GanttTasks --row layout + date index--> positions
    relationship edges + positions --arrow router--> arrows

All methods run on one asyncio event loop. Methods that start timers
(scrolling, arrow keys) must be called while that loop is running.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .arrows import ArrowRouter, DependencyArrow
from .backend import InMemoryScrollStore
from .batch import MultiSelectBatchMover
from .config import PLACEMENT_MARGIN_DAYS, GanttSettings
from .date_index import DateIndex
from .drag import DragController, TaskCreationGesture
from .geometry import RowLayout, RowSlot, TaskGeometryProjector
from .models import (
    BoardSnapshot,
    DateCell,
    DragKind,
    GanttTask,
    Priority,
    RelationshipEdge,
    Task,
    TaskPosition,
)
from .projection import group_by_column, project_tasks
from .relationships import RelationshipPicker, RelationshipStore
from .scheduling import BackgroundTasks, Clock, Timer, monotonic_clock
from .scroll import (
    ScrollPositionTracker,
    edge_to_extend,
    leftmost_visible_date,
    placement_scroll_offset,
)
from .window import DateWindow, Placement

logger = logging.getLogger(__name__)

REFETCH_EVENTS = {"task-created", "task-deleted"}
IGNORED_EVENTS = {"task-updated"}


@dataclass
class GanttFrame:
    """Everything needed to draw one render pass."""

    cells: Tuple[DateCell, ...]
    index: DateIndex
    tasks: List[GanttTask]
    groups: Dict[str, List[GanttTask]]
    rows: Dict[str, RowSlot]
    group_bands: Dict[str, Tuple[float, float]]
    positions: Dict[str, TaskPosition]
    arrows: List[DependencyArrow]
    column_width: int
    scroll_width: int
    height: float
    column_titles: Dict[str, str] = field(default_factory=dict)
    selected: List[str] = field(default_factory=list)
    dragged_task_id: Optional[str] = None


class GanttEngine:
    """
    Facade over the timeline components.

    Args:
        backend: TaskBackend collaborator.
        scroll_store: ScrollPositionStore; an in-memory one by default.
        settings: GanttSettings.
        priorities: Priority options used to label and color bars.
        notify: Receives user-facing failure messages.
        clock: Time source for the relationship debounce.
        today: Returns the current local day.
        on_drag_start: Called with the GanttTask when a drag begins.
        on_drag_end: Called when a drag ends.
        on_scroll_adjust: Called with the compensated scroll offset after
            the window grew or was rebuilt.

    Example:
        >>> engine = GanttEngine(backend)
        >>> await engine.load("board-1", client_width=1200)
        >>> frame = engine.render()
    """

    def __init__(
        self,
        backend,
        scroll_store=None,
        settings: Optional[GanttSettings] = None,
        priorities: Sequence[Priority] = (),
        notify: Optional[Callable[[str], None]] = None,
        clock: Clock = monotonic_clock,
        today: Optional[Callable[[], date]] = None,
        on_drag_start: Optional[Callable[[GanttTask], None]] = None,
        on_drag_end: Optional[Callable[[], None]] = None,
        on_scroll_adjust: Optional[Callable[[float], None]] = None,
    ):
        self.backend = backend
        self.settings = settings or GanttSettings()
        self.priorities = list(priorities)
        self.today = today or date.today
        self.on_scroll_adjust = on_scroll_adjust
        self.background = BackgroundTasks()

        self.board_id: Optional[str] = None
        self.snapshot = BoardSnapshot()
        self.window = DateWindow.default(self.today(), self.settings)
        self._index: Optional[DateIndex] = None
        self._index_version = -1

        self.scroll_left = 0.0
        self.client_width = 0.0

        self.rows = RowLayout(self.settings)
        self.geometry = TaskGeometryProjector(self.settings)
        self.relationships = RelationshipStore(
            backend,
            notify=notify,
            clock=clock,
            debounce=self.settings.relationship_debounce,
        )
        self.picker = RelationshipPicker(self.relationships)
        self.arrow_router = ArrowRouter(self.settings.column_width)
        self.drag = DragController(self._commit_dates, on_drag_start, on_drag_end)
        self.creation = TaskCreationGesture(self._add_task)
        self.multi_select = MultiSelectBatchMover(
            backend,
            self.snapshot_task,
            self.settings,
            on_commit=self.apply_task_updates,
            background=self.background,
        )
        self.scroll_tracker = ScrollPositionTracker(
            scroll_store if scroll_store is not None else InMemoryScrollStore(),
            self.settings.scroll_save_debounce,
            self.background,
        )
        self._scroll_timer = Timer(self.settings.scroll_throttle, self.check_edges)

    # --- data ---

    @property
    def index(self) -> DateIndex:
        """Date index of the current window, rebuilt when the window changes."""
        if self._index is None or self._index_version != self.window.version:
            self._index = DateIndex(self.window.cells)
            self._index_version = self.window.version
        return self._index

    def snapshot_task(self, task_id: str) -> Optional[Task]:
        return self.snapshot.find_task(task_id)

    def gantt_tasks(self) -> List[GanttTask]:
        """Projected tasks from the source dates, without transient overrides."""
        return project_tasks(self.snapshot, self.priorities)

    def find_gantt_task(self, task_id: str) -> Optional[GanttTask]:
        for task in self.gantt_tasks():
            if task.id == task_id:
                return task
        return None

    async def load(self, board_id: str, client_width: float = 0) -> float:
        """
        Initialize the view for ``board_id``.

        Restores the saved leftmost day (or uses today), builds the window
        around it, fetches tasks and relationships and returns the scroll
        offset that puts the restored day at the left edge (today centered).
        """
        self.board_id = board_id
        self.client_width = client_width
        self.scroll_tracker.initializing = True
        try:
            saved = await self.scroll_tracker.restore(board_id)
            target = saved or self.today()
            placement = Placement.START if saved else Placement.CENTER
            self.window.recenter(target, Placement.CENTER, self.today())
            await self.refresh()
            await self.load_relationships()
            self.scroll_left = placement_scroll_offset(
                self.index.get(target) or 0,
                placement,
                client_width,
                self.settings.column_width,
            )
        finally:
            self.scroll_tracker.initializing = False
        logger.info(
            "Loaded board %s: %d task(s), %d relationship(s)",
            board_id,
            sum(1 for _ in self.snapshot.iter_tasks()),
            len(self.relationships),
        )
        return self.scroll_left

    async def set_board(self, board_id: str, client_width: float = 0) -> float:
        """Switch boards: leave interaction modes, save scroll, reload."""
        await self.scroll_tracker.flush()
        self.picker.exit()
        self.multi_select.exit()
        self.multi_select.reset()
        self.drag.cancel()
        self.creation.cancel()
        return await self.load(board_id, client_width)

    async def refresh(self) -> None:
        """Re-fetch the grouped snapshot of the current board."""
        if not self.board_id:
            return
        self.apply_snapshot(await self.backend.fetch_tasks_by_column(self.board_id))

    async def load_relationships(self) -> None:
        """Fetch the edges of every task on the board, deduplicated by id."""
        edges: Dict[str, RelationshipEdge] = {}
        for task in self.snapshot.iter_tasks():
            try:
                task_edges = await self.backend.get_task_relationships(task.id)
            except Exception:
                logger.warning(
                    "Could not load relationships of task %s", task.id, exc_info=True
                )
                continue
            for edge in task_edges:
                edges.setdefault(edge.id, edge)
        self.apply_relationships(edges.values())

    def apply_snapshot(self, snapshot: BoardSnapshot) -> None:
        self.snapshot = snapshot

    def apply_relationships(self, edges: Iterable[RelationshipEdge]) -> None:
        self.relationships.sync(edges)

    def apply_task_updates(self, tasks: Iterable[Task]) -> None:
        """Patch the snapshot with tasks returned by a committed update."""
        for updated in tasks:
            task = self.snapshot.find_task(updated.id)
            if task is None:
                continue
            task.start_date = updated.start_date
            task.due_date = updated.due_date

    async def handle_remote_event(
        self, event: str, payload: Optional[Mapping] = None
    ) -> bool:
        """
        React to a remote change notification.

        Returns:
            True if the snapshot was re-fetched.
        """
        payload = payload or {}
        board_id = payload.get("boardId", payload.get("board_id"))
        if event in IGNORED_EVENTS or event not in REFETCH_EVENTS:
            return False
        if board_id is not None and board_id != self.board_id:
            return False
        logger.debug("Re-fetching board %s after %s", self.board_id, event)
        await self.refresh()
        return True

    # --- render ---

    def render(self) -> GanttFrame:
        """Run one render pass over the current state."""
        overrides = self.multi_select.overrides()
        overrides.update(self.drag.overrides())
        tasks = project_tasks(self.snapshot, self.priorities, overrides)
        groups = group_by_column(self.snapshot, tasks)
        rows = self.rows.layout(groups)
        index = self.index
        positions = self.geometry.project(tasks, index, rows)
        edges = self.relationships.visible_edges(task.id for task in tasks)
        arrows = self.arrow_router.update(edges, tasks, positions)
        return GanttFrame(
            cells=self.window.cells,
            index=index,
            tasks=tasks,
            groups=groups,
            rows=rows,
            group_bands=self.rows.group_bands(groups),
            positions=positions,
            arrows=arrows,
            column_width=self.settings.column_width,
            scroll_width=self.window.scroll_width,
            height=self.rows.total_height(groups),
            column_titles={c.id: c.title for c in self.snapshot.sorted_columns()},
            selected=list(self.multi_select.selected),
            dragged_task_id=self.drag.state.task_id if self.drag.state else None,
        )

    # --- scrolling ---

    def on_scroll(self, scroll_left: float, client_width: Optional[float] = None) -> None:
        """
        Record a scroll event.

        The edge check runs once scrolling pauses for ``scroll_throttle``;
        the leftmost visible day is saved after ``scroll_save_debounce``.
        """
        self.scroll_left = scroll_left
        if client_width is not None:
            self.client_width = client_width
        self._scroll_timer.schedule()
        self.scroll_tracker.save(
            self.board_id,
            leftmost_visible_date(self.index, scroll_left, self.settings.column_width),
        )

    def check_edges(self) -> float:
        """
        Extend the window if the viewport is near one of its edges.

        Returns:
            The scroll offset, compensated so the same days stay in view.
        """
        edge = edge_to_extend(
            self.scroll_left,
            self.client_width,
            self.window.scroll_width,
            self.settings.edge_threshold_px,
        )
        if edge is None:
            return self.scroll_left
        result = self.window.extend(edge, self.today())
        if result.scroll_delta:
            self.scroll_left = max(0, self.scroll_left + result.scroll_delta)
        if self.on_scroll_adjust:
            self.on_scroll_adjust(self.scroll_left)
        return self.scroll_left

    async def navigate_to_date(
        self, target: date, placement: Placement = Placement.CENTER
    ) -> float:
        """Rebuild the window around ``target`` and scroll it into place."""
        placement = Placement(placement)
        self.window.recenter(target, placement, self.today())
        column = self.index.get(target)
        self.scroll_left = placement_scroll_offset(
            column or 0, placement, self.client_width, self.settings.column_width
        )
        if self.on_scroll_adjust:
            self.on_scroll_adjust(self.scroll_left)
        self.scroll_tracker.save(
            self.board_id,
            leftmost_visible_date(self.index, self.scroll_left, self.settings.column_width),
        )
        await self.scroll_tracker.flush()
        return self.scroll_left

    async def jump_to_task(
        self, task_id: str, placement: Placement = Placement.CENTER
    ) -> Optional[float]:
        task = self.find_gantt_task(task_id)
        if task is None:
            logger.debug("Cannot jump to unknown or undated task %s", task_id)
            return None
        return await self.navigate_to_date(task.start_date, placement)

    async def jump_to_earliest(self) -> Optional[float]:
        tasks = self.gantt_tasks()
        if not tasks:
            return None
        earliest = min(task.start_date for task in tasks)
        return await self.navigate_to_date(earliest, Placement.START)

    async def jump_to_latest(self) -> Optional[float]:
        tasks = self.gantt_tasks()
        if not tasks:
            return None
        latest = max(task.end_date for task in tasks)
        return await self.navigate_to_date(latest, Placement.END)

    async def scroll_to_today(self) -> float:
        return await self.navigate_to_date(self.today(), Placement.CENTER)

    async def scroll_earlier(self) -> float:
        target = self.window.first_date - timedelta(days=PLACEMENT_MARGIN_DAYS)
        return await self.navigate_to_date(target, Placement.END)

    async def scroll_later(self) -> float:
        target = self.window.last_date + timedelta(days=PLACEMENT_MARGIN_DAYS)
        return await self.navigate_to_date(target, Placement.START)

    # --- pointer ---

    def pointer_down(self, task_id: str, kind: DragKind) -> bool:
        task = self.find_gantt_task(task_id)
        if task is None:
            return False
        return self.drag.pointer_down(task, kind)

    def pointer_over(self, day: date) -> None:
        if self.drag.is_dragging:
            self.drag.pointer_over(day)
        elif self.creation.active:
            self.creation.hover(day)

    async def pointer_up(self, day: Optional[date] = None):
        if self.drag.is_dragging:
            return await self.drag.pointer_up(day)
        if self.creation.active:
            if day is not None:
                self.creation.hover(day)
            columns = self.snapshot.sorted_columns()
            return await self.creation.release(columns[0].id if columns else None)
        return None

    def pointer_cancel(self) -> None:
        self.drag.cancel()
        self.creation.cancel()

    def press_empty_cell(self, day: date) -> None:
        """Start the task-creation sweep on an empty day."""
        if not self.drag.is_dragging:
            self.creation.press(day)

    async def click_task(self, task_id: str):
        """A click on a bar: picks relationships or toggles selection by mode."""
        if self.picker.active:
            return await self.picker.click(task_id)
        if self.multi_select.active:
            return self.multi_select.toggle(task_id)
        return None

    # --- keyboard ---

    def enter_relationship_mode(self) -> None:
        self.multi_select.exit()
        self.picker.enter()

    def enter_multi_select(self) -> None:
        self.picker.exit()
        self.multi_select.enter()

    def key_down(self, key: str, modifiers: Iterable[str] = ()) -> bool:
        if key in ("Escape", "Enter"):
            handled = self.picker.active or self.multi_select.active
            self.picker.exit()
            self.multi_select.exit()
            if key == "Escape" and (self.drag.is_dragging or self.creation.active):
                self.pointer_cancel()
                handled = True
            return handled
        return self.multi_select.key_down(key, modifiers)

    def key_up(self, key: str) -> None:
        self.multi_select.key_up(key)

    # --- mutations ---

    async def create_relationship(self, from_task_id: str, to_task_id: str):
        return await self.relationships.create_relationship(from_task_id, to_task_id)

    async def delete_relationship(self, edge_id: str, from_task_id: str) -> bool:
        return await self.relationships.delete_relationship(edge_id, from_task_id)

    async def _commit_dates(self, task_id: str, fields: Mapping[str, str]) -> Task:
        task = await self.backend.update_task(task_id, fields)
        if task is not None:
            self.apply_task_updates([task])
        return task

    async def _add_task(self, column_id: str, start: str, due: str) -> Task:
        task = await self.backend.add_task(column_id, start, due)
        await self.refresh()
        return task

    async def settle(self) -> None:
        """Wait for timer-fired commits and saves that are already running."""
        await self.background.drain()

    async def close(self) -> None:
        """Commit staged moves and pending saves, then stop all timers."""
        self._scroll_timer.cancel()
        await self.multi_select.flush()
        await self.scroll_tracker.flush()
        await self.settle()
