"""
Relationship store: dependency edges with optimistic create and delete.

The store owns the edges drawn by the timeline. Creating an edge inserts an
optimistic copy with a temporary id before the backend call and either
confirms it in place or rolls it back; deleting removes the edge at once and
restores the exact removed edge if the backend refuses. Parent edges are
mirrored in a networkx DiGraph so that self-references and edges closing a
cycle are rejected before any request is sent.
"""

import itertools
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence

import networkx as nx

from .config import RELATIONSHIP_DEBOUNCE_SECONDS
from .models import TEMP_ID_PREFIX, RelationshipEdge, RelationshipKind
from .scheduling import Clock, monotonic_clock

logger = logging.getLogger(__name__)

CREATE_ERROR_MESSAGES = {
    409: "Cannot create relationship: duplicate or would create a cycle",
    400: "Invalid relationship (e.g., self-reference)",
    404: "Task not found",
}
CREATE_FAILED_MESSAGE = "Failed to create relationship"
DELETE_FAILED_MESSAGE = "Failed to delete relationship"


def creation_error_message(status: Optional[int], detail: str = "") -> str:
    """User-facing message for a failed create, keyed by HTTP status."""
    prefix = CREATE_ERROR_MESSAGES.get(status, CREATE_FAILED_MESSAGE)
    return f"{prefix}: {detail}" if detail else prefix


def _error_detail(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or "Unknown error"


class RelationshipStore:
    """
    Local, optimistically updated list of relationship edges.

    Args:
        backend: Object providing ``add_task_relationship`` and
            ``remove_task_relationship`` coroutines (see TaskBackend).
        notify: Receives user-facing failure messages.
        clock: Time source for the double-click debounce.
        debounce: Seconds during which a repeated create is dropped.
        detect_cycles: Reject self-references and cycle-closing edges locally.
    """

    def __init__(
        self,
        backend,
        notify: Optional[Callable[[str], None]] = None,
        clock: Clock = monotonic_clock,
        debounce: float = RELATIONSHIP_DEBOUNCE_SECONDS,
        detect_cycles: bool = True,
    ):
        self.backend = backend
        self.notify = notify or (lambda message: logger.warning("%s", message))
        self.clock = clock
        self.debounce = debounce
        self.detect_cycles = detect_cycles
        self._edges: List[RelationshipEdge] = []
        self._last_create: Optional[float] = None
        self._temp_ids = itertools.count(1)

    @property
    def edges(self) -> List[RelationshipEdge]:
        return list(self._edges)

    def __len__(self) -> int:
        return len(self._edges)

    def find(self, edge_id: str) -> Optional[RelationshipEdge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def find_pair(
        self,
        from_task_id: str,
        to_task_id: str,
        kind: RelationshipKind = RelationshipKind.PARENT,
    ) -> Optional[RelationshipEdge]:
        for edge in self._edges:
            if (edge.from_task_id, edge.to_task_id, edge.kind) == (
                from_task_id,
                to_task_id,
                kind,
            ):
                return edge
        return None

    def sync(self, server_edges: Iterable[RelationshipEdge]) -> None:
        """
        Adopt the upstream edge list, keeping unconfirmed optimistic edges.
        """
        pending = [edge for edge in self._edges if edge.is_optimistic]
        self._edges = list(server_edges) + pending

    def visible_edges(self, task_ids: Iterable[str]) -> List[RelationshipEdge]:
        """Edges whose two endpoints are both in ``task_ids``."""
        visible = set(task_ids)
        return [
            edge
            for edge in self._edges
            if edge.from_task_id in visible and edge.to_task_id in visible
        ]

    def dependency_graph(self) -> nx.DiGraph:
        """DiGraph of parent edges (finish-to-start dependencies)."""
        graph = nx.DiGraph()
        graph.add_edges_from(
            (edge.from_task_id, edge.to_task_id)
            for edge in self._edges
            if edge.kind is RelationshipKind.PARENT
        )
        return graph

    def would_create_cycle(self, from_task_id: str, to_task_id: str) -> bool:
        """True if adding ``from -> to`` closes a cycle of parent edges."""
        if from_task_id == to_task_id:
            return True
        graph = self.dependency_graph()
        if to_task_id not in graph or from_task_id not in graph:
            return False
        return nx.has_path(graph, to_task_id, from_task_id)

    def scheduling_order(self, task_ids: Sequence[str]) -> List[str]:
        """
        ``task_ids`` ordered so every parent precedes its children.

        Falls back to the given order when the edges contain a cycle.
        """
        graph = self.dependency_graph().subgraph(task_ids).copy()
        graph.add_nodes_from(task_ids)
        rank = {task_id: position for position, task_id in enumerate(task_ids)}
        try:
            return list(nx.lexicographical_topological_sort(graph, key=rank.get))
        except nx.NetworkXUnfeasible:
            return list(task_ids)

    async def create_relationship(
        self, from_task_id: str, to_task_id: str
    ) -> Optional[RelationshipEdge]:
        """
        Create a parent edge ``from -> to`` optimistically.

        Returns:
            The confirmed edge, or None if the call was dropped, rejected
            locally, or failed remotely (after rolling back).
        """
        now = self.clock()
        if self._last_create is not None and now - self._last_create < self.debounce:
            logger.debug("Dropping repeated create %s -> %s", from_task_id, to_task_id)
            return None
        self._last_create = now

        if self.find_pair(from_task_id, to_task_id) is not None:
            logger.debug("Relationship %s -> %s already exists", from_task_id, to_task_id)
            return None

        if self.detect_cycles:
            if from_task_id == to_task_id:
                self.notify(creation_error_message(400, "A task cannot depend on itself"))
                return None
            if self.would_create_cycle(from_task_id, to_task_id):
                self.notify(
                    creation_error_message(
                        409, f"{to_task_id} already depends on {from_task_id}"
                    )
                )
                return None

        optimistic = RelationshipEdge(
            id=f"{TEMP_ID_PREFIX}{next(self._temp_ids)}",
            from_task_id=from_task_id,
            to_task_id=to_task_id,
            kind=RelationshipKind.PARENT,
        )
        self._edges.append(optimistic)

        try:
            created = await self.backend.add_task_relationship(
                from_task_id, RelationshipKind.PARENT, to_task_id
            )
        except Exception as error:
            self._remove(optimistic.id)
            status = getattr(error, "status", None)
            logger.warning(
                "Rolled back relationship %s -> %s (status %s): %s",
                from_task_id,
                to_task_id,
                status,
                error,
            )
            self.notify(creation_error_message(status, _error_detail(error)))
            return None

        return self._confirm(optimistic, created)

    def _confirm(
        self, optimistic: RelationshipEdge, created: Optional[RelationshipEdge]
    ) -> Optional[RelationshipEdge]:
        confirmed_id = str(created.id) if created is not None else None
        if confirmed_id is None:
            confirmed_id = optimistic.id.replace(TEMP_ID_PREFIX, "confirmed-", 1)

        if self.find(confirmed_id) is not None:
            # A sync already delivered the server copy.
            self._remove(optimistic.id)
            return self.find(confirmed_id)

        for position, edge in enumerate(self._edges):
            if edge.id == optimistic.id:
                confirmed = replace(
                    edge,
                    id=confirmed_id,
                    from_ticket=getattr(created, "from_ticket", "") or edge.from_ticket,
                    to_ticket=getattr(created, "to_ticket", "") or edge.to_ticket,
                )
                self._edges[position] = confirmed
                logger.info(
                    "Created relationship %s: %s -> %s",
                    confirmed_id,
                    edge.from_task_id,
                    edge.to_task_id,
                )
                return confirmed
        return None

    async def delete_relationship(self, edge_id: str, from_task_id: str) -> bool:
        """
        Delete an edge optimistically.

        Returns:
            True if the backend confirmed the delete. On failure the removed
            edge object is put back at its previous position.
        """
        position = None
        for i, edge in enumerate(self._edges):
            if edge.id == edge_id:
                position = i
                break
        removed = self._edges.pop(position) if position is not None else None

        try:
            await self.backend.remove_task_relationship(from_task_id, edge_id)
        except Exception as error:
            if removed is not None:
                self._edges.insert(min(position, len(self._edges)), removed)
            logger.warning("Restored relationship %s after failed delete: %s", edge_id, error)
            self.notify(f"{DELETE_FAILED_MESSAGE}: {_error_detail(error)}")
            return False

        logger.info("Deleted relationship %s", edge_id)
        return True

    def _remove(self, edge_id: str) -> None:
        self._edges = [edge for edge in self._edges if edge.id != edge_id]


class RelationshipPicker:
    """
    Click-driven relationship mode.

    The first click picks the parent, a second click on the same task clears
    it, a click on another task creates ``parent -> task`` and clears the
    pick while staying in relationship mode.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store
        self.active = False
        self.selected_parent: Optional[str] = None

    def enter(self) -> None:
        self.active = True
        self.selected_parent = None

    def exit(self) -> None:
        self.active = False
        self.selected_parent = None

    async def click(self, task_id: str) -> Optional[RelationshipEdge]:
        if not self.active:
            return None
        if self.selected_parent is None:
            self.selected_parent = task_id
            return None
        if self.selected_parent == task_id:
            self.selected_parent = None
            return None
        parent, self.selected_parent = self.selected_parent, None
        return await self.store.create_relationship(parent, task_id)
