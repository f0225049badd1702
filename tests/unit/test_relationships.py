"""Unit tests for the relationships module."""

import asyncio
import copy

import pytest

from ganttflow.backend import InMemoryTaskBackend
from ganttflow.exceptions import BackendError, RelationshipError
from ganttflow.models import RelationshipEdge, RelationshipKind
from ganttflow.relationships import (
    RelationshipPicker,
    RelationshipStore,
    creation_error_message,
)


@pytest.fixture
def messages():
    return []


@pytest.fixture
def store(backend, messages, clock):
    return RelationshipStore(backend, notify=messages.append, clock=clock)


class GatedBackend:
    """Backend whose add call waits until released, to observe optimistic state."""

    def __init__(self, result=None, error=None):
        self.release = None
        self.result = result
        self.error = error
        self.calls = 0

    async def add_task_relationship(self, from_task_id, kind, to_task_id):
        self.calls += 1
        await self.release.wait()
        if self.error:
            raise self.error
        return self.result


class TestCreationErrorMessage:
    """Tests for creation_error_message."""

    @pytest.mark.parametrize(
        "status,prefix",
        [
            (409, "Cannot create relationship: duplicate or would create a cycle"),
            (400, "Invalid relationship (e.g., self-reference)"),
            (404, "Task not found"),
            (500, "Failed to create relationship"),
            (None, "Failed to create relationship"),
        ],
    )
    def test_prefix_by_status(self, status, prefix):
        assert creation_error_message(status, "detail") == f"{prefix}: detail"


class TestCreateRelationship:
    """Tests for RelationshipStore.create_relationship."""

    def test_success_confirms_edge(self, store, backend):
        edge = asyncio.run(store.create_relationship("t1", "t2"))
        assert edge.id == "1"
        assert edge.from_ticket == "T-1"
        assert [e.id for e in store.edges] == ["1"]
        assert backend.calls_to("add_task_relationship") == [
            ("t1", RelationshipKind.PARENT, "t2")
        ]

    def test_optimistic_edge_replaced_in_place(self, clock):
        """Test the temp edge is visible during the call and keeps its slot."""
        confirmed = RelationshipEdge("99", "t1", "t2")
        backend = GatedBackend(result=confirmed)
        store = RelationshipStore(backend, clock=clock)
        store.sync([RelationshipEdge("5", "t3", "t4")])

        async def scenario():
            backend.release = asyncio.Event()
            pending = asyncio.ensure_future(store.create_relationship("t1", "t2"))
            await asyncio.sleep(0)
            during = store.edges
            backend.release.set()
            await pending
            return during

        during = asyncio.run(scenario())
        assert [e.id for e in during] == ["5", "temp-1"]
        assert during[1].is_optimistic
        assert [e.id for e in store.edges] == ["5", "99"]

    def test_double_click_makes_one_call(self, store, backend, clock):
        """Test two creates within 500ms result in exactly one network call."""

        async def scenario():
            await store.create_relationship("t1", "t2")
            clock.advance(0.2)
            await store.create_relationship("t1", "t2")

        asyncio.run(scenario())
        assert len(backend.calls_to("add_task_relationship")) == 1
        assert len(store) == 1

    def test_concurrent_double_click_makes_one_call(self, clock):
        backend = GatedBackend(result=RelationshipEdge("7", "t1", "t2"))
        store = RelationshipStore(backend, clock=clock)

        async def scenario():
            backend.release = asyncio.Event()
            first = asyncio.ensure_future(store.create_relationship("t1", "t2"))
            second = asyncio.ensure_future(store.create_relationship("t1", "t2"))
            await asyncio.sleep(0)
            backend.release.set()
            return await asyncio.gather(first, second)

        first, second = asyncio.run(scenario())
        assert backend.calls == 1
        assert first.id == "7"
        assert second is None

    def test_existing_pair_is_not_resubmitted(self, store, backend, clock):
        """Test the local duplicate guard after the debounce window."""
        asyncio.run(store.create_relationship("t1", "t2"))
        clock.advance(1)
        assert asyncio.run(store.create_relationship("t1", "t2")) is None
        assert len(backend.calls_to("add_task_relationship")) == 1

    def test_self_reference_rejected_locally(self, store, backend, messages):
        assert asyncio.run(store.create_relationship("t1", "t1")) is None
        assert backend.calls_to("add_task_relationship") == []
        assert messages[0].startswith("Invalid relationship (e.g., self-reference)")
        assert len(store) == 0

    def test_cycle_rejected_locally(self, store, backend, messages, clock):
        """Test an edge closing a parent cycle never reaches the backend."""
        store.sync(
            [RelationshipEdge("1", "t1", "t2"), RelationshipEdge("2", "t2", "t3")]
        )
        assert store.would_create_cycle("t3", "t1")
        assert asyncio.run(store.create_relationship("t3", "t1")) is None
        assert backend.calls_to("add_task_relationship") == []
        assert messages[0].startswith("Cannot create relationship: duplicate or would create a cycle")

    def test_backend_rejection_rolls_back(self, backend, messages, clock):
        """Test a 409 from the backend removes the optimistic edge."""
        backend.relationships.append(RelationshipEdge("50", "t2", "t1"))
        store = RelationshipStore(
            backend, notify=messages.append, clock=clock, detect_cycles=False
        )
        assert asyncio.run(store.create_relationship("t1", "t2")) is None
        assert store.edges == []
        assert messages == [
            "Cannot create relationship: duplicate or would create a cycle: "
            "T-1 is already child of T-2"
        ]

    def test_unknown_task_message(self, store, messages):
        assert asyncio.run(store.create_relationship("t1", "ghost")) is None
        assert messages == ["Task not found: Task not found"]

    def test_transport_failure_uses_generic_message(self, store, backend, messages):
        backend.fail_next("add_task_relationship", ConnectionError("reset"))
        assert asyncio.run(store.create_relationship("t1", "t2")) is None
        assert messages == ["Failed to create relationship: reset"]
        assert store.edges == []


class TestDeleteRelationship:
    """Tests for RelationshipStore.delete_relationship."""

    def test_success_removes_edge(self, store, backend, parent_edges):
        backend.relationships.extend(copy.deepcopy(parent_edges))
        store.sync(parent_edges)
        assert asyncio.run(store.delete_relationship("e2", "t1"))
        assert [e.id for e in store.edges] == ["e1", "e3"]
        assert [e.id for e in backend.relationships] == ["e1", "e3"]

    def test_failure_restores_exact_edge(self, store, backend, parent_edges, messages):
        """Test a failed delete puts back an equal edge at the same index."""
        store.sync(parent_edges)
        before = copy.deepcopy(store.edges)
        backend.fail_next("remove_task_relationship", BackendError("server down", 500))
        assert not asyncio.run(store.delete_relationship("e2", "t1"))
        assert store.edges == before
        assert store.edges[1] is parent_edges[1]
        assert messages == ["Failed to delete relationship: server down"]

    def test_edge_removed_before_response(self, store, parent_edges):
        """Test the edge disappears before the backend answers."""
        store.sync(parent_edges)
        seen = []

        class SlowBackend:
            async def remove_task_relationship(self, from_task_id, edge_id):
                seen.append([e.id for e in store.edges])
                raise RelationshipError("Relationship not found", 404)

        store.backend = SlowBackend()
        asyncio.run(store.delete_relationship("e1", "t1"))
        assert seen == [["e2", "e3"]]
        assert [e.id for e in store.edges] == ["e1", "e2", "e3"]


class TestSyncAndGraph:
    """Tests for sync, visible_edges and graph helpers."""

    def test_sync_keeps_optimistic_edges(self, store):
        store._edges.append(RelationshipEdge("temp-1", "t1", "t3"))
        store.sync([RelationshipEdge("1", "t1", "t2")])
        assert [e.id for e in store.edges] == ["1", "temp-1"]

    def test_visible_edges(self, store, parent_edges):
        store.sync(parent_edges)
        visible = store.visible_edges(["t1", "t2"])
        assert [e.id for e in visible] == ["e1"]

    def test_dependency_graph_ignores_related(self, store):
        store.sync(
            [
                RelationshipEdge("1", "a", "b"),
                RelationshipEdge("2", "b", "c", RelationshipKind.RELATED),
            ]
        )
        graph = store.dependency_graph()
        assert list(graph.edges) == [("a", "b")]

    def test_scheduling_order(self, store):
        """Test parents come before children, ties keep the given order."""
        store.sync(
            [RelationshipEdge("1", "c", "a"), RelationshipEdge("2", "a", "b")]
        )
        assert store.scheduling_order(["a", "b", "c", "d"]) == ["c", "a", "b", "d"]

    def test_scheduling_order_with_cycle_keeps_input(self, store):
        store.sync(
            [RelationshipEdge("1", "a", "b"), RelationshipEdge("2", "b", "a")]
        )
        assert store.scheduling_order(["b", "a"]) == ["b", "a"]


class TestRelationshipPicker:
    """Tests for RelationshipPicker."""

    def test_click_sequence_creates_edge(self, store, backend):
        picker = RelationshipPicker(store)
        picker.enter()

        async def scenario():
            assert await picker.click("t1") is None
            assert picker.selected_parent == "t1"
            return await picker.click("t2")

        edge = asyncio.run(scenario())
        assert (edge.from_task_id, edge.to_task_id) == ("t1", "t2")
        assert picker.active
        assert picker.selected_parent is None

    def test_second_click_on_same_task_clears(self, store, backend):
        picker = RelationshipPicker(store)
        picker.enter()

        async def scenario():
            await picker.click("t1")
            await picker.click("t1")

        asyncio.run(scenario())
        assert picker.selected_parent is None
        assert backend.calls_to("add_task_relationship") == []

    def test_inactive_picker_ignores_clicks(self, store):
        picker = RelationshipPicker(store)
        assert asyncio.run(picker.click("t1")) is None
        assert picker.selected_parent is None
