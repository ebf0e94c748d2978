"""Tests for topological scheduling."""

import pytest

from azprov.planner.errors import CyclicDependencyError
from azprov.planner.graph import DependencyGraphBuilder, PlanGraph
from azprov.planner.scheduler import TopologicalScheduler, ready_sets, topological_order


class TestReadySets:
    """Test static ready-set computation."""

    def test_diamond(self, diamond) -> None:
        """The diamond yields [A], [B, C], [D]."""
        graph = DependencyGraphBuilder().build(diamond)

        assert ready_sets(graph) == [["res.a"], ["res.b", "res.c"], ["res.d"]]

    def test_independent_resources_share_one_set(self) -> None:
        """Resources without dependencies are all ready at once."""
        graph = PlanGraph({"t.c": [], "t.a": [], "t.b": []})

        assert ready_sets(graph) == [["t.a", "t.b", "t.c"]]

    def test_order_respects_every_edge(self, diamond) -> None:
        """Every dependency precedes its dependents in the flattened order."""
        graph = DependencyGraphBuilder().build(diamond)
        order = topological_order(graph)

        for dependent, dependency in graph.edges:
            assert order.index(dependency) < order.index(dependent)

    def test_cycle_detected(self) -> None:
        """Nodes that never become ready are reported as a cycle."""
        graph = PlanGraph({"t.a": ["t.b"], "t.b": ["t.a"], "t.c": []})

        with pytest.raises(CyclicDependencyError) as exc_info:
            ready_sets(graph)

        assert set(exc_info.value.cycle) == {"t.a", "t.b"}

    def test_empty_graph(self) -> None:
        assert ready_sets(PlanGraph({})) == []


class TestTopologicalScheduler:
    """Test incremental scheduling."""

    def test_dependents_wait_for_ready(self, diamond) -> None:
        """A node is not offered until all of its dependencies are ready."""
        scheduler = TopologicalScheduler(DependencyGraphBuilder().build(diamond))

        assert scheduler.next_batch() == ["res.a"]
        assert scheduler.next_batch() == []

        scheduler.mark_ready("res.a")
        assert scheduler.next_batch() == ["res.b", "res.c"]

        scheduler.mark_ready("res.b")
        assert scheduler.next_batch() == []

        scheduler.mark_ready("res.c")
        assert scheduler.next_batch() == ["res.d"]

    def test_failure_withdraws_transitive_dependents(self, diamond) -> None:
        """Failing A skips B, C and D."""
        scheduler = TopologicalScheduler(DependencyGraphBuilder().build(diamond))
        scheduler.next_batch()

        skipped = scheduler.mark_failed("res.a")

        assert skipped == ["res.b", "res.c", "res.d"]
        assert not scheduler.has_pending
        assert scheduler.next_batch() == []

    def test_failure_spares_independent_branch(self, diamond) -> None:
        """Failing B skips D but leaves C pending."""
        scheduler = TopologicalScheduler(DependencyGraphBuilder().build(diamond))
        scheduler.next_batch()
        scheduler.mark_ready("res.a")
        scheduler.next_batch()

        skipped = scheduler.mark_failed("res.b")

        assert skipped == ["res.d"]
        assert scheduler.pending == {"res.c"}

    def test_withdraw_leaves_dispatched_nodes(self, diamond) -> None:
        """Cancellation only withdraws nodes that were never dispatched."""
        scheduler = TopologicalScheduler(DependencyGraphBuilder().build(diamond))
        scheduler.next_batch()

        withdrawn = scheduler.withdraw()

        assert withdrawn == ["res.b", "res.c", "res.d"]
        assert scheduler.pending == {"res.a"}
