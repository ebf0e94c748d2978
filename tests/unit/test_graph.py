"""Tests for dependency graph construction."""

import pytest

from azprov.planner.errors import CyclicDependencyError, UnresolvedReferenceError
from azprov.planner.graph import DependencyGraphBuilder, PlanGraph
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState
from tests.conftest import make_descriptor, make_store


class TestDependencyGraphBuilder:
    """Test building graphs from descriptors."""

    def test_diamond_edges(self, diamond) -> None:
        """References become (dependent, dependency) edges."""
        graph = DependencyGraphBuilder().build(diamond)

        assert graph.edges == {
            ("res.b", "res.a"),
            ("res.c", "res.a"),
            ("res.d", "res.b"),
            ("res.d", "res.c"),
        }
        assert graph.nodes == ["res.a", "res.b", "res.c", "res.d"]

    def test_explicit_depends_on_adds_edge(self) -> None:
        """depends_on creates an edge even without a config reference."""
        store = make_store(
            make_descriptor("t.role"),
            make_descriptor("t.app", depends_on=("t.role",)),
        )

        graph = DependencyGraphBuilder().build(store)

        assert graph.dependencies("t.app") == ("t.role",)

    def test_unresolved_reference(self) -> None:
        """A reference to an undeclared address is rejected."""
        store = make_store(make_descriptor("t.a", {"x": "${t.missing.id}"}))

        with pytest.raises(UnresolvedReferenceError) as exc_info:
            DependencyGraphBuilder().build(store)

        assert exc_info.value.source == "t.a"
        assert exc_info.value.reference == "t.missing"

    def test_two_node_cycle(self) -> None:
        """A cycle is reported with its path."""
        store = make_store(
            make_descriptor("t.a", {"x": "${t.b.id}"}),
            make_descriptor("t.b", {"x": "${t.a.id}"}),
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            DependencyGraphBuilder().build(store)

        assert exc_info.value.cycle == ["t.a", "t.b", "t.a"]
        assert "t.a -> t.b -> t.a" in str(exc_info.value)

    def test_self_reference_is_a_cycle(self) -> None:
        """A descriptor referencing itself is a cycle of length one."""
        store = make_store(make_descriptor("t.a", {"x": "${t.a.name}"}))

        with pytest.raises(CyclicDependencyError):
            DependencyGraphBuilder().build(store)

    def test_cycle_behind_acyclic_prefix(self) -> None:
        """The reported cycle excludes nodes that merely lead into it."""
        store = make_store(
            make_descriptor("t.entry", {"x": "${t.a.id}"}),
            make_descriptor("t.a", {"x": "${t.b.id}"}),
            make_descriptor("t.b", {"x": "${t.c.id}"}),
            make_descriptor("t.c", {"x": "${t.a.id}"}),
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            DependencyGraphBuilder().build(store)

        assert exc_info.value.cycle == ["t.a", "t.b", "t.c", "t.a"]

    def test_empty_store(self) -> None:
        """An empty stack produces an empty graph."""
        graph = DependencyGraphBuilder().build(make_store())

        assert len(graph) == 0
        assert graph.edges == set()


class TestPlanGraph:
    """Test graph queries."""

    def test_dependents_and_transitive_dependents(self, diamond) -> None:
        """Dependents are followed transitively."""
        graph = DependencyGraphBuilder().build(diamond)

        assert sorted(graph.dependents("res.a")) == ["res.b", "res.c"]
        assert graph.transitive_dependents("res.a") == {"res.b", "res.c", "res.d"}
        assert graph.transitive_dependents("res.d") == set()

    def test_subgraph_drops_outside_edges(self, diamond) -> None:
        """Edges to nodes outside the subgraph are removed."""
        graph = DependencyGraphBuilder().build(diamond).subgraph(["res.b", "res.d"])

        assert graph.nodes == ["res.b", "res.d"]
        assert graph.edges == {("res.d", "res.b")}

    def test_unknown_dependency_rejected(self) -> None:
        """Constructing a graph with a dangling edge fails."""
        with pytest.raises(UnresolvedReferenceError):
            PlanGraph({"a": ["b"]})

    def test_from_state_ignores_unrecorded_dependencies(self) -> None:
        """Recorded dependencies on resources no longer in state are dropped."""
        state = StackState()
        state.put(ResourceState("t", "a", ProvisioningStatus.READY, resource_id="/a"))
        state.put(
            ResourceState(
                "t", "b", ProvisioningStatus.READY, resource_id="/b", dependencies=["t.a", "t.gone"]
            )
        )

        graph = PlanGraph.from_state(state)

        assert graph.edges == {("t.b", "t.a")}
