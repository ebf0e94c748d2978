"""Tests for state reconciliation."""

from azprov.planner.reconciler import ChangeAction, StateReconciler
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState
from tests.conftest import diamond_store, make_descriptor, make_store, plan_for


def recorded(store, status=ProvisioningStatus.READY) -> StackState:
    """State as if every descriptor in the store had been applied."""
    state = StackState()
    for descriptor in store:
        state.put(
            ResourceState(
                type=descriptor.type,
                name=descriptor.name,
                status=status,
                resource_id=f"/ids/{descriptor.address}",
                config=dict(descriptor.config),
                dependencies=list(descriptor.references),
            )
        )
    return state


def actions(plan) -> dict[str, ChangeAction]:
    return {address: change.action for address, change in plan.changes.items()}


class TestDiff:
    """Test single-resource classification."""

    def test_unrecorded_resource_is_created(self) -> None:
        change = StateReconciler().diff(make_descriptor("t.a", {"x": 1}), None)

        assert change.action == ChangeAction.CREATE

    def test_record_without_id_is_created(self) -> None:
        """A resource that never received an id is created again."""
        prior = ResourceState("t", "a", ProvisioningStatus.FAILED, resource_id=None)

        change = StateReconciler().diff(make_descriptor("t.a"), prior)

        assert change.action == ChangeAction.CREATE

    def test_failed_resource_with_id_is_replaced(self) -> None:
        prior = ResourceState("t", "a", ProvisioningStatus.FAILED, resource_id="/t/a")

        change = StateReconciler().diff(make_descriptor("t.a"), prior)

        assert change.action == ChangeAction.REPLACE
        assert "failed" in change.reasons[0]

    def test_mutable_change_is_update(self) -> None:
        prior = ResourceState("t", "a", ProvisioningStatus.READY, "/t/a", config={"tags": {"a": 1}})

        change = StateReconciler().diff(make_descriptor("t.a", {"tags": {"a": 2}}), prior)

        assert change.action == ChangeAction.UPDATE
        assert change.changed_properties() == ["tags"]

    def test_common_immutable_property_forces_replace(self) -> None:
        prior = ResourceState("t", "a", ProvisioningStatus.READY, "/t/a", config={"location": "westeurope"})

        change = StateReconciler().diff(make_descriptor("t.a", {"location": "northeurope"}), prior)

        assert change.action == ChangeAction.REPLACE
        assert change.reasons == ["location forces replacement"]

    def test_type_specific_rule(self) -> None:
        """address_space is immutable on virtual networks only."""
        prior = ResourceState(
            "azurerm_virtual_network", "main", ProvisioningStatus.READY, "/vnet",
            config={"address_space": ["10.0.0.0/16"]},
        )
        descriptor = make_descriptor("azurerm_virtual_network.main", {"address_space": ["10.1.0.0/16"]})

        assert StateReconciler().diff(descriptor, prior).action == ChangeAction.REPLACE

    def test_replace_on_extends_rules(self) -> None:
        """A descriptor may declare extra replacement properties."""
        prior = ResourceState("t", "a", ProvisioningStatus.READY, "/t/a", config={"sku": "WS1"})
        descriptor = make_descriptor("t.a", {"sku": "WS2"}, replace_on=("sku",))

        assert StateReconciler().diff(descriptor, prior).action == ChangeAction.REPLACE

    def test_unresolved_references_compare_as_declared(self) -> None:
        """Reference expressions are compared in their declared form."""
        config = {"parent": "${t.p.id}"}
        prior = ResourceState("t", "a", ProvisioningStatus.READY, "/t/a", config=dict(config))

        assert StateReconciler().diff(make_descriptor("t.a", config), prior).action == ChangeAction.NOOP


class TestReconcile:
    """Test whole-stack planning."""

    def test_fresh_stack_creates_everything(self, diamond) -> None:
        plan = plan_for(diamond)

        assert set(actions(plan).values()) == {ChangeAction.CREATE}
        assert plan.summary() == "4 to create, 0 to update, 0 to replace, 0 to delete"

    def test_applied_stack_is_noop(self, diamond) -> None:
        """Re-planning an unchanged stack produces no changes."""
        plan = plan_for(diamond, recorded(diamond))

        assert not plan.has_changes

    def test_update_does_not_propagate(self) -> None:
        """Updating A in place leaves its dependents untouched."""
        state = recorded(diamond_store())

        plan = plan_for(diamond_store(a={"tags": "v2"}), state)

        assert actions(plan) == {
            "res.a": ChangeAction.UPDATE,
            "res.b": ChangeAction.NOOP,
            "res.c": ChangeAction.NOOP,
            "res.d": ChangeAction.NOOP,
        }

    def test_replace_propagates_to_transitive_dependents(self) -> None:
        """Replacing B replaces D but not A or C."""
        state = recorded(diamond_store(b={"name": "b1"}))

        plan = plan_for(diamond_store(b={"name": "b2"}), state)

        assert actions(plan) == {
            "res.a": ChangeAction.NOOP,
            "res.b": ChangeAction.REPLACE,
            "res.c": ChangeAction.NOOP,
            "res.d": ChangeAction.REPLACE,
        }
        assert plan.changes["res.d"].reasons == ["dependency res.b is replaced"]

    def test_replace_follows_recorded_dependencies(self) -> None:
        """A dependent that dropped its reference in the new stack is still replaced."""
        state = recorded(diamond_store(a={"name": "a1"}))
        new = make_store(
            make_descriptor("res.a", {"size": 1, "name": "a2"}),
            make_descriptor("res.b", {"parent": "${res.a.id}"}),
            make_descriptor("res.c", {}),
            make_descriptor("res.d", {"left": "${res.b.id}", "right": "${res.c.name}"}),
        )

        plan = plan_for(new, state)

        assert plan.changes["res.c"].action == ChangeAction.REPLACE

    def test_removed_resource_is_deleted(self, diamond) -> None:
        state = recorded(diamond)
        state.put(ResourceState("t", "orphan", ProvisioningStatus.READY, "/t/orphan", config={"x": 1}))

        plan = plan_for(diamond, state)

        assert plan.by_action(ChangeAction.DELETE) == ["t.orphan"]
        assert plan.changes["t.orphan"].before == {"x": 1}
        assert plan.changes["t.orphan"].reasons == ["no longer declared"]
