"""Tests for the stack orchestrator."""

import pytest
import yaml

from azprov.planner.errors import CyclicDependencyError, UnsupportedResourceTypeError
from azprov.planner.orchestrator import StackOrchestrator
from azprov.planner.providers import SimulatedProvider
from azprov.planner.reconciler import ChangeAction


@pytest.fixture
def orchestrator_factory(stack_file, tmp_path):
    def factory(provider=None, **kwargs):
        return StackOrchestrator(
            stack_file=stack_file,
            state_file=tmp_path / ".azprov" / "state.json",
            provider=provider or SimulatedProvider(),
            poll_interval=0.01,
            **kwargs,
        )

    return factory


class TestStackOrchestrator:
    """Test plan/apply/destroy coordination."""

    def test_validate_rejects_unsupported_type(self, orchestrator_factory) -> None:
        provider = SimulatedProvider(supported_types={"azurerm_resource_group"})

        with pytest.raises(UnsupportedResourceTypeError) as exc_info:
            orchestrator_factory(provider).validate()

        assert exc_info.value.address == "azurerm_storage_account.main"

    def test_plan_has_no_side_effects(self, orchestrator_factory, tmp_path) -> None:
        provider = SimulatedProvider()

        plan, _, _ = orchestrator_factory(provider).plan()

        assert plan.counts()[ChangeAction.CREATE] == 4
        assert provider.calls == []
        assert not (tmp_path / ".azprov").exists()

    def test_apply_persists_state_and_outputs(self, orchestrator_factory) -> None:
        orchestrator = orchestrator_factory()
        plan, stack, state = orchestrator.plan()

        report = orchestrator.apply(plan, stack, state)

        assert report.success
        assert orchestrator.outputs() == {
            "logic_app_name": "logic-test",
            "storage_account_name": "sttest01",
        }
        replanned, _, _ = orchestrator.plan()
        assert not replanned.has_changes

    def test_dry_run_uses_simulation(self, orchestrator_factory, tmp_path) -> None:
        provider = SimulatedProvider()
        orchestrator = orchestrator_factory(provider)
        plan, stack, state = orchestrator.plan()

        report = orchestrator.apply(plan, stack, state, dry_run=True)

        assert report.success
        assert provider.calls == []
        assert state.resources == {}
        assert not (tmp_path / ".azprov" / "state.json").exists()

    def test_destroy_prunes_outputs(self, orchestrator_factory) -> None:
        orchestrator = orchestrator_factory()
        orchestrator.apply(*orchestrator.plan())

        report = orchestrator.destroy(["azurerm_logic_app_standard.main"])

        assert report.deleted == ["azurerm_logic_app_standard.main"]
        assert orchestrator.outputs() == {"storage_account_name": "sttest01"}

    def test_destroy_everything(self, orchestrator_factory) -> None:
        orchestrator = orchestrator_factory()
        orchestrator.apply(*orchestrator.plan())

        report = orchestrator.destroy()

        assert report.success
        assert orchestrator.state_store.load().resources == {}
        assert orchestrator.outputs() == {}

    def test_cyclic_stack_fails_before_any_provider_call(
        self, orchestrator_factory, stack_file, tmp_path
    ) -> None:
        stack = {
            "resources": [
                {"type": "azurerm_resource_group", "name": "main", "config": {"name": "rg"}},
                {"type": "t", "name": "a", "config": {"x": "${t.b.id}"}},
                {"type": "t", "name": "b", "config": {"x": "${t.a.id}"}},
            ]
        }
        stack_file.write_text(yaml.safe_dump(stack))
        provider = SimulatedProvider()
        orchestrator = orchestrator_factory(provider)

        with pytest.raises(CyclicDependencyError) as exc_info:
            orchestrator.apply(*orchestrator.plan())

        assert set(exc_info.value.cycle) >= {"t.a", "t.b"}
        assert provider.mutating_calls() == []
        assert not (tmp_path / ".azprov" / "state.json").exists()
