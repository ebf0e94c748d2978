"""
Shared test fixtures for azprov tests.

This module provides common fixtures used across test modules:
- Descriptor and stack builders
- Simulated provider and executor wiring
- Subprocess mocks for Azure CLI calls
- CLI runner and assertion helpers
"""

from pathlib import Path
from typing import Any
from unittest.mock import Mock, patch

import pytest
import yaml

from azprov.planner.descriptors import DescriptorStore, ResourceDescriptor
from azprov.planner.engine import ProvisioningExecutor
from azprov.planner.graph import DependencyGraphBuilder
from azprov.planner.providers import SimulatedProvider
from azprov.planner.reconciler import StateReconciler
from azprov.planner.state import StackState

# ============================================================================
# DESCRIPTOR FIXTURES
# ============================================================================


def make_descriptor(
    address: str,
    config: dict[str, Any] | None = None,
    depends_on: tuple[str, ...] = (),
    replace_on: tuple[str, ...] = (),
) -> ResourceDescriptor:
    """Build a descriptor from a ``type.name`` address."""
    resource_type, name = address.split(".", 1)
    return ResourceDescriptor(
        type=resource_type,
        name=name,
        config=config or {},
        depends_on=depends_on,
        replace_on=replace_on,
    )


def make_store(*descriptors: ResourceDescriptor) -> DescriptorStore:
    store = DescriptorStore()
    for descriptor in descriptors:
        store.add(descriptor)
    return store


def diamond_store(**configs: dict[str, Any]) -> DescriptorStore:
    """A -> {B, C} -> D, the canonical fan-out/fan-in stack.

    Keyword arguments ``a``, ``b``, ``c``, ``d`` extend each resource's config.
    """
    return make_store(
        make_descriptor("res.a", {"size": 1, **configs.get("a", {})}),
        make_descriptor("res.b", {"parent": "${res.a.id}", **configs.get("b", {})}),
        make_descriptor("res.c", {"parent": "${res.a.id}", **configs.get("c", {})}),
        make_descriptor(
            "res.d",
            {"left": "${res.b.id}", "right": "${res.c.name}", **configs.get("d", {})},
        ),
    )


@pytest.fixture
def diamond():
    """Descriptor store for the A/B/C/D diamond."""
    return diamond_store()


# ============================================================================
# EXECUTION FIXTURES
# ============================================================================


def plan_for(store: DescriptorStore, state: StackState | None = None):
    """Build graph and plan for a store against a state (empty by default)."""
    graph = DependencyGraphBuilder().build(store)
    return StateReconciler().reconcile(store, graph, state or StackState())


@pytest.fixture
def simulated_provider():
    """In-memory provider with no scripted failures."""
    return SimulatedProvider()


@pytest.fixture
def make_executor():
    """Factory for an executor that never sleeps between polls.

    Usage:
        executor = make_executor(provider, default_timeout=5)
    """

    def factory(provider, **kwargs):
        clock = kwargs.pop("clock", None) or FakeClock()
        return ProvisioningExecutor(
            provider,
            poll_interval=kwargs.pop("poll_interval", 1.0),
            sleep=clock.sleep,
            clock=clock,
            **kwargs,
        )

    return factory


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


# ============================================================================
# STACK FILE FIXTURES
# ============================================================================


SAMPLE_STACK: dict[str, Any] = {
    "resources": [
        {
            "type": "azurerm_resource_group",
            "name": "main",
            "config": {"name": "rg-test", "location": "westeurope"},
        },
        {
            "type": "azurerm_storage_account",
            "name": "main",
            "config": {
                "name": "sttest01",
                "resource_group_name": "${azurerm_resource_group.main.name}",
                "location": "${azurerm_resource_group.main.location}",
            },
        },
        {
            "type": "azurerm_user_assigned_identity",
            "name": "app",
            "config": {
                "name": "id-test",
                "resource_group_name": "${azurerm_resource_group.main.name}",
            },
        },
        {
            "type": "azurerm_logic_app_standard",
            "name": "main",
            "depends_on": ["azurerm_user_assigned_identity.app"],
            "config": {
                "name": "logic-test",
                "resource_group_name": "${azurerm_resource_group.main.name}",
                "storage_account_name": "${azurerm_storage_account.main.name}",
            },
        },
    ],
    "outputs": {
        "logic_app_name": "${azurerm_logic_app_standard.main.name}",
        "storage_account_name": "${azurerm_storage_account.main.name}",
    },
}


@pytest.fixture
def sample_stack() -> dict[str, Any]:
    """A small Logic App stack as parsed YAML data."""
    return yaml.safe_load(yaml.safe_dump(SAMPLE_STACK))


@pytest.fixture
def stack_file(tmp_path, sample_stack) -> Path:
    """The sample stack written to a YAML file."""
    path = tmp_path / "stack.yaml"
    path.write_text(yaml.safe_dump(sample_stack, sort_keys=False))
    return path


# ============================================================================
# SUBPROCESS MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def mock_subprocess_success():
    """Mock subprocess.run for successful command execution.

    Returns successful result (returncode=0) for all subprocess calls.
    """
    with patch("subprocess.run") as mock:
        mock.return_value = Mock(returncode=0, stdout="success", stderr="")
        yield mock


@pytest.fixture
def capture_subprocess_calls():
    """Fixture to capture all subprocess calls for verification.

    Returns a list that accumulates all subprocess.run calls made during test.
    """
    calls = []

    with patch("subprocess.run") as mock:

        def capture_call(cmd, *args, **kwargs):
            calls.append({"cmd": cmd, "kwargs": kwargs})
            return Mock(returncode=0, stdout="", stderr="")

        mock.side_effect = capture_call
        yield calls


# ============================================================================
# CLI FIXTURES
# ============================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for testing CLI commands."""
    from click.testing import CliRunner

    return CliRunner()


def assert_command_succeeds(result):
    """Assert that a command executed successfully (exit code 0)."""
    assert result.exit_code == 0, (
        f"Expected successful execution (exit_code=0), "
        f"but got exit_code={result.exit_code}: {result.output}"
    )


def assert_command_fails(result, expected_error: str | None = None):
    """Assert that a command failed with non-zero exit code."""
    assert result.exit_code != 0, (
        f"Expected command to fail (non-zero exit code), but got exit_code=0: {result.output}"
    )

    if expected_error:
        assert expected_error.lower() in result.output.lower(), (
            f"Expected error containing '{expected_error}', but got: {result.output}"
        )
