"""Tests for the state file."""

import json
import os

import pytest

from azprov.planner.errors import StateError
from azprov.planner.state import ProvisioningStatus, ResourceState, StackState, StateStore


def _ready(name: str, **kwargs) -> ResourceState:
    return ResourceState(
        type="t", name=name, status=ProvisioningStatus.READY, resource_id=f"/t/{name}", **kwargs
    )


class TestStackState:
    """Test in-memory state operations."""

    def test_put_stamps_updated_at(self) -> None:
        """Recording a resource sets its timestamp."""
        state = StackState()
        state.put(_ready("a"))

        assert state.get("t.a").updated_at is not None

    def test_dependents_of(self) -> None:
        """Dependents are found through recorded dependencies."""
        state = StackState()
        state.put(_ready("a"))
        state.put(_ready("c", dependencies=["t.a"]))
        state.put(_ready("b", dependencies=["t.a"]))

        assert state.dependents_of("t.a") == ["t.b", "t.c"]
        assert state.dependents_of("t.b") == []

    def test_remove_missing_returns_none(self) -> None:
        assert StackState().remove("t.a") is None

    def test_terminal_statuses(self) -> None:
        """Only READY and FAILED are terminal."""
        assert ProvisioningStatus.READY.is_terminal
        assert ProvisioningStatus.FAILED.is_terminal
        assert not ProvisioningStatus.SKIPPED.is_terminal
        assert not ProvisioningStatus.IN_PROGRESS.is_terminal


class TestStateStore:
    """Test state persistence."""

    def test_missing_file_loads_empty(self, tmp_path) -> None:
        """No state file means nothing has been provisioned."""
        state = StateStore(tmp_path / "state.json").load()

        assert state.resources == {}
        assert state.serial == 0

    def test_save_and_load(self, tmp_path) -> None:
        """Saved state is read back with the serial bumped."""
        store = StateStore(tmp_path / ".azprov" / "state.json")
        state = StackState(outputs={"logic_app_name": "la-demo"})
        state.put(_ready("a", config={"size": 1}, outputs={"id": "/t/a", "name": "a"}))
        state.put(_ready("b", dependencies=["t.a"]))

        store.save(state)
        loaded = store.load()

        assert loaded.serial == 1
        assert loaded.outputs == {"logic_app_name": "la-demo"}
        assert loaded.get("t.a").config == {"size": 1}
        assert loaded.get("t.b").dependencies == ["t.a"]
        assert loaded.get("t.b").status == ProvisioningStatus.READY

    def test_file_permissions(self, tmp_path) -> None:
        """The state file is written owner-only and no temp file remains."""
        path = tmp_path / "state.json"
        StateStore(path).save(StackState())

        assert os.stat(path).st_mode & 0o777 == 0o600
        assert not path.with_suffix(".tmp").exists()

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateError, match="Failed to read"):
            StateStore(path).load()

    def test_unsupported_version(self, tmp_path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "resources": {}}))

        with pytest.raises(StateError, match="Unsupported state file version"):
            StateStore(path).load()

    def test_corrupt_resource(self, tmp_path) -> None:
        """A resource entry missing required fields is reported as corrupt."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 1, "resources": {"t.a": {"status": "ready"}}}))

        with pytest.raises(StateError, match="Corrupt state file"):
            StateStore(path).load()
