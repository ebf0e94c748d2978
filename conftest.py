"""Pytest configuration and fixtures for azprov tests.

Keeps tests away from real Azure and from any azprov.toml or state file in
the developer's working directory.
"""

import os

import pytest


@pytest.fixture(scope="session", autouse=True)
def prevent_real_azure_operations():
    """Prevent tests from creating real Azure resources accidentally.

    Sets environment variable to mark test mode.
    Tests that need real Azure should explicitly check for RUN_E2E_TESTS=true.
    """
    os.environ["AZPROV_TEST_MODE"] = "true"

    if os.environ.get("RUN_E2E_TESTS") == "true":
        print("\n" + "=" * 70)
        print("WARNING: RUN_E2E_TESTS=true - E2E tests will use REAL Azure resources!")
        print("=" * 70 + "\n")

    yield

    os.environ.pop("AZPROV_TEST_MODE", None)


@pytest.fixture(autouse=True)
def clear_deployment_env(monkeypatch):
    """Environment overrides must come from the test, not the developer's shell."""
    monkeypatch.delenv("RESOURCE_GROUP", raising=False)
    monkeypatch.delenv("LOGIC_APP_NAME", raising=False)


@pytest.fixture
def isolated_project(tmp_path, monkeypatch):
    """Run the test from an empty project directory.

    Example:
        def test_something(isolated_project):
            (isolated_project / "stack.yaml").write_text(...)
    """
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    monkeypatch.chdir(project_dir)
    return project_dir
