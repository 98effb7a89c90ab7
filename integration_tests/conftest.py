"""Pytest configuration for integration tests."""

import pytest

from hypertroq.config import reset_config_cache


def pytest_collection_modifyitems(items):
    """Mark everything collected here as an integration test."""
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch, tmp_path):
    """Keep config and data out of the working tree; the API key still comes from the env."""
    monkeypatch.setenv("HYPERTROQ_DATA_DIR", str(tmp_path / "data"))
    reset_config_cache()
    yield
    reset_config_cache()
