"""Shared test fixtures for strata tests."""

import pytest

from strata.config import ArchitectureConfig, EngineSettings


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def project(tmp_path):
    """Empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def layered_config():
    """Three layers mapped by directory."""
    return ArchitectureConfig.from_dict(
        {
            "name": "demo",
            "layers": [
                {"name": "domain"},
                {"name": "application"},
                {"name": "presentation"},
            ],
            "layerMappings": [
                {"layer": "domain", "include": ["src/domain/**"]},
                {"layer": "application", "include": ["src/app/**"]},
                {"layer": "presentation", "include": ["src/ui/**"]},
            ],
        }
    )


@pytest.fixture
def settings():
    return EngineSettings()
