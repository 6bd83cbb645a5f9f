"""
Pytest configuration and shared fixtures for the nvmctrl test suite.
"""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Ensure project root is on PYTHONPATH so 'nvmctrl' can be imported
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from nvmctrl.core.controller import FlashController  # noqa: E402
from nvmctrl.utils.config_loader import (  # noqa: E402
    _parse_controller_cfg_from_dict,
    clear_config_cache,
)


@pytest.fixture
def temp_yaml_file():
    """
    Fixture that provides a temporary YAML file.

    Yields:
        Path: Path to the temporary YAML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".yaml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


TOPOLOGY_CFG = {
    "num_banks": 2,
    "pages_per_bank": 256,
    "info_pages_per_bank": 4,
    "words_per_page": 128,
    "data_width": 64,
    "bus_width": 32,
}

INFO_RULES = [
    {"page": 1, "phase": "seed", "allow": ["read"]},
    {"page": 2, "phase": "seed", "allow": ["read"]},
    {"page": 2, "phase": "rma", "allow": ["read", "page_erase"]},
]

DATA_RULES = [
    {"phase": "rma", "allow": ["read", "bank_erase"], "base": 0, "size": "all"},
]

# Small geometry for exhaustive sweeps
SMALL_TOPOLOGY_CFG = {
    "num_banks": 2,
    "pages_per_bank": 8,
    "info_pages_per_bank": 4,
    "words_per_page": 4,
    "data_width": 64,
    "bus_width": 32,
}


@pytest.fixture
def valid_controller_config_dict():
    """
    Fixture providing a complete valid controller configuration dictionary.
    """
    return {
        "topology": dict(TOPOLOGY_CFG),
        "info_rules": [dict(r) for r in INFO_RULES],
        "data_rules": [dict(r) for r in DATA_RULES],
    }


@pytest.fixture
def small_controller_config_dict():
    """
    Fixture providing the default rule table on a small geometry.
    """
    return {
        "topology": dict(SMALL_TOPOLOGY_CFG),
        "info_rules": [dict(r) for r in INFO_RULES],
        "data_rules": [dict(r) for r in DATA_RULES],
    }


@pytest.fixture
def temp_config_yaml_file(temp_yaml_file, valid_controller_config_dict):
    """
    Fixture that creates a temporary YAML file with valid configuration.

    Yields:
        Path: Path to the temporary YAML file with valid configuration
    """
    with open(temp_yaml_file, "w", encoding="utf-8") as f:
        yaml.dump(valid_controller_config_dict, f)

    yield temp_yaml_file


@pytest.fixture
def controller_config(valid_controller_config_dict):
    return _parse_controller_cfg_from_dict(valid_controller_config_dict)


@pytest.fixture
def controller(controller_config):
    return FlashController(controller_config)


@pytest.fixture
def small_controller(small_controller_config_dict):
    return FlashController(_parse_controller_cfg_from_dict(small_controller_config_dict))


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()


def pytest_configure(config):
    """
    Hook for initial pytest configuration.

    Used to add custom markers and configuration.
    """
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
