"""Root-level pytest fixtures for hexdiv test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

from hexdiv.schemas import ParamConfig, UserConfig, InternalConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config) -> InternalConfig:
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_indexer_init(internal_config):
    ...     indexer = SpatialIndexer(internal_config)
    ...     assert indexer.resolutions == [3, 4]
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_esn(make_config):
    ...     config = make_config(esn=20)
    ...     assert DiversityCalculator.from_config(config).esn == 20
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard hexdiv output directory structure.

    Returns dict with keys: base, partitions, results, logs
    All directories are created and cleaned up automatically.
    """
    dirs = {
        "base": temp_dir,
        "partitions": temp_dir / "partitions",
        "results": temp_dir / "results",
        "logs": temp_dir / "logs",
    }

    for d in dirs.values():
        d.mkdir(parents=True, exist_ok=True)

    return dirs


# =============================================================================
# Logging Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def restore_root_logging():
    """Restore root logger handlers and level after every test.

    Pipeline runs install file handlers under temporary directories; any
    handler a test leaves behind is closed so later tests never write to a
    deleted log file.
    """
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
