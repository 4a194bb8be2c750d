"""
Pytest Configuration and Fixtures
"""

import logging
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from socnet_core.config import SocnetConfig
from socnet_core.graph import Graph


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def quiet_config(temp_dir: Path) -> SocnetConfig:
    """
    Configuration with no layout iterations, no decay and no file output,
    so graph weights can be checked exactly.
    """
    config = SocnetConfig()
    config.layout.iterations = 0
    config.layout.seed = 1234
    config.graph.temporal_decay_amount = 0.0
    config.output.output_dir = str(temp_dir / "images")
    config.output.create_archive = False
    config.output.create_current = False
    config.output.create_restore_points = False
    return config


@pytest.fixture
def graph(quiet_config: SocnetConfig) -> Graph:
    """An empty channel graph using the quiet configuration."""
    return Graph("#test", config=quiet_config)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog keeps seeing package records."""
    yield
    logger = logging.getLogger("socnet_core")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
