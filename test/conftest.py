import logging

import numpy as np
import pytest

from cladogenesis.spatial import grid_network


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def grid():
    """5x5 von Neumann lattice."""
    return grid_network(5, 5)
