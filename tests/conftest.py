"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure src is on the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gausshmm.types import Theta  # noqa: E402


@pytest.fixture
def two_state_theta():
    """Sticky 2-state model with regimes at 0 and 10."""
    return Theta.from_probs(
        [0.5, 0.5],
        [[0.9, 0.1], [0.1, 0.9]],
        [0.0, 10.0],
        [1.0, 1.0],
    )


@pytest.fixture
def short_obs():
    return np.array([0.2, -0.1, 9.8, 10.3, 0.0, 9.9])
