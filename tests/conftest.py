import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from oscnet.model import build_network


@pytest.fixture
def two_oscillators():
    """Masses [1, 2], self damping 0.02/0.1 + coupling 0.1, stiffness 4/1 + coupling 2."""
    return build_network(
        masses=[1.0, 2.0],
        damping=[[0.02, 0.1], [0.1, 0.1]],
        stiffness=[[4.0, 2.0], [2.0, 1.0]],
    )


@pytest.fixture
def unit_oscillator():
    """Single undamped oscillator with k = 1, m = 1 (omega = 1 rad/s)."""
    return build_network(masses=[1.0], damping=[[0.0]], stiffness=[[1.0]])


@pytest.fixture
def free_masses():
    """Three masses with no springs and no dampers."""
    return build_network(masses=[1.0, 2.0, 3.0], damping=np.zeros((3, 3)), stiffness=np.zeros((3, 3)))
