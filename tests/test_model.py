"""
Unit tests for NetworkModel construction.

Tests cover:
1. System matrix derivation
2. Validation failures
3. Functional updates
4. Equilibrium with rest lengths and external load
"""

import numpy as np
import pytest

from oscnet.errors import InvalidParameter, ShapeMismatch, UnderdeterminedSystem
from oscnet.model import build_network, connection_laplacian, state_names


# ============================================================================
# Test Class 1: System Matrix
# ============================================================================

class TestSystemMatrix:
    """Test first-order reduction of the network"""

    def test_single_oscillator(self):
        """A = [[0, 1], [-k/m, -c/m]]"""
        model = build_network([2.0], [[0.4]], [[8.0]])
        expected = np.array([[0.0, 1.0], [-4.0, -0.2]])
        np.testing.assert_allclose(model.system_matrix(), expected)
        np.testing.assert_array_equal(model.forcing(), np.zeros(2))

    def test_two_oscillators_coupling_blocks(self, two_oscillators):
        """Coupling entries enter as a connection Laplacian"""
        a = two_oscillators.system_matrix()
        np.testing.assert_allclose(a[:2, :2], np.zeros((2, 2)))
        np.testing.assert_allclose(a[:2, 2:], np.eye(2))
        np.testing.assert_allclose(a[2:, :2], [[-6.0, 2.0], [1.0, -1.5]])
        np.testing.assert_allclose(a[2:, 2:], [[-0.12, 0.1], [0.05, -0.1]])

    def test_connection_laplacian(self):
        c = np.array([[1.0, 2.0, 0.0], [2.0, 0.0, 3.0], [0.0, 3.0, 4.0]])
        expected = np.array([[3.0, -2.0, 0.0], [-2.0, 5.0, -3.0], [0.0, -3.0, 7.0]])
        np.testing.assert_allclose(connection_laplacian(c), expected)

    def test_state_names(self, two_oscillators):
        assert state_names(2) == ['x.1', 'x.2', 'v.1', 'v.2']
        assert two_oscillators.state_names() == ['x.1', 'x.2', 'v.1', 'v.2']

    def test_arrays_are_read_only(self, two_oscillators):
        """Derived matrices cannot be modified in place"""
        with pytest.raises(ValueError):
            two_oscillators.system_matrix()[0, 0] = 1.0
        with pytest.raises(ValueError):
            two_oscillators.masses[0] = 5.0

    def test_inputs_are_copied(self):
        k = np.array([[1.0]])
        model = build_network([1.0], [[0.0]], k)
        k[0, 0] = 100.0
        assert model.stiffness[0, 0] == 1.0


# ============================================================================
# Test Class 2: Validation
# ============================================================================

class TestValidation:
    """Test eager parameter validation"""

    def test_damping_shape_mismatch(self):
        with pytest.raises(ShapeMismatch):
            build_network([1.0, 1.0], np.zeros((3, 3)), np.zeros((2, 2)))

    def test_stiffness_shape_mismatch(self):
        with pytest.raises(ShapeMismatch):
            build_network([1.0, 1.0], np.zeros((2, 2)), np.zeros((2, 3)))

    def test_empty_masses(self):
        with pytest.raises(ShapeMismatch):
            build_network([], np.zeros((0, 0)), np.zeros((0, 0)))

    def test_rest_lengths_shape(self):
        with pytest.raises(ShapeMismatch):
            build_network([1.0], [[0.0]], [[1.0]], rest_lengths=np.zeros((2, 2)))

    def test_external_force_shape(self):
        with pytest.raises(ShapeMismatch):
            build_network([1.0], [[0.0]], [[1.0]], external_force=[1.0, 2.0])

    def test_non_positive_mass(self):
        with pytest.raises(InvalidParameter):
            build_network([1.0, 0.0], np.zeros((2, 2)), np.zeros((2, 2)))

    def test_non_symmetric_stiffness(self):
        with pytest.raises(InvalidParameter):
            build_network([1.0, 1.0], np.zeros((2, 2)), [[1.0, 2.0], [0.5, 1.0]])

    def test_negative_damping_diagonal(self):
        with pytest.raises(InvalidParameter):
            build_network([1.0], [[-0.1]], [[1.0]])

    def test_non_finite_entry(self):
        with pytest.raises(InvalidParameter):
            build_network([1.0], [[0.0]], [[np.nan]])

    def test_errors_are_value_errors(self):
        """Input errors stay catchable as ValueError"""
        with pytest.raises(ValueError):
            build_network([1.0], [[-1.0]], [[1.0]])

    def test_initial_state(self, two_oscillators):
        z0 = two_oscillators.initial_state([1.0, 2.0], [3.0, 4.0])
        np.testing.assert_array_equal(z0, [1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(two_oscillators.initial_state([1.0, 2.0]), [1.0, 2.0, 0.0, 0.0])

    def test_initial_state_shape(self, two_oscillators):
        with pytest.raises(ShapeMismatch):
            two_oscillators.initial_state([1.0, 2.0, 3.0])
        with pytest.raises(ShapeMismatch):
            two_oscillators.initial_state([1.0, 2.0], [0.0])

    def test_initial_state_non_finite(self, two_oscillators):
        with pytest.raises(InvalidParameter):
            two_oscillators.initial_state([1.0, np.inf])


# ============================================================================
# Test Class 3: Functional Update
# ============================================================================

class TestUpdateOscillators:
    """Test that updates return new models"""

    def test_update_returns_new_model(self, two_oscillators):
        before = two_oscillators.system_matrix().copy()
        updated = two_oscillators.update_oscillators(masses=[2.0, 2.0])

        assert updated is not two_oscillators
        np.testing.assert_array_equal(two_oscillators.system_matrix(), before)
        np.testing.assert_allclose(updated.system_matrix()[2:, :2], [[-3.0, 1.0], [1.0, -1.5]])

    def test_update_keeps_other_parameters(self, two_oscillators):
        updated = two_oscillators.update_oscillators(stiffness=[[4.0, 0.0], [0.0, 1.0]])
        np.testing.assert_array_equal(updated.masses, two_oscillators.masses)
        np.testing.assert_array_equal(updated.damping, two_oscillators.damping)

    def test_update_validates(self, two_oscillators):
        with pytest.raises(InvalidParameter):
            two_oscillators.update_oscillators(damping=[[0.0, 1.0], [0.0, 0.0]])


# ============================================================================
# Test Class 4: Equilibrium
# ============================================================================

class TestEquilibrium:
    """Test static states with rest lengths and load"""

    def test_zero_rest_lengths(self, two_oscillators):
        np.testing.assert_allclose(two_oscillators.equilibrium(), np.zeros(4), atol=1e-12)

    def test_ground_rest_length(self):
        model = build_network([1.0], [[0.0]], [[4.0]], rest_lengths=[[1.5]])
        np.testing.assert_allclose(model.equilibrium(), [1.5, 0.0])

    def test_chain_rest_lengths(self):
        """Ground spring relaxed at 1, coupling relaxed at separation 0.5"""
        model = build_network(
            [1.0, 1.0],
            np.zeros((2, 2)),
            [[4.0, 2.0], [2.0, 0.0]],
            rest_lengths=[[1.0, 0.5], [0.5, 0.0]],
        )
        np.testing.assert_allclose(model.equilibrium(), [1.0, 1.5, 0.0, 0.0])

    def test_external_force(self):
        model = build_network([2.0], [[0.0]], [[4.0]], external_force=[-8.0])
        np.testing.assert_allclose(model.equilibrium(), [-2.0, 0.0])
        np.testing.assert_allclose(model.forcing(), [0.0, -4.0])

    def test_equilibrium_is_fixed_point(self, two_oscillators):
        model = two_oscillators.update_oscillators(
            rest_lengths=[[0.3, 1.2], [1.2, 0.7]], external_force=[0.5, -1.0]
        )
        z_eq = model.equilibrium()
        np.testing.assert_allclose(model.system_matrix() @ z_eq + model.forcing(), np.zeros(4), atol=1e-12)

    def test_net_load_on_free_component(self):
        """A free mass under constant load never comes to rest"""
        model = build_network([1.0], [[1.0]], [[0.0]], external_force=[1.0])
        with pytest.raises(UnderdeterminedSystem):
            model.equilibrium()

    def test_balanced_load_on_free_pair(self):
        """Opposite loads on a pair without ground springs only stretch the coupling"""
        model = build_network([1.0, 1.0], np.zeros((2, 2)), [[0.0, 2.0], [2.0, 0.0]], external_force=[-1.0, 1.0])
        z_eq = model.equilibrium()
        assert z_eq[1] - z_eq[0] == pytest.approx(0.5)
