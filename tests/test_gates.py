"""Tests for quantum gate definitions."""

import numpy as np
import pytest

from tiny_qsim import gates as g
from tiny_qsim.errors import GateArityMismatch, NonUnitaryGate, UnknownGate
from tiny_qsim.gates import Gate, GateKind, GateLibrary


# ---------------------------------------------------------------------------
# Unitarity: every gate must satisfy U†U = I
# ---------------------------------------------------------------------------

FIXED_GATES = [
    ("I", g.I), ("X", g.X), ("Y", g.Y), ("Z", g.Z), ("H", g.H),
    ("S", g.S), ("Sdg", g.Sdg), ("T", g.T), ("Tdg", g.Tdg),
    ("CNOT", g.CNOT), ("CZ", g.CZ), ("SWAP", g.SWAP), ("CCX", g.CCX),
]


@pytest.mark.parametrize("name,matrix", FIXED_GATES)
def test_fixed_gate_unitary(name, matrix):
    """Every fixed gate must be unitary: U†U = I."""
    dim = matrix.shape[0]
    product = matrix.conj().T @ matrix
    np.testing.assert_allclose(product, np.eye(dim), atol=1e-12, err_msg=f"{name} is not unitary")


@pytest.mark.parametrize("name,matrix", FIXED_GATES)
def test_fixed_gate_is_read_only(name, matrix):
    with pytest.raises(ValueError):
        matrix[0, 0] = 2


@pytest.mark.parametrize("factory", [g.Rx, g.Ry, g.Rz, g.P])
@pytest.mark.parametrize("theta", [0, 0.5, np.pi, 2 * np.pi, -1.3])
def test_param_gate_unitary(factory, theta):
    """Rotation gates must be unitary for all angles."""
    mat = factory(theta)
    product = mat.conj().T @ mat
    np.testing.assert_allclose(product, np.eye(2), atol=1e-12)


# ---------------------------------------------------------------------------
# Gate algebra tests
# ---------------------------------------------------------------------------

def test_x_squared_is_identity():
    np.testing.assert_allclose(g.X @ g.X, g.I, atol=1e-12)


def test_h_squared_is_identity():
    np.testing.assert_allclose(g.H @ g.H, g.I, atol=1e-12)


def test_s_squared_is_z():
    np.testing.assert_allclose(g.S @ g.S, g.Z, atol=1e-12)


def test_t_squared_is_s():
    np.testing.assert_allclose(g.T @ g.T, g.S, atol=1e-12)


def test_hxh_is_z():
    np.testing.assert_allclose(g.H @ g.X @ g.H, g.Z, atol=1e-12)


def test_rx_pi_is_x_up_to_phase():
    np.testing.assert_allclose(g.Rx(np.pi), -1j * g.X, atol=1e-12)


def _pauli_exponential(pauli, theta):
    """exp(-iθP/2) through the eigendecomposition of P."""
    values, vectors = np.linalg.eigh(pauli)
    return vectors @ np.diag(np.exp(-0.5j * theta * values)) @ vectors.conj().T


@pytest.mark.parametrize("factory,pauli", [(g.Rx, g.X), (g.Ry, g.Y), (g.Rz, g.Z)])
@pytest.mark.parametrize("theta", [0.4, -2.1, np.pi])
def test_rotations_are_pauli_exponentials(factory, pauli, theta):
    np.testing.assert_allclose(factory(theta), _pauli_exponential(pauli, theta), atol=1e-12)


def test_ry_is_real():
    assert np.all(g.Ry(1.1).imag == 0)


def test_two_qubit_matrices_in_textbook_order():
    np.testing.assert_array_equal(
        g.CNOT, [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 0, 1], [0, 0, 1, 0]]
    )
    np.testing.assert_array_equal(g.CZ, np.diag([1, 1, 1, -1]))
    np.testing.assert_array_equal(
        g.SWAP, [[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]]
    )
    assert g.CX is g.CNOT and g.Toffoli is g.CCX


def test_rz_and_p_differ_by_global_phase():
    theta = 0.7
    np.testing.assert_allclose(g.Rz(theta) * np.exp(1j * theta / 2), g.P(theta), atol=1e-12)


def test_toffoli_only_swaps_last_two_rows():
    expected = np.eye(8)
    expected[[6, 7]] = expected[[7, 6]]
    np.testing.assert_allclose(g.CCX, expected, atol=1e-12)


# ---------------------------------------------------------------------------
# Gate value type
# ---------------------------------------------------------------------------

def test_non_unitary_matrix_rejected():
    with pytest.raises(NonUnitaryGate):
        Gate("double", 2 * np.eye(2))


def test_non_finite_matrix_rejected():
    with pytest.raises(NonUnitaryGate):
        Gate("nan", [[np.nan, 0], [0, 1]])


@pytest.mark.parametrize("matrix", [np.eye(3), np.ones((2, 4)), [1.0], np.eye(1)])
def test_bad_shape_rejected(matrix):
    with pytest.raises(GateArityMismatch):
        Gate("bad", matrix)


def test_gate_copies_and_freezes_matrix():
    source = np.array(g.X)
    gate = Gate("x2", source)
    source[0, 0] = 5
    assert gate.matrix[0, 0] == 0
    with pytest.raises(ValueError):
        gate.matrix[0, 0] = 1


def test_gate_metadata():
    gate = g.standard_gate(GateKind.TOFFOLI)
    assert gate.num_qubits == 3
    assert gate.dimension == 8
    assert gate.num_controls == 2
    np.testing.assert_allclose(gate.target_matrix, g.X, atol=1e-12)


def test_controls_must_match_structure():
    with pytest.raises(ValueError, match="not controlled"):
        Gate("swap_as_controlled", g.SWAP, num_controls=1)
    with pytest.raises(ValueError):
        Gate("x", g.X, num_controls=1)


def test_cz_target_block_is_z():
    gate = g.standard_gate(GateKind.CZ)
    np.testing.assert_allclose(gate.target_matrix, g.Z, atol=1e-12)


# ---------------------------------------------------------------------------
# Table lookup
# ---------------------------------------------------------------------------

def test_every_tabled_kind_builds():
    for kind, entry in g.GATE_TABLE.items():
        params = (0.3,) * entry.num_params
        gate = g.standard_gate(kind, params)
        assert gate.kind is kind
        assert gate.num_qubits == entry.num_qubits


def test_fixed_gates_are_shared():
    assert g.standard_gate(GateKind.H) is g.standard_gate(GateKind.H)


def test_rotation_gates_cached_per_angle():
    assert g.standard_gate(GateKind.RX, (0.25,)) is g.standard_gate(GateKind.RX, (0.25,))
    assert g.standard_gate(GateKind.RX, (0.25,)) is not g.standard_gate(GateKind.RX, (0.5,))


def test_wrong_param_count():
    with pytest.raises(GateArityMismatch):
        g.standard_gate(GateKind.RX)
    with pytest.raises(GateArityMismatch):
        g.standard_gate(GateKind.H, (1.0,))


def test_untabled_kinds_have_no_standard_definition():
    with pytest.raises(UnknownGate):
        g.standard_gate(GateKind.CUSTOM)


# ---------------------------------------------------------------------------
# Oracle U_f
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("f", [
    lambda x: False, lambda x: True, lambda x: x, lambda x: not x,
])
def test_oracle_truth_table(f):
    m = g.oracle_matrix(f)
    for x in (0, 1):
        for y in (0, 1):
            column = m[:, (x << 1) | y]
            expected = (x << 1) | (y ^ int(f(bool(x))))
            assert column[expected] == 1
            assert np.count_nonzero(column) == 1


def test_identity_oracle_is_cnot():
    np.testing.assert_allclose(g.oracle_matrix(lambda x: x), g.CNOT, atol=1e-12)


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------

def test_library_resolves_names_case_insensitively():
    lib = GateLibrary()
    assert lib.get("H") is lib.get("h")
    assert lib.get("CNOT") is lib.get("cx")
    assert lib.get("toffoli") is lib.get("ccx")
    assert "Rz" in lib
    assert 3 not in lib


def test_library_unknown_gate():
    lib = GateLibrary()
    with pytest.raises(UnknownGate, match="Unknown gate"):
        lib.get("warp")


def test_library_register_custom_gate():
    lib = GateLibrary()
    sx = np.array([[1 + 1j, 1 - 1j], [1 - 1j, 1 + 1j]]) / 2
    gate = lib.register("SX", sx)
    assert gate.kind is GateKind.CUSTOM
    assert lib.get("sx") is gate
    assert "sx" in lib.names()


def test_library_register_non_unitary_not_installed():
    lib = GateLibrary()
    with pytest.raises(NonUnitaryGate):
        lib.register("scale2", 2 * np.eye(2))
    assert "scale2" not in lib
    with pytest.raises(UnknownGate):
        lib.get("scale2")


def test_library_register_name_clash():
    lib = GateLibrary()
    with pytest.raises(ValueError, match="already defined"):
        lib.register("x", g.X)


def test_library_custom_gate_takes_no_params():
    lib = GateLibrary()
    lib.register("myswap", g.SWAP)
    with pytest.raises(GateArityMismatch):
        lib.get("myswap", (1.0,))


def test_libraries_are_independent():
    a, b = GateLibrary(), GateLibrary()
    a.register("only_a", g.Y)
    assert "only_a" in a
    assert "only_a" not in b
