"""Tests for projective measurement and collapse."""

import numpy as np
import pytest

from tiny_qsim import AmplitudeBuffer
from tiny_qsim.applicator import apply
from tiny_qsim.errors import DegenerateState, InvalidQubitIndex, UnnormalizedState
from tiny_qsim.gates import GateKind, standard_gate
from tiny_qsim.measurement import MeasurementOutcome, measure, outcome_probabilities, sample_counts


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def _bell():
    buf = AmplitudeBuffer(2)
    apply(buf, standard_gate(GateKind.H), [0])
    apply(buf, standard_gate(GateKind.CNOT), [0, 1])
    return buf


def _ghz(n):
    buf = AmplitudeBuffer(n)
    apply(buf, standard_gate(GateKind.H), [0])
    for q in range(1, n):
        apply(buf, standard_gate(GateKind.CNOT), [0, q])
    return buf


# ---------------------------------------------------------------------------
# MeasurementOutcome
# ---------------------------------------------------------------------------

def test_outcome_bitstring_prints_last_qubit_first():
    outcome = MeasurementOutcome(qubits=(0, 1, 2), bits=(1, 0, 0), probability=1.0)
    assert outcome.bitstring == "001"
    assert outcome.value == 1
    assert outcome[0] == 1
    assert outcome[2] == 0


def test_outcome_for_subset():
    outcome = MeasurementOutcome(qubits=(3, 1), bits=(0, 1), probability=0.5)
    assert outcome.bitstring == "10"
    assert outcome.value == 2
    assert outcome[1] == 1


# ---------------------------------------------------------------------------
# Probabilities (non-destructive)
# ---------------------------------------------------------------------------

def test_probabilities_of_all_qubits_follow_basis_order():
    buf = AmplitudeBuffer(2)
    apply(buf, standard_gate(GateKind.RY, (0.8,)), [0])
    apply(buf, standard_gate(GateKind.H), [1])
    probs = outcome_probabilities(buf)
    np.testing.assert_allclose(probs, np.abs(buf.copy()) ** 2, atol=1e-12)


def test_marginal_probabilities():
    buf = AmplitudeBuffer(3)
    apply(buf, standard_gate(GateKind.X), [2])
    apply(buf, standard_gate(GateKind.RY, (np.pi / 3,)), [0])  # P(q0=1) = 1/4
    np.testing.assert_allclose(outcome_probabilities(buf, [0]), [0.75, 0.25], atol=1e-12)
    np.testing.assert_allclose(outcome_probabilities(buf, [1]), [1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(outcome_probabilities(buf, [2]), [0.0, 1.0], atol=1e-12)
    # value = bit(q2) + 2*bit(q0)
    np.testing.assert_allclose(
        outcome_probabilities(buf, [2, 0]), [0.0, 0.75, 0.0, 0.25], atol=1e-12
    )


def test_probabilities_do_not_collapse():
    buf = _bell()
    before = buf.copy()
    outcome_probabilities(buf, [0])
    np.testing.assert_array_equal(buf.copy(), before)


# ---------------------------------------------------------------------------
# Deterministic cases
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("basis_state", range(8))
def test_basis_state_measures_deterministically(basis_state, rng):
    buf = AmplitudeBuffer(3)
    buf.load_basis_state(basis_state)
    for _ in range(5):
        outcome = measure(buf, rng=rng)
        assert outcome.bitstring == format(basis_state, "03b")
        assert outcome.value == basis_state
        assert outcome.probability == pytest.approx(1.0)


def test_remeasure_after_collapse_is_idempotent(rng):
    buf = _ghz(3)
    first = measure(buf, rng=rng)
    collapsed = buf.copy()
    for _ in range(10):
        again = measure(buf, rng=rng)
        assert again.bits == first.bits
        assert again.probability == pytest.approx(1.0)
    np.testing.assert_allclose(buf.copy(), collapsed, atol=1e-12)


# ---------------------------------------------------------------------------
# Collapse
# ---------------------------------------------------------------------------

def test_bell_collapse_is_correlated(rng):
    for _ in range(20):
        buf = _bell()
        outcome = measure(buf, [0], rng=rng)
        assert outcome.probability == pytest.approx(0.5)
        expected = np.zeros(4)
        expected[3 * outcome.bits[0]] = 1
        np.testing.assert_allclose(buf.copy(), expected, atol=1e-12)
        assert measure(buf, [1], rng=rng).bits == outcome.bits


def test_partial_collapse_renormalizes_rest():
    """Measuring q1 of (|00⟩+|01⟩+|10⟩+|11⟩)/2 leaves q0 in |+⟩."""
    buf = AmplitudeBuffer(2)
    apply(buf, standard_gate(GateKind.H), [0])
    apply(buf, standard_gate(GateKind.H), [1])
    outcome = measure(buf, [1], rng=np.random.default_rng(0))
    assert outcome.probability == pytest.approx(0.5)
    a = 1 / np.sqrt(2)
    expected = [a, a, 0, 0] if outcome.bits == (0,) else [0, 0, a, a]
    np.testing.assert_allclose(buf.copy(), expected, atol=1e-12)
    assert buf.is_normalized()


def test_phases_survive_collapse():
    buf = AmplitudeBuffer(2)
    apply(buf, standard_gate(GateKind.H), [0])
    apply(buf, standard_gate(GateKind.S), [0])
    apply(buf, standard_gate(GateKind.X), [1])
    measure(buf, [1], rng=np.random.default_rng(3))
    a = 1 / np.sqrt(2)
    np.testing.assert_allclose(buf.copy(), [0, 0, a, 1j * a], atol=1e-12)


# ---------------------------------------------------------------------------
# Statistics and reproducibility
# ---------------------------------------------------------------------------

def test_bell_statistics_converge_to_half(rng):
    counts = {}
    runs = 2000
    for _ in range(runs):
        outcome = measure(_bell(), rng=rng)
        counts[outcome.bitstring] = counts.get(outcome.bitstring, 0) + 1
    assert set(counts) <= {"00", "11"}
    assert 0.45 < counts["00"] / runs < 0.55
    assert 0.45 < counts["11"] / runs < 0.55


def test_same_seed_same_outcomes():
    rng1, rng2 = np.random.default_rng(99), np.random.default_rng(99)
    first = [measure(_ghz(4), rng=rng1).bitstring for _ in range(30)]
    second = [measure(_ghz(4), rng=rng2).bitstring for _ in range(30)]
    assert first == second
    assert set(first) <= {"0000", "1111"}


def test_one_draw_per_measurement():
    rng = np.random.default_rng(7)
    reference = np.random.default_rng(7)
    measure(_bell(), rng=rng)
    reference.random()
    assert rng.random() == reference.random()


def test_subset_reads_match_full_measurement_for_same_draw():
    """A given draw reads the same bit on a qubit whatever subset is measured."""
    rng = np.random.default_rng(0)
    base = AmplitudeBuffer(3)
    for q, theta in enumerate((0.4, 1.3, 2.2)):
        apply(base, standard_gate(GateKind.RY, (theta,)), [q])
    apply(base, standard_gate(GateKind.CNOT), [0, 2])
    psi = base.copy()

    for seed in rng.integers(0, 2**32, size=50):
        results = []
        for qubits in (None, [1], [0, 2]):
            buf = AmplitudeBuffer(3)
            buf.tensor()[...] = psi.reshape(2, 2, 2)
            results.append(measure(buf, qubits, rng=np.random.default_rng(seed)))
        full, only1, pair = results
        assert full[1] == only1[1]
        assert full[0] == pair[0]
        assert full[2] == pair[2]


def test_sample_counts_does_not_collapse(rng):
    buf = _bell()
    before = buf.copy()
    counts = sample_counts(buf, 1000, rng)
    np.testing.assert_array_equal(buf.copy(), before)
    assert set(counts) <= {"00", "11"}
    assert sum(counts.values()) == 1000


def test_sample_counts_subset(rng):
    buf = AmplitudeBuffer(2)
    apply(buf, standard_gate(GateKind.X), [1])
    assert sample_counts(buf, 50, rng, qubits=[1]) == {"1": 50}
    with pytest.raises(ValueError):
        sample_counts(buf, 0, rng)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("qubits", [[], [2], [-1], [0, 0]])
def test_invalid_qubits(qubits, rng):
    buf = _bell()
    before = buf.copy()
    with pytest.raises(InvalidQubitIndex):
        measure(buf, qubits, rng=rng)
    np.testing.assert_array_equal(buf.copy(), before)


def test_degenerate_state(rng):
    buf = AmplitudeBuffer(2)
    buf[0] = 0
    with pytest.raises(DegenerateState):
        measure(buf, rng=rng)


def test_unnormalized_state(rng):
    buf = AmplitudeBuffer(1)
    buf[1] = 1  # total probability 2
    before = buf.copy()
    with pytest.raises(UnnormalizedState):
        measure(buf, rng=rng)
    np.testing.assert_array_equal(buf.copy(), before)


def test_requires_explicit_rng():
    with pytest.raises(TypeError):
        measure(_bell())
