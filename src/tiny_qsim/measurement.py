"""
Projective measurement in the computational basis.

Outcome classes are the 2^m assignments of the measured qubits. A class is
identified by its ``value``: ``sum(bits[i] << i)`` where ``bits[i]`` is the
reading of ``qubits[i]``. Its bitstring is ``format(value, "0{m}b")``, i.e.
the last measured qubit is printed first and ``qubits[0]`` last. Measuring
all qubits in the default order therefore prints a basis state ``s`` as
``format(s, "0{n}b")``.

:func:`measure` is DESTRUCTIVE: it collapses the buffer and cannot be undone.
:func:`outcome_probabilities` and :func:`sample_counts` only read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy import ndarray

from tiny_qsim.buffer import AmplitudeBuffer, check_qubits
from tiny_qsim.config import DEFAULT_CONFIG, SimulatorConfig
from tiny_qsim.errors import DegenerateState, InvalidQubitIndex, UnnormalizedState
from tiny_qsim.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MeasurementOutcome:
    """
    Result of one projective measurement.

    Attributes
    ----------
    qubits : tuple[int, ...]
        Measured qubits, in the order requested.
    bits : tuple[int, ...]
        ``bits[i]`` is the value read on ``qubits[i]``.
    probability : float
        Born-rule probability of this outcome before collapse.
    """

    qubits: tuple[int, ...]
    bits: tuple[int, ...]
    probability: float

    @property
    def value(self) -> int:
        """Outcome as an integer, ``bits[i]`` weighted by ``2**i``."""
        return sum(bit << i for i, bit in enumerate(self.bits))

    @property
    def bitstring(self) -> str:
        """Outcome bits, ``qubits[-1]`` first and ``qubits[0]`` last."""
        return "".join(str(bit) for bit in reversed(self.bits))

    def __getitem__(self, qubit: int) -> int:
        """Reading of a measured qubit (by qubit index, not position)."""
        return self.bits[self.qubits.index(qubit)]


def _resolve_qubits(buffer: AmplitudeBuffer, qubits: Sequence[int] | None) -> tuple[int, ...]:
    if qubits is None:
        return tuple(range(buffer.num_qubits))
    qubits = check_qubits(qubits, buffer.num_qubits)
    if not qubits:
        raise InvalidQubitIndex("Cannot measure an empty set of qubits")
    return qubits


def outcome_probabilities(
    buffer: AmplitudeBuffer, qubits: Sequence[int] | None = None
) -> ndarray:
    """
    Marginal probability of every outcome class.

    Returns
    -------
    ndarray
        Length ``2**len(qubits)``; entry ``v`` is the probability of the
        outcome whose ``value`` is ``v``.
    """
    qubits = _resolve_qubits(buffer, qubits)
    n = buffer.num_qubits
    probs = buffer.probabilities().reshape((2,) * n)

    kept = [buffer.axis(q) for q in qubits]
    summed = tuple(axis for axis in range(n) if axis not in kept)
    marginal = probs.sum(axis=summed) if summed else probs

    # Remaining axes are in ascending axis order; put qubits[-1] first so the
    # C-order flattening matches ``value``.
    remaining = sorted(kept)
    order = [remaining.index(buffer.axis(q)) for q in reversed(qubits)]
    return np.transpose(marginal, order).reshape(-1)


def _check_distribution(probs: ndarray, config: SimulatorConfig) -> None:
    total = float(probs.sum())
    if total < config.degenerate_threshold:
        raise DegenerateState(f"Total probability is {total:.3e}; nothing to measure")
    if abs(total - 1.0) > config.tolerance:
        raise UnnormalizedState(f"Outcome probabilities sum to {total:.12f}, expected 1")


def _sample_basis_state(probs: ndarray, rng: np.random.Generator) -> int:
    # side="right" never returns an index whose probability is exactly 0
    cumulative = np.cumsum(probs)
    draw = rng.random()
    state = int(np.searchsorted(cumulative, draw, side="right"))
    if state >= len(probs):
        # draw landed in the rounding gap above the last cumulative entry
        state = int(np.flatnonzero(probs)[-1])
    return state


def measure(
    buffer: AmplitudeBuffer,
    qubits: Sequence[int] | None = None,
    rng: np.random.Generator | None = None,
    config: SimulatorConfig | None = None,
) -> MeasurementOutcome:
    """
    Measure ``qubits`` and collapse the state (DESTRUCTIVE).

    Parameters
    ----------
    buffer : AmplitudeBuffer
        State to measure; mutated irreversibly.
    qubits : sequence of int, optional
        Qubits to measure. Defaults to all, in index order.
    rng : numpy.random.Generator
        Random source; exactly one ``rng.random()`` draw is consumed.
    config : SimulatorConfig, optional
        Tolerances.

    Returns
    -------
    MeasurementOutcome
        Bits read and the probability they had.

    Raises
    ------
    InvalidQubitIndex
        Empty qubit set, or an index out of range or repeated.
    DegenerateState
        State carries (almost) no probability.
    UnnormalizedState
        Outcome probabilities do not sum to 1.
    """
    if rng is None:
        raise TypeError("measure() requires an explicit numpy Generator")
    config = config or DEFAULT_CONFIG
    qubits = _resolve_qubits(buffer, qubits)

    probs = outcome_probabilities(buffer, qubits)
    _check_distribution(probs, config)

    # Draw one basis state from the full distribution and read the measured
    # bits off it. The outcome distribution is the marginal, and a given draw
    # reads the same bit on a qubit whatever subset is being measured.
    state = _sample_basis_state(buffer.probabilities(), rng)
    bits = tuple((state >> q) & 1 for q in qubits)
    value = sum(bit << i for i, bit in enumerate(bits))
    probability = float(probs[value])

    # Collapse: zero every amplitude disagreeing with the outcome, then
    # rescale the survivors by 1/sqrt(p).
    tensor = buffer.tensor()
    for q, bit in zip(qubits, bits):
        index: list = [slice(None)] * buffer.num_qubits
        index[buffer.axis(q)] = 1 - bit
        tensor[tuple(index)] = 0
    tensor /= np.sqrt(probability)

    outcome = MeasurementOutcome(qubits=qubits, bits=bits, probability=probability)
    logger.debug(
        "Measured qubits %s -> %s (p=%.6f)", qubits, outcome.bitstring, probability
    )
    return outcome


def sample_counts(
    buffer: AmplitudeBuffer,
    shots: int,
    rng: np.random.Generator,
    qubits: Sequence[int] | None = None,
    config: SimulatorConfig | None = None,
) -> dict[str, int]:
    """
    Sample ``shots`` outcomes from the current state without collapsing it.

    Returns
    -------
    dict[str, int]
        Bitstring (same convention as :attr:`MeasurementOutcome.bitstring`)
        to count, sorted by bitstring.
    """
    if shots < 1:
        raise ValueError(f"shots must be positive, got {shots}")
    config = config or DEFAULT_CONFIG
    qubits = _resolve_qubits(buffer, qubits)

    probs = outcome_probabilities(buffer, qubits)
    _check_distribution(probs, config)

    outcomes = rng.choice(len(probs), size=shots, p=probs / probs.sum())
    values, counts = np.unique(outcomes, return_counts=True)
    width = len(qubits)
    return {
        format(int(v), f"0{width}b"): int(c) for v, c in zip(values, counts)
    }
