"""
Function-style entry points over :class:`QubitRegister`.

These are the calls an external driver (example programs, a CLI) uses:

    reg = create_register(2)
    apply_gate(reg, "h", [0])
    apply_gate(reg, "cx", [0, 1])
    bitstring, probability = measure(reg, {0, 1}, rng_seed=7)
"""

from __future__ import annotations

import numbers
from typing import Iterable, Sequence, Union

import numpy as np

from tiny_qsim.register import QubitRegister

Params = Union[float, Sequence[float], None]


def create_register(qubit_count: int, seed: int | None = None) -> QubitRegister:
    """New register in |00...0⟩. Raises ``InvalidDimension`` for bad sizes."""
    return QubitRegister(qubit_count, seed=seed)


def _as_params(params: Params) -> tuple[float, ...]:
    if params is None:
        return ()
    if isinstance(params, numbers.Real):
        return (float(params),)
    return tuple(float(p) for p in params)


def apply_gate(
    register: QubitRegister,
    gate_name: str,
    targets: Sequence[int],
    params: Params = None,
) -> None:
    """
    Apply a named gate.

    Raises
    ------
    UnknownGate, GateArityMismatch, InvalidQubitIndex
        The register is left unchanged.
    """
    register.apply(gate_name, targets, _as_params(params))


def measure(
    register: QubitRegister,
    qubits: Iterable[int] | None = None,
    rng_seed: int | None = None,
) -> tuple[str, float]:
    """
    Measure and collapse; return ``(bitstring, probability)``.

    ``qubits`` may be any iterable (a set is measured in ascending order).
    With ``rng_seed`` the draw comes from a fresh generator seeded with it,
    otherwise from the register's own generator.
    """
    if qubits is not None and not isinstance(qubits, Sequence):
        qubits = sorted(qubits)
    rng = np.random.default_rng(rng_seed) if rng_seed is not None else None
    outcome = register.measure(qubits, rng=rng)
    return outcome.bitstring, outcome.probability


def inspect_amplitudes(register: QubitRegister) -> list[tuple[int, complex]]:
    """Read-only listing of ``(basis_state, amplitude)`` pairs."""
    return register.amplitudes()
