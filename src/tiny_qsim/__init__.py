"""
tiny-qsim: a small state-vector quantum circuit simulator.

Features:
- Full complex state vector of an n-qubit register (complex128)
- In-place gate application, O(2^n) per gate, no 2^n x 2^n operators
- Universal gate set: X, Y, Z, H, S, T, Rx/Ry/Rz, CNOT, CZ, SWAP, Toffoli
- Projective measurement with collapse, reproducible via seeded generators

Qubit 0 is the least-significant bit of the basis-state integer.

Quick Start:
    >>> from tiny_qsim import QubitRegister
    >>> reg = QubitRegister(2, seed=42).h(0).cx(0, 1)
    >>> outcome = reg.measure()
    >>> outcome.bitstring in ("00", "11")
    True

Function-style API:
    >>> from tiny_qsim import create_register, apply_gate, measure
    >>> reg = create_register(1)
    >>> apply_gate(reg, "x", [0])
    >>> measure(reg, [0])
    ('1', 1.0)
"""

import logging

__version__ = "1.0.0"

from tiny_qsim.api import apply_gate, create_register, inspect_amplitudes, measure
from tiny_qsim.buffer import AmplitudeBuffer
from tiny_qsim.config import DEFAULT_CONFIG, SimulatorConfig
from tiny_qsim.errors import (
    DegenerateState,
    GateArityMismatch,
    InvalidDimension,
    InvalidQubitIndex,
    NonUnitaryGate,
    QuantumSimulationError,
    UnknownGate,
    UnnormalizedState,
)
from tiny_qsim.evaluation import MeasurementStatistics
from tiny_qsim.gates import Gate, GateKind, GateLibrary
from tiny_qsim.logging_config import setup_logging
from tiny_qsim.measurement import MeasurementOutcome
from tiny_qsim.register import QubitRegister

from tiny_qsim import gates

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core
    "QubitRegister",
    "AmplitudeBuffer",
    "MeasurementOutcome",
    "MeasurementStatistics",
    "Gate",
    "GateKind",
    "GateLibrary",
    "gates",
    # Function API
    "create_register",
    "apply_gate",
    "measure",
    "inspect_amplitudes",
    # Config / logging
    "SimulatorConfig",
    "DEFAULT_CONFIG",
    "setup_logging",
    # Errors
    "QuantumSimulationError",
    "InvalidDimension",
    "UnknownGate",
    "NonUnitaryGate",
    "InvalidQubitIndex",
    "GateArityMismatch",
    "UnnormalizedState",
    "DegenerateState",
]
