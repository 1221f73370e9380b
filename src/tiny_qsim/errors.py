"""
Exception taxonomy for the simulator.

Every error is raised synchronously at the offending call. None of them is
transient, so there is no retry logic anywhere in the package: they signal
a broken contract between the caller and the engine.

    QuantumSimulationError
    ├── InvalidDimension      bad register size
    ├── UnknownGate           gate name not in the library
    ├── NonUnitaryGate        gate matrix fails U†U = I
    ├── InvalidQubitIndex     target/measured qubit out of range or repeated
    ├── GateArityMismatch     matrix size != 2^len(targets), wrong param count
    ├── UnnormalizedState     total probability drifted away from 1
    └── DegenerateState       total probability is ~0
"""

from __future__ import annotations


class QuantumSimulationError(Exception):
    """Base class for all simulator errors."""


class InvalidDimension(QuantumSimulationError, ValueError):
    """Register size is not a positive integer within the configured limit."""


class UnknownGate(QuantumSimulationError, KeyError):
    """Gate name does not resolve to any library entry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class NonUnitaryGate(QuantumSimulationError, ValueError):
    """Gate matrix is not unitary within tolerance."""


class InvalidQubitIndex(QuantumSimulationError, ValueError):
    """Qubit index is out of range, not an integer, or duplicated."""


class GateArityMismatch(QuantumSimulationError, ValueError):
    """Gate dimension or parameter count does not match its use."""


class UnnormalizedState(QuantumSimulationError, ArithmeticError):
    """State vector no longer has unit norm."""


class DegenerateState(QuantumSimulationError, ArithmeticError):
    """State vector carries no probability mass."""
