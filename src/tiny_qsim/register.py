"""
Qubit register: the state vector plus the operations that drive it.

Provides a builder-style API, so a small circuit reads as one expression.

Example
-------
>>> from tiny_qsim import QubitRegister
>>> reg = QubitRegister(2, seed=42).h(0).cx(0, 1)
>>> reg.amplitudes()[3]
(3, (0.7071067811865475+0j))
>>> reg.measure().bitstring in ("00", "11")
True
"""

from __future__ import annotations

from typing import Callable, Sequence, Union

import numpy as np
from numpy import ndarray

from tiny_qsim import applicator, measurement
from tiny_qsim.buffer import AmplitudeBuffer
from tiny_qsim.config import DEFAULT_CONFIG, SimulatorConfig
from tiny_qsim.errors import GateArityMismatch
from tiny_qsim.gates import Gate, GateLibrary, oracle
from tiny_qsim.logging_config import get_logger
from tiny_qsim.measurement import MeasurementOutcome

logger = get_logger(__name__)

GateLike = Union[Gate, str]


class QubitRegister:
    """
    An n-qubit register simulated by its full state vector.

    Parameters
    ----------
    num_qubits : int
        Number of qubits, at least 1.
    seed : int, optional
        Seed for the register's own random generator.
    rng : numpy.random.Generator, optional
        Use this generator instead of creating one from ``seed``.
    library : GateLibrary, optional
        Where gate names are resolved. Defaults to a fresh library with the
        built-in gates.
    config : SimulatorConfig, optional
        Tolerances and engine switches.

    Raises
    ------
    InvalidDimension
        If ``num_qubits`` is not a positive integer within the limit.
    """

    def __init__(
        self,
        num_qubits: int,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        library: GateLibrary | None = None,
        config: SimulatorConfig | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._buffer = AmplitudeBuffer(num_qubits, self.config)
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self.library = library if library is not None else GateLibrary()

    # -- Properties ---------------------------------------------------------

    @property
    def num_qubits(self) -> int:
        return self._buffer.num_qubits

    @property
    def dimension(self) -> int:
        return self._buffer.dimension

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    @property
    def statevector(self) -> ndarray:
        """Copy of the amplitudes, index = basis state."""
        return self._buffer.copy()

    # -- Initialization -----------------------------------------------------

    def initialize(self) -> QubitRegister:
        """Put the register in |00...0⟩."""
        self._buffer.reset()
        return self

    reset = initialize

    def initialize_basis_state(self, basis_state: int) -> QubitRegister:
        """Put all amplitude on one basis state."""
        self._buffer.load_basis_state(basis_state)
        return self

    def initialize_superposition(self) -> QubitRegister:
        """Uniform superposition |+⟩^n."""
        amp = 1.0 / np.sqrt(2.0)
        self._buffer.load_product_state([(amp, amp)] * self.num_qubits)
        return self

    def initialize_random(self) -> QubitRegister:
        """
        Random product state, each qubit drawn from the register's generator.

        Each qubit is ``cos(a)cos(b)e^(iφ)|0⟩ + (sin(a)cos(b) + i sin(b))|1⟩``
        with three independent uniform angles.
        """
        states = []
        for _ in range(self.num_qubits):
            phi, a, b = self._rng.uniform(0.0, 2.0 * np.pi, size=3)
            alpha = np.exp(1j * phi) * np.cos(a) * np.cos(b)
            beta = complex(np.sin(a) * np.cos(b), np.sin(b))
            states.append((alpha, beta))
        self._buffer.load_product_state(states)
        logger.debug("Loaded random product state on %d qubits", self.num_qubits)
        return self

    # -- Gate application ---------------------------------------------------

    def resolve(self, gate: GateLike, params: Sequence[float] = ()) -> Gate:
        """Turn a gate name (plus parameters) into a :class:`Gate`."""
        if isinstance(gate, Gate):
            if params:
                raise GateArityMismatch(
                    f"Gate '{gate.name}' is already built, got {len(params)} parameter(s)"
                )
            return gate
        return self.library.get(gate, tuple(params))

    def apply(
        self,
        gate: GateLike,
        targets: Sequence[int],
        params: Sequence[float] = (),
    ) -> QubitRegister:
        """
        Apply a gate to ``targets``.

        Parameters
        ----------
        gate : Gate or str
            Gate object or library name (``"h"``, ``"cx"``, ``"rz"``...).
        targets : sequence of int
            Qubits, controls first for controlled gates.
        params : sequence of float
            Parameters for parameterized gates.

        Raises
        ------
        UnknownGate, GateArityMismatch, InvalidQubitIndex
            The register is left unchanged.
        """
        resolved = self.resolve(gate, params)
        applicator.apply(self._buffer, resolved, targets, self.config)
        return self

    # -- Single-qubit gates -------------------------------------------------

    def i(self, qubit: int) -> QubitRegister:
        """Identity gate."""
        return self.apply("i", (qubit,))

    def x(self, qubit: int) -> QubitRegister:
        """Pauli-X gate."""
        return self.apply("x", (qubit,))

    def y(self, qubit: int) -> QubitRegister:
        """Pauli-Y gate."""
        return self.apply("y", (qubit,))

    def z(self, qubit: int) -> QubitRegister:
        """Pauli-Z gate."""
        return self.apply("z", (qubit,))

    def h(self, qubit: int) -> QubitRegister:
        """Hadamard gate."""
        return self.apply("h", (qubit,))

    def s(self, qubit: int) -> QubitRegister:
        """S gate."""
        return self.apply("s", (qubit,))

    def sdg(self, qubit: int) -> QubitRegister:
        """S-dagger gate."""
        return self.apply("sdg", (qubit,))

    def t(self, qubit: int) -> QubitRegister:
        """T gate."""
        return self.apply("t", (qubit,))

    def tdg(self, qubit: int) -> QubitRegister:
        """T-dagger gate."""
        return self.apply("tdg", (qubit,))

    # -- Parameterized single-qubit gates -----------------------------------

    def rx(self, theta: float, qubit: int) -> QubitRegister:
        """Rotation around X-axis."""
        return self.apply("rx", (qubit,), (theta,))

    def ry(self, theta: float, qubit: int) -> QubitRegister:
        """Rotation around Y-axis."""
        return self.apply("ry", (qubit,), (theta,))

    def rz(self, phi: float, qubit: int) -> QubitRegister:
        """Rotation around Z-axis."""
        return self.apply("rz", (qubit,), (phi,))

    def p(self, lam: float, qubit: int) -> QubitRegister:
        """Phase gate."""
        return self.apply("p", (qubit,), (lam,))

    # -- Multi-qubit gates --------------------------------------------------

    def cx(self, control: int, target: int) -> QubitRegister:
        """Controlled-NOT (CNOT) gate."""
        return self.apply("cx", (control, target))

    def cnot(self, control: int, target: int) -> QubitRegister:
        """Alias for cx."""
        return self.cx(control, target)

    def cz(self, q0: int, q1: int) -> QubitRegister:
        """Controlled-Z gate."""
        return self.apply("cz", (q0, q1))

    def swap(self, q0: int, q1: int) -> QubitRegister:
        """SWAP gate."""
        return self.apply("swap", (q0, q1))

    def ccx(self, c0: int, c1: int, target: int) -> QubitRegister:
        """Toffoli (CCX) gate."""
        return self.apply("ccx", (c0, c1, target))

    def toffoli(self, c0: int, c1: int, target: int) -> QubitRegister:
        """Alias for ccx."""
        return self.ccx(c0, c1, target)

    def oracle(self, f: Callable[[bool], bool], x: int, y: int) -> QubitRegister:
        """U_f: |x, y⟩ -> |x, y XOR f(x)⟩."""
        return self.apply(oracle(f), (x, y))

    # -- Measurement --------------------------------------------------------

    def measure(
        self,
        qubits: Sequence[int] | None = None,
        rng: np.random.Generator | None = None,
    ) -> MeasurementOutcome:
        """
        Measure ``qubits`` (default: all) and collapse the state.

        This is destructive: unlike gate application it cannot be undone.
        Draws from the register's own generator unless ``rng`` is given.
        """
        return measurement.measure(
            self._buffer,
            qubits,
            rng=rng if rng is not None else self._rng,
            config=self.config,
        )

    def measure_all(self) -> MeasurementOutcome:
        """Measure every qubit."""
        return self.measure()

    def probabilities(self, qubits: Sequence[int] | None = None) -> ndarray:
        """Outcome probabilities without collapsing (see ``outcome_probabilities``)."""
        return measurement.outcome_probabilities(self._buffer, qubits)

    def sample(self, shots: int, qubits: Sequence[int] | None = None) -> dict[str, int]:
        """Sample outcome counts without collapsing the state."""
        return measurement.sample_counts(
            self._buffer, shots, self._rng, qubits, self.config
        )

    # -- Inspection ---------------------------------------------------------

    def amplitudes(self) -> list[tuple[int, complex]]:
        """All ``(basis_state, amplitude)`` pairs, in basis order."""
        return [(i, complex(a)) for i, a in enumerate(self._buffer.view())]

    def is_normalized(self) -> bool:
        return self._buffer.is_normalized(self.config.tolerance)

    def __repr__(self) -> str:
        return f"QubitRegister(qubits={self.num_qubits}, dim={self.dimension})"
