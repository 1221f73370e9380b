"""
Amplitude storage for an n-qubit register.

Bit ordering: qubit ``q`` is bit ``q`` of the basis-state integer, so qubit 0
is the least-significant bit. Basis state ``s`` has qubit ``q`` set iff
``(s >> q) & 1``. Viewed as a rank-n tensor (C order), qubit ``q`` lives on
axis ``n - 1 - q``; :meth:`AmplitudeBuffer.axis` does that translation.

Memory: 16 bytes * 2^n (complex128).
    10 qubits = 16 KB, 20 qubits = 16 MB, 30 qubits = 16 GB.
"""

from __future__ import annotations

import operator
from typing import Iterable, Sequence

import numpy as np
from numpy import ndarray

from tiny_qsim.config import DEFAULT_CONFIG, SimulatorConfig
from tiny_qsim.errors import DegenerateState, InvalidDimension, InvalidQubitIndex, UnnormalizedState


def check_qubits(qubits: Iterable[int], num_qubits: int) -> tuple[int, ...]:
    """
    Validate a list of qubit indices against a register size.

    Returns
    -------
    tuple of int
        The indices as plain ints, in the given order.

    Raises
    ------
    InvalidQubitIndex
        If an index is not an integer, is outside ``[0, num_qubits)``, or
        appears twice.
    """
    checked = []
    for q in qubits:
        try:
            q = operator.index(q)
        except TypeError:
            raise InvalidQubitIndex(f"Qubit index must be an integer, got {q!r}") from None
        if not 0 <= q < num_qubits:
            raise InvalidQubitIndex(
                f"Qubit {q} out of range for {num_qubits}-qubit register"
            )
        checked.append(q)
    if len(set(checked)) != len(checked):
        raise InvalidQubitIndex(f"Duplicate qubits in {tuple(checked)}")
    return tuple(checked)


class AmplitudeBuffer:
    """
    Complex state vector of fixed length 2^n, preallocated once.

    Parameters
    ----------
    num_qubits : int
        Register size n, ``1 <= n <= config.max_qubits``.
    config : SimulatorConfig, optional
        Tolerances and limits.

    Only the gate applicator and the measurement engine write amplitudes
    (through :meth:`tensor`); everything else reads via :meth:`view` or
    :meth:`copy`.
    """

    def __init__(self, num_qubits: int, config: SimulatorConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        if isinstance(num_qubits, bool):
            raise InvalidDimension(f"Qubit count must be an integer, got {num_qubits!r}")
        try:
            num_qubits = operator.index(num_qubits)
        except TypeError:
            raise InvalidDimension(
                f"Qubit count must be an integer, got {num_qubits!r}"
            ) from None
        if num_qubits < 1:
            raise InvalidDimension(f"Need at least 1 qubit, got {num_qubits}")
        if num_qubits > self.config.max_qubits:
            raise InvalidDimension(
                f"{num_qubits} qubits exceeds the limit of {self.config.max_qubits}"
            )

        self.num_qubits = num_qubits
        self.dimension = 1 << num_qubits
        self._data = np.zeros(self.dimension, dtype=np.complex128)
        self._data[0] = 1.0  # |00...0⟩

    # -- Indexed access -----------------------------------------------------

    def __len__(self) -> int:
        return self.dimension

    def __getitem__(self, basis_state: int) -> complex:
        return complex(self._data[basis_state])

    def __setitem__(self, basis_state: int, amplitude: complex) -> None:
        self._data[basis_state] = amplitude

    def axis(self, qubit: int) -> int:
        """Tensor axis holding ``qubit``."""
        return self.num_qubits - 1 - qubit

    def tensor(self) -> ndarray:
        """Writable rank-n view, shape ``(2,) * n``; qubit q on axis n-1-q."""
        return self._data.reshape((2,) * self.num_qubits)

    def view(self) -> ndarray:
        """Read-only flat view of the amplitudes."""
        view = self._data.view()
        view.setflags(write=False)
        return view

    def copy(self) -> ndarray:
        """Snapshot of the amplitudes."""
        return self._data.copy()

    # -- Normalization ------------------------------------------------------

    def probabilities(self) -> ndarray:
        """|amplitude|^2 for every basis state."""
        return np.abs(self._data) ** 2

    def total_probability(self) -> float:
        return float(np.vdot(self._data, self._data).real)

    def is_normalized(self, tol: float | None = None) -> bool:
        tol = self.config.tolerance if tol is None else tol
        return abs(self.total_probability() - 1.0) <= tol

    def renormalize(self) -> None:
        """Divide every amplitude by sqrt(total probability)."""
        total = self.total_probability()
        if total < self.config.degenerate_threshold:
            raise DegenerateState(f"Cannot renormalize: total probability is {total:.3e}")
        self._data /= np.sqrt(total)

    # -- (Re)initialization -------------------------------------------------

    def reset(self) -> None:
        """Reset to |00...0⟩."""
        self._data.fill(0)
        self._data[0] = 1.0

    def load_basis_state(self, basis_state: int) -> None:
        """Put all amplitude on one basis state."""
        basis_state = operator.index(basis_state)
        if not 0 <= basis_state < self.dimension:
            raise InvalidDimension(
                f"Basis state {basis_state} out of range for dimension {self.dimension}"
            )
        self._data.fill(0)
        self._data[basis_state] = 1.0

    def load_product_state(self, qubit_states: Sequence[tuple[complex, complex]]) -> None:
        """
        Overwrite the buffer with a tensor product of single-qubit states.

        Parameters
        ----------
        qubit_states : sequence of (alpha, beta)
            ``qubit_states[q]`` is the state ``alpha|0⟩ + beta|1⟩`` of qubit q.
            Each pair must have unit norm.
        """
        if len(qubit_states) != self.num_qubits:
            raise InvalidDimension(
                f"Expected {self.num_qubits} qubit states, got {len(qubit_states)}"
            )
        state = np.ones(1, dtype=np.complex128)
        for q, (alpha, beta) in enumerate(qubit_states):
            norm = abs(alpha) ** 2 + abs(beta) ** 2
            if abs(norm - 1.0) > self.config.tolerance:
                raise UnnormalizedState(f"Qubit {q} state has norm {norm:.12f}")
            # Higher qubits are more significant, so they go on the left.
            state = np.kron(np.array([alpha, beta], dtype=np.complex128), state)
        self._data[:] = state

    def __repr__(self) -> str:
        return f"AmplitudeBuffer(qubits={self.num_qubits}, dim={self.dimension})"
