"""
Quantum gate definitions.

All gates are unitary matrices (read-only numpy arrays, complex128) wrapped in
an immutable :class:`Gate`. Unitarity is checked once, when the ``Gate`` is
built; gate application never re-checks it.

Matrix convention: a k-qubit gate applied to targets ``(t0, ..., t_{k-1})``
is indexed with ``t0`` as the most significant bit of the local index, so
``CNOT`` on ``(control, target)`` is the usual textbook matrix.

Gate kinds:
    - Single-qubit: I, X, Y, Z, H, S, Sdg, T, Tdg
    - Rotations: Rx, Ry, Rz, P (phase)
    - Two-qubit: CNOT/CX, CZ, SWAP, oracle U_f
    - Three-qubit: CCX (Toffoli)

{H, T, CNOT} alone is universal; the rest is convenience.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Sequence

import numpy as np
from numpy import ndarray

from tiny_qsim.config import DEFAULT_CONFIG
from tiny_qsim.errors import GateArityMismatch, NonUnitaryGate, UnknownGate

# Type alias
Matrix = ndarray

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_SQRT2_INV = 1.0 / np.sqrt(2.0)


def _frozen(matrix) -> Matrix:
    m = np.array(matrix, dtype=np.complex128)
    m.setflags(write=False)
    return m


# ---------------------------------------------------------------------------
# Single-qubit fixed gates
# ---------------------------------------------------------------------------
# Module-level matrices are read-only and shared by every Gate built from
# them; copy before modifying.

I = _frozen(np.eye(2))
X = _frozen([[0, 1], [1, 0]])
Y = _frozen([[0, -1j], [1j, 0]])
Z = _frozen([[1, 0], [0, -1]])
H = _frozen(np.array([[1, 1], [1, -1]]) * _SQRT2_INV)

# Phase family: S = diag(1, i), T = diag(1, e^{iπ/4}), and their inverses
S = _frozen(np.diag([1, 1j]))
Sdg = _frozen(np.diag([1, -1j]))
T = _frozen(np.diag([1, np.exp(1j * np.pi / 4)]))
Tdg = _frozen(np.diag([1, np.exp(-1j * np.pi / 4)]))

# ---------------------------------------------------------------------------
# Single-qubit parameterized gates
# ---------------------------------------------------------------------------
# Fresh arrays; Gate freezes a copy and standard_gate caches it per angle.

def Rx(theta: float) -> Matrix:
    """exp(-iθX/2) = cos(θ/2) I - i sin(θ/2) X."""
    return np.cos(theta / 2) * I - 1j * np.sin(theta / 2) * X


def Ry(theta: float) -> Matrix:
    """exp(-iθY/2), real-valued: cos(θ/2) I - i sin(θ/2) Y."""
    return np.cos(theta / 2) * I - 1j * np.sin(theta / 2) * Y


def Rz(phi: float) -> Matrix:
    """exp(-iφZ/2) = diag(e^{-iφ/2}, e^{iφ/2})."""
    return np.diag(np.exp([-0.5j * phi, 0.5j * phi]))


def P(lam: float) -> Matrix:
    """diag(1, e^{iλ}); equals Rz(λ) up to the global phase e^{iλ/2}."""
    return np.diag(np.array([1, np.exp(1j * lam)], dtype=np.complex128))


# ---------------------------------------------------------------------------
# Multi-qubit fixed gates
# ---------------------------------------------------------------------------
# Controlled gates are identity outside their last block (controls all 1),
# which is what Gate.target_matrix and the applicator fast path rely on.

def _controlled(block, num_controls: int) -> Matrix:
    block = np.asarray(block, dtype=np.complex128)
    m = np.eye(block.shape[0] << num_controls, dtype=np.complex128)
    m[-block.shape[0]:, -block.shape[0]:] = block
    return _frozen(m)


CNOT = _controlled(X, 1)
CX = CNOT
CZ = _controlled(Z, 1)
CCX = _controlled(X, 2)
Toffoli = CCX

SWAP = _frozen(np.eye(4)[[0, 2, 1, 3]])


def oracle_matrix(f: Callable[[bool], bool]) -> Matrix:
    """
    Matrix of U_f: |x, y⟩ -> |x, y XOR f(x)⟩ for a boolean function f.

    x is the first target (high local bit), y the second.
    """
    m = np.zeros((4, 4), dtype=np.complex128)
    for x in (0, 1):
        fx = int(bool(f(bool(x))))
        for y in (0, 1):
            m[(x << 1) | (y ^ fx), (x << 1) | y] = 1
    return m


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def is_unitary(matrix: Matrix, tol: float = DEFAULT_CONFIG.tolerance) -> bool:
    """Check if a matrix is unitary: U†U = I."""
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    if not np.all(np.isfinite(matrix)):
        return False
    product = matrix.conj().T @ matrix
    return bool(np.allclose(product, np.eye(matrix.shape[0]), rtol=0.0, atol=tol))


# ---------------------------------------------------------------------------
# Gate kinds and the Gate value type
# ---------------------------------------------------------------------------

class GateKind(enum.Enum):
    """Closed set of gate kinds the library knows how to build."""

    I = "i"
    X = "x"
    Y = "y"
    Z = "z"
    H = "h"
    S = "s"
    SDG = "sdg"
    T = "t"
    TDG = "tdg"
    RX = "rx"
    RY = "ry"
    RZ = "rz"
    P = "p"
    CNOT = "cx"
    CZ = "cz"
    SWAP = "swap"
    TOFFOLI = "ccx"
    ORACLE = "oracle"
    CUSTOM = "custom"


@dataclass(frozen=True, eq=False)
class Gate:
    """
    An immutable, validated unitary gate.

    Parameters
    ----------
    name : str
        Display name.
    matrix : array_like
        Square matrix of dimension 2^k. Copied, then frozen.
    kind : GateKind
        Which library entry built it (``CUSTOM`` for user matrices).
    num_controls : int
        Number of leading targets that act as controls. The matrix must
        then be the identity except on its last ``2^(k - num_controls)``
        block, which is the operation applied when all controls are 1.
    params : tuple of float
        Parameters the matrix was built from (rotation angle etc.).

    Raises
    ------
    GateArityMismatch
        If the matrix is not square with a power-of-two dimension >= 2.
    NonUnitaryGate
        If U†U != I within tolerance.
    """

    name: str
    matrix: Matrix
    kind: GateKind = GateKind.CUSTOM
    num_controls: int = 0
    params: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        matrix = np.array(self.matrix, dtype=np.complex128)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise GateArityMismatch(
                f"Gate '{self.name}' matrix must be square, got shape {matrix.shape}"
            )
        dim = matrix.shape[0]
        if dim < 2 or dim & (dim - 1):
            raise GateArityMismatch(
                f"Gate '{self.name}' dimension {dim} is not a power of 2"
            )
        if not is_unitary(matrix):
            raise NonUnitaryGate(f"Gate '{self.name}' is not unitary")

        num_qubits = dim.bit_length() - 1
        if not 0 <= self.num_controls < num_qubits:
            raise ValueError(
                f"Gate '{self.name}' on {num_qubits} qubit(s) cannot have "
                f"{self.num_controls} control(s)"
            )
        if self.num_controls:
            block = dim >> self.num_controls
            rest = dim - block
            structured = (
                np.allclose(matrix[:rest, :rest], np.eye(rest))
                and np.allclose(matrix[:rest, rest:], 0)
                and np.allclose(matrix[rest:, :rest], 0)
            )
            if not structured:
                raise ValueError(
                    f"Gate '{self.name}' is not controlled on its first "
                    f"{self.num_controls} qubit(s)"
                )

        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)
        object.__setattr__(self, "params", tuple(float(p) for p in self.params))

    @property
    def dimension(self) -> int:
        return self.matrix.shape[0]

    @property
    def num_qubits(self) -> int:
        return self.dimension.bit_length() - 1

    @property
    def target_matrix(self) -> Matrix:
        """Block applied to the non-control targets when all controls are 1."""
        block = self.dimension >> self.num_controls
        return self.matrix[-block:, -block:]

    def __repr__(self) -> str:
        params = f", params={self.params}" if self.params else ""
        return f"Gate('{self.name}', qubits={self.num_qubits}{params})"


# ---------------------------------------------------------------------------
# Gate table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _GateSpec:
    num_qubits: int
    num_params: int = 0
    num_controls: int = 0
    matrix: Optional[Matrix] = None
    factory: Optional[Callable[..., Matrix]] = None


GATE_TABLE: dict[GateKind, _GateSpec] = {
    # Fixed single-qubit
    GateKind.I: _GateSpec(1, matrix=I),
    GateKind.X: _GateSpec(1, matrix=X),
    GateKind.Y: _GateSpec(1, matrix=Y),
    GateKind.Z: _GateSpec(1, matrix=Z),
    GateKind.H: _GateSpec(1, matrix=H),
    GateKind.S: _GateSpec(1, matrix=S),
    GateKind.SDG: _GateSpec(1, matrix=Sdg),
    GateKind.T: _GateSpec(1, matrix=T),
    GateKind.TDG: _GateSpec(1, matrix=Tdg),
    # Parameterized single-qubit
    GateKind.RX: _GateSpec(1, num_params=1, factory=Rx),
    GateKind.RY: _GateSpec(1, num_params=1, factory=Ry),
    GateKind.RZ: _GateSpec(1, num_params=1, factory=Rz),
    GateKind.P: _GateSpec(1, num_params=1, factory=P),
    # Controlled / multi-qubit
    GateKind.CNOT: _GateSpec(2, num_controls=1, matrix=CNOT),
    GateKind.CZ: _GateSpec(2, num_controls=1, matrix=CZ),
    GateKind.SWAP: _GateSpec(2, matrix=SWAP),
    GateKind.TOFFOLI: _GateSpec(3, num_controls=2, matrix=CCX),
}

GATE_ALIASES: dict[str, GateKind] = {
    "i": GateKind.I,
    "id": GateKind.I,
    "x": GateKind.X,
    "not": GateKind.X,
    "y": GateKind.Y,
    "z": GateKind.Z,
    "h": GateKind.H,
    "s": GateKind.S,
    "sdg": GateKind.SDG,
    "t": GateKind.T,
    "tdg": GateKind.TDG,
    "rx": GateKind.RX,
    "ry": GateKind.RY,
    "rz": GateKind.RZ,
    "p": GateKind.P,
    "phase": GateKind.P,
    "cx": GateKind.CNOT,
    "cnot": GateKind.CNOT,
    "cz": GateKind.CZ,
    "swap": GateKind.SWAP,
    "ccx": GateKind.TOFFOLI,
    "ccnot": GateKind.TOFFOLI,
    "toffoli": GateKind.TOFFOLI,
}

# Built once; every application of a fixed gate shares these objects.
_FIXED_GATES: dict[GateKind, Gate] = {
    kind: Gate(kind.value, entry.matrix, kind=kind, num_controls=entry.num_controls)
    for kind, entry in GATE_TABLE.items()
    if entry.matrix is not None
}


@lru_cache(maxsize=1024)
def _parameterized_gate(kind: GateKind, params: tuple[float, ...]) -> Gate:
    entry = GATE_TABLE[kind]
    return Gate(
        kind.value,
        entry.factory(*params),
        kind=kind,
        num_controls=entry.num_controls,
        params=params,
    )


def standard_gate(kind: GateKind, params: Sequence[float] = ()) -> Gate:
    """
    Build (or fetch the shared instance of) a built-in gate.

    Raises
    ------
    GateArityMismatch
        If the number of parameters is wrong for ``kind``.
    UnknownGate
        For kinds without a table entry (``ORACLE``, ``CUSTOM``).
    """
    entry = GATE_TABLE.get(kind)
    if entry is None:
        raise UnknownGate(f"Gate kind {kind.name} has no standard definition")
    params = tuple(float(p) for p in params)
    if len(params) != entry.num_params:
        raise GateArityMismatch(
            f"Gate '{kind.value}' takes {entry.num_params} parameter(s), got {len(params)}"
        )
    if entry.num_params == 0:
        return _FIXED_GATES[kind]
    return _parameterized_gate(kind, params)


def oracle(f: Callable[[bool], bool], name: str = "oracle") -> Gate:
    """Two-qubit U_f gate for a boolean function (see :func:`oracle_matrix`)."""
    return Gate(name, oracle_matrix(f), kind=GateKind.ORACLE)


# ---------------------------------------------------------------------------
# Library: name -> Gate lookup with user registration
# ---------------------------------------------------------------------------

class GateLibrary:
    """
    Name-based access to the built-in gates plus user-registered ones.

    Names are case-insensitive. Registration validates the matrix up front,
    so a gate that fails validation is never installed.

    Example
    -------
    >>> lib = GateLibrary()
    >>> lib.get("rx", (0.5,)).num_qubits
    1
    >>> lib.register("sqrt_x", [[0.5 + 0.5j, 0.5 - 0.5j], [0.5 - 0.5j, 0.5 + 0.5j]])
    Gate('sqrt_x', qubits=1)
    """

    def __init__(self) -> None:
        self._custom: dict[str, Gate] = {}

    def register(self, name: str, matrix, num_controls: int = 0) -> Gate:
        """
        Validate and install a custom gate.

        Raises
        ------
        NonUnitaryGate
            If the matrix is not unitary.
        ValueError
            If the name is already taken.
        """
        key = name.lower()
        if key in self:
            raise ValueError(f"Gate '{name}' is already defined")
        gate = Gate(key, matrix, kind=GateKind.CUSTOM, num_controls=num_controls)
        self._custom[key] = gate
        return gate

    def get(self, name: str, params: Sequence[float] = ()) -> Gate:
        """
        Look up a gate by name, with optional parameters.

        Raises
        ------
        UnknownGate
            If the name is not found.
        GateArityMismatch
            If the wrong number of parameters is provided.
        """
        key = name.lower()
        kind = GATE_ALIASES.get(key)
        if kind is not None:
            return standard_gate(kind, params)
        gate = self._custom.get(key)
        if gate is None:
            raise UnknownGate(f"Unknown gate: '{name}'. Available: {self.names()}")
        if params:
            raise GateArityMismatch(f"Gate '{name}' takes no parameters, got {len(params)}")
        return gate

    def names(self) -> list[str]:
        return sorted(set(GATE_ALIASES) | set(self._custom))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = name.lower()
        return key in GATE_ALIASES or key in self._custom

    def __repr__(self) -> str:
        return f"GateLibrary(custom={sorted(self._custom)})"
