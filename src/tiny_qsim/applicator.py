"""
In-place gate application.

Never builds the 2^n x 2^n operator. For a k-qubit gate on targets
``(t0, ..., t_{k-1})`` the buffer is viewed as a rank-n tensor and split into
2^k strided slices, one per assignment of the target bits. Slice ``j`` holds
every basis state whose target bits spell ``j`` (t0 most significant), so
position ``i`` across the 2^k slices is exactly the group

    s, s | 1<<t_{k-1}, ..., s | 1<<t0 | ... | 1<<t_{k-1}     (s with target bits 0)

that the gate mixes. Each group is multiplied by the gate matrix and written
back into the same slices, a bounded chunk of groups at a time (see
``SimulatorConfig.chunk_amplitudes``). Cost: O(2^n * 2^k) per gate, with
scratch memory that does not grow with the register.

Controlled gates take a shortcut: the slices are first restricted to the
subspace where every control bit is 1, and only the target block of the
matrix is applied there. The result is identical to the full-matrix path.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy import ndarray

from tiny_qsim.buffer import AmplitudeBuffer, check_qubits
from tiny_qsim.config import DEFAULT_CONFIG, SimulatorConfig
from tiny_qsim.errors import GateArityMismatch, InvalidQubitIndex, UnnormalizedState
from tiny_qsim.gates import Gate
from tiny_qsim.logging_config import get_logger

logger = get_logger(__name__)


def _contract_block(
    tensor: ndarray,
    matrix: ndarray,
    axes: Sequence[int],
    pinned: dict[int, int],
) -> None:
    k = len(axes)
    index: list = [slice(None)] * tensor.ndim
    for axis, bit in pinned.items():
        index[axis] = slice(bit, bit + 1)

    # Size-1 slices rather than integers so every block stays a view.
    blocks = []
    for local in range(1 << k):
        for j, axis in enumerate(axes):
            bit = (local >> (k - 1 - j)) & 1
            index[axis] = slice(bit, bit + 1)
        blocks.append(tensor[tuple(index)])

    old = np.stack(blocks)
    new = np.tensordot(matrix, old, axes=1)
    for block, values in zip(blocks, new):
        block[...] = values


def _contract(
    tensor: ndarray,
    matrix: ndarray,
    axes: Sequence[int],
    fixed: dict[int, int],
    chunk: int,
) -> None:
    """
    Apply ``matrix`` to tensor ``axes`` (first axis = high local bit).

    ``fixed`` pins other axes to one bit value; those states are the only
    ones touched. Free axes are pinned as well, highest stride first, until
    each slice holds at most ``chunk`` amplitudes, so scratch memory is
    bounded by ``2 * 2^k * chunk`` amplitudes whatever the register size.
    """
    free = [axis for axis in range(tensor.ndim) if axis not in axes and axis not in fixed]
    split = []
    while free and (1 << len(free)) > chunk:
        split.append(free.pop(0))

    for part in range(1 << len(split)):
        pinned = dict(fixed)
        for j, axis in enumerate(split):
            pinned[axis] = (part >> j) & 1
        _contract_block(tensor, matrix, axes, pinned)


def apply(
    buffer: AmplitudeBuffer,
    gate: Gate,
    targets: Sequence[int],
    config: SimulatorConfig | None = None,
) -> None:
    """
    Apply ``gate`` to ``targets`` of ``buffer``, in place.

    Parameters
    ----------
    buffer : AmplitudeBuffer
        State to mutate.
    gate : Gate
        Validated unitary, dimension 2^len(targets).
    targets : sequence of int
        Qubits the gate acts on, in the gate's local order (controls first
        for controlled gates).
    config : SimulatorConfig, optional
        Fast-path, chunking and normalization-check switches.

    Raises
    ------
    InvalidQubitIndex
        Target out of range, not an integer, or repeated.
    GateArityMismatch
        ``gate.dimension != 2 ** len(targets)``.
    UnnormalizedState
        Only with ``config.check_normalization``. Raised before the first
        write when the incoming state is not normalized. Raised after the
        write, with the gate already applied, when rounding drift breaks
        normalization during the update.

    All argument checks happen before the first write, so a failed call
    leaves the buffer untouched.
    """
    config = config or DEFAULT_CONFIG
    targets = check_qubits(targets, buffer.num_qubits)
    if not targets:
        raise InvalidQubitIndex(f"Gate '{gate.name}' needs at least one target")
    if gate.dimension != 1 << len(targets):
        raise GateArityMismatch(
            f"Gate '{gate.name}' acts on {gate.num_qubits} qubit(s), "
            f"got {len(targets)} target(s) {targets}"
        )
    if config.check_normalization and not buffer.is_normalized(config.tolerance):
        raise UnnormalizedState(
            f"Total probability {buffer.total_probability():.12f} before gate "
            f"'{gate.name}' on {targets}"
        )

    tensor = buffer.tensor()
    if gate.num_controls and config.controlled_fast_path:
        controls = targets[: gate.num_controls]
        fixed = {buffer.axis(c): 1 for c in controls}
        axes = [buffer.axis(t) for t in targets[gate.num_controls:]]
        _contract(tensor, gate.target_matrix, axes, fixed, config.chunk_amplitudes)
    else:
        axes = [buffer.axis(t) for t in targets]
        _contract(tensor, gate.matrix, axes, {}, config.chunk_amplitudes)

    logger.debug("Applied %s to qubits %s", gate.name, targets)

    if config.check_normalization and not buffer.is_normalized(config.tolerance):
        raise UnnormalizedState(
            f"Total probability {buffer.total_probability():.12f} after gate "
            f"'{gate.name}' on {targets}"
        )
