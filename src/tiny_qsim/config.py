"""
Simulator configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SimulatorConfig:
    """Numerical tolerances and engine switches shared by all components."""

    # Epsilon for normalization and unitarity checks
    tolerance: float = 1e-9

    # Total probability below this is treated as zero
    degenerate_threshold: float = 1e-12

    # 2^32 amplitudes * 16 bytes = 64 GiB, beyond any single machine we target
    max_qubits: int = 32

    # Verify |ψ| = 1 before and after every gate application
    check_normalization: bool = True

    # Apply controlled gates only on the control=1 subspace
    controlled_fast_path: bool = True

    # Largest slice the applicator updates at once; bounds per-gate scratch
    # memory to about 2 * 2^k * chunk_amplitudes complex values
    chunk_amplitudes: int = 1 << 16

    def with_overrides(self, **changes) -> SimulatorConfig:
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


# Default configuration instance
DEFAULT_CONFIG = SimulatorConfig()
