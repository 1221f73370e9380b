"""
Statistics over repeated runs of the same circuit.

Example
-------
>>> from tiny_qsim import QubitRegister, MeasurementStatistics
>>> reg = QubitRegister(2, seed=1)
>>> outcomes = [reg.initialize().h(0).cx(0, 1).measure() for _ in range(100)]
>>> stats = MeasurementStatistics.from_outcomes(outcomes)
>>> sorted(stats.counts)
['00', '11']
>>> print(stats.summary())  # doctest: +SKIP
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tiny_qsim.measurement import MeasurementOutcome


@dataclass(frozen=True)
class MeasurementStatistics:
    """
    Aggregated outcomes of measuring the same qubits many times.

    Attributes
    ----------
    qubits : tuple[int, ...]
        Measured qubits, in measurement order.
    counts : dict[str, int]
        Bitstring to number of occurrences.
    one_counts : tuple[int, ...]
        ``one_counts[i]`` is how often ``qubits[i]`` read 1.
    shots : int
        Number of outcomes aggregated.
    """

    qubits: tuple[int, ...]
    counts: dict[str, int]
    one_counts: tuple[int, ...]
    shots: int

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[MeasurementOutcome]) -> MeasurementStatistics:
        """
        Aggregate outcomes.

        Raises
        ------
        ValueError
            If there are no outcomes, or they measured different qubits.
        """
        outcomes = list(outcomes)
        if not outcomes:
            raise ValueError("Need at least one outcome")
        qubits = outcomes[0].qubits
        counts: dict[str, int] = {}
        one_counts = [0] * len(qubits)
        for outcome in outcomes:
            if outcome.qubits != qubits:
                raise ValueError(
                    f"Mixed measurements: {outcome.qubits} vs {qubits}"
                )
            counts[outcome.bitstring] = counts.get(outcome.bitstring, 0) + 1
            for i, bit in enumerate(outcome.bits):
                one_counts[i] += bit
        return cls(qubits, counts, tuple(one_counts), len(outcomes))

    def frequencies(self) -> list[tuple[str, float]]:
        """(bitstring, relative frequency), most frequent first."""
        ordered = sorted(self.counts.items(), key=lambda item: (-item[1], item[0]))
        return [(bits, count / self.shots) for bits, count in ordered]

    def frequency(self, bitstring: str) -> float:
        return self.counts.get(bitstring, 0) / self.shots

    def most_frequent(self) -> str:
        """Return the most frequently measured bitstring."""
        return self.frequencies()[0][0]

    def one_probabilities(self) -> dict[int, float]:
        """Per qubit, the fraction of runs that read 1."""
        return {q: c / self.shots for q, c in zip(self.qubits, self.one_counts)}

    def _wildcard(self, position: int) -> str:
        width = len(self.qubits)
        # Bitstrings print qubits[-1] first.
        chars = ["*"] * width
        chars[width - 1 - position] = "1"
        return "".join(chars)

    def summary(self, bar_width: int = 40) -> str:
        """ASCII histogram of outcomes followed by per-qubit marginals."""
        lines = [
            "Measurement statistics",
            "─" * 50,
            f"Qubits: {self.qubits}",
            f"Shots:  {self.shots}",
        ]
        for bits, freq in self.frequencies():
            bar = "█" * int(freq * bar_width)
            lines.append(f"|{bits}⟩: {bar:{bar_width}s} {freq * 100:5.1f}%")
        for i, q in enumerate(self.qubits):
            pct = 100 * self.one_counts[i] / self.shots
            lines.append(f"q{q} |{self._wildcard(i)}⟩: {pct:5.1f}%")
        return "\n".join(lines)
