"""Run logger utilities for cryst-pbm."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import matplotlib.pyplot as plt


@dataclass
class RunLogger:
    """Collects per-stop solver diagnostics and renders diagnostic plots."""

    times: List[float] = field(default_factory=list)
    stats: Dict[str, List[float]] = field(
        default_factory=lambda: {"nfev": [], "min_density": [], "clamped": [], "points": []}
    )

    def reset(self) -> None:
        """Forget all logged stops."""
        self.times = []
        self.stats = {key: [] for key in self.stats}

    def log_stop(self, time: float, nfev: int, min_density: float, clamped: bool, points: int) -> None:
        self.times.append(float(time))
        self.stats["nfev"].append(int(nfev))
        self.stats["min_density"].append(float(min_density))
        self.stats["clamped"].append(bool(clamped))
        self.stats["points"].append(int(points))

    @property
    def total_nfev(self) -> int:
        return int(sum(self.stats["nfev"]))

    @property
    def clamp_count(self) -> int:
        return int(sum(self.stats["clamped"]))

    def plot_diagnostics(self) -> plt.Figure:
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))

        ax1.semilogy(self.times, [max(n, 1) for n in self.stats["nfev"]], "o-", label="RHS evaluations")
        ax1.set_xlabel("Time")
        ax1.set_ylabel("Evaluations per stop (log scale)")
        ax1.legend()
        ax1.grid(True, which="both", ls="--", alpha=0.4)

        ax2.plot(self.times, self.stats["points"], "s-", label="Grid points / pivots")
        ax2.set_xlabel("Time")
        ax2.set_ylabel("Points")
        ax2.legend()
        ax2.grid(True, ls="--", alpha=0.4)

        fig.tight_layout()
        return fig

    def to_dict(self) -> Dict[str, List[float]]:
        return {"times": list(self.times), **{k: list(v) for k, v in self.stats.items()}}
