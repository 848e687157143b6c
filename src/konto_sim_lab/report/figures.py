from __future__ import annotations

from pathlib import Path
from typing import Iterable

import matplotlib.pyplot as plt
import numpy as np

from konto_sim_lab.report.aggregate import HorizonSummary, group_by_horizon
from konto_sim_lab.sim.horizon import SimulationResult

AK_LABEL = "Aktiekonto"
KF_LABEL = "Kapitalförsäkring"


def _finish(fig, out_path: str | Path | None):
    fig.tight_layout()
    if out_path is not None:
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path)
        plt.close(fig)
    return fig


def plot_horizon_means(summaries: Iterable[HorizonSummary], out_path: str | Path | None = None):
    """Grouped bars: mean ending multiple per horizon for both accounts. Horizons without data are left out."""
    rows = [s for s in summaries if s.has_data]
    fig, ax = plt.subplots(figsize=(9, 4))
    x = np.arange(len(rows))
    width = 0.38
    ax.bar(x - width / 2, [s.aktiekonto_mean for s in rows], width, label=AK_LABEL)
    ax.bar(x + width / 2, [s.kapitalforsakring_mean for s in rows], width, label=KF_LABEL)
    ax.axhline(1.0, linestyle="--", linewidth=1)
    ax.set_xticks(x)
    ax.set_xticklabels([f"{s.horizon}y (n={s.count})" for s in rows])
    ax.set_title("Average ending multiple after tax")
    ax.set_xlabel("Holding horizon")
    ax.set_ylabel("Ending value (× start)")
    ax.legend()
    return _finish(fig, out_path)


def plot_outcomes_by_start_year(
    results: Iterable[SimulationResult],
    horizon: int,
    out_path: str | Path | None = None,
):
    """Ending multiple per start year for one horizon, both accounts."""
    rows = group_by_horizon(results).get(horizon, [])
    fig, ax = plt.subplots(figsize=(9, 4))
    years = [r.start_year for r in rows]
    ax.plot(years, [r.aktiekonto_multiplier for r in rows], marker="o", label=AK_LABEL)
    ax.plot(years, [r.kapitalforsakring_multiplier for r in rows], marker="o", label=KF_LABEL)
    ax.axhline(1.0, linestyle="--", linewidth=1)
    ax.set_title(f"{horizon}-year outcomes by start year (after tax)")
    ax.set_xlabel("Start year")
    ax.set_ylabel("Ending value (× start)")
    ax.legend()
    return _finish(fig, out_path)
