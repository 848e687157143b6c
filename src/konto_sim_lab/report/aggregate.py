from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from konto_sim_lab.risk.metrics import cagr_from_multiplier, describe, win_rate
from konto_sim_lab.sim.horizon import SimulationResult

logger = logging.getLogger(__name__)


class EmptyHorizonGroupError(ValueError):
    """Averaging a horizon that no start year reached."""


@dataclass(frozen=True)
class HorizonSummary:
    """Outcome distribution across start years for one horizon. All stats are None when count == 0."""
    horizon: int
    count: int
    aktiekonto_mean: float | None = None
    kapitalforsakring_mean: float | None = None
    aktiekonto_min: float | None = None
    aktiekonto_median: float | None = None
    aktiekonto_max: float | None = None
    kapitalforsakring_min: float | None = None
    kapitalforsakring_median: float | None = None
    kapitalforsakring_max: float | None = None
    aktiekonto_cagr: float | None = None
    kapitalforsakring_cagr: float | None = None
    kapitalforsakring_win_rate: float | None = None

    @property
    def has_data(self) -> bool:
        return self.count > 0


def horizon_mean(values) -> float:
    """Unweighted arithmetic mean; refuses an empty group instead of returning NaN."""
    v = np.asarray(values, dtype=float)
    if v.size == 0:
        raise EmptyHorizonGroupError("no outcomes to average")
    return float(np.mean(v))


def group_by_horizon(results: Iterable[SimulationResult]) -> dict[int, list[SimulationResult]]:
    groups: dict[int, list[SimulationResult]] = {}
    for r in results:
        groups.setdefault(r.horizon, []).append(r)
    for rows in groups.values():
        rows.sort(key=lambda r: r.start_year)
    return groups


def summarize_by_horizon(
    results: Iterable[SimulationResult],
    horizons: Iterable[int] | None = None,
) -> list[HorizonSummary]:
    """
    One HorizonSummary per horizon (the requested ones, or every horizon seen).
    A horizon without results gets a "no data" summary rather than NaN.
    """
    groups = group_by_horizon(results)
    keys = sorted(set(horizons)) if horizons is not None else sorted(groups)

    summaries: list[HorizonSummary] = []
    for h in keys:
        rows = groups.get(h, [])
        ak = [r.aktiekonto_multiplier for r in rows]
        kf = [r.kapitalforsakring_multiplier for r in rows]
        try:
            ak_mean = horizon_mean(ak)
            kf_mean = horizon_mean(kf)
        except EmptyHorizonGroupError:
            logger.info("No start year reaches the %d-year horizon", h)
            summaries.append(HorizonSummary(horizon=h, count=0))
            continue

        ak_stats = describe(ak)
        kf_stats = describe(kf)
        summaries.append(HorizonSummary(
            horizon=h,
            count=len(rows),
            aktiekonto_mean=ak_mean,
            kapitalforsakring_mean=kf_mean,
            aktiekonto_min=ak_stats["min"],
            aktiekonto_median=ak_stats["median"],
            aktiekonto_max=ak_stats["max"],
            kapitalforsakring_min=kf_stats["min"],
            kapitalforsakring_median=kf_stats["median"],
            kapitalforsakring_max=kf_stats["max"],
            aktiekonto_cagr=cagr_from_multiplier(ak_mean, h),
            kapitalforsakring_cagr=cagr_from_multiplier(kf_mean, h),
            kapitalforsakring_win_rate=win_rate(kf, ak),
        ))
    return summaries


def results_frame(results: Iterable[SimulationResult]) -> pd.DataFrame:
    cols = ["start_year", "horizon", "aktiekonto_multiplier", "kapitalforsakring_multiplier"]
    df = pd.DataFrame([asdict(r) for r in results], columns=cols)
    return df.sort_values(["horizon", "start_year"], kind="stable").reset_index(drop=True)


def summary_frame(summaries: Iterable[HorizonSummary]) -> pd.DataFrame:
    rows = [asdict(s) for s in summaries]
    return pd.DataFrame(rows, columns=list(HorizonSummary.__dataclass_fields__))


def render_report(results: Iterable[SimulationResult], summaries: Iterable[HorizonSummary]) -> str:
    """
    Plain-text table, one block per horizon:

        5 years:
        1993:     1.52    1.47
        ...
        5 years averages:    1.61    1.55

    Columns are aktiekonto then kapitalförsäkring, as multiples of the start value.
    """
    groups = group_by_horizon(results)
    lines: list[str] = []
    for s in summaries:
        lines.append("")
        lines.append(f"{s.horizon} years:")
        for r in groups.get(s.horizon, []):
            lines.append(f"{r.start_year}:     {r.aktiekonto_multiplier:.2f}    {r.kapitalforsakring_multiplier:.2f}")
        if s.has_data:
            lines.append(f"{s.horizon} years averages:    {s.aktiekonto_mean:.2f}    {s.kapitalforsakring_mean:.2f}")
        else:
            lines.append(f"{s.horizon} years averages:    no data")
    return "\n".join(lines) + "\n"
