from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import accumulate
from typing import Iterable

from joblib import Parallel, delayed

from konto_sim_lab.config.run import DEFAULT_HORIZONS
from konto_sim_lab.config.tax import CAPITAL_GAINS_RATE
from konto_sim_lab.data.yearly import YearIndexTable
from konto_sim_lab.risk.tax import capital_gains_after_tax

logger = logging.getLogger(__name__)

ON_MISSING = ("skip", "raise")


@dataclass(frozen=True)
class SimulationResult:
    """Growth of 1 unit invested at the end of `start_year` and held `horizon` years."""
    start_year: int
    horizon: int
    aktiekonto_multiplier: float         # after the one-time sale tax on the net gain
    kapitalforsakring_multiplier: float  # after avkastningsskatt every year


class MissingYearError(LookupError):
    """A year inside a start year's window has no snapshot (or no usable index value)."""

    def __init__(self, start_year: int, missing_years: list[int]):
        self.start_year = start_year
        self.missing_years = list(missing_years)
        super().__init__(start_year, self.missing_years)

    def __str__(self) -> str:
        return f"start year {self.start_year}: no usable index value for {self.missing_years}"


@dataclass(frozen=True)
class _Holdings:
    """Running products for one start year. ak_sum is pre-tax; kf_sum is already net of yearly tax."""
    ak_sum: float = 1.0
    kf_sum: float = 1.0

    def step(self, diff: float, tax_rate: float) -> _Holdings:
        return _Holdings(
            ak_sum=self.ak_sum * diff,
            kf_sum=self.kf_sum * diff * (1.0 - tax_rate),
        )


def simulate_start_year(
    table: YearIndexTable,
    start_year: int,
    horizons: Iterable[int] = DEFAULT_HORIZONS,
    loss_cap_rate: float = CAPITAL_GAINS_RATE,
    *,
    end_year: int | None = None,
) -> list[SimulationResult]:
    """
    Replay year-over-year index returns from `start_year` and record both
    accounts at every requested horizon.

    - Aktiekonto: compound untaxed, then tax the net gain once as if sold that year.
    - Kapitalförsäkring: after each year's return, pay that year's tax on the full value.

    Every year in [start_year, end_year] must have a usable index value, otherwise
    MissingYearError. end_year defaults to the table's last year with an index value.
    Horizons past end_year simply produce nothing.
    """
    end = table.last_index_year if end_year is None else end_year
    gaps = table.missing_years(start_year, end)
    if gaps:
        raise MissingYearError(start_year, gaps)

    wanted = set(horizons)
    years = range(start_year + 1, end + 1)

    def advance(holdings: _Holdings, year: int) -> _Holdings:
        diff = table[year].index_value / table[year - 1].index_value
        return holdings.step(diff, table[year].tax_rate)

    path = accumulate(years, advance, initial=_Holdings())
    next(path)  # the initial state, before any year has passed

    results: list[SimulationResult] = []
    for year, holdings in zip(years, path):
        held = year - start_year
        if held in wanted:
            results.append(SimulationResult(
                start_year=start_year,
                horizon=held,
                aktiekonto_multiplier=capital_gains_after_tax(holdings.ak_sum, loss_cap_rate),
                kapitalforsakring_multiplier=holdings.kf_sum,
            ))
    return results


def _try_start_year(
    table: YearIndexTable,
    start_year: int,
    horizons: tuple[int, ...],
    loss_cap_rate: float,
    end_year: int,
) -> tuple[list[SimulationResult], MissingYearError | None]:
    # the error travels back as a value so skipped start years are logged by the caller
    try:
        return simulate_start_year(table, start_year, horizons, loss_cap_rate, end_year=end_year), None
    except MissingYearError as exc:
        return [], exc


def simulate(
    table: YearIndexTable,
    start_years: Iterable[int] | None = None,
    horizons: Iterable[int] = DEFAULT_HORIZONS,
    loss_cap_rate: float = CAPITAL_GAINS_RATE,
    *,
    end_year: int | None = None,
    on_missing: str = "skip",
    workers: int | None = None,
) -> list[SimulationResult]:
    """
    Run simulate_start_year for every start year; results ordered by (start_year, horizon).

    - start_years: defaults to every table year before end_year
    - end_year: defaults to the last year with a usable index value
    - on_missing: "skip" logs and excludes start years with a gap; "raise" propagates MissingYearError
    - workers: > 1 spreads start years over joblib worker processes
    """
    if on_missing not in ON_MISSING:
        raise ValueError(f"on_missing must be one of {ON_MISSING}, got {on_missing!r}")
    if len(table) == 0:
        return []
    if end_year is None and not table.has_index_values:
        logger.warning("No year with a usable index value in %r", table)
        return []

    end = table.last_index_year if end_year is None else end_year
    starts = list(range(table.first_year, end)) if start_years is None else list(start_years)
    wanted = tuple(sorted(set(horizons)))

    if workers is not None and workers > 1 and len(starts) > 1:
        outcomes = Parallel(n_jobs=workers, backend="loky", verbose=0)(
            delayed(_try_start_year)(table, s, wanted, loss_cap_rate, end)
            for s in starts
        )
    else:
        outcomes = (_try_start_year(table, s, wanted, loss_cap_rate, end) for s in starts)

    out: list[SimulationResult] = []
    for results, exc in outcomes:
        if exc is not None:
            if on_missing == "raise":
                raise exc
            logger.warning("Skipping %s", exc)
            continue
        out.extend(results)
    return out
