from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import pandas as pd

from konto_sim_lab.config.run import FILL_POLICIES
from konto_sim_lab.risk.tax import effective_annual_tax_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearSnapshot:
    """One calendar year: last index level, last reference rate and the resulting tax rate."""
    year: int
    index_value: float
    reference_rate: float
    tax_rate: float


class IncompleteYearError(ValueError):
    """A year is present in only one of the two sources (fill_policy="raise")."""

    def __init__(self, index_only: list[int], rate_only: list[int]):
        self.index_only = list(index_only)
        self.rate_only = list(rate_only)
        super().__init__(self.index_only, self.rate_only)

    def __str__(self) -> str:
        return (
            f"years without a reference rate: {self.index_only}; "
            f"years without an index value: {self.rate_only}"
        )


class YearIndexTable(Mapping[int, YearSnapshot]):
    """
    Read-only year -> YearSnapshot mapping, iterated in ascending year order.
    Years are not guaranteed to be contiguous; use missing_years() to check a window.
    """

    __slots__ = ("_rows",)

    def __init__(self, snapshots: Iterable[YearSnapshot]):
        rows: dict[int, YearSnapshot] = {}
        for snap in snapshots:
            if snap.year in rows:
                raise ValueError(f"duplicate snapshot for year {snap.year}")
            rows[snap.year] = snap
        self._rows = MappingProxyType(dict(sorted(rows.items())))

    def __reduce__(self):
        # mappingproxy is not picklable; rebuild from the snapshots
        return (type(self), (tuple(self._rows.values()),))

    def __getitem__(self, year: int) -> YearSnapshot:
        return self._rows[year]

    def __iter__(self) -> Iterator[int]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        if not self._rows:
            return "YearIndexTable(empty)"
        return f"YearIndexTable({self.first_year}-{self.last_year}, {len(self)} years)"

    @property
    def years(self) -> list[int]:
        return list(self._rows)

    @property
    def first_year(self) -> int:
        if not self._rows:
            raise ValueError("empty YearIndexTable has no first year")
        return next(iter(self._rows))

    @property
    def last_year(self) -> int:
        if not self._rows:
            raise ValueError("empty YearIndexTable has no last year")
        return next(reversed(self._rows.keys()))

    @property
    def has_index_values(self) -> bool:
        return any(s.index_value > 0.0 for s in self._rows.values())

    @property
    def last_index_year(self) -> int:
        """Last year with a positive index level; trailing rate-only years are ignored."""
        for year in reversed(self._rows.keys()):
            if self._rows[year].index_value > 0.0:
                return year
        raise ValueError("YearIndexTable has no year with a usable index value")

    def missing_years(self, start: int, end: int) -> list[int]:
        """
        Years in [start, end] without a usable index level: no snapshot at all,
        or a zero-filled / NaN value that cannot form a year-over-year ratio.
        """
        return [
            y for y in range(start, end + 1)
            if y not in self._rows or not self._rows[y].index_value > 0.0
        ]

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [(s.year, s.index_value, s.reference_rate, s.tax_rate) for s in self._rows.values()],
            columns=["year", "index_value", "reference_rate", "tax_rate"],
        )
        return df.set_index("year")


def as_observations(obs, name: str) -> pd.Series:
    """
    Accept either a date-indexed Series (what the loader returns) or an
    iterable of (date, value) pairs, and return a float Series on a DatetimeIndex.
    """
    if isinstance(obs, pd.Series):
        out = obs.astype(float).copy()
        out.index = pd.DatetimeIndex(pd.to_datetime(out.index), name="date")
        return out.rename(name)
    pairs = list(obs)
    dates = pd.DatetimeIndex(pd.to_datetime([d for d, _ in pairs]), name="date")
    return pd.Series([float(v) for _, v in pairs], index=dates, name=name, dtype=float)


def representative_by_year(observations: pd.Series) -> pd.Series:
    """
    Last observation per calendar year, indexed by year.

    Sorting is stable, so when two rows share a date the one that came later
    in the source wins.
    """
    if observations.empty:
        return pd.Series(dtype=float, index=pd.Index([], dtype=int, name="year"), name=observations.name)

    ordered = observations.sort_index(kind="stable")
    last = ordered.groupby(ordered.index.year).tail(1)
    years = pd.Index(last.index.year.astype(int), name="year")
    return pd.Series(last.to_numpy(dtype=float), index=years, name=observations.name)


def build_year_table(index_obs, rate_obs, *, fill_policy: str = "zero") -> YearIndexTable:
    """
    Merge index levels and reference rates into one snapshot per year.

    fill_policy:
      - "zero":  a side missing for a year becomes 0.0 (a 0.0 rate still goes through the tax floor)
      - "drop":  years without an index value are left out; a missing rate becomes 0.0
      - "raise": any year present in only one source raises IncompleteYearError
    """
    if fill_policy not in FILL_POLICIES:
        raise ValueError(f"fill_policy must be one of {FILL_POLICIES}, got {fill_policy!r}")

    idx = representative_by_year(as_observations(index_obs, "index_value"))
    rate = representative_by_year(as_observations(rate_obs, "reference_rate"))

    index_only = sorted(int(y) for y in set(idx.index) - set(rate.index))
    rate_only = sorted(int(y) for y in set(rate.index) - set(idx.index))
    if index_only or rate_only:
        if fill_policy == "raise":
            raise IncompleteYearError(index_only, rate_only)
        logger.info(
            "Incomplete years (fill_policy=%s): no rate for %s, no index value for %s",
            fill_policy, index_only, rate_only,
        )

    years = idx.index.union(rate.index)
    if fill_policy == "drop":
        years = years.intersection(idx.index)

    frame = pd.DataFrame({
        "index_value": idx.reindex(years),
        "reference_rate": rate.reindex(years),
    }).fillna(0.0)

    return YearIndexTable(
        YearSnapshot(
            year=int(year),
            index_value=float(row.index_value),
            reference_rate=float(row.reference_rate),
            tax_rate=effective_annual_tax_rate(float(row.reference_rate)),
        )
        for year, row in zip(years, frame.itertuples(index=False))
    )
