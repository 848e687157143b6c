import matplotlib

matplotlib.use("Agg")

import pytest

from konto_sim_lab.data.yearly import YearIndexTable, YearSnapshot


def _table(rows: dict) -> YearIndexTable:
    """{year: (index_value, tax_rate)} -> YearIndexTable (reference_rate left at 0.0)."""
    return YearIndexTable(
        YearSnapshot(year=year, index_value=float(idx), reference_rate=0.0, tax_rate=float(tax))
        for year, (idx, tax) in rows.items()
    )


@pytest.fixture
def make_table():
    return _table


@pytest.fixture
def doubling_table() -> YearIndexTable:
    # flat at 100 for 2000-2004, then 200 in 2005; no tax
    rows = {year: (100.0, 0.0) for year in range(2000, 2005)}
    rows[2005] = (200.0, 0.0)
    return _table(rows)


@pytest.fixture
def gap_table() -> YearIndexTable:
    return _table({1993: (100.0, 0.01), 1994: (110.0, 0.01), 1998: (150.0, 0.02)})


def _sek(value: float) -> str:
    """12345.6 -> '12 345,60' (Swedish export format)."""
    return f"{value:,.2f}".replace(",", " ").replace(".", ",")


@pytest.fixture
def write_sources(tmp_path):
    """
    Write an index file and a rate file for the given years.
    Each year gets a mid-year observation and a year-end one (the year-end value wins).
    Years in skip_index / skip_rates are left out of that file.
    """
    def _write(years, index_value, rate=2.0, skip_index=(), skip_rates=()):
        index_lines = []
        rate_lines = ["Datum;Värde;Medelvärde hittills i år"]
        for year in years:
            if year not in skip_index:
                # year-end first, mid-year after: file order must not matter
                index_lines.append(f"{year}-12-30\t{_sek(index_value(year))}")
                index_lines.append(f"{year}-06-30\t{_sek(index_value(year) * 0.5)}")
            if year not in skip_rates:
                rate_lines.append(f"{year}-06-30;{_sek(rate + 5.0)};0")
                rate_lines.append(f"{year}-12-30;{_sek(rate)};0")
        index_path = tmp_path / "omxs30.txt"
        rate_path = tmp_path / "statslaneranta.csv"
        index_path.write_text("\n".join(index_lines) + "\n", encoding="utf-8")
        rate_path.write_text("\n".join(rate_lines) + "\n", encoding="utf-8")
        return index_path, rate_path

    return _write
