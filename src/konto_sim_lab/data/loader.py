from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


def clean_locale_number(values: pd.Series) -> pd.Series:
    """
    Normalize Swedish-formatted numbers to something pandas can parse:
    "2 325,58" -> "2325.58". Whitespace (incl. non-breaking) is a thousands separator.
    """
    s = values.fillna("").astype(str)
    s = s.str.replace(r"\s", "", regex=True)
    return s.str.replace(",", ".", regex=False)


def _read_delimited(src: Path, sep: str, n_cols: int, skip_header: bool, encoding: str) -> pd.DataFrame:
    """
    Read the first `n_cols` fields of every non-blank line as strings.
    Extra fields are ignored; short rows get NaN in the missing columns.
    """
    cols = list(range(n_cols))
    try:
        return pd.read_csv(
            src,
            sep=sep,
            header=None,
            names=cols,
            usecols=cols,
            index_col=False,
            dtype=str,
            skiprows=int(skip_header),
            skip_blank_lines=True,
            engine="python",
            encoding=encoding,
            encoding_errors="replace",
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=cols, dtype=str)


def _to_observations(parts: pd.DataFrame, min_cols: int, name: str) -> pd.Series:
    """
    Column 0 -> date (YYYY-MM-DD), column 1 -> locale number.
    Rows with a bad date, a bad number, or fewer than `min_cols` fields are dropped.
    File order is kept; sorting is the series builder's job.
    """
    complete = parts.iloc[:, :min_cols].notna().all(axis=1)
    dates = pd.to_datetime(parts[0].fillna("").astype(str).str.strip(), format="%Y-%m-%d", errors="coerce")
    values = pd.to_numeric(clean_locale_number(parts[1]), errors="coerce")

    keep = complete & dates.notna() & values.notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.debug("%s: dropped %d malformed row(s)", name, dropped)

    obs = pd.Series(values[keep].to_numpy(dtype=float), index=pd.DatetimeIndex(dates[keep], name="date"), name=name)
    return obs


def load_index_txt(src_txt: str | Path, encoding: str = "utf-8-sig") -> pd.Series:
    """
    Load equity-index history (e.g. OMXS30) exported as tab-separated text.

    Format per line (no header):
        2023-12-29<TAB>2 325,58[<TAB>...]

    Returns
    -------
    pd.Series
        Index levels indexed by date, in file order.
    """
    src = Path(src_txt)
    if not src.exists():
        raise FileNotFoundError(f"{src} not found. Export the index history (date<TAB>value) there first.")

    parts = _read_delimited(src, sep="\t", n_cols=2, skip_header=False, encoding=encoding)
    return _to_observations(parts, min_cols=2, name="index_value")


def load_reference_rate_csv(src_csv: str | Path, encoding: str = "utf-8-sig") -> pd.Series:
    """
    Load the reference rate (statslåneränta) exported as semicolon-separated CSV.

    The first line is a header. Each data row needs at least three columns;
    column 0 is the date, column 1 the rate in percent (may be negative).
    """
    src = Path(src_csv)
    if not src.exists():
        raise FileNotFoundError(f"{src} not found. Export the reference rate history (date;rate;...) there first.")

    parts = _read_delimited(src, sep=";", n_cols=3, skip_header=True, encoding=encoding)
    return _to_observations(parts, min_cols=3, name="reference_rate")
