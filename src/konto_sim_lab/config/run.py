from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from konto_sim_lab.config.tax import CAPITAL_GAINS_RATE

# ---- Defaults ----
DEFAULT_INDEX_PATH = Path("data/raw/omxs30.txt")
DEFAULT_RATE_PATH  = Path("data/raw/statslaneranta.csv")
DEFAULT_HORIZONS   = (5, 10, 15, 20, 25)
DEFAULT_OUT_DIR    = Path("reports/comparison")
FILL_POLICIES      = ("zero", "drop", "raise")
# ------------------


@dataclass
class RunConfig:
    """Everything a comparison run needs; the CLI and the dashboard fill this in."""
    index_path: Path = DEFAULT_INDEX_PATH
    rate_path: Path = DEFAULT_RATE_PATH
    horizons: tuple[int, ...] = DEFAULT_HORIZONS
    start_year: int | None = None      # None -> first year in the table
    end_year: int | None = None        # None -> last year in the table
    fill_policy: str = "zero"
    capital_gains_rate: float = CAPITAL_GAINS_RATE
    strict: bool = False               # abort on the first start year with a gap
    workers: int | None = None
    out_dir: Path = DEFAULT_OUT_DIR
    write_csv: bool = False
    write_plots: bool = False

    def __post_init__(self):
        self.index_path = Path(self.index_path)
        self.rate_path = Path(self.rate_path)
        self.out_dir = Path(self.out_dir)
        self.horizons = tuple(sorted({int(h) for h in self.horizons}))
        if not self.horizons or any(h <= 0 for h in self.horizons):
            raise ValueError(f"horizons must be positive integers, got {self.horizons}")
        if self.fill_policy not in FILL_POLICIES:
            raise ValueError(f"fill_policy must be one of {FILL_POLICIES}, got {self.fill_policy!r}")
        if not 0.0 <= self.capital_gains_rate < 1.0:
            raise ValueError("capital_gains_rate must be in [0, 1)")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")
