"""
Command line entry point: aktiekonto vs kapitalförsäkring over rolling horizons.

Usage:
  konto-sim-lab --index data/raw/omxs30.txt --rates data/raw/statslaneranta.csv
  konto-sim-lab --horizons 5 10 --fill-policy drop --csv --plot
"""

from __future__ import annotations

import argparse
import logging
import sys

from konto_sim_lab.config.run import (
    DEFAULT_HORIZONS, DEFAULT_INDEX_PATH, DEFAULT_OUT_DIR, DEFAULT_RATE_PATH,
    FILL_POLICIES, RunConfig,
)
from konto_sim_lab.config.tax import CAPITAL_GAINS_RATE
from konto_sim_lab.data.loader import load_index_txt, load_reference_rate_csv
from konto_sim_lab.data.yearly import IncompleteYearError, YearIndexTable, build_year_table
from konto_sim_lab.report.aggregate import (
    HorizonSummary, render_report, results_frame, summarize_by_horizon, summary_frame,
)
from konto_sim_lab.report.figures import plot_horizon_means, plot_outcomes_by_start_year
from konto_sim_lab.sim.horizon import MissingYearError, SimulationResult, simulate

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compare aktiekonto vs kapitalförsäkring on historical index data.")
    parser.add_argument("--index", default=str(DEFAULT_INDEX_PATH), help="Index history, tab-separated (date, value)")
    parser.add_argument("--rates", default=str(DEFAULT_RATE_PATH), help="Reference rate history, semicolon-separated with header")
    parser.add_argument("--horizons", type=int, nargs="+", default=list(DEFAULT_HORIZONS), help="Holding horizons in years")
    parser.add_argument("--start-year", type=int, help="First start year (default: first year in data)")
    parser.add_argument("--end-year", type=int, help="Last year to simulate through (default: last year with an index value)")
    parser.add_argument("--fill-policy", choices=FILL_POLICIES, default="zero", help="Years present in only one source")
    parser.add_argument("--capital-gains-rate", type=float, default=CAPITAL_GAINS_RATE, help="Aktiekonto tax on net gain at sale")
    parser.add_argument("--strict", action="store_true", help="Fail instead of skipping start years with missing data")
    parser.add_argument("--workers", type=int, help="Worker processes for start years (joblib)")
    parser.add_argument("--out-dir", default=str(DEFAULT_OUT_DIR), help="Where --csv / --plot write")
    parser.add_argument("--csv", action="store_true", help="Write results.csv and summary.csv")
    parser.add_argument("--plot", action="store_true", help="Write PNG figures")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        index_path=args.index,
        rate_path=args.rates,
        horizons=tuple(args.horizons),
        start_year=args.start_year,
        end_year=args.end_year,
        fill_policy=args.fill_policy,
        capital_gains_rate=args.capital_gains_rate,
        strict=args.strict,
        workers=args.workers,
        out_dir=args.out_dir,
        write_csv=args.csv,
        write_plots=args.plot,
    )


def run(cfg: RunConfig) -> tuple[YearIndexTable, list[SimulationResult], list[HorizonSummary]]:
    """Load both sources, build the year table, simulate every start year and summarize."""
    index_obs = load_index_txt(cfg.index_path)
    rate_obs = load_reference_rate_csv(cfg.rate_path)
    table = build_year_table(index_obs, rate_obs, fill_policy=cfg.fill_policy)
    if len(table) == 0:
        raise ValueError(f"no usable observations in {cfg.index_path} / {cfg.rate_path}")
    logger.info("Year table: %d years, %d-%d", len(table), table.first_year, table.last_year)

    # a trailing year seen only in the rate file has no index level to end on
    end_year = cfg.end_year if cfg.end_year is not None else table.last_index_year
    start_years = None if cfg.start_year is None else range(cfg.start_year, end_year)
    results = simulate(
        table,
        start_years,
        cfg.horizons,
        cfg.capital_gains_rate,
        end_year=end_year,
        on_missing="raise" if cfg.strict else "skip",
        workers=cfg.workers,
    )
    summaries = summarize_by_horizon(results, cfg.horizons)
    return table, results, summaries


def _write_outputs(cfg: RunConfig, results: list[SimulationResult], summaries: list[HorizonSummary]) -> None:
    out_dir = cfg.out_dir
    if cfg.write_csv:
        out_dir.mkdir(parents=True, exist_ok=True)
        res_csv = out_dir / "results.csv"
        sum_csv = out_dir / "summary.csv"
        results_frame(results).to_csv(res_csv, index=False)
        summary_frame(summaries).to_csv(sum_csv, index=False)
        print(f"✅ Saved results: {res_csv}")
        print(f"✅ Saved summary: {sum_csv}")
    if cfg.write_plots:
        fig_means = out_dir / "figures" / "horizon_means.png"
        plot_horizon_means(summaries, fig_means)
        print(f"✅ Saved figure: {fig_means}")
        for s in summaries:
            if s.has_data:
                fig_h = out_dir / "figures" / f"outcomes_{s.horizon}y.png"
                plot_outcomes_by_start_year(results, s.horizon, fig_h)
                print(f"✅ Saved figure: {fig_h}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        cfg = config_from_args(args)
    except ValueError as exc:
        print(f"Invalid arguments: {exc}", file=sys.stderr)
        return 2

    try:
        _, results, summaries = run(cfg)
    except (IncompleteYearError, MissingYearError) as exc:
        print(f"Incomplete data: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"Failed to load data: {exc}", file=sys.stderr)
        return 2

    print(render_report(results, summaries))
    print("=== Summary (× start value, after tax) ===")
    print(summary_frame(summaries).to_string(index=False))
    print()

    _write_outputs(cfg, results, summaries)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
