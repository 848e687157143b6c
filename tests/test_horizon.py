import logging
import pickle

import pytest

from konto_sim_lab.data.yearly import build_year_table
from konto_sim_lab.risk.tax import capital_gains_after_tax
from konto_sim_lab.sim.horizon import MissingYearError, SimulationResult, simulate, simulate_start_year


def _wavy_rows(tax=0.0):
    # ups and downs, so some windows end below the start value
    levels = [100, 120, 90, 80, 95, 130, 70, 60, 75, 110, 140, 100, 85, 150, 160, 120]
    return {1990 + i: (float(v), tax) for i, v in enumerate(levels)}


def test_gap_inside_window_raises(gap_table):
    with pytest.raises(MissingYearError) as excinfo:
        simulate_start_year(gap_table, 1993, horizons=[5])
    assert excinfo.value.start_year == 1993
    assert excinfo.value.missing_years == [1995, 1996, 1997]


def test_gap_raises_through_simulate_when_asked(gap_table):
    with pytest.raises(MissingYearError):
        simulate(gap_table, start_years=[1993], horizons=[5], on_missing="raise")


def test_gap_is_skipped_and_logged_by_default(gap_table, caplog):
    with caplog.at_level(logging.WARNING, logger="konto_sim_lab.sim.horizon"):
        results = simulate(gap_table, start_years=[1993], horizons=[5])
    assert results == []
    assert "start year 1993" in caplog.text


def test_doubling_scenario(doubling_table):
    results = simulate(doubling_table, start_years=[2000], horizons=[5])

    assert len(results) == 1
    r = results[0]
    assert (r.start_year, r.horizon) == (2000, 5)
    assert r.aktiekonto_multiplier == pytest.approx(2.0 - 1.0 * 0.206)
    assert r.aktiekonto_multiplier == pytest.approx(1.794)
    assert r.kapitalforsakring_multiplier == 2.0


def test_unreachable_horizon_gives_no_result(doubling_table):
    results = simulate(doubling_table, start_years=[2000, 2003], horizons=[5, 10])
    assert [(r.start_year, r.horizon) for r in results] == [(2000, 5)]


def test_default_start_years_come_from_table(doubling_table):
    results = simulate(doubling_table, horizons=[1])
    assert [r.start_year for r in results] == [2000, 2001, 2002, 2003, 2004]


def test_kapitalforsakring_pays_current_years_tax(make_table):
    table = make_table({2000: (100.0, 0.5), 2001: (110.0, 0.01)})

    (r,) = simulate(table, horizons=[1])

    assert r.kapitalforsakring_multiplier == pytest.approx(1.1 * 0.99)
    assert r.aktiekonto_multiplier == pytest.approx(1.1 - 0.1 * 0.206)


def test_kapitalforsakring_taxed_even_in_loss_years(make_table):
    table = make_table({2000: (100.0, 0.0), 2001: (80.0, 0.01), 2002: (80.0, 0.01)})

    results = simulate(table, start_years=[2000], horizons=[1, 2])

    assert [r.horizon for r in results] == [1, 2]
    assert results[0].aktiekonto_multiplier == pytest.approx(0.8)
    assert results[1].kapitalforsakring_multiplier == pytest.approx(0.8 * 0.99 * 0.99)


def test_loss_is_never_taxed(make_table):
    table = make_table(_wavy_rows(tax=0.0))

    results = simulate(table, horizons=[1, 2, 3, 5, 7])

    assert results
    for r in results:
        # with zero yearly tax, the kapitalförsäkring multiple equals the untaxed aktiekonto product
        ak_sum = r.kapitalforsakring_multiplier
        assert r.aktiekonto_multiplier <= ak_sum + 1e-12
        if ak_sum <= 1.0:
            assert r.aktiekonto_multiplier == ak_sum
        else:
            assert r.aktiekonto_multiplier >= 1.0
            assert r.aktiekonto_multiplier == pytest.approx(capital_gains_after_tax(ak_sum))


def test_simulate_is_repeatable(make_table):
    table = make_table(_wavy_rows(tax=0.004))
    first = simulate(table)
    second = simulate(table)
    assert first == second
    assert all(isinstance(r, SimulationResult) for r in first)


def test_results_ordered_by_start_year_then_horizon(make_table):
    table = make_table(_wavy_rows(tax=0.004))
    results = simulate(table, horizons=[10, 5])
    keys = [(r.start_year, r.horizon) for r in results]
    assert keys == sorted(keys)


def test_zero_filled_index_counts_as_missing(make_table):
    table = make_table({2000: (100.0, 0.0), 2001: (0.0, 0.0), 2002: (120.0, 0.0)})
    with pytest.raises(MissingYearError) as excinfo:
        simulate_start_year(table, 2000, horizons=[2])
    assert excinfo.value.missing_years == [2001]


def test_end_year_limits_window(make_table):
    rows = {year: (100.0 + year - 2000, 0.0) for year in range(2000, 2011)}
    del rows[2008]
    table = make_table(rows)

    results = simulate(table, start_years=[2000], horizons=[5, 10], end_year=2006, on_missing="raise")

    assert [(r.start_year, r.horizon) for r in results] == [(2000, 5)]
    assert results[0].kapitalforsakring_multiplier == pytest.approx(105.0 / 100.0)


def test_process_pool_matches_sequential(make_table):
    table = make_table(_wavy_rows(tax=0.004))
    assert simulate(table, workers=2) == simulate(table)


def test_empty_table_and_bad_arguments(make_table):
    assert simulate(make_table({})) == []
    with pytest.raises(ValueError):
        simulate(make_table({2000: (1.0, 0.0)}), on_missing="ignore")


def test_missing_year_error_pickles():
    err = pickle.loads(pickle.dumps(MissingYearError(1993, [1995])))
    assert err.start_year == 1993
    assert err.missing_years == [1995]


def test_trailing_rate_only_year_does_not_empty_the_run():
    index_obs = [(f"{year}-12-30", 100.0 + 10.0 * (year - 2000)) for year in range(2000, 2013)]
    rate_obs = [(f"{year}-12-30", 2.0) for year in range(2000, 2013)] + [("2013-01-15", 2.1)]
    table = build_year_table(index_obs, rate_obs)

    results = simulate(table, horizons=[5, 10], on_missing="raise")

    assert [r.start_year for r in results if r.horizon == 5] == list(range(2000, 2008))
    assert [(r.start_year, r.horizon) for r in results if r.horizon == 10] == [(2000, 10), (2001, 10), (2002, 10)]


def test_no_usable_index_value_gives_no_results(make_table):
    assert simulate(make_table({2000: (0.0, 0.0), 2001: (0.0, 0.0)})) == []


def test_worker_processes_keep_skip_and_raise_behaviour(gap_table, caplog):
    with caplog.at_level(logging.WARNING, logger="konto_sim_lab.sim.horizon"):
        assert simulate(gap_table, horizons=[1], workers=2) == simulate(gap_table, horizons=[1])
    assert "Skipping start year 1993" in caplog.text
    with pytest.raises(MissingYearError):
        simulate(gap_table, horizons=[1], on_missing="raise", workers=2)
