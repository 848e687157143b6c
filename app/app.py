# app/app.py
# ------------------------------------------------------------
# Konto Sim Lab — Streamlit UI (aktiekonto vs kapitalförsäkring)
# ------------------------------------------------------------
# IMPORTANT: keep this path hack at the very top so local src/ imports work
import sys
from pathlib import Path
sys.path.append(str((Path(__file__).resolve().parents[1] / "src").resolve()))

import pandas as pd
import streamlit as st

from konto_sim_lab.config.run import DEFAULT_HORIZONS, DEFAULT_INDEX_PATH, DEFAULT_RATE_PATH, FILL_POLICIES
from konto_sim_lab.config.tax import CAPITAL_GAINS_RATE
from konto_sim_lab.data.loader import load_index_txt, load_reference_rate_csv
from konto_sim_lab.data.yearly import IncompleteYearError, build_year_table
from konto_sim_lab.report.aggregate import results_frame, summarize_by_horizon, summary_frame
from konto_sim_lab.report.figures import plot_horizon_means, plot_outcomes_by_start_year
from konto_sim_lab.sim.horizon import simulate

# ------------------------------------------------------------
# Streamlit page config
# ------------------------------------------------------------
st.set_page_config(page_title="Konto Sim Lab", layout="wide")

# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
@st.cache_data(show_spinner=False)
def load_sources(index_path: str, rate_path: str) -> tuple[pd.Series, pd.Series]:
    """Parse both input files once per path pair."""
    return load_index_txt(index_path), load_reference_rate_csv(rate_path)

def fmt_mult(x, decimals=2):
    if x is None or pd.isna(x): return "no data"
    return f"{x:.{decimals}f}×"

def fmt_pct(x, decimals=2):
    if x is None or pd.isna(x): return ""
    return f"{x*100:.{decimals}f}%"

# ------------------------------------------------------------
# Sidebar — Data, Horizons, Assumptions
# ------------------------------------------------------------
st.sidebar.header("Data")
index_path = st.sidebar.text_input("Index file (tab-separated)", value=str(DEFAULT_INDEX_PATH))
rate_path = st.sidebar.text_input("Reference rate file (semicolon CSV)", value=str(DEFAULT_RATE_PATH))
fill_policy = st.sidebar.selectbox(
    "Years present in only one file",
    FILL_POLICIES,
    index=0,
    help="zero: fill with 0.0 · drop: leave out years without an index value · raise: stop with an error",
)

st.sidebar.header("Horizons")
horizons = st.sidebar.multiselect("Holding horizons (years)", options=list(range(1, 31)), default=list(DEFAULT_HORIZONS))
if not horizons:
    st.sidebar.warning("Select at least one horizon.")
    st.stop()

st.sidebar.header("Tax assumptions")
cg_rate = st.sidebar.number_input(
    "Aktiekonto tax on net gain", min_value=0.0, max_value=0.99,
    value=float(CAPITAL_GAINS_RATE), step=0.001, format="%.3f",
)

# ------------------------------------------------------------
# Load data & simulate
# ------------------------------------------------------------
try:
    with st.spinner("Loading index & reference rate..."):
        index_obs, rate_obs = load_sources(index_path, rate_path)
except FileNotFoundError as e:
    st.error(str(e))
    st.stop()

try:
    table = build_year_table(index_obs, rate_obs, fill_policy=fill_policy)
except IncompleteYearError as e:
    st.error(f"Incomplete data: {e}")
    st.stop()

if len(table) == 0:
    st.error("No usable observations in the selected files.")
    st.stop()

results = simulate(table, horizons=horizons, loss_cap_rate=cg_rate)
summaries = summarize_by_horizon(results, horizons)

# ------------------------------------------------------------
# Tabs
# ------------------------------------------------------------
tab0, tab1, tab2, tab3 = st.tabs([
    "Overview",
    "Assumptions & Methodology",
    "By start year",
    "Year table",
])

with tab0:
    st.markdown("## Aktiekonto vs Kapitalförsäkring")
    st.write(f"**Data**: {table.first_year} → {table.last_year}  |  **Years**: {len(table)}  |  **Outcomes**: {len(results)}")

    sum_df = summary_frame(summaries)
    display = pd.DataFrame({
        "Horizon (years)": sum_df["horizon"],
        "Start years": sum_df["count"],
        "Aktiekonto (mean)": sum_df["aktiekonto_mean"].apply(fmt_mult),
        "Kapitalförsäkring (mean)": sum_df["kapitalforsakring_mean"].apply(fmt_mult),
        "Aktiekonto CAGR": sum_df["aktiekonto_cagr"].apply(fmt_pct),
        "Kapitalförsäkring CAGR": sum_df["kapitalforsakring_cagr"].apply(fmt_pct),
        "KF wins": sum_df["kapitalforsakring_win_rate"].apply(lambda x: fmt_pct(x, 0)),
    })
    st.dataframe(display, hide_index=True, use_container_width=True)
    if any(s.has_data for s in summaries):
        st.pyplot(plot_horizon_means(summaries))

with tab1:
    st.markdown("### Plain-English Assumptions & Methodology")
    st.markdown(f"""
**Data**
- Last index level of every calendar year, and last reference rate (statslåneränta) of every year.

**Aktiekonto**
- Grow 1 kr with the index, untaxed, then sell: **{cg_rate:.1%}** tax on the net gain. Losses are not taxed.

**Kapitalförsäkring**
- Every year: grow with the index, then pay avkastningsskatt on the whole value:
  `0.30 × max(statslåneränta + 1.0, 1.25) %`.

**Averages**
- Unweighted mean over every start year that reaches the horizon. Start years with gaps in the data are skipped.
""")

with tab2:
    st.markdown("### Outcomes by start year")
    choices = [s.horizon for s in summaries if s.has_data]
    if not choices:
        st.info("No start year reaches any selected horizon.")
    else:
        h = st.selectbox("Horizon", choices)
        res_df = results_frame(results)
        st.dataframe(res_df[res_df["horizon"] == h], hide_index=True, use_container_width=True)
        st.pyplot(plot_outcomes_by_start_year(results, h))

with tab3:
    st.markdown("### Year table")
    st.dataframe(table.to_frame(), use_container_width=True)
