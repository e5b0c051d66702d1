"""Batch replications page."""

import time

import plotly.express as px
import streamlit as st

from clinicflow.core.entities import StaffRole
from clinicflow.core.scenario import DASHBOARD_STAFF, MAX_ARRIVAL_RATE, EngineConfig
from clinicflow.experiment.analysis import summarise_replications
from clinicflow.experiment.runner import DEFAULT_METRICS, multiple_replications

st.set_page_config(page_title="Replications - ClinicFlow", page_icon="📈", layout="wide")

st.title("📈 Replications")
st.caption("Run the engine headless on virtual time and compare across seeds.")

col1, col2, col3 = st.columns(3)
with col1:
    arrival_rate = st.slider("Arrival rate (patients/hour)", 0.0, float(MAX_ARRIVAL_RATE), 10.0, 0.5)
    duration_hours = st.number_input("Duration (hours)", 1.0, 48.0, 8.0, 1.0)
with col2:
    n_reps = st.number_input("Replications", 2, 100, 10)
    seed = st.number_input("Base seed", 0, 10_000, 42)
with col3:
    staff = {
        role: st.number_input(f"{role.label}s", 0, 20, DASHBOARD_STAFF[role])
        for role in StaffRole
    }

if st.button("🚀 Run Replications", type="primary", use_container_width=True):
    config = EngineConfig(
        arrival_rate=arrival_rate,
        # Coarse ticks keep long horizons fast
        tick_interval=30.0,
        initial_staff=staff,
        random_seed=int(seed),
    )
    progress_bar = st.progress(0)
    start_time = time.time()

    def progress_callback(current: int, total: int) -> None:
        progress_bar.progress(current / total)

    results = multiple_replications(
        config,
        duration_hours=duration_hours,
        n_reps=int(n_reps),
        metric_names=DEFAULT_METRICS,
        progress_callback=progress_callback,
    )
    st.session_state.replication_results = results
    st.success(f"✅ Completed {int(n_reps)} replications in {time.time() - start_time:.1f} seconds")

results = st.session_state.get("replication_results")
if results:
    st.header("Summary (95% CI)")
    st.dataframe(summarise_replications(results), use_container_width=True)

    metric = st.selectbox("Distribution of", list(results))
    fig = px.histogram(x=results[metric], nbins=20, labels={"x": metric})
    st.plotly_chart(fig, use_container_width=True)
