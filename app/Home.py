"""ClinicFlow - live emergency department dashboard."""

import plotly.express as px
import streamlit as st

from clinicflow import EngineConfig, PatientPriority, SimulationEngine, StaffRole
from clinicflow.core.scenario import (
    DASHBOARD_STAFF,
    MAX_ARRIVAL_RATE,
    MAX_SIMULATION_SPEED,
    MIN_ARRIVAL_RATE,
    MIN_SIMULATION_SPEED,
)
from clinicflow.results.history import TickHistory
from clinicflow.results.statistics import format_percentage, format_time

st.set_page_config(page_title="ClinicFlow", page_icon="🏥", layout="wide")

# Scheduler seconds run per page refresh while the simulation is live
REFRESH_SECONDS = 1.0


def _new_engine() -> SimulationEngine:
    engine = SimulationEngine(EngineConfig(initial_staff=DASHBOARD_STAFF, realtime=True))
    history = TickHistory(max_rows=2000)
    engine.subscribe(history)
    st.session_state.history = history
    return engine


if "engine" not in st.session_state:
    st.session_state.engine = _new_engine()

engine: SimulationEngine = st.session_state.engine
history: TickHistory = st.session_state.history

st.title("🏥 ClinicFlow: Emergency Department Simulation")

# ===== CONTROLS =====
with st.sidebar:
    st.header("Controls")

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("▶️", help="Start", disabled=engine.is_running):
            engine.start()
            st.rerun()
    with col2:
        if st.button("⏸️", help="Pause", disabled=not engine.is_running):
            engine.pause()
            st.rerun()
    with col3:
        if st.button("🔄", help="Reset"):
            engine.reset()
            history.clear()
            for role, count in DASHBOARD_STAFF.items():
                engine.add_staff(role, count)
            st.rerun()

    rate = st.slider(
        "Arrival rate (patients/hour)",
        min_value=float(MIN_ARRIVAL_RATE),
        max_value=float(MAX_ARRIVAL_RATE),
        value=float(engine.arrival_rate),
        step=0.5,
    )
    if rate != engine.arrival_rate:
        engine.set_arrival_rate(rate)

    speed = st.slider(
        "Simulation speed",
        min_value=float(MIN_SIMULATION_SPEED),
        max_value=float(MAX_SIMULATION_SPEED),
        value=float(engine.simulation_speed),
        step=0.5,
    )
    if speed != engine.simulation_speed:
        engine.set_simulation_speed(speed)

    st.divider()
    st.subheader("Staff")
    for role in StaffRole:
        c1, c2, c3 = st.columns([2, 1, 1])
        c1.write(f"{role.label}s: **{engine.staff_count(role)}**")
        if c2.button("➕", key=f"add_{role.name}"):
            engine.add_staff(role)
            st.rerun()
        if c3.button("➖", key=f"remove_{role.name}"):
            if not engine.remove_staff(role):
                st.toast(f"No idle {role.label.lower()} to remove")
            st.rerun()

    st.divider()
    st.subheader("Add patient")
    priority = st.selectbox(
        "Priority", list(PatientPriority), format_func=lambda p: p.label
    )
    if st.button("Add patient", use_container_width=True):
        engine.manually_add_patient(priority)
        st.rerun()

# ===== KEY METRICS =====
stats = engine.get_stats()

st.caption(
    f"Simulation time {format_time(engine.current_time / 60)} | "
    f"{'Running' if engine.is_running else 'Paused'}"
)

kpi_cols = st.columns(5)
kpi_cols[0].metric("Total Patients", stats.total_patients)
kpi_cols[1].metric("Treated", stats.treated_patients)
kpi_cols[2].metric("In Queue", stats.queue_length)
kpi_cols[3].metric("Average Wait", format_time(stats.average_wait_time / 60))
kpi_cols[4].metric("Throughput", f"{stats.throughput:.1f}/hr")

st.header("Staff Utilisation")
util_cols = st.columns(len(StaffRole))
for col, role in zip(util_cols, StaffRole):
    value = stats.staff_utilization[role]
    col.metric(role.label, format_percentage(value))
    col.progress(min(value, 1.0))

# ===== QUEUE CHART =====
df = history.to_dataframe()
if not df.empty:
    st.header("Queue Length")
    fig = px.line(
        df,
        x="time_min",
        y="queue_length",
        labels={"time_min": "Simulation time (min)", "queue_length": "Patients waiting"},
    )
    st.plotly_chart(fig, use_container_width=True)

# ===== PATIENTS =====
st.header("Patients")
patients = engine.get_patients()
if patients:
    now = engine.current_time
    st.dataframe(
        [
            {
                "ID": p.id,
                "Priority": p.priority_text,
                "Status": p.status_text,
                "Symptoms": p.symptoms,
                "Wait": format_time(p.wait_time(now) / 60),
            }
            for p in reversed(patients)
        ],
        use_container_width=True,
        hide_index=True,
    )
else:
    st.info("No patients yet. Start the simulation or add a patient manually.")

# Realtime scheduler blocks for REFRESH_SECONDS, then the page redraws
if engine.is_running:
    engine.run_for(REFRESH_SECONDS)
    st.rerun()
