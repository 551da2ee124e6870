# eldergrid/main.py
import logging

import pandas as pd
import streamlit as st

from eldergrid.care.medications import next_reminder
from eldergrid.controller import DashboardController
from eldergrid.reports.insights import build_context, summarize_insight
from eldergrid.reports.usage_report import overall_reduction_pct, usage_vs_average
from eldergrid.scripts.seed_logs import seed_if_empty
from eldergrid.simulation.device_simulator import format_runtime
from eldergrid.sources.gov_data import data_source_info
from eldergrid.sources.usage_store import StoreError
from eldergrid.utils.constants import AVAILABLE_APPLIANCES, DEFAULT_CUSTOM_THRESHOLDS, THRESHOLD_SLIDER_MAX
from eldergrid.utils.env import ConfigError, configure_logging, load_env, load_settings

load_env()
configure_logging()
logger = logging.getLogger("eldergrid")

st.set_page_config(page_title="ElderGrid", layout="wide")

TICK_SECONDS = 5
# fragment timers fire slightly early; full reruns inside this window do not tick
MIN_TICK_GAP = TICK_SECONDS - 1


# ---------- Helpers ----------
def _get_controller() -> DashboardController:
    if "controller" not in st.session_state:
        settings = load_settings()
        controller = DashboardController(settings)
        if settings.store == "sqlite":
            try:
                seed_if_empty(controller.data.store, controller.state.user_id)
            except StoreError as e:
                logger.warning("Demo seeding skipped: %s", e)
        controller.refresh()
        st.session_state.controller = controller
    return st.session_state.controller


def _devices_df(controller: DashboardController) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Device": d.name,
                "Status": "On" if d.status else "Off",
                "Runtime": format_runtime(d.runtime_minutes),
                "Usage": d.usage_level,
                "Limit": format_runtime(d.threshold_minutes),
            }
            for d in controller.state.devices
        ]
    )


def _thresholds_df(controller: DashboardController) -> pd.DataFrame:
    s = controller.state
    return pd.DataFrame(
        [
            {"Appliance": name.title(), "Threshold (min)": eff.threshold_minutes, "Origin": eff.origin}
            for name, eff in s.thresholds.items()
        ]
    )


# ---------- Init ----------
try:
    controller = _get_controller()
except ConfigError as e:
    st.error("❌ ElderGrid configuration error")
    st.code(str(e))
    st.stop()

state = controller.state

# ---------- Sidebar ----------
st.sidebar.markdown("## 🏡 ElderGrid")

pages = {
    "🏠 Overview": "overview",
    "⚠️ Anomalies": "anomalies",
    "🎚️ Usage Limits": "limits",
    "🏛️ Government Data": "gov",
    "💊 Medications": "medications",
    "🤖 AI Insights": "insights",
}

if "active_page" not in st.session_state:
    st.session_state.active_page = "overview"

for name, key in pages.items():
    if st.sidebar.button(name, width="stretch"):
        st.session_state.active_page = key

if st.sidebar.button("🔄 Refresh data", width="stretch"):
    controller.refresh()

if state.has_api_error or state.is_offline:
    st.sidebar.warning(state.error_message)
elif state.last_sync:
    st.sidebar.success("✅ Data up to date.")

st.sidebar.markdown("---")
st.sidebar.caption(data_source_info(controller.settings)["description"])

page = st.session_state.active_page

# ============================================================
# 🏠 OVERVIEW (live simulation)
# ============================================================
if page == "overview":
    st.header("🏠 Your Home Today")

    @st.fragment(run_every=TICK_SECONDS)
    def live_devices():
        controller.tick_if_due(MIN_TICK_GAP)
        s = controller.state
        c1, c2 = st.columns(2)
        c1.metric("🌱 Carbon saved (kg)", f"{s.carbon_saved:.1f}")
        c2.metric("💚 Green score", s.green_score)
        st.dataframe(_devices_df(controller), width="stretch", hide_index=True)

        pending = [a for a in s.device_alerts if not a.acknowledged]
        for a in pending:
            box = st.error if a.type == "critical" else st.warning
            box(f"{a.device_name} has been running for {a.duration}. {a.reason} · {a.comparison}")

    live_devices()

    st.subheader("Switch devices")
    cols = st.columns(len(state.devices) or 1)
    for col, d in zip(cols, state.devices):
        label = f"Turn {'off' if d.status else 'on'} {d.name}"
        if col.button(label, key=f"toggle-{d.id}", width="stretch"):
            controller.toggle_device(d.id)
            st.rerun()

    pending = [a for a in state.device_alerts if not a.acknowledged]
    if pending:
        st.subheader("Acknowledge alerts")
        for a in pending:
            if st.button(f"✔ {a.device_name} ({a.timestamp})", key=f"ack-{a.id}"):
                controller.acknowledge_alert(a.id)
                st.rerun()

# ============================================================
# ⚠️ ANOMALIES
# ============================================================
elif page == "anomalies":
    st.header("⚠️ Anomaly Detector")
    st.caption("Recent usage compared with your own limits, or twice the government average when you have none.")

    for a in state.new_anomaly_alerts:
        st.toast(f"New: {a.message}")

    if not state.anomaly_alerts:
        st.success("No anomalies detected. All appliances are within normal usage patterns.")
    else:
        for a in state.anomaly_alerts:
            when = a.timestamp.strftime("%Y-%m-%d %H:%M") if a.timestamp else "unknown time"
            st.warning(f"{a.message} · detected {when}")

    if not state.thresholds:
        st.info("No thresholds available yet, so no alerts can be raised.")
    else:
        st.subheader("Effective thresholds")
        st.dataframe(_thresholds_df(controller), width="stretch", hide_index=True)

# ============================================================
# 🎚️ USAGE LIMITS
# ============================================================
elif page == "limits":
    st.header("🎚️ Your Usage Limits")
    st.caption("Set your preferred usage limit for each appliance. The app alerts you if usage is unusually high.")

    with st.form("limits_form", clear_on_submit=False):
        values = {}
        for appliance in AVAILABLE_APPLIANCES:
            current = state.custom_thresholds.get(appliance, DEFAULT_CUSTOM_THRESHOLDS[appliance])
            values[appliance] = st.slider(
                appliance.title(), 0, THRESHOLD_SLIDER_MAX, int(current), step=10,
                help="0 means: use twice the government average instead.",
            )
        submitted = st.form_submit_button("💾 Save limits")

    if submitted:
        for appliance, minutes in values.items():
            ok, msg = controller.save_threshold(appliance, minutes)
            (st.success if ok else st.error)(msg)

# ============================================================
# 🏛️ GOVERNMENT DATA
# ============================================================
elif page == "gov":
    st.header("🏛️ Government Averages")
    if not state.gov_records:
        st.warning("⚠️ Government data is not available right now.")
    else:
        first = state.gov_records[0]
        st.caption(f"Region: {first.region} · last updated {first.last_updated} · source: {first.source}")
        st.bar_chart(
            pd.DataFrame(
                {"Average minutes / day": [g.avg_usage_minutes for g in state.gov_records]},
                index=[g.appliance_name for g in state.gov_records],
            )
        )

    report = usage_vs_average(state.logs, state.gov_averages)
    st.subheader("Your usage vs the average")
    if report.empty:
        st.info("No usage logs yet.")
    else:
        pct = overall_reduction_pct(report)
        if pct is not None:
            st.metric("Reduction vs average", f"{pct:.1f}%")
        st.dataframe(report, width="stretch", hide_index=True)

# ============================================================
# 💊 MEDICATIONS
# ============================================================
elif page == "medications":
    st.header("💊 Medication Reminders")

    upcoming = next_reminder(state.medications)
    if upcoming:
        med, mins = upcoming
        st.info(f"⏰ Next: {med.name} at {med.time} ({med.dosage}), in {format_runtime(mins)}")

    for med in state.medications:
        c1, c2, c3 = st.columns([4, 1, 1])
        c1.write(f"**{med.time}** · {med.name} · {med.dosage}")
        if c2.checkbox("Taken", value=med.taken, key=f"taken-{med.id}") != med.taken:
            controller.toggle_medication(med.id)
            st.rerun()
        if c3.button("🗑️", key=f"rm-{med.id}"):
            controller.remove_medication(med.id)
            st.rerun()

    with st.form("add_med", clear_on_submit=True):
        name = st.text_input("Medicine name")
        time = st.text_input("Time (HH:MM)")
        dosage = st.text_input("Dosage", placeholder="1 tablet")
        if st.form_submit_button("➕ Add"):
            ok, msg = controller.add_medication(name, time, dosage)
            (st.success if ok else st.error)(msg)

# ============================================================
# 🤖 AI INSIGHTS
# ============================================================
elif page == "insights":
    st.header("🤖 AI Insights")
    report = usage_vs_average(state.logs, state.gov_averages)
    if st.button("✨ Generate summary") or "insight" not in st.session_state:
        with st.spinner("Thinking..."):
            context = build_context(report, state.anomaly_alerts, state.carbon_saved, state.green_score)
            st.session_state.insight = summarize_insight(context)
    st.markdown(st.session_state.insight)
