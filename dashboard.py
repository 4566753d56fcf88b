"""
Streamlit real-time distance dashboard (Firebase Realtime Database, REST stream or SDK)

Features
- Live gauge for the latest ultrasonic distance reading with critical/warning bands
- Rolling chart and event log of the last 60 readings
- Two connection methods: public REST event stream, or Firebase Admin SDK with a service account
- Simulation mode producing a synthetic waveform when no database is available
- Connection settings editable from the sidebar; saving tears down and reconnects

Run locally
  pip install -e .
  streamlit run dashboard.py

Notes
- Default mode is **REST stream** against the database in dashboard_config.py.
- SDK mode needs a service account key (inline JSON or a path to the key file).
"""
from __future__ import annotations

import logging

import streamlit as st
from streamlit_autorefresh import st_autorefresh

import dashboard_config as cfg
from sonicsight import (
    Configuration,
    ConfigurationError,
    ConnectionManager,
    ConnectionStatus,
    DemoGenerator,
    SessionState,
    TransportKind,
)
from sonicsight.widgets import event_log_frame, gauge_figure, history_figure, status_badge

logging.basicConfig(
    level=getattr(logging, cfg.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("dashboard")


def default_config() -> Configuration:
    return Configuration(
        transport_kind=TransportKind(cfg.DEFAULT_TRANSPORT),
        endpoint_url=cfg.DEFAULT_DB_URL,
        data_path=cfg.DEFAULT_DATA_PATH,
    )


def safe_connect(manager: ConnectionManager, config: Configuration, reconnect: bool = False) -> None:
    try:
        if reconnect:
            manager.reconnect(config)
        else:
            manager.connect(config)
    except ConfigurationError as e:
        st.error(str(e))


# ----------------------------- Streamlit App ----------------------------- #

st.set_page_config(page_title="SonicSight | Ultrasonic Telemetry", layout="wide")

# Session state bootstrap: one manager per browser session
ss = st.session_state
ss.setdefault("config", default_config())
if "manager" not in ss:
    ss.session = SessionState(capacity=cfg.HISTORY_CAPACITY)
    ss.manager = ConnectionManager(ss.session, demo=DemoGenerator(interval=cfg.DEMO_INTERVAL_S))
    logger.info("New dashboard session, connecting with defaults")
    safe_connect(ss.manager, ss.config)

manager: ConnectionManager = ss.manager
session: SessionState = ss.session

st_autorefresh(interval=cfg.REFRESH_MS, key="_autorefresh")

# Sidebar controls
with st.sidebar:
    st.subheader("Connection")
    kinds = list(TransportKind)
    with st.form("settings_form"):
        db_url = st.text_input(
            "Database URL",
            value=ss.config.endpoint_url,
            placeholder="https://your-project.firebaseio.com/",
        )
        data_path = st.text_input(
            "Variable Path (Node)",
            value=ss.config.data_path.lstrip("/"),
            placeholder="distance",
        )
        kind = st.radio(
            "Connection Method",
            kinds,
            index=kinds.index(ss.config.transport_kind),
            format_func=lambda k: k.label,
        )
        credential = st.text_area(
            "Service account (SDK only)",
            value=ss.config.credential or "",
            placeholder='{"type": "service_account", ...} or /path/to/key.json',
            help="REST mode needs database rules that allow public reads.",
        )
        saved = st.form_submit_button("Save & Reconnect", use_container_width=True)
    if saved:
        ss.config = Configuration(
            transport_kind=kind,
            endpoint_url=db_url,
            credential=credential,
            data_path=data_path,
        )
        logger.info("Settings saved: %s%s (%s)", ss.config.endpoint_url, ss.config.data_path, kind.value)
        safe_connect(manager, ss.config, reconnect=True)

    st.divider()
    if manager.is_simulating:
        st.caption("Simulating sensor data.")
        if st.button("Stop Simulation", use_container_width=True, key="stop_demo"):
            safe_connect(manager, ss.config)
    else:
        st.caption("Waiting for realtime data from Firebase.")
        if st.button("Simulate Data", use_container_width=True, key="start_demo"):
            manager.start_demo()
        if st.button("Reconnect", use_container_width=True, key="reconnect"):
            safe_connect(manager, ss.config, reconnect=True)
        if st.button("Disconnect", use_container_width=True, key="disconnect"):
            manager.disconnect()

# ----------------------------- Ingest step per rerun ----------------------------- #

manager.pump(max_events=cfg.MAX_EVENTS_PER_RERUN)

# ----------------------------- Display ----------------------------- #

head_cols = st.columns([3, 1])
with head_cols[0]:
    st.title("SonicSight")
    st.caption("Ultrasonic Telemetry")
with head_cols[1]:
    st.markdown(f"### {status_badge(session.status)}")

if session.status is ConnectionStatus.ERROR and session.last_error:
    st.error(session.last_error)

left, right = st.columns([5, 7])
with left:
    st.subheader("Live Distance")
    st.plotly_chart(
        gauge_figure(session.value, cfg.GAUGE_MAX_CM, cfg.CRITICAL_CM, cfg.WARNING_CM),
        use_container_width=True,
    )

with right:
    history = session.history
    if not history:
        st.info("No data received yet…")
    else:
        st.plotly_chart(history_figure(session.history_frame()), use_container_width=True)
        st.subheader("Recent Events")
        st.dataframe(
            event_log_frame(history, limit=cfg.EVENT_LOG_ROWS),
            hide_index=True,
            use_container_width=True,
        )
