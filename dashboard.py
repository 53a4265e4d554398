"""
Streamlit stress monitor dashboard

Features
- Polls the backend ``/data`` endpoint on a fixed cadence (background thread)
- Three synchronized line charts: stress flag, temperature, heart rate
- Emoji status indicator for the latest stress state, no-data and error
- Horizontal pan plus wheel/pinch zoom on the time axis
- Start/Stop polling from the sidebar

Run locally
  pip install -e .
  streamlit run dashboard.py

Notes
- Set ``DATA_SOURCE = "Mock"`` in dashboard_config.py to run without a backend.
- ``STRESS_DASHBOARD_URL`` overrides the endpoint URL.
"""
from __future__ import annotations

import logging
import time

import streamlit as st
from streamlit_autorefresh import st_autorefresh

import dashboard_config as cfg
from poller import PollScheduler, apply_results, build_fetcher, drain
from renderer import CHART_SPECS, Renderer, Surface

logging.basicConfig(
    level=cfg.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
log = logging.getLogger("dashboard")

# ----------------------------- Streamlit App ----------------------------- #

st.set_page_config(page_title="Stress Monitor", layout="wide")


@st.cache_resource
def get_scheduler() -> PollScheduler:
    """One poller per process, shared by every browser session."""
    return PollScheduler(build_fetcher(), cfg.POLL_INTERVAL_S)


# Session state bootstrap: one renderer and one result queue per browser session.
# The scheduler only holds the queue weakly, so a closed session stops receiving.
scheduler = get_scheduler()
ss = st.session_state
ss.setdefault("renderer", Renderer())
if "results" not in ss:
    ss.results = scheduler.subscribe(cfg.MAX_PENDING_RESULTS)
    scheduler.start()

# Auto-rerun while page is open (uses config)
if not cfg.SMOOTH_UPDATES:
    st_autorefresh(interval=cfg.REFRESH_MS, key="_autorefresh")

# Sidebar controls
with st.sidebar:
    st.subheader("Polling")
    btn_cols = st.columns([1, 1])
    with btn_cols[0]:
        if st.button("Start", use_container_width=True, key="start_poll"):
            scheduler.start()
    with btn_cols[1]:
        if st.button("Stop", use_container_width=True, key="stop_poll"):
            scheduler.stop(timeout=cfg.REQUEST_TIMEOUT_S)
    state = "running" if scheduler.running else "stopped"
    st.caption(f"{cfg.DATA_SOURCE} source, every {cfg.POLL_INTERVAL_S:g}s ({state})")

st.title("Stress Monitor")

# Placeholders are rebuilt every run; the renderer repaints into them
surface = Surface(indicator=st.empty())
for spec in CHART_SPECS:
    surface.charts[spec.key] = st.empty()
renderer: Renderer = ss.renderer
renderer.bind(surface)

# ----------------------------- Refresh loop ----------------------------- #

apply_results(renderer, drain(ss.results))

if cfg.SMOOTH_UPDATES and scheduler.running:
    end_time = time.time() + cfg.SMOOTH_BURST_SECONDS
    sleep_s = max(0.05, cfg.REFRESH_MS / 1000.0)
    while time.time() < end_time:
        apply_results(renderer, drain(ss.results))
        time.sleep(sleep_s)
    # continue updating seamlessly
    st.rerun()
