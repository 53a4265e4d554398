# Central configuration for the stress monitor dashboard
# Adjust these settings as needed; there are no UI controls for them.
import os

# Data source: "HTTP" or "Mock"
DATA_SOURCE = "HTTP"

# Endpoint returning the current sample window as a JSON array
DATA_URL = os.environ.get("STRESS_DASHBOARD_URL", "http://localhost:5000/data")

# Poll cadence in seconds (one tick immediately, then one per interval)
POLL_INTERVAL_S = 5.0

# Per-request timeout in seconds
REQUEST_TIMEOUT_S = 4.0

# Poll results waiting to be drawn; older ones are dropped first
MAX_PENDING_RESULTS = 100

# Maximum number of results applied per drain
DRAIN_LIMIT = 100

# Auto-refresh interval in milliseconds (used when smooth updates are disabled)
REFRESH_MS = 2000

# Smooth update settings to minimize redraw flicker
# When True, charts update in-place in a short local loop without page reruns
SMOOTH_UPDATES = True
# How long each smooth update burst should run (seconds)
SMOOTH_BURST_SECONDS = 8

# Time axis label format (local wall-clock time)
TIME_FORMAT = "%H:%M:%S"

# Chart look
CHART_HEIGHT = 300
LINE_SMOOTHING = 0.1

# Mock feed: samples kept in the rolling window and spacing between them
MOCK_WINDOW = 60
MOCK_STEP_S = 5.0

LOG_LEVEL = os.environ.get("STRESS_DASHBOARD_LOG_LEVEL", "INFO")
