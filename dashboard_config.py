# Central configuration for the SonicSight dashboard
# Connection settings below are only the defaults; the sidebar form replaces them per session.

# Database the page connects to on first load
DEFAULT_DB_URL = "https://rc-robot-car-default-rtdb.firebaseio.com/"

# Node holding the distance reading
DEFAULT_DATA_PATH = "distance"

# Connection method on first load: "rest" (public event stream) or "sdk" (service account)
DEFAULT_TRANSPORT = "rest"

# Page rerun interval in milliseconds; each rerun drains pending readings
REFRESH_MS = 500

# Upper bound on readings applied per rerun
MAX_EVENTS_PER_RERUN = 100

# Demo generator tick in seconds
DEMO_INTERVAL_S = 0.2

# Number of readings kept for the chart and event log
HISTORY_CAPACITY = 60

# Gauge scale and alert bands (centimetres)
GAUGE_MAX_CM = 200
CRITICAL_CM = 15
WARNING_CM = 50

# Rows shown in the recent events list
EVENT_LOG_ROWS = 60

LOG_LEVEL = "INFO"
