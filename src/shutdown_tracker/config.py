# shutdown_tracker/config.py

import os

# =============================================================================
# STATUS THRESHOLDS
# =============================================================================

# SPI strictly below CRITICAL_SPI -> "Critical"; below AT_RISK_SPI -> "At Risk"
CRITICAL_SPI = 0.90
AT_RISK_SPI = 0.98

STATUS_ON_TRACK = "On Track"
STATUS_AT_RISK = "At Risk"
STATUS_CRITICAL = "Critical"

# =============================================================================
# ENGINE CONSTANTS
# =============================================================================

CURVE_SAMPLES = 20

# Weight used for activities with a missing or non-positive duration
DEFAULT_DURATION_HOURS = 1.0

# Finish = start + this many hours when an import only carries a start date
IMPORT_DURATION_HOURS = 8.0

# =============================================================================
# IMPORT DEFAULTS
# =============================================================================

UNTITLED_ACTIVITY = "Untitled Activity"
DEFAULT_AREA = "General"
DEFAULT_OWNER = "Unassigned"
DEFAULT_DISCIPLINE = "Mechanical"

DISCIPLINES = [
    "Mechanical",
    "Electrical",
    "Civil",
    "Instrumentation",
    "Scaffolding",
    "Painting",
]

# =============================================================================
# DASHBOARD
# =============================================================================

CRITICAL_DELAY_LIMIT = 3
CURVE_LABEL_FORMAT = "%d/%m %H:%M"

LOG_LEVEL = os.environ.get("SHUTDOWN_TRACKER_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
