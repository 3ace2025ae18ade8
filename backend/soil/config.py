"""
config.py — Soil Monitor Configuration Constants
=================================================

Centralizes the filter, detector, range and buffer constants used by the
anomaly detection engine. Tuning these values changes how quickly the
Kalman estimate tracks the sensor and how sensitive the CUSUM detector is.

Sensor channels tracked by the dashboard:
- Soil moisture (%) — filtered and monitored for anomalies
- pH, EC (dS/m) — auxiliary, classified only
- Nitrogen / Phosphorus / Potassium (ppm) — auxiliary, classified only
- A new reading is sampled every ~2 seconds
"""

import os

# ═══════════════════════════════════════════════════════════════════
# KALMAN FILTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════

# Initial state of the scalar filter. 45% is the centre of the optimal
# moisture band, so a fresh engine starts "in range".
INITIAL_ESTIMATE = 45.0
INITIAL_ERROR_COVARIANCE = 1.0

# Nominal process noise (Q). Small: true soil moisture drifts slowly.
PROCESS_NOISE_BASE = 0.01

# Q is multiplied by this factor on the tick after a surprising
# innovation, so the filter follows a genuine jump faster.
# Only two regimes exist: BASE and BASE * INFLATION.
PROCESS_NOISE_INFLATION = 2.5

# Measurement noise (R). Fixed; never adapted.
MEASUREMENT_NOISE = 0.5

# Chi-square critical value, 1 degree of freedom, 95% confidence.
# A normalized innovation squared above this is a "surprise".
CHI_SQUARE_THRESHOLD = 3.84

# ═══════════════════════════════════════════════════════════════════
# CUSUM DETECTOR CONFIGURATION
# ═══════════════════════════════════════════════════════════════════

# Slack subtracted from each increment so that noise-scale innovations
# do not accumulate.
CUSUM_SLACK = 0.5

# Decision threshold for either accumulator.
CUSUM_THRESHOLD = 5.0

# ═══════════════════════════════════════════════════════════════════
# AGRONOMIC REFERENCE RANGES
# ═══════════════════════════════════════════════════════════════════

# parameter -> {"optimal": (low, high), "warning": (low, high)}
# The warning band must contain the optimal band.
PARAMETER_RANGES = {
    "moisture": {"optimal": (40.0, 50.0), "warning": (35.0, 55.0)},
    "ph": {"optimal": (6.5, 7.0), "warning": (6.0, 7.5)},
    "ec": {"optimal": (1.0, 1.5), "warning": (0.8, 1.8)},
    "nitrogen": {"optimal": (30.0, 40.0), "warning": (25.0, 45.0)},
    "phosphorus": {"optimal": (15.0, 25.0), "warning": (10.0, 30.0)},
    "potassium": {"optimal": (20.0, 30.0), "warning": (15.0, 35.0)},
}

# Order in which parameters appear in snapshots
PARAMETER_NAMES = list(PARAMETER_RANGES)

# Channels that are sampled but not filtered
AUXILIARY_PARAMETERS = ["ph", "ec", "nitrogen", "phosphorus", "potassium"]

# ═══════════════════════════════════════════════════════════════════
# SIMULATED SENSOR CONFIGURATION
# ═══════════════════════════════════════════════════════════════════

MOISTURE_BASELINE = 45.0
MOISTURE_VARIANCE = 5.0

# Offset applied to an injected anomaly (sign chosen at random)
ANOMALY_OFFSET = 20.0

# Chance that a given tick carries an injected anomaly
ANOMALY_PROBABILITY = 0.04

# parameter -> (baseline, variance, decimals)
AUXILIARY_BASELINES = {
    "ph": (6.8, 0.4, 1),
    "ec": (1.2, 0.2, 1),
    "nitrogen": (35.0, 8.0, 0),
    "phosphorus": (18.0, 6.0, 0),
    "potassium": (25.0, 6.0, 0),
}

# ═══════════════════════════════════════════════════════════════════
# BUFFERS AND STATISTICS
# ═══════════════════════════════════════════════════════════════════

# Most recent readings kept for the trend chart (oldest evicted first)
HISTORY_CAPACITY = 25

# Most recent alerts kept for the alert panel (newest first)
ALERT_CAPACITY = 8

# Per-tick nudge of the displayed data accuracy, saturating at 100
ACCURACY_STEP = 0.1
ACCURACY_MAX = 100.0

# ═══════════════════════════════════════════════════════════════════
# SCHEDULER
# ═══════════════════════════════════════════════════════════════════

TICK_INTERVAL_SECONDS = float(os.environ.get("SOIL_TICK_INTERVAL", "2.0"))

# ═══════════════════════════════════════════════════════════════════
# HTTP SERVICE
# ═══════════════════════════════════════════════════════════════════

SERVICE_PORT = int(os.environ.get("SOIL_SERVICE_PORT", "5060"))

# ═══════════════════════════════════════════════════════════════════
# MQTT ALERT FAN-OUT
# ═══════════════════════════════════════════════════════════════════

# Alerts are published here when MQTT is enabled
MQTT_ALERT_TOPIC = "soil/alerts/moisture"

MQTT_ENABLED = os.environ.get("SOIL_MQTT_ENABLED", "0").lower() in ("1", "true", "yes")
MQTT_BROKER_HOST = os.environ.get("MQTT_BROKER_HOST", "localhost")
MQTT_BROKER_PORT = int(os.environ.get("MQTT_BROKER_PORT", "1883"))

# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

# Log level for the soil monitor (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = os.environ.get("SOIL_LOG_LEVEL", "INFO")
