"""
backend.soil — Adaptive Kalman–CUSUM Soil Monitoring Engine
============================================================

This package implements the anomaly detection engine behind the
precision-agriculture soil health dashboard.

Architecture:
    Soil sensor (simulated) → MonitorScheduler (every 2 s)
                                   ↓
                             AnomalyEngine.tick():
                               1. Adaptive Kalman filter (moisture)
                               2. Two-sided CUSUM on the innovation
                               3. Agronomic range classification
                               4. Bounded history / alerts / stats
                                   ↓
                   Snapshot → Flask service → Dashboard
                   Alerts   → MQTT soil/alerts/moisture (optional)

Modules:
    config          — Filter, detector, range and buffer constants
    errors          — ConfigError / TickError
    models          — State and output records
    kalman          — Two-regime adaptive scalar Kalman filter
    cusum           — Two-sided CUSUM change detector
    classification  — Optimal / warning / critical range lookup
    buffers         — Bounded reading history and alert log
    simulator       — Simulated soil sensor (measurement source)
    engine          — Per-tick orchestration and engine state machine
    scheduler       — Background tick scheduler
    pipeline        — Engine / scheduler / MQTT singletons
    service         — Flask HTTP service
    replay          — Offline CSV replay
    utils           — Logging setup and measurement validation
"""

__version__ = "1.0.0"
__author__ = "Soil Monitoring IoT Team"
