"""
service.py — Soil Monitor HTTP Service (Flask)
===============================================

Lightweight HTTP service exposing the anomaly engine to the dashboard.

Endpoints:
    GET  /health        — Service health check
    GET  /snapshot      — Current values, history, alerts, metrics, stats
    POST /start         — Start monitoring (scheduler begins ticking)
    POST /stop          — Stop monitoring (state is kept)
    POST /reset         — Reset filter, detector, buffers and counters
    POST /alerts/clear  — Clear the alert list
    POST /tick          — Run one tick now; optional JSON {"moisture": x}

Run:
    python -m backend.soil.service
    # Starts on port 5060 by default (configurable via SOIL_SERVICE_PORT)
"""

import logging

from flask import Flask, jsonify, request

from backend.soil import config
from backend.soil.errors import ConfigError, TickError
from backend.soil.pipeline import get_engine, get_scheduler, process_tick
from backend.soil.utils import setup_logging

setup_logging()

logger = logging.getLogger("soil.service")
app = Flask(__name__)


@app.errorhandler(TickError)
def handle_tick_error(e):
    logger.error(f"Tick error: {e}")
    return jsonify({"status": "error", "message": str(e)}), 500


@app.errorhandler(ConfigError)
def handle_config_error(e):
    return jsonify({"status": "error", "message": str(e)}), 400


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "OK",
        "service": "Soil Monitor Anomaly Engine",
    })


@app.route("/snapshot", methods=["GET"])
def snapshot():
    return jsonify(get_engine().snapshot())


@app.route("/start", methods=["POST"])
def start():
    get_scheduler().start()
    return jsonify({"status": "ok", "state": get_engine().state})


@app.route("/stop", methods=["POST"])
def stop():
    get_scheduler().stop()
    return jsonify({"status": "ok", "state": get_engine().state})


@app.route("/reset", methods=["POST"])
def reset():
    get_scheduler().reset()
    return jsonify({"status": "ok", "state": get_engine().state})


@app.route("/alerts/clear", methods=["POST"])
def clear_alerts():
    get_engine().clear_alerts()
    return jsonify({"status": "ok"})


@app.route("/tick", methods=["POST"])
def tick():
    """
    Run a single tick immediately.

    Expects an optional JSON body:
        { moisture, ph, ec, nitrogen, phosphorus, potassium }
    When moisture is absent the simulated sensor is sampled.

    Returns:
        The tick result.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"status": "error", "message": "JSON body must be an object"}), 400
    measurement = data.get("moisture")
    auxiliary = {
        name: data[name] for name in config.AUXILIARY_PARAMETERS if name in data
    } or None

    result = process_tick(measurement, auxiliary)
    return jsonify({
        "status": "processed",
        "result": result.to_dict(),
    })


if __name__ == "__main__":
    logger.info(f"Starting soil monitor service on port {config.SERVICE_PORT}")
    app.run(host="0.0.0.0", port=config.SERVICE_PORT, debug=False)
