"""
pipeline.py — Engine / Scheduler / MQTT Connector
==================================================

Process-wide wiring used by the HTTP service:

    MonitorScheduler (every 2 s) -> AnomalyEngine.tick()
    -> on alert: publish MQTT soil/alerts/moisture { severity, message, ... }

MQTT fan-out is opt-in (SOIL_MQTT_ENABLED). A failed publish is logged
and never fails the tick that raised the alert.
"""

import json
import logging

import paho.mqtt.client as mqtt

from . import config
from .engine import AnomalyEngine
from .scheduler import MonitorScheduler

logger = logging.getLogger("soil.pipeline")

# Singletons (initialized on first call)
_engine = None
_scheduler = None
_mqtt_client = None


def get_engine() -> AnomalyEngine:
    """Get or create the singleton AnomalyEngine."""
    global _engine
    if _engine is None:
        _engine = AnomalyEngine()
    return _engine


def get_scheduler() -> MonitorScheduler:
    """Get or create the scheduler driving the singleton engine."""
    global _scheduler
    if _scheduler is None:
        _scheduler = MonitorScheduler(get_engine(), on_result=handle_result)
    return _scheduler


def shutdown() -> None:
    """Stop the scheduler, disconnect MQTT and drop the singletons."""
    global _engine, _scheduler, _mqtt_client
    if _scheduler is not None:
        _scheduler.stop()
    if _mqtt_client is not None:
        _mqtt_client.loop_stop()
        _mqtt_client.disconnect()
    _engine = None
    _scheduler = None
    _mqtt_client = None


def _get_mqtt_client():
    """
    Get or create the MQTT client used for alert fan-out.
    Returns None when MQTT is disabled or the broker is unreachable.
    """
    global _mqtt_client
    if _mqtt_client is not None:
        return _mqtt_client
    if not config.MQTT_ENABLED:
        return None

    try:
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id="soil-monitor-engine")
        client.connect(config.MQTT_BROKER_HOST, config.MQTT_BROKER_PORT, 60)
        client.loop_start()
    except Exception as e:
        logger.error(f"MQTT connection failed: {e}")
        return None
    _mqtt_client = client
    logger.info(
        f"MQTT client connected to {config.MQTT_BROKER_HOST}:"
        f"{config.MQTT_BROKER_PORT}"
    )
    return client


def publish_alert(alert) -> bool:
    """
    Publish an alert to config.MQTT_ALERT_TOPIC.

    Args:
        alert: Alert record raised by the engine.

    Returns:
        True if the message was handed to the broker client.
    """
    client = _get_mqtt_client()
    if client is None:
        logger.debug("MQTT disabled, alert not published")
        return False

    payload = dict(alert.to_dict(), source="soil-monitor")
    try:
        info = client.publish(config.MQTT_ALERT_TOPIC, json.dumps(payload), qos=1)
    except Exception as e:
        logger.error(f"Failed to publish alert {alert.id}: {e}")
        return False
    if info.rc != mqtt.MQTT_ERR_SUCCESS:
        logger.error(f"Failed to publish alert {alert.id}: rc={info.rc}")
        return False

    logger.warning(
        f"ALERT published: topic={config.MQTT_ALERT_TOPIC} "
        f"payload={json.dumps(payload)}"
    )
    return True


def handle_result(result) -> None:
    """Scheduler callback: fan out the alert raised by a tick, if any."""
    if result.alert is not None:
        publish_alert(result.alert)


def process_tick(measurement: float = None, auxiliary: dict = None):
    """
    Run one tick on the singleton engine and fan out its alert.

    Args:
        measurement: Optional raw moisture; sampled when omitted.
        auxiliary: Optional pH/EC/NPK values.

    Returns:
        The TickResult.

    Raises:
        TickError: If the tick failed (engine state unchanged).
    """
    result = get_engine().tick(measurement, auxiliary)
    handle_result(result)
    return result
