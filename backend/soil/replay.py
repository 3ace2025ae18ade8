"""
replay.py — Offline Replay of Recorded Measurements
====================================================

Runs a fresh engine over a recorded moisture series (CSV) and writes the
per-tick filter and detector outputs, so thresholds can be checked
against field data without running the live scheduler.

This script can be run standalone:
    python -m backend.soil.replay readings.csv -o replayed.csv

Or called programmatically:
    from backend.soil.replay import replay_frame
    out = replay_frame(df, column="moisture")

Rows whose measurement is missing or negative are dropped before replay.
"""

import argparse
import logging
import sys

import pandas as pd

from . import config
from .engine import AnomalyEngine
from .errors import TickError
from .utils import setup_logging

logger = logging.getLogger("soil.replay")

OUTPUT_COLUMNS = [
    "raw",
    "filtered",
    "innovation",
    "process_noise",
    "error_covariance",
    "cusum_positive",
    "cusum_negative",
    "is_anomaly",
    "direction",
    "status",
]


def replay_frame(df: pd.DataFrame, column: str = "moisture",
                 engine: AnomalyEngine = None) -> pd.DataFrame:
    """
    Replay a measurement column through the Kalman–CUSUM pipeline.

    Args:
        df: Recorded readings. Any auxiliary columns (ph, ec, ...) are
            passed to the engine alongside the measurement.
        column: Name of the moisture column.
        engine: Engine to use. A fresh default engine when omitted.

    Returns:
        DataFrame with one row per replayed measurement and the columns
        in OUTPUT_COLUMNS (plus "timestamp" when the input has one).

    Raises:
        KeyError: If the measurement column is missing.
        TickError: If a row carries an unusable auxiliary value.
    """
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not found in input")

    engine = engine or AnomalyEngine()

    clean = df.copy()
    clean[column] = pd.to_numeric(clean[column], errors="coerce")
    clean = clean.dropna(subset=[column])
    clean = clean[clean[column] >= 0].reset_index(drop=True)
    dropped = len(df) - len(clean)
    if dropped > 0:
        logger.info(f"Dropped {dropped} rows with missing or negative '{column}'")

    aux_columns = [c for c in config.AUXILIARY_PARAMETERS if c in clean.columns]

    rows = []
    for record in clean.to_dict("records"):
        auxiliary = {c: record[c] for c in aux_columns if pd.notna(record[c])}
        result = engine.tick(record[column], auxiliary)
        row = {
            "raw": result.reading.raw,
            "filtered": result.kalman.estimate,
            "innovation": result.kalman.innovation,
            "process_noise": result.kalman.process_noise,
            "error_covariance": result.kalman.error_covariance,
            "cusum_positive": result.cusum.state.positive,
            "cusum_negative": result.cusum.state.negative,
            "is_anomaly": result.is_anomaly,
            "direction": result.cusum.direction,
            "status": result.statuses["moisture"],
        }
        if "timestamp" in record:
            row["timestamp"] = record["timestamp"]
        rows.append(row)

    columns = (["timestamp"] if "timestamp" in clean.columns else []) + OUTPUT_COLUMNS
    out = pd.DataFrame(rows, columns=columns)
    logger.info(f"Replayed {len(out)} readings, "
                f"{int(out['is_anomaly'].sum())} flagged as anomalous")
    return out


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay recorded soil moisture through the anomaly engine"
    )
    parser.add_argument("input", help="CSV file with recorded readings")
    parser.add_argument("-o", "--output", help="Output CSV (default: stdout)")
    parser.add_argument("--column", default="moisture",
                        help="Measurement column (default: moisture)")
    args = parser.parse_args(argv)

    setup_logging()
    df = pd.read_csv(args.input)
    try:
        out = replay_frame(df, column=args.column)
    except (KeyError, TickError) as e:
        logger.error(f"Replay failed: {e}")
        return 1

    if args.output:
        out.to_csv(args.output, index=False)
        logger.info(f"Replay written to {args.output}")
    else:
        out.to_csv(sys.stdout, index=False)
    return 0


# ── CLI entry point ──────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(main())
