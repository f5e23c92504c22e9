"""Dagster sensors for the sourcing pipeline."""

from talent_sourcing.sensors.rerank_sensor import rerank_sensor
from talent_sourcing.sensors.run_failure_sensor import run_failure_tagger
from talent_sourcing.sensors.sourcing_queue_sensor import sourcing_queue_sensor

__all__ = [
    "rerank_sensor",
    "run_failure_tagger",
    "sourcing_queue_sensor",
]
