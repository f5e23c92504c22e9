"""Dagster definitions for the Talent Sourcing system.

This module is the entry point for Dagster. It wires together:
- Resources (sourcing stores + queue, mock discovery)
- Sensors (sourcing queue polling, post-enrichment rerank, run failure tagging)
- Jobs (per-request sourcing run, callback redelivery, rerank)
- Schedules (hourly callback redelivery)
"""

import os

from dagster import Definitions
from dotenv import load_dotenv

from talent_sourcing.config import parse_float_safe
from talent_sourcing.jobs import (
    redeliver_callbacks_job,
    redeliver_callbacks_schedule,
    rerank_request_job,
    sourcing_request_job,
)
from talent_sourcing.resources import MockDiscoveryResource, SourcingResource
from talent_sourcing.sensors.rerank_sensor import rerank_sensor
from talent_sourcing.sensors.run_failure_sensor import run_failure_tagger
from talent_sourcing.sensors.sourcing_queue_sensor import sourcing_queue_sensor

# Load environment variables from .env file (must be before resource initialization)
load_dotenv()


def get_environment() -> str:
    """Get current environment from env var."""
    return os.getenv("ENVIRONMENT", "development")


resources = {
    # Stores, queue and worker wiring; all share the process-wide engine from talent_sourcing.db
    "sourcing": SourcingResource(
        callback_auth_token=os.getenv("SOURCING_CALLBACK_TOKEN", ""),
    ),
    "discovery": MockDiscoveryResource(
        yield_rate=parse_float_safe(os.getenv("MOCK_DISCOVERY_YIELD_RATE"), 1.0),
    ),
}

all_jobs = [
    sourcing_request_job,
    redeliver_callbacks_job,
    rerank_request_job,
]

all_schedules = [
    redeliver_callbacks_schedule,
]

all_sensors = [
    sourcing_queue_sensor,
    rerank_sensor,
    run_failure_tagger,
]

defs = Definitions(
    resources=resources,
    jobs=all_jobs,
    schedules=all_schedules,
    sensors=all_sensors,
)


def main():
    """Entry point for CLI usage."""
    print("Talent Sourcing Dagster project loaded successfully!")
    print(f"Environment: {get_environment()}")
    print(f"Jobs: {len(all_jobs)}")
    print(f"Sensors: {len(all_sensors)}")
    print("\nAvailable jobs:")
    for job in all_jobs:
        print(f"  - {job.name}")
    print("\nRun 'dagster dev' to start the development server.")


if __name__ == "__main__":
    main()
