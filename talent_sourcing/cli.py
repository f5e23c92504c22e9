import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def local_dev():
    os.chdir(PROJECT_ROOT)
    os.environ.setdefault("DAGSTER_HOME", str(PROJECT_ROOT))
    os.execvp(
        sys.executable,
        [sys.executable, "-m", "dagster", "dev", "-m", "talent_sourcing.definitions"]
        + sys.argv[1:],
    )


def sourcing_worker():
    """Drain the sourcing queue with a local thread pool (no Dagster daemon needed)."""
    from dotenv import load_dotenv

    from talent_sourcing.cache import TTLStore
    from talent_sourcing.config import (
        get_non_tech_config,
        get_sourcing_config,
        parse_float_safe,
    )
    from talent_sourcing.repositories.postgres import (
        PostgresCandidateRepository,
        PostgresSnapshotStore,
        PostgresSourcingRequestStore,
    )
    from talent_sourcing.sourcing.discovery import MockDiscoveryProvider
    from talent_sourcing.sourcing.queue import PostgresJobQueue, SourcingWorkerPool
    from talent_sourcing.sourcing.worker import build_sourcing_worker

    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = get_sourcing_config()
    queue = PostgresJobQueue()
    candidates = PostgresCandidateRepository()
    cache = TTLStore(default_ttl_seconds=60.0)
    cache.start_sweeper(30.0)

    worker = build_sourcing_worker(
        store=PostgresSourcingRequestStore(),
        candidates=candidates,
        snapshots=PostgresSnapshotStore(),
        queue=queue,
        discovery=MockDiscoveryProvider(
            candidates,
            yield_rate=parse_float_safe(os.getenv("MOCK_DISCOVERY_YIELD_RATE"), 1.0),
        ),
        config=config,
        non_tech_config=get_non_tech_config(),
        cache=cache,
        callback_auth_token=os.getenv("SOURCING_CALLBACK_TOKEN") or None,
    )
    pool = SourcingWorkerPool(queue, worker.handle_job, config.worker_concurrency)

    def _stop(signum, frame):
        print(f"  Received signal {signum}, finishing in-flight jobs...")
        pool.shutdown()
        cache.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    pool.run_forever()


def deploy():
    """Pull latest code, install deps, restart Dagster services."""
    os.chdir(PROJECT_ROOT)

    steps = [
        ("Pulling latest code", ["git", "pull"]),
        ("Installing dependencies", ["poetry", "install", "--no-interaction"]),
        ("Running migrations", ["poetry", "run", "alembic", "upgrade", "head"]),
        ("Restarting dagster-code", ["systemctl", "restart", "dagster-code"]),
        ("Restarting dagster-daemon", ["systemctl", "restart", "dagster-daemon"]),
        ("Restarting sourcing-worker", ["systemctl", "restart", "sourcing-worker"]),
    ]

    for label, cmd in steps:
        print(f"  {label}...")
        subprocess.run(cmd, check=True)

    print()
    print("Deploy complete. Checking service status...")
    subprocess.run(
        ["systemctl", "status", "dagster-code", "dagster-daemon", "sourcing-worker", "--no-pager"]
    )
