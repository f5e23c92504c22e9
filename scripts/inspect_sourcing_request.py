#!/usr/bin/env python3
"""Inspect a sourcing request: status, diagnostics, callback state and ranked results.

Usage:
    python scripts/inspect_sourcing_request.py <tenant_id> <external_job_id>
    python scripts/inspect_sourcing_request.py <tenant_id> <external_job_id> --request-id <uuid>
    python scripts/inspect_sourcing_request.py <tenant_id> <external_job_id> --json

Without --request-id the most recent request for the job is shown.
"""

import argparse
import json
from datetime import datetime

from dotenv import load_dotenv

from talent_sourcing.api import get_sourcing_results
from talent_sourcing.repositories.postgres import PostgresSourcingRequestStore

load_dotenv()


def format_value(value, max_length: int | None = None) -> str:
    if value is None:
        return "—"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, float):
        return f"{value:.3f}"
    val_str = str(value)
    if max_length and len(val_str) > max_length:
        return val_str[:max_length] + "..."
    return val_str


def print_section(title: str):
    print()
    print("=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_field(name: str, value, indent: int = 0, max_length: int | None = None):
    prefix = "  " * indent
    print(f"{prefix}{name}: {format_value(value, max_length=max_length)}")


def inspect_request(tenant_id: str, external_job_id: str, request_id: str | None, as_json: bool):
    store = PostgresSourcingRequestStore()
    response = get_sourcing_results(store, tenant_id, external_job_id, request_id)

    if as_json:
        print(json.dumps(response.body, indent=2, default=str))
        return

    if response.status_code != 200:
        print(f"  ❌ {response.body.get('error')}")
        return

    body = response.body
    record = store.get_request(body["requestId"])

    print_section("SOURCING REQUEST")
    print_field("Request ID", record.id)
    print_field("Tenant", record.tenant_id)
    print_field("External Job ID", record.external_job_id)
    print_field("Context Hash", record.job_context_hash)
    print_field("Status", record.status)
    print_field("Requested At", record.requested_at)
    print_field("Completed At", record.completed_at)
    print_field("Last Reranked At", record.last_reranked_at)
    print_field("Callback URL", record.callback_url)
    print_field("Callback Attempts", record.callback_attempts)
    print_field("Last Callback Error", record.last_callback_error, max_length=200)

    print_section("TRACK DECISION")
    decision = body.get("trackDecision")
    if decision:
        for key, value in decision.items():
            print_field(key, value, indent=1)
    else:
        print("  (not resolved yet)")

    print_section("DIAGNOSTICS")
    print_field("Result Count", body.get("resultCount"))
    print_field("Queries Executed", record.queries_executed)
    print_field("Quality Gate", body.get("qualityGate"))
    print_field("Snapshot Freshness", body.get("snapshotFreshness"))
    for group, count in (body.get("groupCounts") or {}).items():
        print_field(group, count, indent=1)

    print_section(f"CANDIDATES ({len(body.get('candidates', []))})")
    for entry in body.get("candidates", []):
        print(
            f"  #{entry['rank']:>3}  {entry['group']:<16} fit={format_value(entry['fitScore'])}"
            f"  {entry['sourceType']:<10} {entry['enrichmentStatus']:<12} {entry['candidateId']}"
        )


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("tenant_id")
    parser.add_argument("external_job_id")
    parser.add_argument("--request-id", default=None)
    parser.add_argument("--json", action="store_true", help="Print the results payload as JSON")
    args = parser.parse_args()
    inspect_request(args.tenant_id, args.external_job_id, args.request_id, args.json)


if __name__ == "__main__":
    main()
