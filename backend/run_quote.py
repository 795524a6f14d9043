#!/usr/bin/env python3
"""CLI tool to load reference data, quote dues and print collection status.

Usage:
    python run_quote.py import <reference.json>                  # Load apartments/blocks/flats/collections
    python run_quote.py quote <flat_id> <collection_id>          # Amount due today
    python run_quote.py quote <flat_id> <collection_id> --date 2024-04-25
    python run_quote.py status <collection_id>                   # Per-flat status table
    python run_quote.py status <collection_id> --json            # Output raw JSON

Options valid everywhere:
    --store PATH    JSON store to use (default: FLATFUND_STORE_PATH)
    --trace         Enable FLATFUND_TRACE debug output

Examples:
    python run_quote.py import data/sample_reference.json
    python run_quote.py quote flat-a101 col-q1-2024 --date 25-04-2024
    python run_quote.py status col-q1-2024 --trace
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

# Ensure the backend package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent))


def _configure(trace: bool):
    if trace:
        os.environ["FLATFUND_TRACE"] = "1"
        logging.basicConfig(level=logging.DEBUG, format="%(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)


def _open_store(store_path: str | None):
    from flatfund.config import STORE_PATH
    from flatfund.engine.store import JsonFileStore

    return JsonFileStore(Path(store_path) if store_path else STORE_PATH)


def import_reference(store, reference_file: str):
    """Validate and load a reference-data JSON file into the store."""
    from flatfund.engine.errors import ConfigurationError

    path = Path(reference_file)
    if not path.exists():
        print(f"Reference file '{reference_file}' not found.")
        sys.exit(1)

    payload = json.loads(path.read_text(encoding="utf-8"))
    try:
        counts = store.import_reference_data(payload)
    except ConfigurationError as e:
        print(f"Rejected: [{e.field}] {e.message}")
        sys.exit(1)

    print(f"\nImported into {store.path}:")
    for section, n in counts.items():
        print(f"  {section:<12} {n:>4}")
    print()


def quote(store, flat_id: str, collection_id: str, payment_date: str | None, output_json: bool = False):
    """Print the amount owed for one flat and collection."""
    from flatfund.engine.errors import ConfigurationError, ReferenceNotFound
    from flatfund.engine.orchestrator import SubmissionOrchestrator
    from flatfund.engine.periods import fiscal_quarter

    orchestrator = SubmissionOrchestrator(store)
    try:
        due = orchestrator.quote(flat_id, collection_id, payment_date=payment_date)
    except ReferenceNotFound as e:
        print(e.message)
        sys.exit(1)
    except ConfigurationError as e:
        print(f"Cannot compute amount, missing configuration [{e.field}]: {e.message}")
        sys.exit(2)
    except ValueError as e:
        print(f"Invalid date: {e}")
        sys.exit(1)

    if output_json:
        print(json.dumps(due.to_dict(), indent=2, default=str))
        return

    collection = store.get_collection(collection_id)
    print(f"\n{'═' * 60}")
    print(f"  Quote — flat {flat_id}, {collection.name}")
    print(f"{'═' * 60}")
    print(f"  Due date       {due.due_date or '—'}")
    print(f"  Payment date   {due.payment_date}  ({fiscal_quarter(due.payment_date)})")
    print(f"  Base amount    {due.base_amount:>12}")
    if due.days_overdue:
        print(f"  Late fine      {due.fine:>12}  ({due.days_overdue} day(s) × {collection.daily_fine})")
    print(f"  {'─' * 40}")
    print(f"  Total          {due.total:>12}")
    print()


def status(store, collection_id: str, output_json: bool = False):
    """Print the per-flat status table for one collection."""
    from flatfund.engine.errors import ReferenceNotFound
    from flatfund.engine.status import summarize_collection

    try:
        summary = summarize_collection(store, collection_id)
    except ReferenceNotFound as e:
        print(e.message)
        sys.exit(1)

    if output_json:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
        return

    icons = {"paid": "✓", "overpaid": "+", "partial": "½", "under_review": "…", "pending": "✗"}
    print(f"\n{'Block':<10} {'Flat':<8} {'Status':<13} {'Expected':>10} {'Approved':>10} {'Pending':>10}")
    print("─" * 66)
    for f in summary.flats:
        print(
            f"{f.block_name:<10} {f.flat_number:<8} {icons.get(f.status, '?')} {f.status:<11} "
            f"{f.expected_amount:>10} {f.approved_amount:>10} {f.pending_amount:>10}"
        )
    print("─" * 66)
    counts = ", ".join(f"{n} {s}" for s, n in summary.counts.items() if n)
    print(f"  {summary.collection_name}: {counts or 'no flats'}")
    print(f"  Collected {summary.total_collected} of {summary.total_expected}\n")


def main():
    parser = argparse.ArgumentParser(
        description="FlatFund CLI — quote dues and inspect collections",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--store", help="Path to the JSON store")
    parser.add_argument("--trace", action="store_true", help="Enable FLATFUND_TRACE debug output")
    sub = parser.add_subparsers(dest="command")

    p_import = sub.add_parser("import", help="Load reference data from a JSON file")
    p_import.add_argument("reference_file")

    p_quote = sub.add_parser("quote", help="Amount due for a flat and collection")
    p_quote.add_argument("flat_id")
    p_quote.add_argument("collection_id")
    p_quote.add_argument("--date", help="Payment date (default: today)")
    p_quote.add_argument("--json", action="store_true", help="Output raw JSON instead of pretty print")

    p_status = sub.add_parser("status", help="Per-flat payment status for a collection")
    p_status.add_argument("collection_id")
    p_status.add_argument("--json", action="store_true", help="Output raw JSON instead of pretty print")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    _configure(args.trace)
    store = _open_store(args.store)

    if args.command == "import":
        import_reference(store, args.reference_file)
    elif args.command == "quote":
        quote(store, args.flat_id, args.collection_id, args.date, output_json=args.json)
    elif args.command == "status":
        status(store, args.collection_id, output_json=args.json)


if __name__ == "__main__":
    main()
