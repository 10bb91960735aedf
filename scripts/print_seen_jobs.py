#!/usr/bin/env python3

import json
import os
import sys
from datetime import datetime


def get_latest_entries(path: str, limit: int = 15) -> list[dict]:
    """
    Read the seen-job file and return the `limit` most recent entries by dateFound.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"Error reading {path}: {e}", file=sys.stderr)
        return []
    if not isinstance(data, dict):
        print(f"Unexpected content in {path}: expected a JSON object", file=sys.stderr)
        return []

    entries = [v for v in data.values() if isinstance(v, dict)]
    entries.sort(key=lambda e: str(e.get("dateFound") or ""), reverse=True)
    return entries[:limit]


def format_timestamp(iso_str: str) -> str:
    """Convert ISO timestamp to readable local format."""
    try:
        dt = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
        return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
    except ValueError:
        return iso_str


def main():
    path = os.getenv("JOBS_DATA_FILE", "jobs.json")
    if not os.path.exists(path):
        print(f"File not found: {path}")
        sys.exit(1)

    # Parse optional limit
    limit = 15
    if len(sys.argv) > 1:
        try:
            limit = int(sys.argv[1])
            if limit <= 0:
                raise ValueError
        except ValueError:
            print(f"Invalid limit: {sys.argv[1]}. Using default (15).", file=sys.stderr)
            limit = 15

    entries = get_latest_entries(path, limit)
    print(f"{path}: showing last {len(entries)} entries.\n")
    for i, e in enumerate(entries, 1):
        print(f"{i:2d}. [{format_timestamp(str(e.get('dateFound') or ''))}]")
        print(f"     Title:   {e.get('title') or '(no title)'}")
        if e.get("company"):
            print(f"     Company: {e['company']}")
        print(f"     Id:      {e.get('id')}")
        print()


if __name__ == "__main__":
    main()
