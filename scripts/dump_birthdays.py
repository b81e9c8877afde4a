#!/usr/bin/env python3
"""Dump what the birthday and event widgets would display.

Runs one live refresh against the configured data sources and prints
the upcoming birthdays and current events, plus any custom references
that were skipped during the merge.

Usage
-----
Optionally point the client at other sources, then run::

    export INFOBOARD_EVENT_REGION="Jp"
    python scripts/dump_birthdays.py

Options::

    --days N             Upcoming window in days (default: config value)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --skip-events        Skip the current-events sources
    --no-cache           Bypass the response cache
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from pyinfoboard import InfoboardClient, InfoboardConfig, InfoboardError


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _birthday_lines(upcoming: list[tuple[date, tuple[Any, ...]]]) -> list[str]:
    if not upcoming:
        return ["  (no birthdays in window)"]
    lines: list[str] = []
    for day, entries in upcoming:
        for entry in entries:
            lines.append(f"  {day:%m/%d}  {entry.name}")
            lines.extend(f"        {image}" for image in entry.images)
    return lines


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump birthday and event data for debugging / development.",
    )
    parser.add_argument("--days", type=int, help="Upcoming window in days")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--skip-events", action="store_true", help="Skip current events")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the response cache")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.days is not None:
        overrides["days_to_show"] = args.days
    if args.no_cache:
        overrides["cache_enabled"] = False
    config = InfoboardConfig.from_env(**overrides)

    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "region": config.event_region,
        "birthdays": [],
        "skipped_references": [],
        "events": [],
    }
    out: list[str] = [_section("pyinfoboard dump_birthdays")]
    out.append(f"  time      : {result['timestamp']}")
    out.append(f"  region    : {config.event_region}")

    async with InfoboardClient(config) as client:
        try:
            await client.refresh_birthdays()
        except InfoboardError as exc:
            print(f"Birthday refresh failed: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc

        upcoming = client.upcoming_birthdays()
        result["birthdays"] = [
            {"date": day.isoformat(), "entries": [entry.model_dump() for entry in entries]}
            for day, entries in upcoming
        ]
        result["skipped_references"] = [err.record_id for err in client.skipped_references]

        out.append(_section(f"BIRTHDAYS (next {config.days_to_show} days)"))
        out.extend(_birthday_lines(upcoming))
        if client.skipped_references:
            out.append("  skipped   : " + ", ".join(result["skipped_references"]))

        if not args.skip_events:
            try:
                events = await client.get_current_events()
            except InfoboardError as exc:
                out.append(_section("EVENTS"))
                out.append(f"  failed: {exc}")
                result["events_error"] = str(exc)
            else:
                now = datetime.now(UTC)
                out.append(_section("EVENTS"))
                for event in events:
                    remaining = event.end - now
                    out.append(f"  [{event.target_id}] {event.name} ({remaining} left)")
                    out.append(f"        {event.image_url}")
                    result["events"].append(event.model_dump(mode="json"))
                if not events:
                    out.append("  (no current events)")

    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}", file=sys.stderr)
    elif args.json_mode:
        print(payload)
    else:
        print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
