#!/usr/bin/env python3
"""Dump one page of a review queue and the audit trail of its first item.

Usage
-----
Point the script at an operator backend and run::

    export REVIEWDESK_BASE_URL="http://localhost:3000"
    python scripts/queue_dump.py --surface plate

Options::

    --surface {plate,enforcement}   Queue to load (default: plate)
    --site S1 --site S2             Restrict to these sites (default: all)
    --page N                        Zero-based page (default: 0)
    --json                          Output machine-readable JSON
    --output FILE                   Write JSON to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from reviewdesk import (  # noqa: E402
    EnforcementSurface,
    PlateReviewSurface,
    ReviewConfig,
    ReviewQueueController,
)
from reviewdesk._redact import mask_vrm  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


async def main() -> None:
    parser = argparse.ArgumentParser(description="Dump a reviewdesk queue page for debugging / development.")
    parser.add_argument("--surface", choices=("plate", "enforcement"), default="plate", help="Queue to load")
    parser.add_argument("--site", action="append", default=[], help="Restrict to this site (repeatable)")
    parser.add_argument("--page", type=int, default=0, help="Zero-based page to load")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON output to FILE instead of stdout")
    parser.add_argument("--show-vrm", action="store_true", help="Print registrations unmasked")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = ReviewConfig.from_env()
    surface = PlateReviewSurface() if args.surface == "plate" else EnforcementSurface()
    show = (lambda vrm: vrm) if args.show_vrm else mask_vrm

    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "surface": args.surface,
    }

    async with ReviewQueueController(config, surface) as queue:
        if args.site:
            await queue.update_filter(site_ids=args.site)
        if args.page:
            await queue.goto_page(args.page)
        await queue.wait_idle()
        state = queue.state

        result["filter"] = state.filter.model_dump(mode="json")
        result["page"] = state.page
        result["total"] = state.snapshot.total
        result["queue_error"] = state.queue_error
        result["items"] = [item.model_dump(mode="json", exclude={"raw"}) for item in state.snapshot.items]
        result["audit"] = [entry.model_dump(mode="json", exclude={"raw"}) for entry in state.audit]
        result["audit_error"] = state.audit_error
        if state.statistics is not None:
            result["statistics"] = state.statistics.model_dump(mode="json", exclude={"raw"})

    if args.json_mode or args.output:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
        return

    out: list[str] = [_section(f"reviewdesk {args.surface} queue")]
    out.append(f"  time      : {result['timestamp']}")
    out.append(f"  backend   : {config.base_url}")
    out.append(f"  page      : {state.page + 1}/{max(state.page_count, 1)} (total {state.snapshot.total})")
    if state.queue_error:
        out.append(f"  ERROR     : {state.queue_error}")

    out.append(_section("ITEMS"))
    for index, item in enumerate(state.snapshot.items):
        marker = ">" if index == state.snapshot.cursor else " "
        out.append(f"{marker} {item.id:<36} {show(item.vrm):<10} site={item.site_id}")

    if state.current_id is not None:
        out.append(_section(f"AUDIT TRAIL {state.current_id}"))
        if state.audit_error:
            out.append(f"  ERROR     : {state.audit_error}")
        for entry in state.audit:
            out.append(f"  {entry.timestamp.isoformat()}  {entry.source_stream:<8} {entry.action:<28} {entry.actor}")

    if state.statistics is not None:
        stats = state.statistics
        out.append(_section("STATISTICS"))
        out.append(f"  pending   : {stats.total_pending}")
        out.append(f"  reviewed  : {stats.total_reviewed} of {stats.total}")

    print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
