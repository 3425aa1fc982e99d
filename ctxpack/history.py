#!/usr/bin/env python3
"""
ctxpack.history — Boot History

Each boot appends one JSON line to <state_dir>/boots.jsonl (kept to the last
500 entries). The viewer prints a changelog or summary statistics.
"""

import re
import sys
from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path

from ctxpack.store_lib import atomic_jsonl_append, load_jsonl, rotate_jsonl

MAX_HISTORY_ENTRIES = 500


def parse_duration(s: str) -> timedelta:
    """Parse '2h', '30m', '1d' into timedelta."""
    match = re.match(r'(\d+)([hdm])', s.lower())
    if not match:
        return timedelta(hours=1)
    val, unit = int(match.group(1)), match.group(2)
    if unit == 'h':
        return timedelta(hours=val)
    if unit == 'd':
        return timedelta(days=val)
    return timedelta(minutes=val)


def record_boot(path: Path, report, deviations, elapsed_ms: float, boot_number: int = None) -> dict:
    """Append one boot record and rotate the log. Returns the record."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "boot": boot_number,
        "budget": report.budget,
        "total_cost": report.total_cost,
        "utilization_pct": report.utilization_pct,
        "truncated": list(report.truncated),
        "dropped": list(report.dropped),
        "changed": list(report.changed),
        "new": list(report.new),
        "deviations": [str(d) for d in deviations],
        "pressure": report.pressure,
        "elapsed_ms": round(elapsed_ms, 1),
    }
    try:
        atomic_jsonl_append(path, entry)
        rotate_jsonl(path, max_lines=MAX_HISTORY_ENTRIES)
    except OSError as e:
        print(f"[ctxpack] WARN:Could not record boot history: {e}", file=sys.stderr)
    return entry


def boot_count(path: Path) -> int:
    """Number of the most recent recorded boot (0 if none)."""
    entries = load_jsonl(path, n=1)
    if not entries:
        return 0
    last = entries[-1].get("boot")
    return last if isinstance(last, int) else 0


def load_history(path: Path, last: int = 20, since: timedelta = None) -> list:
    """Load recent boot entries, optionally limited to a time window."""
    entries = load_jsonl(path, n=0)
    if since:
        cutoff = datetime.now() - since
        kept = []
        for entry in entries:
            try:
                if datetime.fromisoformat(entry["timestamp"]) >= cutoff:
                    kept.append(entry)
            except (KeyError, TypeError, ValueError):
                continue
        return kept
    return entries[-last:] if last > 0 else entries


def format_stats(entries: list) -> str:
    """Format summary statistics."""
    if not entries:
        return "No entries to analyze."

    W = 62
    lines = []

    def _section(title: str) -> str:
        pad = W - len(title) - 4
        left = pad // 2
        right = pad - left
        return f"{'─' * left}[ {title} ]{'─' * right}"

    lines.append("")
    lines.append(_section("BOOT STATISTICS"))
    lines.append("")
    lines.append(f"  Total boots: {len(entries)}")
    lines.append(f"  Time range:  {entries[0].get('timestamp', '?')[:10]} to {entries[-1].get('timestamp', '?')[:10]}")

    avg_util = sum(e.get("utilization_pct", 0) for e in entries) / len(entries)
    pressured = sum(1 for e in entries if e.get("pressure"))
    lines.append(f"  Avg utilization: {avg_util:.0f}%  (pressure on {pressured} boots)")

    cut_counter = Counter()
    for entry in entries:
        for name in entry.get("truncated", []) + entry.get("dropped", []):
            cut_counter[name] += 1

    if cut_counter:
        lines.append("")
        lines.append(_section("MOST OFTEN CUT"))
        for name, count in cut_counter.most_common(5):
            bar = "█" * min(count, 20)
            lines.append(f"  {count:3d} boots  {bar}  {name}")

    drift = sum(1 for e in entries if e.get("deviations"))
    if drift:
        lines.append("")
        lines.append(f"  Integrity deviations seen on {drift} boots")

    return "\n".join(lines)


def format_changelog(entries: list) -> str:
    """Format entries as a human-readable changelog."""
    lines = []
    current_day = None

    for entry in entries:
        try:
            ts = datetime.fromisoformat(entry["timestamp"])
        except (KeyError, TypeError, ValueError):
            continue
        day = ts.strftime("%Y-%m-%d")

        if day != current_day:
            lines.append(f"\n{'─' * 62}")
            lines.append(f"  {day}")
            lines.append(f"{'─' * 62}")
            current_day = day

        lines.append(
            f"\n[{ts.strftime('%H:%M:%S')}] Boot {entry.get('boot', '?')} | "
            f"~{entry.get('total_cost', 0)}/{entry.get('budget', 0)} units ({entry.get('utilization_pct', 0)}%)"
        )
        if entry.get("truncated"):
            lines.append(f"  truncated: {', '.join(entry['truncated'])}")
        if entry.get("dropped"):
            lines.append(f"  dropped:   {', '.join(entry['dropped'])}")
        if entry.get("changed"):
            lines.append(f"    ~ changed: {', '.join(entry['changed'])}")
        if entry.get("new"):
            lines.append(f"    + new:     {', '.join(entry['new'])}")
        if entry.get("deviations"):
            lines.append(f"  ! integrity: {', '.join(entry['deviations'])}")

    return "\n".join(lines)
