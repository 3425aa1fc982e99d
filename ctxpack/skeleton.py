#!/usr/bin/env python3
"""
ctxpack.skeleton — Structure-Preserving Truncation

When a section does not fit, keep its shape instead of cutting it blindly:

1. the leading metadata block (cheap, carries classification)
2. a table of contents made of its header lines, if together with the
   metadata block it costs under 40% of the room
3. the tail of the content (most recent material)
4. a one-line marker saying how much was omitted

The result never exceeds the character budget it is given.
"""
import math

from ctxpack.frontmatter import metadata_block

HEADER_BUDGET_RATIO = 0.4   # Header TOC kept only if it costs less than this share
MIN_TAIL_CHARS = 200        # Below this the tail is omitted entirely


def omission_marker(name: str, omitted_units: int) -> str:
    return f"\n\n... [{name}: skeletonized, {omitted_units} units omitted] ...\n"


def minimal_footer(name: str) -> str:
    return f"\n\n... [{name}: truncated, budget tight]\n"


def header_lines(body: str) -> list[str]:
    """Markdown header lines (`#` at column 0) in document order."""
    return [line for line in body.split('\n') if line.startswith('#')]


def _tail(content: str, room: int) -> str:
    """Last `room` characters, starting at a line boundary when one is available."""
    tail = content[len(content) - room:]
    if content[len(content) - room - 1:len(content) - room] == '\n':
        return tail
    newline = tail.find('\n')
    if newline != -1 and tail[newline + 1:]:
        return tail[newline + 1:]
    return tail


def skeletonize(name: str, content: str, budget_chars: int,
                cost_per_unit: float = 1.0,
                header_ratio: float = HEADER_BUDGET_RATIO,
                min_tail: int = MIN_TAIL_CHARS) -> str:
    """
    Shrink content to at most budget_chars characters, keeping its structure.

    Pure function: no I/O, never raises for any string content and budget.
    """
    budget_chars = int(budget_chars)
    if budget_chars <= 0:
        return ""
    if len(content) <= budget_chars:
        return content
    if cost_per_unit <= 0:
        cost_per_unit = 1.0

    # Reserve room for the widest marker this content could need
    reserve = len(omission_marker(name, math.ceil(len(content) / cost_per_unit)))

    block = metadata_block(content) or ""
    prefix = block + "\n\n" if block else ""
    if len(prefix) + reserve > budget_chars:
        block = prefix = ""

    body = content[len(block):]
    headers = header_lines(body)
    toc = '\n'.join(headers) + "\n\n" if headers else ""
    kept_prefix = len(prefix) + len(toc)
    if not toc or kept_prefix >= budget_chars * header_ratio or kept_prefix + reserve > budget_chars:
        toc = ""
        headers = []

    room = budget_chars - len(prefix) - len(toc) - reserve
    tail = _tail(content, room) if room >= max(min_tail, 1) else ""

    kept = len(block) + sum(len(h) + 1 for h in headers) + len(tail)
    omitted_units = math.ceil(max(0, len(content) - kept) / cost_per_unit)
    skeleton = prefix + toc + tail + omission_marker(name, omitted_units)
    # Only reachable when the marker alone is wider than the budget
    return skeleton[:budget_chars]
