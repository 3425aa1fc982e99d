#!/usr/bin/env python3
"""
ctxpack.frontmatter — Leading metadata block detection

A metadata block is a `---` line at the very start of the content, any number
of lines, and a closing `---` line. The block is treated as an opaque prefix
that skeletonization always keeps; parse_metadata() reads informal
`key: value` pairs out of it for section loading. Detection lives here alone
so a stricter rule can replace it without touching callers.
"""
import re

METADATA_BLOCK = re.compile(r'\A---[ \t]*\r?\n(?:.*?\r?\n)?---[ \t]*(?=\r?\n|\Z)', re.DOTALL)
_KEY_VALUE = re.compile(r'^([\w-]+):\s*(.*)$')


def metadata_block(content: str) -> str | None:
    """Return the leading metadata block verbatim (delimiters included), or None."""
    match = METADATA_BLOCK.match(content)
    return match.group(0) if match else None


def parse_metadata(content: str) -> dict:
    """
    Parse `key: value` lines of the leading metadata block.

    A key with an empty value followed by `- item` lines becomes a list.
    Comments (#) and blank lines are skipped. No block → {}.
    """
    block = metadata_block(content)
    if block is None:
        return {}

    lines = block.splitlines()[1:-1]
    result = {}
    current_key = None
    items = None

    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        if items is not None and stripped.startswith('- '):
            items.append(stripped[2:].strip())
            continue
        if items is not None:
            result[current_key] = items
            items = None
        match = _KEY_VALUE.match(stripped)
        if not match:
            continue
        current_key = match.group(1)
        value = match.group(2).strip().strip('\'"')
        if value:
            result[current_key] = value
        else:
            items = []

    if items is not None:
        result[current_key] = items
    return result
