#!/usr/bin/env python3
"""
ctxpack.hashstore — Content hashing

Shared by delta detection and integrity monitoring.
"""
import hashlib


def hash_content(content: str) -> str:
    """MD5 hex digest of UTF-8 content. Used for change detection, not secrecy."""
    return hashlib.md5(content.encode("utf-8", errors="surrogatepass")).hexdigest()


def hash_sections(sections) -> dict[str, str]:
    """Map each section name to the hash of its content, in input order."""
    return {section.name: hash_content(section.content) for section in sections}
