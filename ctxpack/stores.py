#!/usr/bin/env python3
"""
ctxpack.stores — Durable map stores

Every persisted map (attention weights, previous hashes, integrity baseline)
is read and written as a whole through a store. Stores are handed to the
ledger, detector and monitor at construction, so tests can swap in
MemoryStore and separate processes can share JsonFileStore files.
"""
import copy
from pathlib import Path

from ctxpack.store_lib import atomic_write_json, load_json_map


class JsonFileStore:
    """
    A JSON object persisted in a single file.

    load() never raises: a missing, unreadable or corrupt file reads as {}.
    save() replaces the file atomically; last writer wins.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> dict:
        return load_json_map(self.path)

    def save(self, data: dict) -> bool:
        return atomic_write_json(self.path, data)

    def __repr__(self) -> str:
        return f"JsonFileStore({str(self.path)!r})"


class MemoryStore:
    """In-process store holding a deep copy of the last saved map."""

    def __init__(self, data: dict | None = None):
        self._data = copy.deepcopy(data) if data else {}
        self.saves = 0

    def load(self) -> dict:
        return copy.deepcopy(self._data)

    def save(self, data: dict) -> bool:
        self._data = copy.deepcopy(data)
        self.saves += 1
        return True
