#!/usr/bin/env python3
"""
ctxpack.delta — Change detection between successive compilations
"""
from dataclasses import dataclass, field


@dataclass
class Delta:
    """Names grouped by how their hash compares with the previous compilation."""
    changed: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed or self.new)


class DeltaDetector:
    """
    Compares per-section hashes with the map stored by the previous call,
    then replaces the stored map with the current one.

    Sections that disappeared are dropped from tracking without being reported.
    """

    def __init__(self, store):
        self.store = store

    def previous(self) -> dict[str, str]:
        return {k: v for k, v in self.store.load().items() if isinstance(v, str)}

    def diff(self, current_hashes: dict[str, str]) -> Delta:
        previous = self.previous()
        delta = Delta()
        for name, digest in current_hashes.items():
            if name not in previous:
                delta.new.append(name)
            elif previous[name] != digest:
                delta.changed.append(name)
            else:
                delta.unchanged.append(name)
        self.store.save(dict(current_hashes))
        return delta
