#!/usr/bin/env python3
"""
ctxpack.integrity — Critical Section Integrity Monitor

Guards a small set of critical sections against silent corruption.

States:
  NO_BASELINE  no snapshot yet; the first check snapshots the current sections
  BASELINED    the last check matched the baseline (or nothing was checked yet)
  DEGRADED     the last check found deviations that restore() can repair

Baseline hashes, the full-content backup and the recorded deviations are kept
in one map, so every write replaces all three together. A reader can never see
a baseline without its backup.
"""

import sys
from dataclasses import dataclass
from datetime import datetime

from ctxpack.hashstore import hash_content

NO_BASELINE = "no_baseline"
BASELINED = "baselined"
DEGRADED = "degraded"

MISSING = "missing"
MUTATED = "mutated"


@dataclass(frozen=True)
class Deviation:
    """A critical section that no longer matches its baseline."""
    kind: str   # missing | mutated
    name: str

    def __str__(self) -> str:
        return f"{self.kind.capitalize()}: {self.name}"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "name": self.name}


def _str_map(value) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


class IntegrityMonitor:
    """
    Baseline + backup for critical sections, drift detection and restore.

    Args:
        store: map store holding {"baseline", "backup", "deviations", "snapshot_at"}
        writer: live storage for sections; restore() calls writer.write(name, content)
    """

    def __init__(self, store, writer=None):
        self.store = store
        self.writer = writer

    # ---- Persistence ----

    def _load(self) -> dict:
        data = self.store.load()
        baseline = _str_map(data.get("baseline"))
        backup = _str_map(data.get("backup"))
        deviations = []
        for entry in data.get("deviations") or []:
            if isinstance(entry, dict) and entry.get("kind") in (MISSING, MUTATED) and isinstance(entry.get("name"), str):
                deviations.append(Deviation(entry["kind"], entry["name"]))
        return {
            "baseline": baseline,
            "backup": backup,
            "deviations": deviations,
            "snapshot_at": data.get("snapshot_at"),
        }

    def _save(self, state: dict) -> bool:
        return self.store.save({
            "baseline": state["baseline"],
            "backup": state["backup"],
            "deviations": [d.to_dict() for d in state["deviations"]],
            "snapshot_at": state.get("snapshot_at"),
        })

    # ---- Reads ----

    @property
    def state(self) -> str:
        data = self._load()
        if not data["baseline"]:
            return NO_BASELINE
        if data["deviations"]:
            return DEGRADED
        return BASELINED

    def baseline(self) -> dict[str, str]:
        return self._load()["baseline"]

    def deviations(self) -> list[Deviation]:
        """Deviations recorded by the last check, pending restore."""
        return self._load()["deviations"]

    # ---- Operations ----

    def snapshot(self, critical_sections) -> list[str]:
        """
        Record baseline hashes and full-content backups in one write.

        Returns the snapshotted names. Clears any recorded deviations.
        """
        baseline = {}
        backup = {}
        for section in critical_sections:
            baseline[section.name] = hash_content(section.content)
            backup[section.name] = section.content
        saved = self._save({
            "baseline": baseline,
            "backup": backup,
            "deviations": [],
            "snapshot_at": datetime.now().isoformat(),
        })
        if saved:
            print(f"[ctxpack] Integrity baseline updated and backed up for: {', '.join(baseline) or '(none)'}",
                  file=sys.stderr)
        return list(baseline)

    def check_drift(self, current_critical_sections) -> list[Deviation]:
        """
        Compare current critical sections with the baseline.

        With no baseline yet, snapshots the current sections and reports nothing.
        The result is recorded so restore() can repair it later.
        """
        current_critical_sections = list(current_critical_sections)
        data = self._load()
        if not data["baseline"]:
            self.snapshot(current_critical_sections)
            return []

        current = {s.name: hash_content(s.content) for s in current_critical_sections}
        deviations = []
        for name, digest in data["baseline"].items():
            if name not in current:
                deviations.append(Deviation(MISSING, name))
            elif current[name] != digest:
                deviations.append(Deviation(MUTATED, name))

        if deviations != data["deviations"]:
            data["deviations"] = deviations
            self._save(data)
        return deviations

    def restore(self) -> list[str]:
        """
        Write backed-up content for every recorded deviation to live storage.

        Names without a backup, or whose write fails, are skipped and stay
        recorded. Returns the names actually restored.
        """
        data = self._load()
        if not data["deviations"]:
            return []
        if self.writer is None:
            print("[ctxpack] WARN:No section writer configured, nothing restored", file=sys.stderr)
            return []

        restored = []
        remaining = []
        for deviation in data["deviations"]:
            content = data["backup"].get(deviation.name)
            if content is None:
                print(f"[ctxpack] WARN:No backup for {deviation.name}, skipping", file=sys.stderr)
                remaining.append(deviation)
                continue
            try:
                self.writer.write(deviation.name, content)
            except (OSError, ValueError) as e:
                print(f"[ctxpack] WARN:Restore of {deviation.name} failed: {e}", file=sys.stderr)
                remaining.append(deviation)
                continue
            restored.append(deviation.name)

        data["deviations"] = remaining
        self._save(data)
        return restored
