#!/usr/bin/env python3
"""
ctxpack.attention — Learned Section Attention

Tracks which sections a consuming process actually relies on.

  reinforce(name)   weight = min(1.0, weight + increment)   on an explicit use signal
  decay_all()       weight *= decay for every name           once per boot, before ranking
  forgetting        weights below epsilon are removed        keeps the map bounded

The whole map is the unit of durability: it is read when the ledger is
created and written back in one atomic replace after every mutation batch.
Concurrent writers are last-writer-wins.
"""

import math
import sys

# ============================================================================
# CONSTANTS
# ============================================================================

REINFORCEMENT_INCREMENT = 0.1   # Added per explicit use
DECAY_FACTOR = 0.95             # Multiplier applied to every weight per boot
FORGET_EPSILON = 0.01           # Weights below this are dropped
MAX_WEIGHT = 1.0


class AttentionLedger:
    """
    Persisted map of section name → learned weight in [0, 1].

    The store is injected so separate processes can share a JsonFileStore
    while tests use a MemoryStore.
    """

    def __init__(self, store, increment: float = REINFORCEMENT_INCREMENT,
                 decay: float = DECAY_FACTOR, epsilon: float = FORGET_EPSILON):
        self.store = store
        self.increment = increment
        self.decay = decay
        self.epsilon = epsilon
        self._weights: dict[str, float] = {}
        self.reload()

    # ---- Persistence ----

    def reload(self) -> None:
        """Re-read the persisted map, discarding anything that isn't a finite number."""
        raw = self.store.load()
        weights = {}
        dropped = 0
        for name, value in raw.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                dropped += 1
                continue
            weights[str(name)] = min(MAX_WEIGHT, max(0.0, float(value)))
        if dropped:
            print(f"[ctxpack] WARN:Ignored {dropped} malformed attention entries", file=sys.stderr)
        self._weights = weights

    def _save(self) -> None:
        self.store.save(dict(self._weights))

    # ---- Reads ----

    def get(self, name: str) -> float:
        return self._weights.get(name, 0.0)

    def weights(self) -> dict[str, float]:
        return dict(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, name: str) -> bool:
        return name in self._weights

    # ---- Mutations ----

    def _bump(self, name: str) -> None:
        self._weights[name] = min(MAX_WEIGHT, self.get(name) + self.increment)

    def reinforce(self, name: str) -> float:
        """Reinforce one name and persist. Returns the new weight."""
        self._bump(name)
        self._save()
        return self._weights[name]

    def reinforce_many(self, names) -> dict[str, float]:
        """Reinforce each name once (duplicates count once per occurrence), one write."""
        names = list(names)
        if not names:
            return {}
        for name in names:
            self._bump(name)
        self._save()
        return {name: self._weights[name] for name in names}

    def decay_all(self) -> list[str]:
        """
        Apply one decay tick to every weight and forget the ones below epsilon.

        Returns the names that were forgotten.
        """
        forgotten = []
        decayed = {}
        for name, weight in self._weights.items():
            value = weight * self.decay
            if value < self.epsilon:
                forgotten.append(name)
            else:
                decayed[name] = value
        self._weights = decayed
        self._save()
        return forgotten


def reinforcement_names(tool_name: str) -> list[str]:
    """
    Names to reinforce when a downstream tool call used a section.

    A tool named skill_<name>_... also credits the skill as "skill:<name>".
    """
    names = []
    if tool_name.startswith("skill_"):
        parts = tool_name.split("_")
        if len(parts) > 1 and parts[1]:
            names.append(f"skill:{parts[1]}")
    names.append(tool_name)
    return names
