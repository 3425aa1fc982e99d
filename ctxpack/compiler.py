#!/usr/bin/env python3
"""
ctxpack.compiler — Budget Compiler

Packs named sections into a fixed cost budget.

Pipeline:
  1. Rank     effective rank = static priority + learned attention weight
  2. Sort     descending by rank, stable on input order
  3. Pack     whole sections while they fit
  4. Overflow the first section that doesn't fit is
                skeletonized   if more than skeleton_threshold units remain
                footer-only    if more than minimal_footer_threshold units remain
                dropped        otherwise
              and packing stops; every later section is dropped
  5. Delta    hash every input section and diff against the previous compilation

Budget exhaustion is the expected case, not an error: the caller always gets a
complete (if smaller) payload plus a report of what was cut.
"""

from dataclasses import dataclass, field

from ctxpack.config import CompilerConfig
from ctxpack.hashstore import hash_sections
from ctxpack.skeleton import minimal_footer, skeletonize


@dataclass
class Section:
    """One named, prioritized candidate content block."""
    name: str
    content: str
    priority: int = 0

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class CompilationReport:
    """What a compilation kept, cut and changed."""
    budget: int
    cost_per_unit: float
    total_chars: int = 0
    included: list[str] = field(default_factory=list)
    truncated: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    pressure: bool = False

    @property
    def total_cost(self) -> int:
        return round(self.total_chars / self.cost_per_unit)

    @property
    def utilization_pct(self) -> int:
        if self.budget <= 0:
            return 0
        return round(self.total_cost / self.budget * 100)

    def to_dict(self) -> dict:
        return {
            "budget": self.budget,
            "total_chars": self.total_chars,
            "total_cost": self.total_cost,
            "utilization_pct": self.utilization_pct,
            "included": list(self.included),
            "truncated": list(self.truncated),
            "dropped": list(self.dropped),
            "changed": list(self.changed),
            "new": list(self.new),
            "unchanged": list(self.unchanged),
            "pressure": self.pressure,
        }


def _weight_of(ledger, name: str) -> float:
    return ledger.get(name) if ledger is not None else 0.0


def rank_sections(sections: list[Section], ledger=None) -> list[tuple[Section, float]]:
    """Sections with their effective rank, highest first, ties in input order."""
    ranked = [(section, section.priority + _weight_of(ledger, section.name)) for section in sections]
    # sorted() is stable, so equal ranks keep input order
    return sorted(ranked, key=lambda item: -item[1])


class BudgetCompiler:
    """
    Greedy, rank-ordered packer with structure-preserving overflow.

    Args:
        config: thresholds and cost ratio
        ledger: AttentionLedger (or anything with get(name) -> float); optional
        delta: DeltaDetector updated after every compilation; optional
    """

    def __init__(self, config: CompilerConfig = None, ledger=None, delta=None):
        self.config = config or CompilerConfig()
        self.ledger = ledger
        self.delta = delta

    def compile(self, sections: list[Section], budget: int = None) -> tuple[str, CompilationReport]:
        config = self.config
        budget = config.budget if budget is None else budget
        cost_per_unit = config.cost_per_unit
        max_chars = max(0, int(budget * cost_per_unit))

        report = CompilationReport(budget=budget, cost_per_unit=cost_per_unit)
        parts = []
        total_chars = 0
        stopped = False

        for section, _rank in rank_sections(sections, self.ledger):
            if stopped:
                report.dropped.append(section.name)
                continue

            if total_chars + section.size <= max_chars:
                parts.append(section.content)
                total_chars += section.size
                report.included.append(section.name)
                continue

            # First overflow: degrade this section, then stop packing
            stopped = True
            remaining = max_chars - total_chars
            remaining_units = remaining / cost_per_unit

            if remaining_units > config.skeleton_threshold:
                piece = skeletonize(
                    section.name, section.content, remaining,
                    cost_per_unit=cost_per_unit,
                    header_ratio=config.header_budget_ratio,
                    min_tail=config.min_tail_chars,
                )
            elif remaining_units > config.minimal_footer_threshold:
                piece = minimal_footer(section.name)
            else:
                piece = ""

            if piece and len(piece) <= remaining:
                parts.append(piece)
                total_chars += len(piece)
                report.truncated.append(section.name)
            else:
                report.dropped.append(section.name)

        report.total_chars = total_chars
        report.pressure = report.utilization_pct > config.pressure_threshold

        if self.delta is not None:
            delta = self.delta.diff(hash_sections(sections))
            report.changed = delta.changed
            report.new = delta.new
            report.unchanged = delta.unchanged

        return "".join(parts), report
