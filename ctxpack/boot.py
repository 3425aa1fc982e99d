#!/usr/bin/env python3
"""
ctxpack.boot — One full context boot

Pipeline:
  1. Decay     one attention decay tick (forgetting curve)
  2. Verify    integrity check of the critical sections; deviations add an
               alert section ranked above everything else
  3. Suppress  drop sections the caller excluded (minimal sub-agent mode)
  4. Compile   budget compiler + delta detection
  5. Report    plain status lines appended below the payload
  6. Record    one line in the boot history

State lives in three independent files under the state directory
(attention.json, hashes.json, integrity.json) plus boots.jsonl.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path

from ctxpack.attention import AttentionLedger
from ctxpack.compiler import BudgetCompiler, CompilationReport, Section
from ctxpack.config import CompilerConfig, load_config
from ctxpack.delta import DeltaDetector
from ctxpack.history import boot_count, record_boot
from ctxpack.integrity import IntegrityMonitor
from ctxpack.sources import SectionDirectory
from ctxpack.store_lib import (
    ATTENTION_FILE_NAME,
    BOOTS_FILE_NAME,
    HASHES_FILE_NAME,
    INTEGRITY_FILE_NAME,
    estimate_tokens,
    resolve_state_dir,
)
from ctxpack.stores import JsonFileStore

ALERT_SECTION = "integrity_alert"


@dataclass
class BootResult:
    payload: str
    report: CompilationReport
    status: str
    deviations: list = field(default_factory=list)
    forgotten: list[str] = field(default_factory=list)

    @property
    def output(self) -> str:
        return f"{self.payload}\n---\n{self.status}\n"


def integrity_alert(deviations) -> str:
    names = ", ".join(str(d) for d in deviations)
    return (
        "\n> [!CAUTION]\n"
        f"> Integrity check failed: {names}.\n"
        "> Critical sections differ from their baseline. Verify them or run 'ctxpack restore'.\n"
    )


def format_status(report: CompilationReport, deviations=(), payload: str = "") -> str:
    """Plain status lines describing one compilation."""
    line = f"~{report.total_cost}/{report.budget} units ({report.utilization_pct}%)"
    if report.truncated:
        line += f" | truncated: {', '.join(report.truncated)}"
    if report.dropped:
        line += f" | dropped: {', '.join(report.dropped)}"
    if report.pressure:
        line += " | context pressure high"
    lines = [line]

    changes = []
    if report.changed:
        changes.append(f"changed: {', '.join(report.changed)}")
    if report.new:
        changes.append(f"new: {', '.join(report.new)}")
    if changes:
        lines.append(" | ".join(changes))

    if deviations:
        lines.append(f"integrity: {', '.join(str(d) for d in deviations)}")

    tokens = estimate_tokens(payload, report.cost_per_unit)
    lines.append(f"payload: {len(payload)} chars (~{tokens} tokens)")
    return "\n".join(lines)


class Booter:
    """
    Runs boots against injected components.

    Args:
        config: compiler configuration
        ledger: AttentionLedger
        delta: DeltaDetector
        monitor: IntegrityMonitor
        history_path: boots.jsonl location, or None to skip recording
    """

    def __init__(self, config: CompilerConfig, ledger: AttentionLedger, delta: DeltaDetector,
                 monitor: IntegrityMonitor, history_path: Path = None):
        self.config = config
        self.ledger = ledger
        self.delta = delta
        self.monitor = monitor
        self.history_path = history_path
        self.compiler = BudgetCompiler(config, ledger=ledger, delta=delta)

    @classmethod
    def for_workspace(cls, workspace: Path, config: CompilerConfig = None) -> tuple["Booter", SectionDirectory]:
        """File-backed components for a workspace directory."""
        workspace = Path(workspace)
        config = config or load_config(workspace)
        state_dir = resolve_state_dir(workspace, config.state_dir)
        directory = SectionDirectory(workspace, config)
        booter = cls(
            config,
            AttentionLedger(
                JsonFileStore(state_dir / ATTENTION_FILE_NAME),
                increment=config.reinforcement_increment,
                decay=config.decay_factor,
                epsilon=config.forget_epsilon,
            ),
            DeltaDetector(JsonFileStore(state_dir / HASHES_FILE_NAME)),
            IntegrityMonitor(JsonFileStore(state_dir / INTEGRITY_FILE_NAME), writer=directory),
            history_path=state_dir / BOOTS_FILE_NAME,
        )
        return booter, directory

    def critical(self, sections: list[Section]) -> list[Section]:
        names = set(self.config.critical_sections)
        return [s for s in sections if s.name in names]

    def boot(self, sections: list[Section], budget: int = None, exclude=()) -> BootResult:
        start = time.perf_counter()
        sections = list(sections)

        forgotten = self.ledger.decay_all()

        deviations = self.monitor.check_drift(self.critical(sections))
        if deviations:
            top = max((s.priority for s in sections), default=0)
            sections.append(Section(ALERT_SECTION, integrity_alert(deviations), top + 2))

        if exclude:
            silenced = set(exclude) - {ALERT_SECTION}
            sections = [s for s in sections if s.name not in silenced]

        payload, report = self.compiler.compile(sections, budget)
        status = format_status(report, deviations, payload)

        if self.history_path is not None:
            elapsed_ms = (time.perf_counter() - start) * 1000
            record_boot(self.history_path, report, deviations, elapsed_ms,
                        boot_number=boot_count(self.history_path) + 1)

        return BootResult(payload, report, status, deviations, forgotten)
