"""
ctxpack - Budget-constrained context compiler

Assembles a bounded payload from named, prioritized sections.
Learns which sections a consumer relies on and ranks them higher next time.

Features:
- Greedy rank-ordered packing into a cost budget
- Structure-preserving skeletonization of the section that overflows
- Attention weights with reinforcement, decay and forgetting
- Change detection between compilations
- Integrity baseline, drift detection and restore for critical sections
- Zero required dependencies (tiktoken optional for token counts)

Quick start:
    pip install ctxpack[all]
    ctxpack snapshot
    ctxpack boot
"""

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "Section",
    "CompilationReport",
    "BudgetCompiler",
    "skeletonize",
    "AttentionLedger",
    "DeltaDetector",
    "IntegrityMonitor",
    "Deviation",
    "CompilerConfig",
    "load_config",
    "JsonFileStore",
    "MemoryStore",
    "Booter",
]

from ctxpack.attention import AttentionLedger
from ctxpack.boot import Booter
from ctxpack.compiler import BudgetCompiler, CompilationReport, Section
from ctxpack.config import CompilerConfig, load_config
from ctxpack.delta import DeltaDetector
from ctxpack.integrity import Deviation, IntegrityMonitor
from ctxpack.skeleton import skeletonize
from ctxpack.stores import JsonFileStore, MemoryStore
