#!/usr/bin/env python3
"""
ctxpack.config — Compiler configuration

Load order (later wins):
  1. Defaults below
  2. JSON config: <workspace>/.ctxpack/config.json, else ~/.ctxpack/config.json
  3. Environment: CTXPACK_TOKEN_BUDGET, CTXPACK_COST_PER_UNIT, CTXPACK_STATE_DIR
  4. Explicit overrides (CLI flags)

Bad values never abort: they are reported as warnings and the previous value kept.
"""

import json
import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path

from ctxpack.store_lib import CONFIG_FILE_NAME, GLOBAL_STATE_DIR, STATE_DIR_NAME, read_text

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_BUDGET = 8000                   # Cost units (tokens by default)
DEFAULT_COST_PER_UNIT = 3.6             # Characters per unit
DEFAULT_SKELETON_THRESHOLD = 300        # Units left before skeletonizing instead of a footer
DEFAULT_MINIMAL_FOOTER_THRESHOLD = 100  # Units left before emitting a footer instead of dropping
DEFAULT_PRESSURE_THRESHOLD = 90         # Utilization % flagged as context pressure
DEFAULT_PRIORITY = 5                    # Sections with no configured priority
MAX_DYNAMIC_PRIORITY = 6                # Cap for priorities declared inside a section
DEFAULT_CRITICAL_SECTIONS = ["IDENTITY.md", "SOUL.md", "AGENTS.md"]


@dataclass
class CompilerConfig:
    budget: int = DEFAULT_BUDGET
    cost_per_unit: float = DEFAULT_COST_PER_UNIT
    skeleton_threshold: float = DEFAULT_SKELETON_THRESHOLD
    minimal_footer_threshold: float = DEFAULT_MINIMAL_FOOTER_THRESHOLD
    reinforcement_increment: float = 0.1
    decay_factor: float = 0.95
    forget_epsilon: float = 0.01
    header_budget_ratio: float = 0.4
    min_tail_chars: int = 200
    pressure_threshold: float = DEFAULT_PRESSURE_THRESHOLD
    default_priority: int = DEFAULT_PRIORITY
    max_dynamic_priority: int = MAX_DYNAMIC_PRIORITY
    critical_sections: list[str] = field(default_factory=lambda: list(DEFAULT_CRITICAL_SECTIONS))
    priorities: dict[str, int] = field(default_factory=dict)
    state_dir: str | None = None

    @property
    def max_chars(self) -> int:
        """Character capacity of the whole budget."""
        return int(self.budget * self.cost_per_unit)

    def update(self, values: dict, source: str = "overrides") -> "CompilerConfig":
        """Apply validated values in place. Unknown keys are ignored."""
        for key, value in values.items():
            if key not in _VALIDATORS:
                continue
            ok, converted = _VALIDATORS[key](value)
            if ok:
                setattr(self, key, converted)
            else:
                print(f"[ctxpack] WARN:Ignoring invalid {key}={value!r} from {source}", file=sys.stderr)
        return self

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ============================================================================
# VALIDATION
# ============================================================================

def _number(value):
    if isinstance(value, bool):
        raise ValueError("bool is not a number")
    return float(value)


def _positive_int(value):
    number = _number(value)
    if number <= 0 or number != int(number):
        return False, None
    return True, int(number)


def _non_negative_int(value):
    number = _number(value)
    if number < 0 or number != int(number):
        return False, None
    return True, int(number)


def _positive(value):
    number = _number(value)
    return (number > 0, number)


def _non_negative(value):
    number = _number(value)
    return (number >= 0, number)


def _unit_interval(value):
    number = _number(value)
    return (0 < number <= 1, number)


def _int(value):
    number = _number(value)
    return (number == int(number), int(number))


def _name_list(value):
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return True, list(value)
    return False, None


def _priority_map(value):
    if not isinstance(value, dict):
        return False, None
    result = {}
    for name, priority in value.items():
        ok, converted = _safe(_int)(priority)
        if not ok:
            return False, None
        result[str(name)] = converted
    return True, result


def _optional_path(value):
    if value is None or isinstance(value, str):
        return True, value
    return False, None


def _safe(check):
    def wrapped(value):
        try:
            return check(value)
        except (TypeError, ValueError, OverflowError):
            return False, None
    return wrapped


_VALIDATORS = {
    "budget": _safe(_positive_int),
    "cost_per_unit": _safe(_positive),
    "skeleton_threshold": _safe(_non_negative),
    "minimal_footer_threshold": _safe(_non_negative),
    "reinforcement_increment": _safe(_unit_interval),
    "decay_factor": _safe(_unit_interval),
    "forget_epsilon": _safe(_non_negative),
    "header_budget_ratio": _safe(_unit_interval),
    "min_tail_chars": _safe(_non_negative_int),
    "pressure_threshold": _safe(_non_negative),
    "default_priority": _safe(_int),
    "max_dynamic_priority": _safe(_int),
    "critical_sections": _name_list,
    "priorities": _priority_map,
    "state_dir": _optional_path,
}

_ENV_KEYS = {
    "CTXPACK_TOKEN_BUDGET": "budget",
    "CTXPACK_COST_PER_UNIT": "cost_per_unit",
}


# ============================================================================
# LOADING
# ============================================================================

def config_paths(workspace: Path) -> list[Path]:
    """Candidate config files, project-local first."""
    return [
        Path(workspace) / STATE_DIR_NAME / CONFIG_FILE_NAME,
        GLOBAL_STATE_DIR / CONFIG_FILE_NAME,
    ]


def load_config_file(workspace: Path) -> tuple[dict, Path | None]:
    """Return (values, path) from the first readable config file, or ({}, None)."""
    for config_path in config_paths(workspace):
        if not config_path.exists():
            continue
        raw = read_text(config_path)
        if raw is None:
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            print(f"[ctxpack] WARN:Failed to load {config_path}: {e}", file=sys.stderr)
            continue
        if not isinstance(data, dict):
            print(f"[ctxpack] WARN:{config_path} is not a JSON object, skipping", file=sys.stderr)
            continue
        return data, config_path
    return {}, None


def load_config(workspace: Path = None, overrides: dict | None = None) -> CompilerConfig:
    """Build the effective configuration for a workspace."""
    workspace = Path(workspace) if workspace else Path.cwd()
    config = CompilerConfig()

    values, path = load_config_file(workspace)
    if path is not None:
        config.update(values, source=str(path))

    env_values = {}
    for env_var, key in _ENV_KEYS.items():
        raw = os.environ.get(env_var)
        if raw:
            try:
                env_values[key] = float(raw)
            except ValueError:
                print(f"[ctxpack] WARN:Ignoring non-numeric {env_var}={raw!r}", file=sys.stderr)
    if env_dir := os.environ.get("CTXPACK_STATE_DIR"):
        env_values["state_dir"] = env_dir
    config.update(env_values, source="environment")

    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})
    return config
