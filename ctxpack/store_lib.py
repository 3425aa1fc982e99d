#!/usr/bin/env python3
"""
ctxpack.store_lib — Shared file and estimation utilities.

Provides state-file names, atomic write helpers with bounded retries,
JSONL history I/O and token estimation used by the other ctxpack modules.
"""
import io
import json
import os
import sys
import time
from pathlib import Path

# ============================================================================
# CONSTANTS
# ============================================================================

STATE_DIR_NAME = ".ctxpack"
GLOBAL_STATE_DIR = Path.home() / STATE_DIR_NAME
CONFIG_FILE_NAME = "config.json"
ATTENTION_FILE_NAME = "attention.json"
HASHES_FILE_NAME = "hashes.json"
INTEGRITY_FILE_NAME = "integrity.json"
BOOTS_FILE_NAME = "boots.jsonl"

# Bounded retry for transient I/O conflicts (never hang)
IO_RETRY_ATTEMPTS = 3
IO_RETRY_SLEEP_SECONDS = 0.05


# ============================================================================
# WINDOWS ENCODING FIX
# ============================================================================

def _is_utf8(stream) -> bool:
    return (getattr(stream, 'encoding', None) or '').lower().replace('_', '-') in ('utf-8', 'utf8')


def windows_utf8_io():
    """Fix Windows cp1252 encoding for stdout/stderr. Call once at script top."""
    if not _is_utf8(sys.stdout) and hasattr(sys.stdout, 'buffer'):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    if not _is_utf8(sys.stderr) and hasattr(sys.stderr, 'buffer'):
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')


# ============================================================================
# STATE DIRECTORY
# ============================================================================

def resolve_state_dir(workspace: Path, explicit: str | None = None) -> Path:
    """
    Resolve the directory holding persisted maps.

    Priority:
    1. Explicit path (config or CLI)
    2. CTXPACK_STATE_DIR environment variable
    3. Workspace-local .ctxpack/
    """
    if explicit:
        return Path(explicit).expanduser()
    if env_dir := os.getenv("CTXPACK_STATE_DIR"):
        return Path(env_dir).expanduser()
    return Path(workspace) / STATE_DIR_NAME


# ============================================================================
# ATOMIC I/O
# ============================================================================

def _retry(operation):
    """Run operation, retrying a few times on OSError. Re-raises the last error."""
    last_error = None
    for attempt in range(IO_RETRY_ATTEMPTS):
        try:
            return operation()
        except FileNotFoundError:
            raise
        except OSError as e:
            last_error = e
            if attempt < IO_RETRY_ATTEMPTS - 1:
                time.sleep(IO_RETRY_SLEEP_SECONDS)
    raise last_error


def read_text(path: Path) -> str | None:
    """Read a UTF-8 file. Returns None if absent or still unreadable after retries."""
    path = Path(path)
    try:
        return _retry(lambda: path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        print(f"[ctxpack] WARN:Could not read {path}: {e}", file=sys.stderr)
        return None


def atomic_write_text(path: Path, text: str) -> bool:
    """
    Write text so concurrent readers see either the old or the new file.

    Writes to a pid-suffixed temp file in the same directory, then renames
    it over the target. Returns False (with a warning) if the rename keeps
    failing.
    """
    path = Path(path)
    temp_file = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file.write_text(text, encoding="utf-8")
        _retry(lambda: temp_file.replace(path))
        return True
    except OSError as e:
        print(f"[ctxpack] WARN:Could not write {path}: {e}", file=sys.stderr)
        try:
            temp_file.unlink()
        except OSError:
            pass
        return False


def atomic_write_json(path: Path, data: dict) -> bool:
    """Serialize data as indented JSON and write it atomically."""
    return atomic_write_text(path, json.dumps(data, indent=2, sort_keys=True, default=str))


def load_json_map(path: Path) -> dict:
    """
    Load a JSON object from disk.

    Missing file → {}. Corrupt file or non-object payload → {} with a warning.
    """
    raw = read_text(path)
    if raw is None:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"[ctxpack] WARN:Corrupt state file {path}, treating as empty: {e}", file=sys.stderr)
        return {}
    if not isinstance(data, dict):
        print(f"[ctxpack] WARN:State file {path} is not a JSON object, treating as empty", file=sys.stderr)
        return {}
    return data


# ============================================================================
# JSONL I/O
# ============================================================================

def atomic_jsonl_append(path: Path, record: dict):
    """Append a JSON record to a JSONL file with basic file safety."""
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(record, default=str) + "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(line)


def rotate_jsonl(path: Path, max_lines: int = 500):
    """Keep only the last max_lines entries in a JSONL file."""
    if not path.exists():
        return
    try:
        with open(path, encoding='utf-8', errors='replace') as f:
            lines = f.readlines()
        if len(lines) > max_lines:
            atomic_write_text(path, "".join(lines[-max_lines:]))
    except OSError as e:
        print(f"[ctxpack] WARN:Could not rotate {path}: {e}", file=sys.stderr)


def load_jsonl(path: Path, n: int = 20) -> list:
    """Load the last n records of a JSONL file, skipping corrupt lines."""
    if not path.exists():
        return []
    entries = []
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    except OSError:
        return []
    return entries[-n:] if n > 0 else entries


# ============================================================================
# TOKEN ESTIMATION
# ============================================================================

# Try to import tiktoken for accurate token counting
try:
    import tiktoken
    TIKTOKEN_AVAILABLE = True
except ImportError:
    tiktoken = None
    TIKTOKEN_AVAILABLE = False

_enc = None


def _encoder():
    """cl100k_base encoder, loaded on first use. None if it can't be loaded."""
    global _enc, TIKTOKEN_AVAILABLE
    if _enc is None and TIKTOKEN_AVAILABLE:
        try:
            _enc = tiktoken.get_encoding("cl100k_base")
        except Exception as e:
            # Encoding files are fetched on first use and may be unavailable offline
            print(f"[ctxpack] WARN:tiktoken encoding unavailable, estimating tokens: {e}", file=sys.stderr)
            TIKTOKEN_AVAILABLE = False
    return _enc


def estimate_tokens(text: str, chars_per_token: float = 3.6) -> int:
    """
    Estimate BPE token count of a compiled payload for status lines.

    Uses tiktoken (cl100k_base encoding) when available. Otherwise divides
    the character count by the configured cost ratio.
    """
    if not text:
        return 0
    enc = _encoder()
    if enc is not None:
        return len(enc.encode(text))
    return max(1, round(len(text) / chars_per_token))
