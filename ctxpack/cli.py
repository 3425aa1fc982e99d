#!/usr/bin/env python3
"""
ctxpack CLI - Unified command-line interface

Usage:
    ctxpack boot [--budget N] [--exclude NAME ...] [--json]   Compile the workspace context
    ctxpack reinforce NAME [NAME ...] [--tool]                Credit sections a consumer used
    ctxpack decay                                             Apply one attention decay tick
    ctxpack snapshot                                          Baseline + back up critical sections
    ctxpack check                                             Check critical sections for drift
    ctxpack restore                                           Restore drifted critical sections
    ctxpack status                                            Show configuration and state
    ctxpack history [--last N] [--since 2h] [--stats]         Show boot history
    ctxpack version                                           Show version information

Every command accepts --workspace PATH (default: current directory).
"""

import argparse
import json
import sys
from pathlib import Path


def _booter(args):
    from ctxpack.boot import Booter
    from ctxpack.config import load_config

    workspace = Path(args.workspace)
    overrides = {"budget": getattr(args, "budget", None)}
    config = load_config(workspace, overrides=overrides)
    return Booter.for_workspace(workspace, config)


def cmd_boot(args):
    """Compile the workspace sections into one budgeted payload."""
    booter, directory = _booter(args)
    result = booter.boot(directory.load_sections(), exclude=args.exclude or ())
    if args.json:
        report = result.report.to_dict()
        report["deviations"] = [str(d) for d in result.deviations]
        print(json.dumps(report, indent=2))
    else:
        print(result.output, end="")


def cmd_reinforce(args):
    """Reinforce attention for the named sections (or tools)."""
    from ctxpack.attention import reinforcement_names

    booter, _ = _booter(args)
    names = []
    for name in args.names:
        names.extend(reinforcement_names(name) if args.tool else [name])
    weights = booter.ledger.reinforce_many(names)
    for name, weight in weights.items():
        print(f"{name}: {weight:.2f}")


def cmd_decay(args):
    """Apply one decay tick without compiling."""
    booter, _ = _booter(args)
    forgotten = booter.ledger.decay_all()
    print(f"Decayed {len(booter.ledger)} weights, forgot {len(forgotten)}")
    for name in forgotten:
        print(f"  - {name}")


def cmd_snapshot(args):
    """Record a new integrity baseline and backup."""
    booter, directory = _booter(args)
    names = booter.monitor.snapshot(directory.critical_sections())
    if names:
        print(f"Baseline recorded for: {', '.join(names)}")
    else:
        print("No critical sections found; baseline is empty")


def cmd_check(args):
    """Check critical sections against the baseline."""
    booter, directory = _booter(args)
    deviations = booter.monitor.check_drift(directory.critical_sections())
    if not deviations:
        print(f"Integrity OK ({booter.monitor.state})")
        return
    for deviation in deviations:
        print(str(deviation))
    sys.exit(2)


def cmd_restore(args):
    """Restore sections flagged by the last check from backup."""
    booter, _ = _booter(args)
    pending = booter.monitor.deviations()
    if not pending:
        print("Nothing to restore")
        return
    restored = booter.monitor.restore()
    print(f"Restored: {', '.join(restored) if restored else '(none)'}")
    skipped = [d.name for d in pending if d.name not in restored]
    if skipped:
        print(f"Skipped (no backup or write failed): {', '.join(skipped)}")


def cmd_status(args):
    """Show configuration, attention weights and integrity state."""
    from ctxpack.store_lib import TIKTOKEN_AVAILABLE

    booter, directory = _booter(args)
    config = booter.config

    print("ctxpack Status")
    print("=" * 50)
    print(f"Workspace: {directory.root}")
    print(f"Budget: {config.budget} units x {config.cost_per_unit} chars/unit = {config.max_chars:,} chars")
    print(f"Thresholds: skeleton > {config.skeleton_threshold}, footer > {config.minimal_footer_threshold} units")
    print(f"Token counting: {'tiktoken' if TIKTOKEN_AVAILABLE else 'ratio estimate'}")

    names = directory.names()
    print(f"Sections: {len(names)}")

    weights = booter.ledger.weights()
    if weights:
        print("Attention:")
        for name, weight in sorted(weights.items(), key=lambda x: x[1], reverse=True)[:10]:
            bar = "█" * max(1, round(weight * 20))
            print(f"  {weight:.2f}  {bar}  {name}")
    else:
        print("Attention: no learned weights yet")

    print(f"Integrity: {booter.monitor.state}")
    for deviation in booter.monitor.deviations():
        print(f"  {deviation}")


def cmd_history(args):
    """Show boot history."""
    from ctxpack.history import format_changelog, format_stats, load_history, parse_duration

    booter, _ = _booter(args)
    path = booter.history_path
    since = parse_duration(args.since) if args.since else None
    entries = load_history(path, last=args.last, since=since)

    if not entries:
        print("No history entries found.")
        return

    if args.stats:
        print(format_stats(entries))
    else:
        print(format_changelog(entries))
        print(f"\n[{len(entries)} entries]")


def cmd_version(args):
    """Show version information."""
    from ctxpack import __version__
    from ctxpack.store_lib import TIKTOKEN_AVAILABLE

    print(f"ctxpack {__version__}")
    print(f"Python {sys.version.split()[0]}")
    print(f"tiktoken: {'available' if TIKTOKEN_AVAILABLE else 'not installed'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctxpack",
        description="ctxpack - Budget-constrained context compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ctxpack boot                  Compile the current directory's sections
  ctxpack boot --budget 2000    Compile into a smaller budget
  ctxpack reinforce MEMORY.md   Credit a section the consumer relied on
  ctxpack check                 Verify critical sections
  ctxpack restore               Repair drifted critical sections
        """
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--workspace", "-w", default=".", help="Workspace directory (default: current directory)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    boot_parser = subparsers.add_parser("boot", parents=[common], help="Compile the workspace context")
    boot_parser.add_argument("--budget", type=int, help="Budget in cost units (overrides config)")
    boot_parser.add_argument("--exclude", nargs="*", help="Section names to suppress")
    boot_parser.add_argument("--json", action="store_true", help="Print the report as JSON instead of the payload")

    reinforce_parser = subparsers.add_parser("reinforce", parents=[common], help="Reinforce attention")
    reinforce_parser.add_argument("names", nargs="+", help="Section or tool names")
    reinforce_parser.add_argument("--tool", action="store_true",
                                  help="Names are tool calls (skill_<name>_* also credits skill:<name>)")

    subparsers.add_parser("decay", parents=[common], help="Apply one attention decay tick")
    subparsers.add_parser("snapshot", parents=[common], help="Baseline and back up critical sections")
    subparsers.add_parser("check", parents=[common], help="Check critical sections for drift")
    subparsers.add_parser("restore", parents=[common], help="Restore drifted critical sections")
    subparsers.add_parser("status", parents=[common], help="Show configuration and state")

    history_parser = subparsers.add_parser("history", parents=[common], help="Show boot history")
    history_parser.add_argument("--last", type=int, default=20, help="Number of entries to show")
    history_parser.add_argument("--since", type=str, help="Time window (e.g., 2h, 30m, 1d)")
    history_parser.add_argument("--stats", action="store_true", help="Show summary statistics")

    subparsers.add_parser("version", help="Show version information")
    return parser


def main(argv=None):
    """Main CLI entry point."""
    from ctxpack.store_lib import windows_utf8_io
    windows_utf8_io()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    # Dispatch to command handlers
    commands = {
        "boot": cmd_boot,
        "reinforce": cmd_reinforce,
        "decay": cmd_decay,
        "snapshot": cmd_snapshot,
        "check": cmd_check,
        "restore": cmd_restore,
        "status": cmd_status,
        "history": cmd_history,
        "version": cmd_version,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            handler(args)
        except KeyboardInterrupt:
            print("\nAborted.")
            sys.exit(1)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
