"""Command line front end for the shared digram store.

Usage:
    digrams show --format percentage --context text-mode
    digrams contexts
    digrams record --context text-mode forward-word kill-word
    digrams record --from session.log        # lines: "CONTEXT EVENT"
    digrams reset --yes
"""
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from digrams.config.settings import load_settings, validate_settings
from digrams.control_layer.manager import DigramManager, ResetOutcome
from digrams.tools.counter_store import Order
from digrams.tools.persistence.exceptions import CorruptStoreError, DigramStoreError
from digrams.utils import report

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_PARTIAL = 2
EXIT_CORRUPT = 3
EXIT_FAILED = 4


def _write_output(text: str, target: str) -> None:
    if target == "-":
        sys.stdout.write(text)
        return
    Path(target).expanduser().write_text(text, encoding="utf-8")


def _read_event_lines(source: str) -> Iterable[Tuple[str, str]]:
    stream = sys.stdin if source == "-" else open(source, encoding="utf-8")
    try:
        for lineno, line in enumerate(stream, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 2:
                raise ValueError(f"{source}:{lineno}: expected 'CONTEXT EVENT', got {line!r}")
            yield parts[0], parts[1]
    finally:
        if stream is not sys.stdin:
            stream.close()


def cmd_show(manager: DigramManager, args) -> int:
    if args.format == "json":
        env = manager.render_json(context=args.context, order=args.order, threshold=args.threshold)
        if env.status == "ERROR":
            print(f"error: {env.error}", file=sys.stderr)
            return EXIT_FAILED
        text = env.to_json(indent=2) + "\n"
    else:
        text = manager.render_report(context=args.context, mode=args.format, order=args.order, threshold=args.threshold)
    _write_output(text, args.output or manager.settings.report_target)
    return EXIT_OK


def cmd_contexts(manager: DigramManager, args) -> int:
    for context in sorted(manager.contexts()):
        print(context)
    return EXIT_OK


def cmd_record(manager: DigramManager, args) -> int:
    if args.source:
        pairs = list(_read_event_lines(args.source))
    else:
        if not args.context:
            print("record: --context is required when events are given on the command line", file=sys.stderr)
            return EXIT_ABORTED
        pairs = [(args.context, event) for event in args.events]
    counted = sum(1 for context, event in pairs if manager.record_event(event, context))
    manager.request_save(blocking=True)
    print(f"Recorded {counted} digrams from {len(pairs)} events into {manager.log.path}")
    return EXIT_OK


def cmd_reset(manager: DigramManager, args) -> int:
    if not args.yes:
        answer = input(f"Reset all digram statistics in {manager.log.path}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Reset aborted")
            return EXIT_ABORTED
    outcome = manager.reset_all()
    if outcome is ResetOutcome.PARTIAL:
        print(f"In-memory statistics reset, but {manager.log.path} is locked by another process and was kept")
        return EXIT_PARTIAL
    print("Digram statistics reset")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="digrams", description="Command digram statistics")
    parser.add_argument("--file", help="Store path (overrides DIGRAMS_FILE)")
    parser.add_argument("--lock-file", help="Lock path (overrides DIGRAMS_LOCK_FILE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print digram statistics")
    show.add_argument("--context", help="Only digrams recorded in this context")
    show.add_argument("--format", choices=list(report.MODES) + ["json"], default=report.PERCENTAGE)
    show.add_argument("--order", choices=[o.value for o in Order], default=Order.DESCENDING.value)
    show.add_argument("--threshold", type=int, default=0, help="0 all, N>0 count>N, N<-1 count<|N|, -1 totals only")
    show.add_argument("--output", help="Write to this path instead of DIGRAMS_REPORT_TARGET")
    show.set_defaults(func=cmd_show)

    contexts = sub.add_parser("contexts", help="List contexts present in the store")
    contexts.set_defaults(func=cmd_contexts)

    record = sub.add_parser("record", help="Record an event sequence and save it")
    record.add_argument("--context", help="Context for events given on the command line")
    record.add_argument("--from", dest="source", help="Read 'CONTEXT EVENT' lines from a file ('-' for stdin)")
    record.add_argument("events", nargs="*", help="Events in invocation order")
    record.set_defaults(func=cmd_record)

    reset = sub.add_parser("reset", help="Delete all recorded statistics")
    reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    reset.set_defaults(func=cmd_reset)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = load_settings()
    except EnvironmentError as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return EXIT_ABORTED
    overrides = {}
    if args.file:
        store_path = Path(args.file).expanduser()
        overrides["store_path"] = store_path
        overrides["lock_path"] = Path(args.lock_file).expanduser() if args.lock_file else store_path.with_name(store_path.name + ".lock")
    elif args.lock_file:
        overrides["lock_path"] = Path(args.lock_file).expanduser()
    if overrides:
        settings = replace(settings, **overrides)
    problems: List[str] = validate_settings(settings)
    if problems:
        for problem in problems:
            print(f"config error: {problem}", file=sys.stderr)
        return EXIT_ABORTED

    manager = DigramManager(settings=settings)
    try:
        return args.func(manager, args)
    except CorruptStoreError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CORRUPT
    except (DigramStoreError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
