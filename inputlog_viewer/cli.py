#!/usr/bin/env python3
"""
inputlog_viewer/cli.py - Command-Line Interface

Usage:
    inputlog validate recording.ilj
    inputlog validate recording.ilj --output report.json
    inputlog transitions recording.ilj 0
    inputlog search recording.ilj --id 0 --state pressed
    inputlog play recording.ilj --speed 2 --duration 1.5 --loop 10 20

Exit Codes:
    0 = OK
    2 = Load failed / bad request
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, Optional

from inputlog_core import ButtonState, InputKind, color_to_hex
from inputlog_replay import SearchQuery

from .config import Settings, ViewerPreferences
from .session import ViewerSession

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 2

# Inspection commands are read-only; only playback updates the recent list
RECORDS_RECENT_FILES = frozenset({"play"})


def main(argv: Optional[list] = None):
    """
    Parse command-line arguments and dispatch the inputlog command-line interface.

    Subcommands:
    - validate: load a log and print a summary or the load error
    - transitions: list transition frames for one mapping
    - search: list frames matching an id / kind / button state query
    - play: run headless playback and print the cursor per tick
    """
    parser = argparse.ArgumentParser(
        prog="inputlog",
        description="Validate, inspect and replay recorded input logs"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Validate an input log")
    validate_parser.add_argument("log_file", help="Path to .ilj / .json log")
    validate_parser.add_argument("--output", "-o", help="Path to write a JSON report")
    validate_parser.add_argument("--quiet", "-q", action="store_true", help="Only set the exit code")

    transitions_parser = subparsers.add_parser("transitions", help="List transitions of one input")
    transitions_parser.add_argument("log_file")
    transitions_parser.add_argument("mapping_id", type=int)

    search_parser = subparsers.add_parser("search", help="Find frames with matching events")
    search_parser.add_argument("log_file")
    search_parser.add_argument("--id", dest="input_id", type=int)
    search_parser.add_argument("--kind", choices=[k.value for k in InputKind])
    search_parser.add_argument("--state", choices=[s.value for s in ButtonState])

    play_parser = subparsers.add_parser("play", help="Headless playback")
    play_parser.add_argument("log_file")
    play_parser.add_argument("--speed", type=float, help="Speed multiplier (0.1 - 10.0)")
    play_parser.add_argument("--duration", type=float, default=1.0, help="Wall-clock seconds to simulate")
    play_parser.add_argument("--tick", type=float, default=1.0 / 60.0, help="Seconds per refresh")
    play_parser.add_argument("--start", type=int, default=0, help="Frame to start from")
    play_parser.add_argument("--loop", nargs=2, type=int, metavar=("START", "END"), help="Loop range")
    play_parser.add_argument("--loop-all", action="store_true", help="Loop the whole log")

    args = parser.parse_args(argv)

    settings = Settings()
    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    preferences = ViewerPreferences.from_settings(settings)
    session = ViewerSession(preferences, max_recent_files=settings.MAX_RECENT_FILES)

    handlers = {
        "validate": run_validate,
        "transitions": run_transitions,
        "search": run_search,
        "play": run_play,
    }
    code = handlers[args.command](args, session)

    if (
        args.command in RECORDS_RECENT_FILES
        and session.document is not None
        and settings.REMEMBER_RECENT_FILES
    ):
        try:
            preferences.save(settings.preferences_path)
        except OSError as e:
            logger.warning("Could not save preferences: %s", e)

    sys.exit(code)


def _open_or_report(session: ViewerSession, path: str, quiet: bool = False) -> bool:
    if session.open_file(path):
        return True
    if not quiet:
        error = session.last_error
        print(f"Error: {error.error_code.value}: {error.message}", file=sys.stderr)
    return False


def build_report(session: ViewerSession) -> Dict[str, Any]:
    """Machine-readable outcome of a load attempt."""
    document = session.document
    if document is None:
        return {
            "file": session.source,
            "status": "FAILED",
            "error": session.last_error.to_dict() if session.last_error else None,
        }
    return {
        "file": session.source,
        "status": "OK",
        "version": document.metadata.version,
        "frame_rate": document.frame_rate,
        "total_frames": document.total_frames,
        "duration_seconds": document.total_frames * document.frame_duration,
        "created_at": document.metadata.created_at,
        "source": document.metadata.source,
        "digest": document.digest(),
        "mappings": [
            {
                **m.to_dict(),
                "transitions": len(session.event_index.transitions(m.id)),
            }
            for m in document.mappings.values()
        ],
    }


def run_validate(args, session: ViewerSession) -> int:
    """
    Run the validate subcommand.

    Behavior:
        - Loads the log through the full validation pipeline.
        - If `output` is provided, writes the report as JSON to that path.
        - Unless `quiet` is set, prints a summary or the load error.
        - Returns EXIT_OK on success, EXIT_FAILED otherwise.
    """
    ok = session.open_file(args.log_file)
    report = build_report(session)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(report, f, indent=2)
        if not args.quiet:
            print(f"Report written to: {args.output}")

    if not args.quiet:
        print(f"\n{'='*60}")
        print(f"LOAD RESULT: {report['status']}")
        print(f"{'='*60}")
        print(f"File:             {report['file']}")
        if ok:
            print(f"Version:          {report['version']}")
            print(f"Frame Rate:       {report['frame_rate']} fps")
            print(f"Total Frames:     {report['total_frames']}")
            print(f"Duration:         {report['duration_seconds']:.3f} s")
            print(f"Source:           {report['source']}")
            print(f"Digest:           {report['digest']}")
            print(f"\nMappings ({len(report['mappings'])}):")
            for m in report["mappings"]:
                print(f"  [{m['id']}] {m['name']} ({m['kind']}, {m['color']}): {m['transitions']} transition(s)")
        else:
            error = report["error"]
            print(f"Error Code:       {error['error_code']}")
            print(f"Message:          {error['message']}")
            for key, value in error["details"].items():
                print(f"  {key}: {value}")

    return EXIT_OK if ok else EXIT_FAILED


def run_transitions(args, session: ViewerSession) -> int:
    if not _open_or_report(session, args.log_file):
        return EXIT_FAILED
    document = session.document
    if args.mapping_id not in document.mappings:
        print(f"Error: no mapping with id {args.mapping_id}", file=sys.stderr)
        return EXIT_FAILED

    mapping = document.mapping(args.mapping_id)
    frames = session.event_index.transitions(args.mapping_id)
    print(f"{mapping.name} ({mapping.kind.value}, {color_to_hex(mapping.display_color)})")
    print(f"Transitions ({len(frames)}): {', '.join(str(f) for f in frames) or '-'}")
    return EXIT_OK


def run_search(args, session: ViewerSession) -> int:
    query = SearchQuery(
        input_id=args.input_id,
        kind=InputKind(args.kind) if args.kind else None,
        button_state=ButtonState(args.state) if args.state else None,
    )
    if query.is_empty():
        print("Error: give at least one of --id, --kind, --state", file=sys.stderr)
        return EXIT_FAILED
    if not _open_or_report(session, args.log_file):
        return EXIT_FAILED

    result = session.search(query)
    print(f"Matches ({result.count}): {', '.join(str(f) for f in result.matches) or '-'}")
    return EXIT_OK


def run_play(args, session: ViewerSession) -> int:
    """Simulate `duration` seconds of refreshes and print the cursor after each."""
    if args.tick <= 0 or args.duration < 0:
        print("Error: --tick must be > 0 and --duration >= 0", file=sys.stderr)
        return EXIT_FAILED
    if not _open_or_report(session, args.log_file):
        return EXIT_FAILED

    engine = session.engine
    engine.seek(args.start)
    if args.speed is not None:
        engine.set_speed(args.speed)
    if args.loop:
        engine.set_loop(tuple(args.loop))
    elif args.loop_all:
        engine.set_loop_enabled(True)

    state = engine.state
    print(
        f"Start: frame {state.current_frame}, speed {state.speed}x, "
        f"loop {state.loop_range if state.loop_enabled and state.loop_range else state.loop_enabled}"
    )

    session.play()
    ticks = int(round(args.duration / args.tick))
    for i in range(1, ticks + 1):
        steps = session.tick(args.tick)
        print(f"t={i * args.tick:8.4f}s  frame={engine.current_frame:6d}  (+{steps})")
        if not engine.playing:
            print("End of log reached")
            break

    print(f"Final frame: {engine.current_frame}")
    return EXIT_OK


if __name__ == "__main__":
    main()
