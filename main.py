"""
beatmap - chart file tool
Main entry point

    python main.py check chart.json     # validate, report ambiguous chains
    python main.py info chart.json      # entity counts
    python main.py new chart.json       # write an empty chart
"""
import argparse
import logging
import sys
from pathlib import Path

from beatmap.errors import CorruptData
from beatmap.session import EditSession
from beatmap.settings import configure_logging, load_settings

logger = logging.getLogger("beatmap.cli")


def cmd_check(session: EditSession) -> int:
    """Report ambiguous chains of an already-validated chart."""
    chart = session.chart
    slides = chart.ambiguous_slides()
    groups = chart.ambiguous_tsgroups()
    for slide_id in slides:
        print(f"[check] WARNING: slide {slide_id} has notes at the same time")
    for group_id in groups:
        print(f"[check] WARNING: tsgroup {group_id} has timescales at the same time")
    print(f"[check] OK: {session.file_path} ({len(slides) + len(groups)} ambiguous chains)")
    return 0


def cmd_info(session: EditSession) -> int:
    """Print entity counts."""
    chart = session.chart
    print(f"[info] file       = {session.file_path}")
    print(f"[info] timepoints = {len(chart.timepoints)}")
    print(f"[info] notes      = {len(chart.notes)}")
    print(f"[info] slides     = {len(chart.slides)}")
    print(f"[info] tsgroups   = {len(chart.tsgroups)}")
    print(f"[info] timescales = {len(chart.timescales)}")
    return 0


def main(argv=None) -> int:
    """Run the chart file tool."""
    p = argparse.ArgumentParser(description="Beatmap chart file tool")
    p.add_argument("command", choices=("check", "info", "new"), help="What to do with FILE")
    p.add_argument("file", help="Chart file (.json or .bmap)")
    p.add_argument("--config", default=None, help="Settings file (default ~/.beatmap/settings.json)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = p.parse_args(argv)

    settings = load_settings(Path(args.config) if args.config else None)
    configure_logging(settings, verbose=args.verbose)

    path = Path(args.file).expanduser().resolve()

    if args.command == "new":
        if path.exists():
            print(f"[new] ERROR: refusing to overwrite {path}", file=sys.stderr)
            return 1
        written = EditSession.new(settings=settings).save(path)
        print(f"[new] -> {written}")
        return 0

    if not path.exists():
        print(f"[{args.command}] ERROR: input not found: {path}", file=sys.stderr)
        return 1

    try:
        session = EditSession.open(path, settings=settings)
    except CorruptData as e:
        for problem in e.problems:
            print(f"[{args.command}] ERROR: {problem}", file=sys.stderr)
        return 1
    except IOError as e:
        print(f"[{args.command}] ERROR: {e}", file=sys.stderr)
        return 2

    if args.command == "check":
        return cmd_check(session)
    return cmd_info(session)


if __name__ == "__main__":
    sys.exit(main())
