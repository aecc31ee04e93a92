#!/usr/bin/env python3
"""Summarise Standard MIDI Files: tracks, timing, inferred tempo, events.

Examples
--------
    python tools/dump_midi.py song.mid
    python tools/dump_midi.py "corpus/**/*.mid"
    python tools/dump_midi.py song.mid --events --track 1
"""

from __future__ import annotations

import argparse
import glob
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from smf import Event, EventType, MidiParseError, Song, read_midi, track_summary  # noqa: E402


def collect_paths(patterns: Iterable[str]) -> List[Path]:
    """Expand (recursive) globs in argument order, dropping duplicates.

    A pattern that matches nothing is kept as a literal path so the caller
    reports it instead of silently skipping it.
    """
    found: Dict[Path, Path] = {}
    for pattern in patterns:
        for name in sorted(glob.glob(pattern, recursive=True)) or [pattern]:
            path = Path(name)
            found.setdefault(path.resolve(), path)
    return list(found.values())


def summary_row(path: Path, song: Song) -> List[str]:
    bpm = f"{song.bpm:7.2f}" + ("" if song.tempo_inferred else " default")
    if song.time_unit > 0:
        duration = f"{song.duration:.2f}s"
    else:
        duration = "smpte"
    return [
        str(path),
        str(song.format),
        str(song.track_count),
        str(song.time_unit),
        bpm,
        str(song.max_time),
        duration,
    ]


def format_event(event: Event) -> str:
    if event.event_type is EventType.System:
        kind = event.meta_event_type.name if event.meta_event_type else "System"
        return f"{event.time:>8}  {kind:<22} value={event.value1}"
    text = f"{event.time:>8}  {event.event_type.name:<22} ch={event.channel:<2} {event.value1:>3}"
    if event.value2 is not None:
        text += f" {event.value2:>3}"
    return text


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show header, tempo and per-track info for Standard MIDI Files."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="File paths or glob patterns (quotes recommended for wildcards).",
    )
    parser.add_argument("--events", action="store_true", help="list decoded events")
    parser.add_argument(
        "--track", type=int, default=None, help="only list events of this 0-based track"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    targets = collect_paths(args.paths)

    rows = []
    songs = []
    failures = 0
    for path in targets:
        try:
            song = read_midi(path)
        except MidiParseError as err:
            failures += 1
            rows.append([str(path), "ERR", type(err).__name__, str(err), "", "", ""])
            continue
        except OSError as err:
            failures += 1
            rows.append([str(path), "ERR", type(err).__name__, err.strerror or str(err), "", "", ""])
            continue
        rows.append(summary_row(path, song))
        songs.append((path, song))

    header = ["File", "Fmt", "Tracks", "Division", "BPM", "MaxTick", "Length"]
    widths = [
        max(len(row[i]) for row in ([header] + rows))
        for i in range(len(header))
    ]

    def fmt_row(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row))

    print(fmt_row(header))
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print(fmt_row(row))

    if args.events:
        for path, song in songs:
            print()
            print(f"== {path}")
            for index, count, max_time in track_summary(song):
                if args.track is not None and index != args.track:
                    continue
                print(f"-- track {index}: {count} events, max tick {max_time}")
                for event in song.tracks[index].events:
                    print(format_event(event))

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
