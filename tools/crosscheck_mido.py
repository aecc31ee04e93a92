#!/usr/bin/env python3
"""Cross-check the smf reader against mido on channel-voice events.

For every track, both decoders' note/controller/program/pressure/bend
events are reduced to ``(tick, status_nibble, channel, data1, data2)`` and
compared in order.  System, meta and sysex messages are not compared.

Examples
--------
  python tools/crosscheck_mido.py song.mid
  python tools/crosscheck_mido.py corpus/*.mid
"""

from __future__ import annotations

import argparse
import io
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import mido

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from smf import EventType, MidiParseError, Song, parse  # noqa: E402

Row = Tuple[int, int, int, int, Optional[int]]


def smf_rows(song: Song) -> List[List[Row]]:
    tracks: List[List[Row]] = []
    for track in song.tracks:
        rows = [
            (e.time, int(e.event_type), e.channel, e.value1, e.value2)
            for e in track.events
            if e.event_type is not EventType.System
        ]
        tracks.append(rows)
    return tracks


def _mido_row(tick: int, msg: mido.Message) -> Row | None:
    if msg.type == "note_off":
        return (tick, 0x8, msg.channel, msg.note, msg.velocity)
    if msg.type == "note_on":
        return (tick, 0x9, msg.channel, msg.note, msg.velocity)
    if msg.type == "polytouch":
        return (tick, 0xA, msg.channel, msg.note, msg.value)
    if msg.type == "control_change":
        return (tick, 0xB, msg.channel, msg.control, msg.value)
    if msg.type == "program_change":
        return (tick, 0xC, msg.channel, msg.program, None)
    if msg.type == "aftertouch":
        return (tick, 0xD, msg.channel, msg.value, None)
    if msg.type == "pitchwheel":
        raw = msg.pitch + 8192
        return (tick, 0xE, msg.channel, raw & 0x7F, raw >> 7)
    return None


def mido_rows(mid: mido.MidiFile) -> List[List[Row]]:
    tracks: List[List[Row]] = []
    for track in mid.tracks:
        tick = 0
        rows: List[Row] = []
        for msg in track:
            tick += msg.time
            row = _mido_row(tick, msg)
            if row is not None:
                rows.append(row)
        tracks.append(rows)
    return tracks


def compare(data: bytes) -> List[str]:
    """Return human-readable mismatches between the two decoders (empty if none)."""

    ours = smf_rows(parse(data))
    theirs = mido_rows(mido.MidiFile(file=io.BytesIO(data)))

    problems: List[str] = []
    if len(ours) != len(theirs):
        problems.append(f"track count {len(ours)} != mido {len(theirs)}")
    for index, (a, b) in enumerate(zip(ours, theirs)):
        if len(a) != len(b):
            problems.append(f"T{index}: {len(a)} events != mido {len(b)}")
        for pos, (ra, rb) in enumerate(zip(a, b)):
            if ra != rb:
                problems.append(f"T{index} #{pos}: {ra} != mido {rb}")
                break
    return problems


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("paths", nargs="+", type=Path, help="MIDI files")
    args = parser.parse_args(argv)

    failed = 0
    for path in args.paths:
        try:
            data = path.read_bytes()
        except OSError as err:
            failed += 1
            print(f"{path}: ERR {type(err).__name__}: {err.strerror or err}")
            continue

        try:
            problems = compare(data)
        except MidiParseError as err:
            problems = [f"smf: {type(err).__name__}: {err}"]
        except (OSError, EOFError, ValueError) as err:
            problems = [f"mido: {err}"]

        if problems:
            failed += 1
            print(f"{path}: {len(problems)} mismatch(es)")
            for line in problems:
                print(f"  {line}")
        else:
            print(f"{path}: OK")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
