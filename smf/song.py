"""Assemble a ``Song`` from a complete SMF byte stream."""

from __future__ import annotations

import logging
import os
from typing import BinaryIO, Iterable, List, Optional, Tuple, Union

from .cursor import ByteCursor
from .errors import MalformedMetaEventError
from .events import DEFAULT_BPM, Song, Track, bpm_from_tempo
from .header import read_header
from .reader import read_track

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, BinaryIO]


def _as_bytes(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    read = getattr(source, "read", None)
    if read is None:
        raise TypeError(
            f"expected bytes or a binary file object, got {type(source).__name__}"
        )
    data = read()
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("file object must be opened in binary mode")
    return bytes(data)


def first_tempo(tracks: Iterable[Track]) -> Optional[int]:
    """Raw tempo of the first TempoSetting event, scanning tracks in order."""

    for track in tracks:
        for event in track.events:
            if event.is_tempo:
                return event.value1
    return None


def parse(source: Source) -> Song:
    """Parse a Standard MIDI File.

    Parameters
    ----------
    source : bytes-like or binary file object
        The whole file.  File objects are read to the end.

    Returns
    -------
    Song
        Tracks in file order.  ``bpm`` comes from the first tempo event in
        the file; later tempo changes stay in the event lists only.

    Raises
    ------
    MidiParseError
        Any structural fault; no partial song is returned.
    """
    cursor = ByteCursor(_as_bytes(source))
    header = read_header(cursor)

    tracks: List[Track] = []
    for _ in range(header.track_count):
        tracks.append(read_track(cursor))

    if not cursor.at_end():
        logger.debug("%d trailing bytes after last track", cursor.remaining)

    max_time = max((track.max_time for track in tracks), default=0)

    tempo = first_tempo(tracks)
    bpm = DEFAULT_BPM
    if tempo is not None:
        if tempo == 0:
            raise MalformedMetaEventError("first tempo event is 0 microseconds per quarter")
        bpm = bpm_from_tempo(tempo)
        logger.debug("tempo %d us/quarter -> %.3f bpm", tempo, bpm)

    return Song(
        time_unit=header.time_unit,
        track_count=header.track_count,
        tracks=tuple(tracks),
        max_time=max_time,
        bpm=bpm,
        format=header.format,
        tempo=tempo,
    )


def read_midi(path: Union[str, os.PathLike]) -> Song:
    with open(path, "rb") as handle:
        return parse(handle)


def track_summary(song: Song) -> List[Tuple[int, int, int]]:
    """``(index, event_count, max_time)`` per track."""

    return [(index, len(track.events), track.max_time) for index, track in enumerate(song.tracks)]
