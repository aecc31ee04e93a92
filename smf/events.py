"""Event model for parsed Standard MIDI Files.

Status, system and meta codes are plain ``IntEnum`` members.  The
``*_from_*`` helpers are total: they return ``None`` for any code that has no
member instead of raising, and the reader decides which misses are faults.

Channel-voice payload sizes (bytes following the status byte):

  NoteOff, NoteOn, PolyphonicKeyPressure, ControlChange, PitchBendChange  2
  ProgramChange, ChannelPressure                                          1
  System                                                        dispatched
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, Optional, Sequence, Tuple


DEFAULT_BPM = 120.0
MICROSECONDS_PER_MINUTE = 60_000_000


class EventType(IntEnum):
    NoteOff = 0x8
    NoteOn = 0x9
    PolyphonicKeyPressure = 0xA
    ControlChange = 0xB
    ProgramChange = 0xC
    ChannelPressure = 0xD
    PitchBendChange = 0xE
    System = 0xF


class SystemEventType(IntEnum):
    SystemExclusive = 0x0
    TimeCodeQuarterFrame = 0x1
    SongPositionPointer = 0x2
    SongSelect = 0x3
    TuneRequest = 0x6
    EndOfSystemExclusive = 0x7
    TimingClock = 0x8
    Start = 0xA
    Continue = 0xB
    Stop = 0xC
    ActiveSensing = 0xE
    SystemResetOrMeta = 0xF


class MetaEventType(IntEnum):
    SequenceNumber = 0x00
    TextEvent = 0x01
    CopyrightNotice = 0x02
    SequenceOrTrackName = 0x03
    InstrumentName = 0x04
    LyricText = 0x05
    MarkerText = 0x06
    CuePoint = 0x07
    MidiChannelPrefixAssignment = 0x20
    EndOfTrack = 0x2F
    TempoSetting = 0x51
    SmpteOffset = 0x54
    TimeSignature = 0x58
    SequencerSpecificEvent = 0x7F


_EVENT_TYPES: Dict[int, EventType] = {member.value: member for member in EventType}
_SYSTEM_EVENT_TYPES: Dict[int, SystemEventType] = {
    member.value: member for member in SystemEventType
}
_META_EVENT_TYPES: Dict[int, MetaEventType] = {
    member.value: member for member in MetaEventType
}

# None marks the System category, whose payload depends on the sub-type.
DATA_LENGTHS: Dict[EventType, Optional[int]] = {
    EventType.NoteOff: 2,
    EventType.NoteOn: 2,
    EventType.PolyphonicKeyPressure: 2,
    EventType.ControlChange: 2,
    EventType.PitchBendChange: 2,
    EventType.ProgramChange: 1,
    EventType.ChannelPressure: 1,
    EventType.System: None,
}


def event_type_from_nibble(nibble: int) -> EventType | None:
    """Map the high nibble of a status byte to its category."""

    return _EVENT_TYPES.get(nibble)


def system_event_type_from_nibble(nibble: int) -> SystemEventType | None:
    """Map the low nibble of a 0xFn status byte to its system message type."""

    return _SYSTEM_EVENT_TYPES.get(nibble)


def meta_event_type_from_byte(value: int) -> MetaEventType | None:
    return _META_EVENT_TYPES.get(value)


@dataclass(frozen=True)
class Event:
    """A single decoded event.

    ``time`` is the absolute tick count from the start of the track.  For
    System events ``channel`` holds the system message nibble, not a MIDI
    channel.
    """

    event_type: EventType
    time: int
    channel: int
    value1: int
    value2: int | None = None
    system_event_type: SystemEventType | None = None
    meta_event_type: MetaEventType | None = None

    @property
    def is_meta(self) -> bool:
        return self.meta_event_type is not None

    @property
    def is_tempo(self) -> bool:
        return self.meta_event_type is MetaEventType.TempoSetting

    def is_note_terminating(self) -> bool:
        """True for NoteOff, and for NoteOn with velocity 0."""

        if self.event_type is EventType.NoteOff:
            return True
        return self.event_type is EventType.NoteOn and self.value2 == 0


@dataclass(frozen=True)
class Track:
    events: Tuple[Event, ...]
    max_time: int

    @classmethod
    def from_events(cls, events: Sequence[Event]) -> "Track":
        # Single-event tracks report 0, matching long-standing reader output.
        max_time = events[-1].time if len(events) > 1 else 0
        return cls(events=tuple(events), max_time=max_time)

    def __len__(self) -> int:
        return len(self.events)


@dataclass(frozen=True)
class Song:
    """A fully parsed file.

    ``bpm`` comes from the first TempoSetting event found scanning tracks in
    file order; ``tempo`` holds that event's raw microseconds-per-quarter
    value, or ``None`` when ``bpm`` is the 120.0 default.  ``time_unit`` is
    ticks per quarter note when positive and an SMPTE division (stored
    as-is) when negative.
    """

    time_unit: int
    track_count: int
    tracks: Tuple[Track, ...]
    max_time: int
    bpm: float = DEFAULT_BPM
    format: int = 1
    tempo: int | None = None

    @property
    def tempo_inferred(self) -> bool:
        return self.tempo is not None

    def ticks_to_seconds(self, ticks: int) -> float:
        if self.time_unit <= 0:
            raise ValueError(
                f"SMPTE time division ({self.time_unit}) has no ticks-per-beat conversion"
            )
        return ticks * 60.0 / (self.bpm * self.time_unit)

    @property
    def duration(self) -> float:
        """Length of the song in seconds at ``bpm``."""

        return self.ticks_to_seconds(self.max_time)

    def iter_events(self) -> Iterator[Tuple[int, Event]]:
        """Yield ``(track_index, event)`` in file order."""

        for index, track in enumerate(self.tracks):
            for event in track.events:
                yield index, event


def bpm_from_tempo(tempo: int) -> float:
    """Convert microseconds per quarter note to beats per minute."""

    if tempo <= 0:
        raise ValueError(f"tempo must be positive, got {tempo}")
    return MICROSECONDS_PER_MINUTE / tempo
