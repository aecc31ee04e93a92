"""Decode the event stream of one ``MTrk`` chunk.

Each event is ``<delta-time VLQ> [status] <payload>``.  The reader is a
small state machine driven once per event:

  AwaitDeltaTime  read the VLQ and advance the absolute tick counter
  ResolveStatus   a byte >= 0x80 is a new status; anything lower is the
                  first data byte of a running-status event and is unread
  DispatchBody    channel-voice payloads have a fixed size; System (0xF)
                  fans out by its low nibble into sysex / common / realtime /
                  meta handling

SysEx data, realtime and common messages, and every meta event except
TempoSetting are consumed without producing an ``Event``.  EndOfTrack stops
the track; running out of bytes at an event boundary does too.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from .cursor import ByteCursor
from .errors import (
    FormatError,
    MalformedMetaEventError,
    ProtocolViolationError,
    UnknownEventTypeError,
)
from .events import (
    DATA_LENGTHS,
    Event,
    EventType,
    MetaEventType,
    SystemEventType,
    Track,
    event_type_from_nibble,
    meta_event_type_from_byte,
    system_event_type_from_nibble,
)

logger = logging.getLogger(__name__)

TRACK_MAGIC = b"MTrk"
TEMPO_META_SIZE = 3

# Realtime and common messages handled here carry no data bytes.
# TimeCodeQuarterFrame is listed although the wire format gives it one.
_ZERO_PAYLOAD_SYSTEM = frozenset(
    {
        SystemEventType.TuneRequest,
        SystemEventType.TimingClock,
        SystemEventType.TimeCodeQuarterFrame,
        SystemEventType.Start,
        SystemEventType.Continue,
        SystemEventType.Stop,
        SystemEventType.ActiveSensing,
    }
)
_TWO_BYTE_SYSTEM = frozenset(
    {SystemEventType.SongPositionPointer, SystemEventType.SongSelect}
)


class TrackReader:
    """Iterate the events of a single track from a shared cursor."""

    def __init__(self, cursor: ByteCursor) -> None:
        self.cursor = cursor
        self.time = 0
        self.running_status: Optional[EventType] = None
        self.running_channel: Optional[int] = None
        self.end_of_track = False

    def __iter__(self) -> Iterator[Event]:
        while not self.end_of_track and not self.cursor.at_end():
            event = self.next_event()
            if event is not None:
                yield event

    def next_event(self) -> Event | None:
        """Run one delta-time / status / body pass; None for skipped messages."""

        self.time += self.cursor.read_vlq()
        event_type, channel = self.resolve_status()

        if DATA_LENGTHS[event_type] is None:
            return self.read_system_event(channel)
        return self.read_data_event(event_type, channel)

    def resolve_status(self) -> Tuple[EventType, int]:
        offset = self.cursor.tell()
        byte = self.cursor.read_u8()

        if byte >= 0x80:
            status = event_type_from_nibble(byte >> 4)
            if status is None:
                raise UnknownEventTypeError(
                    f"unknown status byte 0x{byte:02X}", offset=offset
                )
            self.running_status = status
            self.running_channel = byte & 0x0F
        else:
            self.cursor.unread()
            if self.running_status is None or self.running_channel is None:
                raise ProtocolViolationError(
                    f"data byte 0x{byte:02X} with no running status", offset=offset
                )

        return self.running_status, self.running_channel

    def read_data_event(self, event_type: EventType, channel: int) -> Event:
        length = DATA_LENGTHS[event_type]
        value1 = self.cursor.read_u8()
        value2 = self.cursor.read_u8() if length == 2 else None
        return Event(
            event_type=event_type,
            time=self.time,
            channel=channel,
            value1=value1,
            value2=value2,
        )

    def read_system_event(self, channel: int) -> Event | None:
        offset = self.cursor.tell()
        system_type = system_event_type_from_nibble(channel)

        if system_type is None:
            raise UnknownEventTypeError(
                f"undefined system message 0xF{channel:X}", offset=offset
            )
        if system_type is SystemEventType.SystemExclusive:
            self.skip_sysex()
        elif system_type is SystemEventType.EndOfSystemExclusive:
            raise ProtocolViolationError(
                "EndOfSystemExclusive outside a system exclusive message", offset=offset
            )
        elif system_type is SystemEventType.SystemResetOrMeta:
            return self.read_meta_event(system_type)
        elif system_type in _TWO_BYTE_SYSTEM:
            self.cursor.skip(2, system_type.name)
        elif system_type in _ZERO_PAYLOAD_SYSTEM:
            logger.debug("ignoring %s at tick %d", system_type.name, self.time)

        return None

    def skip_sysex(self) -> None:
        """Discard bytes up to and including one whose low nibble is 0x7."""

        start = self.cursor.tell()
        terminator = SystemEventType.EndOfSystemExclusive.value
        while self.cursor.read_u8() & 0x0F != terminator:
            pass
        logger.debug(
            "skipped sysex at 0x%X (%d bytes)", start, self.cursor.tell() - start
        )

    def read_meta_event(self, system_type: SystemEventType) -> Event | None:
        offset = self.cursor.tell()
        meta_byte = self.cursor.read_u8()
        size = self.cursor.read_vlq()
        meta_type = meta_event_type_from_byte(meta_byte)

        if meta_type is MetaEventType.EndOfTrack:
            self.cursor.skip(size, "end of track")
            self.end_of_track = True
            return None

        if meta_type is MetaEventType.TempoSetting:
            if size != TEMPO_META_SIZE:
                raise MalformedMetaEventError(
                    f"tempo meta event has size {size}, expected {TEMPO_META_SIZE}",
                    offset=offset,
                )
            tempo = self.cursor.read_u24()
            return Event(
                event_type=EventType.System,
                time=self.time,
                channel=system_type.value,
                value1=tempo,
                system_event_type=system_type,
                meta_event_type=meta_type,
            )

        self.cursor.skip(size, "meta payload")
        logger.debug(
            "skipped meta 0x%02X (%s), %d bytes",
            meta_byte,
            meta_type.name if meta_type is not None else "unknown",
            size,
        )
        return None


def read_track(cursor: ByteCursor) -> Track:
    """Read one ``MTrk`` chunk at the cursor into a ``Track``.

    The declared chunk size is read but not used to bound the event loop;
    the track ends at EndOfTrack or at the end of the stream.
    """
    offset = cursor.tell()
    magic = cursor.read_exact(4, "track magic")
    if magic != TRACK_MAGIC:
        raise FormatError(f"bad track magic: {magic.hex()}", offset=offset)

    declared_size = cursor.read_u32()
    start = cursor.tell()
    events: List[Event] = list(TrackReader(cursor))
    consumed = cursor.tell() - start

    if consumed != declared_size:
        logger.debug(
            "track at 0x%X declared %d bytes, consumed %d", offset, declared_size, consumed
        )
    logger.debug("track at 0x%X: %d events", offset, len(events))
    return Track.from_events(events)
