"""Tests for the per-track event state machine."""

from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from smf.cursor import ByteCursor  # noqa: E402
from smf.errors import (  # noqa: E402
    FormatError,
    MalformedMetaEventError,
    ProtocolViolationError,
    TruncatedInputError,
    UnknownEventTypeError,
)
from smf.events import EventType, MetaEventType, SystemEventType  # noqa: E402
from smf.reader import TrackReader, read_track  # noqa: E402

from smf_bytes import END_OF_TRACK, TEMPO_500000, chunk, tempo_event, track  # noqa: E402


def _read(body: bytes):
    cursor = ByteCursor(body)
    events = list(TrackReader(cursor))
    return events, cursor


def _fields(events):
    return [(e.event_type, e.time, e.channel, e.value1, e.value2) for e in events]


# ── channel-voice payloads ─────────────────────────────────────────


class TestChannelVoice:
    def test_two_byte_events(self):
        events, _ = _read(
            b"\x00\x93\x3C\x64"  # NoteOn ch3
            b"\x10\x83\x3C\x00"  # NoteOff ch3
            b"\x00\xA1\x3C\x20"  # poly pressure
            b"\x00\xB2\x07\x7F"  # CC7
            b"\x00\xEF\x00\x40"  # pitch bend ch15
        )
        assert _fields(events) == [
            (EventType.NoteOn, 0, 3, 0x3C, 0x64),
            (EventType.NoteOff, 0x10, 3, 0x3C, 0x00),
            (EventType.PolyphonicKeyPressure, 0x10, 1, 0x3C, 0x20),
            (EventType.ControlChange, 0x10, 2, 0x07, 0x7F),
            (EventType.PitchBendChange, 0x10, 15, 0x00, 0x40),
        ]

    def test_one_byte_events(self):
        events, _ = _read(b"\x00\xC5\x18\x05\xD5\x33")
        assert _fields(events) == [
            (EventType.ProgramChange, 0, 5, 0x18, None),
            (EventType.ChannelPressure, 5, 5, 0x33, None),
        ]

    def test_absolute_time_accumulates_deltas(self):
        events, _ = _read(
            b"\x00\x90\x3C\x40"
            b"\x87\x40\x80\x3C\x00"  # +960
            b"\x60\x90\x3E\x40"  # +96
            b"\x00\x80\x3E\x00"  # +0
        )
        times = [e.time for e in events]
        assert times == [0, 960, 1056, 1056]
        assert times == sorted(times)

    def test_truncated_payload(self):
        with pytest.raises(TruncatedInputError):
            _read(b"\x00\x90\x3C")

    def test_truncated_status(self):
        with pytest.raises(TruncatedInputError):
            _read(b"\x00\x90\x3C\x40\x10")


# ── running status ──────────────────────────────────────────────────


class TestRunningStatus:
    def test_omitted_status_matches_explicit(self):
        explicit, _ = _read(b"\x00\x91\x3C\x40\x60\x91\x3E\x40")
        running, cursor = _read(b"\x00\x91\x3C\x40\x60\x3E\x40")
        assert _fields(running) == _fields(explicit)
        assert running[1].event_type is EventType.NoteOn
        assert running[1].channel == 1
        assert cursor.at_end()

    def test_running_status_one_byte_event(self):
        events, _ = _read(b"\x00\xC2\x01\x00\x02\x00\x03")
        assert _fields(events) == [
            (EventType.ProgramChange, 0, 2, 1, None),
            (EventType.ProgramChange, 0, 2, 2, None),
            (EventType.ProgramChange, 0, 2, 3, None),
        ]

    def test_new_status_replaces_running_status(self):
        events, _ = _read(b"\x00\x90\x3C\x40\x00\x3E\x40\x00\xB0\x40\x7F\x00\x40\x00")
        assert [e.event_type for e in events] == [
            EventType.NoteOn,
            EventType.NoteOn,
            EventType.ControlChange,
            EventType.ControlChange,
        ]
        assert events[3].value1 == 0x40 and events[3].value2 == 0

    def test_data_byte_before_any_status_is_fatal(self):
        with pytest.raises(ProtocolViolationError) as excinfo:
            _read(b"\x00\x3C\x40")
        assert excinfo.value.offset == 1

    def test_resolve_status_unreads_data_byte(self):
        cursor = ByteCursor(b"\x90\x3C\x40\x3E\x40")
        reader = TrackReader(cursor)
        assert reader.resolve_status() == (EventType.NoteOn, 0)
        assert cursor.tell() == 1
        cursor.skip(2)
        assert reader.resolve_status() == (EventType.NoteOn, 0)
        assert cursor.tell() == 3


# ── system messages ─────────────────────────────────────────────────


class TestSystemMessages:
    def test_sysex_is_skipped_through_terminator(self):
        body = b"\x00\xF0\x43\x10\x4C\x00\xF7" b"\x00\x90\x3C\x40"
        events, cursor = _read(body)
        assert _fields(events) == [(EventType.NoteOn, 0, 0, 0x3C, 0x40)]
        assert cursor.at_end()

    def test_sysex_terminator_matches_low_nibble(self):
        # 0x27 ends the skip: only the low nibble is compared.
        events, _ = _read(b"\x00\xF0\x01\x27" b"\x00\x90\x3C\x40")
        assert len(events) == 1
        assert events[0].value1 == 0x3C

    def test_unterminated_sysex(self):
        with pytest.raises(TruncatedInputError):
            _read(b"\x00\xF0\x01\x02\x03")

    def test_bare_end_of_sysex(self):
        with pytest.raises(ProtocolViolationError):
            _read(b"\x00\xF7\x00\x90\x3C\x40")

    @pytest.mark.parametrize("status", [0xF6, 0xF8, 0xFA, 0xFB, 0xFC, 0xFE, 0xF1])
    def test_zero_payload_system_messages(self, status):
        events, cursor = _read(bytes([0x00, status]) + b"\x05\x90\x3C\x40")
        assert _fields(events) == [(EventType.NoteOn, 5, 0, 0x3C, 0x40)]
        assert cursor.at_end()

    @pytest.mark.parametrize("status", [0xF2, 0xF3])
    def test_two_byte_system_messages_are_skipped(self, status):
        events, cursor = _read(bytes([0x00, status, 0x11, 0x22]) + b"\x00\x90\x3C\x40")
        assert len(events) == 1
        assert cursor.at_end()

    @pytest.mark.parametrize("status", [0xF4, 0xF5, 0xF9, 0xFD])
    def test_undefined_system_messages(self, status):
        with pytest.raises(UnknownEventTypeError):
            _read(bytes([0x00, status]))


# ── meta events ─────────────────────────────────────────────────────


class TestMetaEvents:
    def test_tempo_event(self):
        events, _ = _read(tempo_event(500000, delta=0x30))
        assert len(events) == 1
        tempo = events[0]
        assert tempo.event_type is EventType.System
        assert tempo.system_event_type is SystemEventType.SystemResetOrMeta
        assert tempo.meta_event_type is MetaEventType.TempoSetting
        assert tempo.channel == 0xF
        assert tempo.value1 == 500000
        assert tempo.value2 is None
        assert tempo.time == 0x30

    def test_tempo_with_wrong_size(self):
        with pytest.raises(MalformedMetaEventError):
            _read(b"\x00\xFF\x51\x04\x07\xA1\x20\x00")

    def test_zero_tempo_is_kept_as_an_event(self):
        events, cursor = _read(b"\x00\xFF\x51\x03\x00\x00\x00")
        assert len(events) == 1
        assert events[0].is_tempo
        assert events[0].value1 == 0
        assert cursor.at_end()

    def test_other_meta_events_are_skipped(self):
        body = (
            b"\x00\xFF\x03\x05Piano"  # track name
            b"\x00\xFF\x58\x04\x04\x02\x18\x08"  # time signature
            b"\x00\xFF\x60\x02\xAA\xBB"  # unknown meta type
            b"\x00\x90\x3C\x40"
        )
        events, cursor = _read(body)
        assert _fields(events) == [(EventType.NoteOn, 0, 0, 0x3C, 0x40)]
        assert cursor.at_end()

    def test_meta_payload_truncated(self):
        with pytest.raises(TruncatedInputError):
            _read(b"\x00\xFF\x03\x05Pia")

    def test_end_of_track_stops_reading(self):
        body = b"\x00\x90\x3C\x40" + END_OF_TRACK + b"\x00\x90\x3E\x40"
        cursor = ByteCursor(body)
        reader = TrackReader(cursor)
        events = list(reader)
        assert len(events) == 1
        assert reader.end_of_track
        assert cursor.tell() == 8

    def test_exhaustion_ends_track_without_end_marker(self):
        events, cursor = _read(b"\x00\x90\x3C\x40\x10\x80\x3C\x00")
        assert len(events) == 2
        assert cursor.at_end()

    def test_next_event_returns_none_for_skipped_messages(self):
        reader = TrackReader(ByteCursor(b"\x00\xFF\x01\x01X\x00\xF8" + TEMPO_500000))
        assert reader.next_event() is None
        assert reader.next_event() is None
        assert reader.next_event().value1 == 500000


# ── track chunks ────────────────────────────────────────────────────


class TestReadTrack:
    def test_read_track(self):
        cursor = ByteCursor(track(b"\x00\x90\x3C\x40\x83\x60\x80\x3C\x00"))
        result = read_track(cursor)
        assert [e.time for e in result.events] == [0, 480]
        assert result.max_time == 480
        assert cursor.at_end()

    def test_single_event_track_reports_zero_max_time(self):
        result = read_track(ByteCursor(track(b"\x83\x60\x90\x3C\x40")))
        assert len(result.events) == 1
        assert result.max_time == 0

    def test_bad_track_magic(self):
        with pytest.raises(FormatError) as excinfo:
            read_track(ByteCursor(chunk(b"MTrx", END_OF_TRACK)))
        assert excinfo.value.offset == 0

    def test_declared_size_is_not_enforced(self):
        data = b"MTrk" + (999).to_bytes(4, "big") + b"\x00\x90\x3C\x40" + END_OF_TRACK
        result = read_track(ByteCursor(data))
        assert len(result.events) == 1
