"""Read Standard MIDI Files into an immutable song / track / event model."""

from .cursor import ByteCursor  # noqa: F401
from .errors import (  # noqa: F401
    FormatError,
    MalformedMetaEventError,
    MidiParseError,
    ProtocolViolationError,
    TruncatedInputError,
    UnknownEventTypeError,
)
from .events import (  # noqa: F401
    DATA_LENGTHS,
    DEFAULT_BPM,
    Event,
    EventType,
    MetaEventType,
    Song,
    SystemEventType,
    Track,
    bpm_from_tempo,
    event_type_from_nibble,
    meta_event_type_from_byte,
    system_event_type_from_nibble,
)
from .header import HEADER_MAGIC, Header, read_header  # noqa: F401
from .reader import TRACK_MAGIC, TrackReader, read_track  # noqa: F401
from .song import first_tempo, parse, read_midi, track_summary  # noqa: F401
