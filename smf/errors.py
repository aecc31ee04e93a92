"""Exceptions raised while reading Standard MIDI Files.

Every fault derives from ``MidiParseError``, which is itself a ``ValueError``
so callers that already guard binary readers with ``except ValueError`` keep
working.
"""

from __future__ import annotations


class MidiParseError(ValueError):
    """Base class for malformed or unsupported SMF input."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.message = message
        self.offset = offset
        if offset is not None:
            message = f"{message} (at byte 0x{offset:X})"
        super().__init__(message)


class FormatError(MidiParseError):
    """Chunk magic or header length does not match the SMF layout."""


class TruncatedInputError(MidiParseError):
    """The stream ended while a fixed-size field or VLQ was being read."""


class UnknownEventTypeError(MidiParseError):
    """A status nibble that maps to no known event category."""


class MalformedMetaEventError(MidiParseError):
    """A meta event declared a size its type does not allow."""


class ProtocolViolationError(MidiParseError):
    """Bytes that are well-formed but illegal in their position."""
