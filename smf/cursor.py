"""Bounds-checked byte cursor over an in-memory SMF buffer."""

from __future__ import annotations

import struct

from .errors import TruncatedInputError


class ByteCursor:
    """Sequential big-endian reader with an explicit one-step rewind.

    Reads past the end raise ``TruncatedInputError`` with the offset of the
    first missing byte; the position is left where the failed read started.
    """

    __slots__ = ("_data", "_length", "_position")

    def __init__(self, data: bytes, position: int = 0) -> None:
        self._data = memoryview(data)
        self._length = len(self._data)
        if not 0 <= position <= self._length:
            raise ValueError(f"position {position} outside buffer of {self._length} bytes")
        self._position = position

    @property
    def remaining(self) -> int:
        return self._length - self._position

    def tell(self) -> int:
        return self._position

    def at_end(self) -> bool:
        return self._position >= self._length

    def _require(self, size: int, what: str) -> None:
        if self.remaining < size:
            raise TruncatedInputError(
                f"stream ended reading {what} ({self.remaining} of {size} bytes left)",
                offset=self._length,
            )

    def read_u8(self) -> int:
        self._require(1, "byte")
        value = self._data[self._position]
        self._position += 1
        return value

    def peek_u8(self) -> int:
        self._require(1, "byte")
        return self._data[self._position]

    def unread(self, count: int = 1) -> None:
        """Step back over ``count`` bytes that were read speculatively."""

        if count < 0 or count > self._position:
            raise ValueError(f"cannot unread {count} bytes at position {self._position}")
        self._position -= count

    def read_exact(self, size: int, what: str = "field") -> bytes:
        if size < 0:
            raise ValueError("size must be non-negative")
        self._require(size, what)
        start = self._position
        self._position += size
        return bytes(self._data[start : start + size])

    def skip(self, size: int, what: str = "payload") -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        self._require(size, what)
        self._position += size

    def read_u16(self) -> int:
        self._require(2, "u16")
        value = struct.unpack_from(">H", self._data, self._position)[0]
        self._position += 2
        return value

    def read_u24(self) -> int:
        return int.from_bytes(self.read_exact(3, "u24"), "big")

    def read_u32(self) -> int:
        self._require(4, "u32")
        value = struct.unpack_from(">I", self._data, self._position)[0]
        self._position += 4
        return value

    def read_vlq(self) -> int:
        """Decode a variable-length quantity (7 bits per byte, MSB first).

        Continuation bytes are not capped at the four the SMF standard allows,
        so over-long encodings decode to wider integers.
        """

        value = 0
        while True:
            if self.at_end():
                raise TruncatedInputError(
                    "stream ended inside variable-length quantity", offset=self._position
                )
            byte = self._data[self._position]
            self._position += 1
            value = (value << 7) | (byte & 0x7F)
            if not byte & 0x80:
                return value
