from __future__ import annotations

import logging
from dataclasses import dataclass

from .cursor import ByteCursor
from .errors import FormatError

logger = logging.getLogger(__name__)

HEADER_MAGIC = b"MThd"
HEADER_LENGTH = 6


@dataclass(frozen=True)
class Header:
    format: int  # 0 = single track, 1 = multitrack, 2 = multisong
    track_count: int
    time_division: int  # raw u16 as stored

    @property
    def time_unit(self) -> int:
        """Signed reading of the division: ticks per quarter if positive, SMPTE if negative."""

        if self.time_division & 0x8000:
            return self.time_division - 0x10000
        return self.time_division


def read_header(cursor: ByteCursor) -> Header:
    """Read the ``MThd`` chunk at the cursor.

    Raises
    ------
    FormatError
        Wrong magic, or a chunk length other than 6.
    TruncatedInputError
        The stream ends inside the chunk.
    """
    offset = cursor.tell()
    magic = cursor.read_exact(4, "header magic")
    if magic != HEADER_MAGIC:
        raise FormatError(f"bad header magic: {magic.hex()}", offset=offset)

    length_offset = cursor.tell()
    length = cursor.read_u32()
    if length != HEADER_LENGTH:
        raise FormatError(
            f"header chunk length is {length}, expected {HEADER_LENGTH}",
            offset=length_offset,
        )

    header = Header(
        format=cursor.read_u16(),
        track_count=cursor.read_u16(),
        time_division=cursor.read_u16(),
    )
    logger.debug(
        "header: format=%d tracks=%d division=0x%04X",
        header.format,
        header.track_count,
        header.time_division,
    )
    return header
