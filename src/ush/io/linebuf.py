"""Line buffer — read delimiter-terminated lines of any length.

Reading a line of unknown length by repeatedly extending one buffer
copies the line over and over.  Instead, the reader fills fixed-size
**chunks** and hangs them off a **scatter/gather list**; only when the
whole line is in does it gather the chunks, once, into a buffer of the
exact size.

Structure::

    ScatterGatherList
      head ──► Segment[slot 0..63] ──► Segment[slot 0..63] ──► None
                 │
                 └─ Chunk(data: bytearray[<=1024], length)

Discipline: every ``read_line`` starts from a brand-new list and a
brand-new line buffer, so nothing from the previous line can leak into
the next one.

The line buffer also knows how to fetch a *decoded* line for each script
encoding (``fetch``): the delimiter is NUL for ``null`` and newline for
everything else, and ``qp`` / ``xnn`` lines are decoded in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO

from ush.config import Encoding
from ush.io.codec import DecodeError, qp_decode_into, xnn_decode_into

if TYPE_CHECKING:
    from collections.abc import Iterator

CHUNK_SIZE = 1024
SEGMENT_SLOTS = 64

NEWLINE = ord("\n")
NUL = 0


@dataclass
class Chunk:
    """A fixed-capacity block of raw bytes and how much of it is valid."""

    data: bytearray = field(default_factory=lambda: bytearray(CHUNK_SIZE))
    length: int = 0

    @property
    def full(self) -> bool:
        """Return True when no room is left."""
        return self.length >= len(self.data)


@dataclass
class Segment:
    """A node of the scatter/gather list holding up to ``SEGMENT_SLOTS`` chunks."""

    slots: list[Chunk] = field(default_factory=lambda: [])  # noqa: PIE807
    next: Segment | None = None


class ScatterGatherList:
    """A singly linked list of segments, filled strictly in order."""

    def __init__(self, *, slots: int = SEGMENT_SLOTS, chunk_size: int = CHUNK_SIZE) -> None:
        """Create a list with one empty segment."""
        self._slots = slots
        self._chunk_size = chunk_size
        self.head = Segment()
        self._tail = self.head

    def append_chunk(self) -> Chunk:
        """Add an empty chunk after the last one and return it.

        A new segment is linked in when the last one is full.
        """
        if len(self._tail.slots) >= self._slots:
            segment = Segment()
            self._tail.next = segment
            self._tail = segment
        chunk = Chunk(data=bytearray(self._chunk_size))
        self._tail.slots.append(chunk)
        return chunk

    def segments(self) -> Iterator[Segment]:
        """Iterate over the segments from the head."""
        segment: Segment | None = self.head
        while segment is not None:
            yield segment
            segment = segment.next

    def chunks(self) -> Iterator[Chunk]:
        """Iterate over every occupied slot in order."""
        for segment in self.segments():
            yield from segment.slots

    def __len__(self) -> int:
        """Return the total number of valid bytes."""
        return sum(chunk.length for chunk in self.chunks())

    def gather(self) -> bytearray:
        """Concatenate all chunks into one exactly-sized buffer."""
        out = bytearray(len(self))
        pos = 0
        for chunk in self.chunks():
            out[pos : pos + chunk.length] = chunk.data[: chunk.length]
            pos += chunk.length
        return out


class LineBuffer:
    """Reads lines from one binary stream.

    Attributes:
        stream: The stream being read.
        buf: The most recent line (delimiter stripped), or None.
        eof: True once end of stream was hit with nothing read.
        err: errno-style code of the last failure (0 = none).
        sgl: Scratch scatter/gather list of the read in progress.

    """

    def __init__(self, stream: BinaryIO, *, chunk_size: int = CHUNK_SIZE) -> None:
        """Wrap ``stream``."""
        self.stream = stream
        self.buf: bytearray | None = None
        self.eof = False
        self.err = 0
        self.sgl: ScatterGatherList | None = None
        self._chunk_size = chunk_size

    @property
    def length(self) -> int:
        """Return the length of the current line."""
        return 0 if self.buf is None else len(self.buf)

    def clear(self) -> None:
        """Drop the current line and scatter/gather list."""
        self.buf = None
        self.sgl = None

    def _fill(self, chunk: Chunk, delimiter: int) -> tuple[bool, bool]:
        """Read into ``chunk`` until it is full, the delimiter, or EOF.

        Returns:
            ``(found_delimiter, hit_eof)``.

        """
        read = self.stream.read
        data = chunk.data
        while not chunk.full:
            b = read(1)
            if not b:
                return False, True
            data[chunk.length] = b[0]
            chunk.length += 1
            if b[0] == delimiter:
                return True, False
        return False, False

    def read_line(self, delimiter: int = NEWLINE) -> bytearray | None:
        """Read one line terminated by ``delimiter``.

        Returns:
            The line without its delimiter, or None at end of stream
            (``eof`` is then set).

        """
        self.clear()
        self.sgl = ScatterGatherList(chunk_size=self._chunk_size)
        while True:
            chunk = self.sgl.append_chunk()
            found, at_eof = self._fill(chunk, delimiter)
            if found or at_eof:
                break

        total = len(self.sgl)
        if total == 0:
            self.eof = True
            self.sgl = None
            return None

        line = self.sgl.gather()
        self.sgl = None
        if line[-1] == delimiter:
            del line[-1]
        self.buf = line
        return line

    def fetch(self, encoding: Encoding) -> bytearray | None:
        """Read and decode one line in the given script encoding.

        Returns:
            The decoded line, or None on end of stream or on a decode
            failure (``err`` then holds the code and ``buf`` is None).

        """
        if encoding is Encoding.NULL:
            return self.read_line(NUL)
        line = self.read_line(NEWLINE)
        if line is None or encoding is Encoding.TEXT:
            return line

        decoder = qp_decode_into if encoding is Encoding.QP else xnn_decode_into
        try:
            n = decoder(line, len(line), line)
        except DecodeError as e:
            self.err = e.code
            self.buf = None
            return None
        del line[n:]
        return line
