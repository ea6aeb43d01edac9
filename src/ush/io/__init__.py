"""Script input — the line reader and line decoders.

Re-exports public symbols so callers can write::

    from ush.io import LineBuffer, qp_decode
"""

from ush.io.codec import (
    INVALID_ENCODING,
    LENGTH,
    DecodeError,
    qp_decode,
    qp_decode_into,
    qp_encode,
    xnn_decode,
    xnn_decode_into,
    xnn_encode,
)
from ush.io.linebuf import (
    CHUNK_SIZE,
    SEGMENT_SLOTS,
    Chunk,
    LineBuffer,
    ScatterGatherList,
    Segment,
)

__all__ = [
    "CHUNK_SIZE",
    "INVALID_ENCODING",
    "LENGTH",
    "SEGMENT_SLOTS",
    "Chunk",
    "DecodeError",
    "LineBuffer",
    "ScatterGatherList",
    "Segment",
    "qp_decode",
    "qp_decode_into",
    "qp_encode",
    "xnn_decode",
    "xnn_decode_into",
    "xnn_encode",
]
