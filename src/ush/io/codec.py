"""Line decoders — quoted-printable and hex-escape.

A script line may be written in an encoding that can carry any byte,
including newlines and NULs, in plain printable text:

- **Quoted-printable** (``qp``) — ``=`` followed by two hex digits is
  that byte; ``=`` at the end of a line, or of the input, is a soft
  line break.  Only printable ASCII, space and tab may appear literally.
- **Hex-escape** (``xnn``) — ``\\xNN`` is the byte ``0xNN``; every other
  byte stands for itself.

Both decoders consume at least as many input bytes as they produce, so
the write position never passes the read position.  That makes it safe
to decode a ``bytearray`` into itself::

    buf = bytearray(b"a=3Db")
    n = qp_decode_into(buf, len(buf), buf)
    del buf[n:]                      # buf == b"a=b"

Errors are reported with errno-style codes on ``DecodeError.code``:

- ``INVALID_ENCODING`` (``EINVAL``) — a bad or truncated escape, or a
  byte that quoted-printable does not allow.
- ``LENGTH`` (``ENAMETOOLONG``) — the destination capacity ran out.
"""

import errno
import string
from collections.abc import Callable
from typing import TypeAlias

INVALID_ENCODING = errno.EINVAL
LENGTH = errno.ENAMETOOLONG

_HEX_DIGITS = frozenset(string.hexdigits.encode())
_QP_LITERAL = frozenset(range(0x20, 0x7F)) | {ord("\t")}
_CR = ord("\r")
_LF = ord("\n")
_EQUALS = ord("=")
_BACKSLASH = ord("\\")
_X = ord("x")

_Decoder: TypeAlias = Callable[[bytearray, int, bytes | bytearray], int]


class DecodeError(Exception):
    """Raised when a line cannot be decoded."""

    def __init__(self, message: str, *, code: int) -> None:
        """Create the error with an errno-style code."""
        super().__init__(message)
        self.code = code


def _hex_pair(src: bytes | bytearray, i: int) -> int:
    """Return the byte spelled by the two hex digits at ``src[i:i+2]``."""
    pair = src[i : i + 2]
    if len(pair) != 2 or pair[0] not in _HEX_DIGITS or pair[1] not in _HEX_DIGITS:  # noqa: PLR2004
        msg = f"incomplete escape at offset {i}"
        raise DecodeError(msg, code=INVALID_ENCODING)
    return int(pair, 16)


def _check_room(length: int, capacity: int) -> None:
    if length >= capacity:
        msg = f"decoded line exceeds {capacity} bytes"
        raise DecodeError(msg, code=LENGTH)


def qp_decode_into(buf: bytearray, capacity: int, src: bytes | bytearray) -> int:
    """Decode quoted-printable ``src`` into ``buf``.

    ``buf`` may be ``src`` itself.  Bytes past the returned length are
    left untouched.

    Args:
        buf: Destination buffer.
        capacity: Maximum number of bytes that may be written.
        src: Encoded line (delimiter already stripped).

    Returns:
        The number of decoded bytes.

    Raises:
        DecodeError: On an invalid byte, a bad escape, or lack of room.

    """
    length = 0
    i = 0
    end = len(src)
    while i < end:
        c = src[i]
        if c == _EQUALS:
            nxt = src[i + 1] if i + 1 < end else None
            if nxt is None:
                # Script lines arrive without their LF, so a final "=" is the soft break.
                i += 1
                continue
            if nxt in (_CR, _LF):
                # Soft line break: "=\r\n" or "=\n" produces nothing.
                i += 2
                if nxt == _CR and i < end and src[i] == _LF:
                    i += 1
                continue
            _check_room(length, capacity)
            value = _hex_pair(src, i + 1)
            buf[length] = value
            length += 1
            i += 3
        elif c in _QP_LITERAL:
            _check_room(length, capacity)
            buf[length] = c
            length += 1
            i += 1
        elif c in (_CR, _LF):
            i += 1
        else:
            msg = f"byte 0x{c:02x} at offset {i} is not valid quoted-printable"
            raise DecodeError(msg, code=INVALID_ENCODING)
    return length


def xnn_decode_into(buf: bytearray, capacity: int, src: bytes | bytearray) -> int:
    """Decode hex-escaped ``src`` into ``buf``.

    ``buf`` may be ``src`` itself.

    Args:
        buf: Destination buffer.
        capacity: Maximum number of bytes that may be written.
        src: Encoded line (delimiter already stripped).

    Returns:
        The number of decoded bytes.

    Raises:
        DecodeError: On a truncated escape or lack of room.

    """
    length = 0
    i = 0
    end = len(src)
    while i < end:
        _check_room(length, capacity)
        c = src[i]
        if c == _BACKSLASH and i + 1 < end and src[i + 1] == _X:
            c = _hex_pair(src, i + 2)
            i += 4
        else:
            i += 1
        buf[length] = c
        length += 1
    return length


def _decode(decoder: _Decoder, data: bytes | bytearray) -> bytes:
    buf = bytearray(data)
    n = decoder(buf, len(buf), buf)
    del buf[n:]
    return bytes(buf)


def qp_decode(data: bytes | bytearray) -> bytes:
    """Return the quoted-printable decoding of ``data``."""
    return _decode(qp_decode_into, data)


def xnn_decode(data: bytes | bytearray) -> bytes:
    """Return the hex-escape decoding of ``data``."""
    return _decode(xnn_decode_into, data)


def qp_encode(data: bytes) -> bytes:
    """Encode ``data`` as one quoted-printable line (no soft breaks).

    Printable ASCII, space and tab are kept; ``=`` and everything else
    become ``=XX``.
    """
    out = bytearray()
    for c in data:
        if c in _QP_LITERAL and c != _EQUALS:
            out.append(c)
        else:
            out += b"=%02X" % c
    return bytes(out)


def xnn_encode(data: bytes) -> bytes:
    """Encode ``data`` with ``\\xNN`` escapes.

    Printable ASCII other than backslash is kept; everything else is
    escaped, so the result never contains a newline or NUL.
    """
    out = bytearray()
    for c in data:
        if 0x20 <= c < 0x7F and c != _BACKSLASH:  # noqa: PLR2004
            out.append(c)
        else:
            out += b"\\x%02x" % c
    return bytes(out)
