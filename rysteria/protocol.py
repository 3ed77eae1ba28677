"""Wire-level primitives: QUIC varints, padding and TCP proxy framing."""

from __future__ import annotations

import random
import sys

FRAME_TYPE_TCP_REQUEST = 0x401

MAX_ADDRESS_LENGTH = 2048
MAX_MESSAGE_LENGTH = 2048
MAX_PADDING_LENGTH = 4096
MAX_DATAGRAM_FRAME_SIZE = 1200
MAX_UDP_SIZE = 4096

DEFAULT_STREAM_RECEIVE_WINDOW = 8 * 1024 * 1024
DEFAULT_CONN_RECEIVE_WINDOW = DEFAULT_STREAM_RECEIVE_WINDOW * 5 // 2

URL_HOST = "hysteria"
URL_PATH = "/auth"
STATUS_AUTH_OK = 233

HEADER_AUTH = "Hysteria-Auth"
HEADER_UDP_ENABLED = "Hysteria-UDP"
HEADER_CC_RX = "Hysteria-CC-RX"
HEADER_PADDING = "Hysteria-Padding"

PADDING_CHARS = b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

AUTH_REQ_PADDING_RANGE = (256, 2048)
AUTH_RESP_PADDING_RANGE = (256, 2048)
TCP_REQ_PADDING_RANGE = (64, 512)
TCP_RESP_PADDING_RANGE = (128, 1024)

# Path MTU discovery is only supported on Linux, Windows and macOS.
DISABLE_PATH_MTU_DISCOVERY = not sys.platform.startswith(("linux", "win32", "darwin"))

_MAX_VARINT_1 = 63
_MAX_VARINT_2 = 16_383
_MAX_VARINT_4 = 1_073_741_823
_MAX_VARINT_8 = 4_611_686_018_427_387_903

ERR_INSUFFICIENT_DATA = "insufficient data"
ERR_INVALID_ADDRESS_LENGTH = "invalid address length"
ERR_INVALID_MESSAGE_LENGTH = "invalid message length"
ERR_INVALID_PADDING_LENGTH = "invalid padding length"
ERR_INVALID_UTF8 = "invalid utf-8"


class ProtocolError(ValueError):
    """Raised when wire data cannot be decoded; ``kind`` names the reason."""

    def __init__(self, kind: str) -> None:
        super().__init__(kind)
        self.kind = kind


def varint_len(v: int) -> int:
    """Number of bytes needed to encode ``v`` as a QUIC varint."""
    if v <= _MAX_VARINT_1:
        return 1
    if v <= _MAX_VARINT_2:
        return 2
    if v <= _MAX_VARINT_4:
        return 4
    return 8


def varint_encode(v: int) -> bytes:
    """Encode ``v`` as a QUIC varint (RFC 9000 section 16)."""
    if v < 0 or v > _MAX_VARINT_8:
        raise ValueError(f"{v:#x} does not fit in 62 bits")
    n = varint_len(v)
    tag = {1: 0x00, 2: 0x40, 4: 0x80, 8: 0xC0}[n]
    raw = bytearray(v.to_bytes(n, "big"))
    raw[0] |= tag
    return bytes(raw)


def varint_read(buf: bytes) -> tuple[int, int]:
    """Read a varint from the front of ``buf``; return (value, bytes consumed)."""
    if not buf:
        raise ProtocolError(ERR_INSUFFICIENT_DATA)
    n = 1 << (buf[0] >> 6)
    if len(buf) < n:
        raise ProtocolError(ERR_INSUFFICIENT_DATA)
    value = int.from_bytes(bytes([buf[0] & 0x3F]) + bytes(buf[1:n]), "big")
    return value, n


def gen_padding(min_len: int, max_len: int) -> bytes:
    """Random alphanumeric padding with a length in ``[min_len, max_len)``."""
    n = random.randrange(min_len, max_len)
    return bytes(random.choices(PADDING_CHARS, k=n))


def auth_request_padding() -> bytes:
    """Padding for the HTTP/3 auth request."""
    return gen_padding(*AUTH_REQ_PADDING_RANGE)


def auth_response_padding() -> bytes:
    """Padding for the HTTP/3 auth response."""
    return gen_padding(*AUTH_RESP_PADDING_RANGE)


def tcp_request_padding() -> bytes:
    """Padding for a TCP proxy request."""
    return gen_padding(*TCP_REQ_PADDING_RANGE)


def tcp_response_padding() -> bytes:
    """Padding for a TCP proxy response."""
    return gen_padding(*TCP_RESP_PADDING_RANGE)


def _read_bytes(buf: bytes, pos: int, length: int) -> bytes:
    chunk = bytes(buf[pos:pos + length])
    if len(chunk) < length:
        raise ProtocolError(ERR_INSUFFICIENT_DATA)
    return chunk


def _decode_utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError(ERR_INVALID_UTF8) from None


def write_tcp_request(addr: str) -> bytes:
    """Serialize a TCP proxy request, frame type included."""
    addr_bytes = addr.encode("utf-8")
    padding = tcp_request_padding()
    return b"".join(
        (
            varint_encode(FRAME_TYPE_TCP_REQUEST),
            varint_encode(len(addr_bytes)),
            addr_bytes,
            varint_encode(len(padding)),
            padding,
        )
    )


def read_tcp_request(buf: bytes) -> tuple[str, int]:
    """Parse a TCP proxy request whose frame type was already consumed.

    Returns (address, bytes consumed).
    """
    addr_len, pos = varint_read(buf)
    if addr_len == 0 or addr_len > MAX_ADDRESS_LENGTH:
        raise ProtocolError(ERR_INVALID_ADDRESS_LENGTH)
    address = _decode_utf8(_read_bytes(buf, pos, addr_len))
    pos += addr_len

    padding_len, n = varint_read(buf[pos:])
    pos += n
    if padding_len > MAX_PADDING_LENGTH:
        raise ProtocolError(ERR_INVALID_PADDING_LENGTH)
    _read_bytes(buf, pos, padding_len)
    pos += padding_len
    return address, pos


def write_tcp_response(ok: bool, msg: str) -> bytes:
    """Serialize a TCP proxy response."""
    msg_bytes = msg.encode("utf-8")
    padding = tcp_response_padding()
    return b"".join(
        (
            b"\x00" if ok else b"\x01",
            varint_encode(len(msg_bytes)),
            msg_bytes,
            varint_encode(len(padding)),
            padding,
        )
    )


def read_tcp_response(buf: bytes) -> tuple[bool, str, int]:
    """Parse a TCP proxy response; return (ok, message, bytes consumed)."""
    if not buf:
        raise ProtocolError(ERR_INSUFFICIENT_DATA)
    ok = buf[0] == 0x00
    pos = 1

    msg_len, n = varint_read(buf[pos:])
    pos += n
    if msg_len > MAX_MESSAGE_LENGTH:
        raise ProtocolError(ERR_INVALID_MESSAGE_LENGTH)
    message = _decode_utf8(_read_bytes(buf, pos, msg_len)) if msg_len else ""
    pos += msg_len

    padding_len, n = varint_read(buf[pos:])
    pos += n
    if padding_len > MAX_PADDING_LENGTH:
        raise ProtocolError(ERR_INVALID_PADDING_LENGTH)
    _read_bytes(buf, pos, padding_len)
    pos += padding_len
    return ok, message, pos