"""UDP relay messages and the HTTP/3 auth request/response structures."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from rysteria.protocol import (
    ERR_INSUFFICIENT_DATA,
    ERR_INVALID_ADDRESS_LENGTH,
    ERR_INVALID_MESSAGE_LENGTH,
    ERR_INVALID_UTF8,
    MAX_MESSAGE_LENGTH,
    ProtocolError,
    auth_request_padding,
    auth_response_padding,
    varint_encode,
    varint_len,
    varint_read,
)

_FIXED_HEADER = struct.Struct(">IHBB")
_U64_MAX = (1 << 64) - 1


def _parse_u64(text: str) -> int:
    """Parse an unsigned 64-bit decimal; 0 if the text is not one."""
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        return 0
    value = int(digits)
    return value if value <= _U64_MAX else 0


@dataclass
class UdpMessage:
    """A UDP relay message carried in a QUIC datagram."""

    session_id: int
    pkt_id: int
    frag_id: int
    frag_count: int
    addr: str
    data: bytes

    def header_size(self) -> int:
        """Serialized size of everything before the payload."""
        addr_len = len(self.addr.encode("utf-8"))
        return _FIXED_HEADER.size + varint_len(addr_len) + addr_len

    def size(self) -> int:
        """Total serialized size."""
        return self.header_size() + len(self.data)

    def to_bytes(self) -> bytes:
        """Serialize to wire format."""
        addr_bytes = self.addr.encode("utf-8")
        return b"".join(
            (
                _FIXED_HEADER.pack(
                    self.session_id, self.pkt_id, self.frag_id, self.frag_count
                ),
                varint_encode(len(addr_bytes)),
                addr_bytes,
                bytes(self.data),
            )
        )


def parse_udp_message(msg: bytes) -> UdpMessage:
    """Parse a UDP relay message; the payload must be at least one byte."""
    if len(msg) < _FIXED_HEADER.size:
        raise ProtocolError(ERR_INSUFFICIENT_DATA)
    session_id, pkt_id, frag_id, frag_count = _FIXED_HEADER.unpack_from(msg)

    rest = bytes(msg[_FIXED_HEADER.size:])
    addr_len, n = varint_read(rest)
    if addr_len == 0 or addr_len > MAX_MESSAGE_LENGTH:
        raise ProtocolError(ERR_INVALID_ADDRESS_LENGTH)

    remaining = rest[n:]
    if len(remaining) <= addr_len:
        raise ProtocolError(ERR_INVALID_MESSAGE_LENGTH)

    try:
        addr = remaining[:addr_len].decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError(ERR_INVALID_UTF8) from None

    return UdpMessage(
        session_id=session_id,
        pkt_id=pkt_id,
        frag_id=frag_id,
        frag_count=frag_count,
        addr=addr,
        data=remaining[addr_len:],
    )


@dataclass
class AuthRequest:
    """What the client sends in the POST /auth request headers."""

    auth: str
    rx: int = 0

    @classmethod
    def from_headers(cls, auth: str, cc_rx: str) -> AuthRequest:
        """Build from header values; an unparsable rate becomes 0."""
        return cls(auth=auth, rx=_parse_u64(cc_rx))

    @staticmethod
    def padding() -> str:
        """A fresh value for the padding header of a request."""
        return auth_request_padding().decode("ascii")


@dataclass
class AuthResponse:
    """What the server sends back in the auth response headers."""

    udp_enabled: bool = False
    rx: int = 0
    rx_auto: bool = False

    @classmethod
    def from_headers(cls, udp_enabled: str, cc_rx: str) -> AuthResponse:
        """Build from header values; unparsable values fall back to defaults."""
        enabled = udp_enabled == "true"
        if cc_rx == "auto":
            return cls(udp_enabled=enabled, rx=0, rx_auto=True)
        return cls(udp_enabled=enabled, rx=_parse_u64(cc_rx), rx_auto=False)

    def cc_rx_header_value(self) -> str:
        """The receive-rate header value for this response."""
        return "auto" if self.rx_auto else str(self.rx)

    @staticmethod
    def padding() -> str:
        """A fresh value for the padding header of a response."""
        return auth_response_padding().decode("ascii")