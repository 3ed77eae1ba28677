"""Fragmentation and reassembly of UDP relay messages."""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace

from rysteria.messages import UdpMessage


def new_frag_packet_id() -> int:
    """Random packet ID for a fragmented packet, in [1, 65535]."""
    return random.randrange(0, 0xFFFF) + 1


def frag_udp_message(m: UdpMessage, max_size: int) -> list[UdpMessage]:
    """Split ``m`` into messages of at most ``max_size`` serialized bytes.

    The packet ID of ``m`` is kept on every fragment.
    """
    if m.size() <= max_size:
        return [replace(m)]

    payload = bytes(m.data)
    max_payload = max_size - m.header_size()
    if max_payload <= 0:
        raise ValueError(f"max_size {max_size} leaves no room for payload")
    frag_count = -(-len(payload) // max_payload)
    if frag_count > 255:
        raise ValueError(f"frag_count {frag_count} exceeds 255")

    return [
        replace(
            m,
            frag_id=frag_id,
            frag_count=frag_count,
            data=payload[off:off + max_payload],
        )
        for frag_id, off in enumerate(range(0, len(payload), max_payload))
    ]


@dataclass
class Defragger:
    """Reassembles one fragmented packet at a time.

    A fragment with a new packet ID discards any incomplete earlier packet.
    """

    _pkt_id: int = 0
    _frags: list[UdpMessage | None] = field(default_factory=list)
    _count: int = 0
    _size: int = 0

    def feed(self, m: UdpMessage) -> UdpMessage | None:
        """Feed one fragment; return the whole message once it is complete."""
        if m.frag_count <= 1:
            return m
        if m.frag_id >= m.frag_count:
            return None

        if m.pkt_id != self._pkt_id or m.frag_count != len(self._frags):
            self._pkt_id = m.pkt_id
            self._frags = [None] * m.frag_count
            self._size = len(m.data)
            self._count = 1
            self._frags[m.frag_id] = m
            return None

        if self._frags[m.frag_id] is None:
            self._size += len(m.data)
            self._count += 1
            self._frags[m.frag_id] = m
            if self._count == len(self._frags):
                data = b"".join(bytes(f.data) for f in self._frags if f is not None)
                return replace(m, data=data, frag_id=0, frag_count=1)
        return None