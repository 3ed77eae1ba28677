"""Token-bucket pacer used by the Brutal congestion controller.

All times are monotonic timestamps in integer nanoseconds, as returned by
``time.monotonic_ns()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_BURST_PACKETS = 10
MAX_BURST_PACING_DELAY_MULTIPLIER = 4
MIN_PACING_DELAY_NS = 1_000_000
INITIAL_PACKET_SIZE = 1280

_NANOS_PER_SEC = 1_000_000_000
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1
_BUDGET_OVERFLOW = (1 << 62) - 1


def _saturate_i64(value: int) -> int:
    return max(_I64_MIN, min(_I64_MAX, value))


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


@dataclass
class Pacer:
    """Token-bucket pacing state.

    ``bandwidth`` is the current effective rate in bytes per second.
    ``last_sent_time`` is ``None`` until the first packet is sent.
    """

    bandwidth: int
    budget_at_last_sent: int = MAX_BURST_PACKETS * INITIAL_PACKET_SIZE
    max_datagram_size: int = INITIAL_PACKET_SIZE
    last_sent_time: int | None = field(default=None)

    def set_bandwidth(self, bw: int) -> None:
        """Change the effective bandwidth in bytes per second."""
        self.bandwidth = bw

    def set_max_datagram_size(self, size: int) -> None:
        """Change the maximum datagram size used for burst sizing."""
        self.max_datagram_size = size

    def _max_burst_size(self) -> int:
        time_based = _trunc_div(
            MAX_BURST_PACING_DELAY_MULTIPLIER * MIN_PACING_DELAY_NS * self.bandwidth,
            _NANOS_PER_SEC,
        )
        packet_based = MAX_BURST_PACKETS * self.max_datagram_size
        return max(time_based, packet_based)

    def budget(self, now: int) -> int:
        """Bytes that may be sent at time ``now``."""
        if self.last_sent_time is None:
            return self._max_burst_size()
        elapsed_ns = max(now - self.last_sent_time, 0)
        earned = _trunc_div(_saturate_i64(self.bandwidth * elapsed_ns), _NANOS_PER_SEC)
        budget = _saturate_i64(self.budget_at_last_sent + earned)
        if budget < 0:
            budget = _BUDGET_OVERFLOW
        return min(budget, self._max_burst_size())

    def sent_packet(self, send_time: int, size: int) -> None:
        """Record that ``size`` bytes were sent at ``send_time``."""
        budget = self.budget(send_time)
        self.budget_at_last_sent = 0 if size > budget else budget - size
        self.last_sent_time = send_time

    def time_until_send(self) -> int | None:
        """Earliest time the next packet may go out, or ``None`` for immediately."""
        if self.budget_at_last_sent >= self.max_datagram_size:
            return None
        if self.last_sent_time is None or self.bandwidth <= 0:
            return None
        diff = _NANOS_PER_SEC * (self.max_datagram_size - self.budget_at_last_sent)
        delay_ns = -(-diff // self.bandwidth)
        return self.last_sent_time + max(delay_ns, MIN_PACING_DELAY_NS)