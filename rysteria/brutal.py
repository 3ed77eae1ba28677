"""Brutal fixed-rate congestion controller.

Acks and losses are counted in a five-slot ring, one slot per second, and
the send rate is raised by the observed ack rate. Times are monotonic
timestamps in integer nanoseconds, as returned by ``time.monotonic_ns()``;
RTTs are durations in integer nanoseconds.
"""

from __future__ import annotations

import copy
import os
import sys
import threading
import time
from dataclasses import dataclass

from rysteria.pacer import INITIAL_PACKET_SIZE, Pacer

PKT_INFO_SLOT_COUNT = 5
MIN_SAMPLE_COUNT = 50
MIN_ACK_RATE = 0.8
CONGESTION_WINDOW_MULTIPLIER = 2.0
DEBUG_ENV = "RYSTERIA_BRUTAL_DEBUG"
DEBUG_PRINT_INTERVAL = 2
INITIAL_CWND_NO_RTT = 10240

_NANOS_PER_SEC = 1_000_000_000
_START_TIME = time.monotonic_ns()


def timestamp_secs(now: int) -> int:
    """Whole seconds between process start and ``now`` (never negative)."""
    return max(now - _START_TIME, 0) // _NANOS_PER_SEC


def _debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV) == "true"


def _secs_f64(duration_ns: int) -> float:
    secs, nanos = divmod(duration_ns, _NANOS_PER_SEC)
    return secs + nanos / _NANOS_PER_SEC


class SharedRate:
    """An integer rate in bytes per second, safe to share between threads."""

    def __init__(self, value: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = value

    def load(self) -> int:
        """Return the current value."""
        with self._lock:
            return self._value

    def store(self, value: int) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = value


@dataclass
class PktInfo:
    """Ack and loss counts for one second."""

    timestamp: int = 0
    ack_count: int = 0
    loss_count: int = 0


class BrutalSender:
    """Fixed-rate congestion controller targeting ``bps`` bytes per second.

    ``initial_rtt`` seeds the RTT so the window is right before the first
    ack. ``effective_bps`` receives ``bps / ack_rate`` whenever it changes.
    """

    def __init__(
        self,
        bps: int,
        initial_rtt: int = 0,
        effective_bps: SharedRate | None = None,
    ) -> None:
        self.effective_bps = effective_bps if effective_bps is not None else SharedRate()
        self.effective_bps.store(bps)
        self.bps = bps
        self.max_datagram_size = INITIAL_PACKET_SIZE
        self.latest_rtt = initial_rtt
        self.pacer = Pacer(bps)
        self.pkt_info_slots = [PktInfo() for _ in range(PKT_INFO_SLOT_COUNT)]
        self.ack_rate = 1.0
        self.debug = _debug_enabled()
        self.last_ack_print_timestamp = 0

    def __repr__(self) -> str:
        return (
            f"BrutalSender(bps={self.bps}, max_datagram_size={self.max_datagram_size}, "
            f"ack_rate={self.ack_rate}, latest_rtt={self.latest_rtt})"
        )

    def window(self) -> int:
        """Congestion window in bytes."""
        if self.latest_rtt == 0:
            return INITIAL_CWND_NO_RTT
        cwnd = int(
            self.bps
            * _secs_f64(self.latest_rtt)
            * CONGESTION_WINDOW_MULTIPLIER
            / self.ack_rate
        )
        return max(cwnd, self.max_datagram_size)

    def initial_window(self) -> int:
        """Window used before any RTT sample exists."""
        return INITIAL_CWND_NO_RTT

    def clone(self) -> BrutalSender:
        """An independent copy that still publishes to the same shared rate."""
        other = copy.copy(self)
        other.pacer = copy.copy(self.pacer)
        other.pkt_info_slots = [copy.copy(info) for info in self.pkt_info_slots]
        return other

    def update_slot(self, timestamp: int, ack_delta: int, loss_delta: int) -> None:
        """Add ack and loss counts to the slot for ``timestamp``."""
        info = self.pkt_info_slots[timestamp % PKT_INFO_SLOT_COUNT]
        if info.timestamp == timestamp:
            info.ack_count += ack_delta
            info.loss_count += loss_delta
        else:
            info.timestamp = timestamp
            info.ack_count = ack_delta
            info.loss_count = loss_delta

    def _debug_print(self, current_timestamp: int, text: str) -> None:
        if self.debug and current_timestamp - self.last_ack_print_timestamp >= DEBUG_PRINT_INTERVAL:
            self.last_ack_print_timestamp = current_timestamp
            print(f"[BrutalSender] {text}", file=sys.stderr)

    def update_ack_rate(self, current_timestamp: int) -> None:
        """Recompute the ack rate from the slots of the last five seconds."""
        min_timestamp = current_timestamp - PKT_INFO_SLOT_COUNT
        recent = [i for i in self.pkt_info_slots if i.timestamp >= min_timestamp]
        ack_count = sum(i.ack_count for i in recent)
        loss_count = sum(i.loss_count for i in recent)
        total = ack_count + loss_count

        if total < MIN_SAMPLE_COUNT:
            self.ack_rate = 1.0
            self._debug_print(
                current_timestamp,
                f"Not enough samples (total={total}, ack={ack_count}, loss={loss_count})",
            )
            return

        self.ack_rate = max(ack_count / total, MIN_ACK_RATE)
        effective_bw = int(self.bps / self.ack_rate)
        self.pacer.set_bandwidth(effective_bw)
        self.effective_bps.store(effective_bw)
        self._debug_print(
            current_timestamp,
            f"ACK rate: {self.ack_rate:.2f} (total={total}, ack={ack_count}, loss={loss_count})",
        )

    def on_congestion_event(
        self, now: int, sent: int, is_persistent_congestion: bool, lost_bytes: int
    ) -> None:
        """Count one lost packet."""
        self.update_slot(timestamp_secs(now), 0, 1)

    def on_mtu_update(self, new_mtu: int) -> None:
        """Adopt a new maximum datagram size."""
        self.max_datagram_size = new_mtu
        self.pacer.set_max_datagram_size(new_mtu)
        if self.debug:
            print(f"[BrutalSender] SetMaxDatagramSize: {new_mtu}", file=sys.stderr)

    def on_sent(self, now: int, nbytes: int, last_packet_number: int) -> None:
        """Charge a sent packet against the pacer."""
        self.pacer.sent_packet(now, nbytes)

    def on_ack(self, now: int, sent: int, nbytes: int, app_limited: bool, rtt: int) -> None:
        """Take the smoothed RTT ``rtt`` and count one acked packet."""
        self.latest_rtt = rtt
        self.update_slot(timestamp_secs(now), 1, 0)

    def on_end_acks(
        self,
        now: int,
        in_flight: int,
        app_limited: bool,
        largest_packet_num_acked: int | None,
    ) -> None:
        """Recompute the ack rate after a batch of acks."""
        self.update_ack_rate(timestamp_secs(now))


@dataclass
class BrutalControllerFactory:
    """Builds a standalone ``BrutalSender`` for each new connection."""

    bps: int

    def build(self, now: int, max_datagram_size: int) -> BrutalSender:
        """A new sender sized for ``max_datagram_size``."""
        sender = BrutalSender(self.bps, 0, SharedRate(0))
        sender.on_mtu_update(max_datagram_size)
        return sender