import time

import pytest

from rysteria.brutal import (
    INITIAL_CWND_NO_RTT,
    MIN_ACK_RATE,
    PKT_INFO_SLOT_COUNT,
    BrutalControllerFactory,
    BrutalSender,
    PktInfo,
    SharedRate,
    timestamp_secs,
)
from rysteria.pacer import INITIAL_PACKET_SIZE

MS = 1_000_000


def make_sender(bps):
    return BrutalSender(bps, 0, SharedRate(0))


def test_window_returns_initial_when_rtt_unknown():
    assert make_sender(10_000_000).window() == INITIAL_CWND_NO_RTT


def test_window_scales_with_rtt():
    s = make_sender(10_000_000)
    s.latest_rtt = 100 * MS
    assert s.window() == 2_000_000


def test_window_clamps_to_max_datagram_size():
    s = make_sender(100)
    s.latest_rtt = 1
    assert s.window() >= INITIAL_PACKET_SIZE


def test_window_with_ack_rate_below_1():
    s = make_sender(10_000_000)
    s.latest_rtt = 100 * MS
    s.ack_rate = 0.8
    assert s.window() == 2_500_000


def test_initial_window():
    assert make_sender(1).initial_window() == INITIAL_CWND_NO_RTT


def test_ack_rate_stays_1_when_insufficient_samples():
    s = make_sender(1_000_000)
    ts = timestamp_secs(time.monotonic_ns())
    s.pkt_info_slots[0] = PktInfo(timestamp=ts, ack_count=10, loss_count=0)
    s.update_ack_rate(ts)
    assert s.ack_rate == 1.0


def test_ack_rate_computed_from_samples():
    s = make_sender(1_000_000)
    ts = timestamp_secs(time.monotonic_ns())
    s.pkt_info_slots[0] = PktInfo(timestamp=ts, ack_count=80, loss_count=20)
    s.update_ack_rate(ts)
    assert s.ack_rate == pytest.approx(0.8, abs=1e-9)
    assert s.effective_bps.load() == 1_250_000
    assert s.pacer.bandwidth == 1_250_000


def test_ack_rate_clamped_to_min():
    s = make_sender(1_000_000)
    ts = timestamp_secs(time.monotonic_ns())
    s.pkt_info_slots[0] = PktInfo(timestamp=ts, ack_count=50, loss_count=200)
    s.update_ack_rate(ts)
    assert s.ack_rate == MIN_ACK_RATE


def test_stale_slots_excluded_from_ack_rate():
    s = make_sender(1_000_000)
    ts = 100
    s.pkt_info_slots[0] = PktInfo(
        timestamp=ts - PKT_INFO_SLOT_COUNT - 1, ack_count=0, loss_count=10000
    )
    s.pkt_info_slots[ts % PKT_INFO_SLOT_COUNT] = PktInfo(
        timestamp=ts, ack_count=100, loss_count=0
    )
    s.update_ack_rate(ts)
    assert s.ack_rate == 1.0


def test_update_slot_initializes_new_timestamp():
    s = make_sender(1_000_000)
    s.update_slot(42, 10, 2)
    info = s.pkt_info_slots[42 % PKT_INFO_SLOT_COUNT]
    assert (info.timestamp, info.ack_count, info.loss_count) == (42, 10, 2)


def test_update_slot_accumulates_same_timestamp():
    s = make_sender(1_000_000)
    s.update_slot(42, 10, 2)
    s.update_slot(42, 5, 1)
    info = s.pkt_info_slots[42 % PKT_INFO_SLOT_COUNT]
    assert (info.ack_count, info.loss_count) == (15, 3)


def test_update_slot_resets_on_new_timestamp():
    s = make_sender(1_000_000)
    s.update_slot(5, 100, 50)
    s.update_slot(10, 3, 1)
    info = s.pkt_info_slots[0]
    assert (info.timestamp, info.ack_count, info.loss_count) == (10, 3, 1)


def test_clone_produces_independent_copy():
    s = make_sender(5_000_000)
    s.latest_rtt = 50 * MS
    s.ack_rate = 0.9
    cloned = s.clone()
    assert cloned.window() == s.window()
    cloned.ack_rate = 0.5
    cloned.update_slot(3, 7, 0)
    assert cloned.ack_rate == 0.5
    assert s.ack_rate == 0.9
    assert s.pkt_info_slots[3].ack_count == 0


def test_clone_shares_effective_rate():
    s = make_sender(1_000_000)
    cloned = s.clone()
    assert cloned.effective_bps is s.effective_bps


def test_new_publishes_initial_rate():
    rate = SharedRate(0)
    BrutalSender(3_000_000, 0, rate)
    assert rate.load() == 3_000_000


def test_on_ack_sets_rtt_and_counts():
    s = make_sender(10_000_000)
    now = time.monotonic_ns()
    s.on_ack(now, now, 1200, False, 100 * MS)
    ts = timestamp_secs(now)
    assert s.latest_rtt == 100 * MS
    assert s.pkt_info_slots[ts % PKT_INFO_SLOT_COUNT].ack_count == 1
    assert s.window() == 2_000_000


def test_congestion_event_counts_loss_and_end_acks_updates_rate():
    s = make_sender(1_000_000)
    now = time.monotonic_ns()
    for _ in range(60):
        s.on_ack(now, now, 1200, False, 10 * MS)
    for _ in range(40):
        s.on_congestion_event(now, now, False, 1200)
    s.on_end_acks(now, 0, False, None)
    assert s.ack_rate == MIN_ACK_RATE
    assert s.effective_bps.load() == 1_250_000


def test_on_mtu_update_updates_sender_and_pacer():
    s = make_sender(1_000)
    s.on_mtu_update(1400)
    assert s.max_datagram_size == 1400
    assert s.pacer.max_datagram_size == 1400


def test_on_sent_reduces_pacer_budget():
    s = make_sender(1_000_000)
    now = time.monotonic_ns()
    before = s.pacer.budget(now)
    s.on_sent(now, 1000, 1)
    assert s.pacer.budget(now) == before - 1000


def test_debug_output(monkeypatch, capsys):
    monkeypatch.setenv("RYSTERIA_BRUTAL_DEBUG", "true")
    s = make_sender(1_000)
    s.on_mtu_update(1400)
    assert "SetMaxDatagramSize: 1400" in capsys.readouterr().err


def test_factory_builds_sender_with_mtu():
    controller = BrutalControllerFactory(bps=8_000_000).build(time.monotonic_ns(), 1400)
    assert controller.window() == INITIAL_CWND_NO_RTT
    assert controller.max_datagram_size == 1400


def test_timestamp_secs_counts_whole_seconds():
    now = time.monotonic_ns()
    assert timestamp_secs(now + 3_000_000_000) - timestamp_secs(now) == 3
    assert timestamp_secs(0) == 0


def test_shared_rate_store_and_load():
    rate = SharedRate()
    rate.store(42)
    assert rate.load() == 42