import re

import pytest

from core.domain.entities.connection_status import ConnectionStatus
from tests.helpers.fakes_feed import live_feed_frame

REFERENCE_FRAME = '{"type":"live_feed","feeds":{"NSE_EQ|XYZ":{"ff":{"marketFF":{"ltpc":{"ltp":100.5,"ltt":1000}}}}}}'


def _data_alerts(engine):
    return [a for a in engine.alerts if a.kind == "data"]


def test_inject_reference_frames(make_engine):
    engine = make_engine(autostart=False)

    ticks = engine.inject_frame(REFERENCE_FRAME)
    assert len(ticks) == 1
    assert (ticks[0].last_price, ticks[0].event_time, ticks[0].delay) == (100.5, 1000, 0)

    second = engine.inject_frame(live_feed_frame("NSE_EQ|XYZ", 100.75, ltt=1500))
    assert second[0].delay == 500

    assert [t.event_time for t in engine.ticks] == [1500, 1000]
    assert engine.total_ticks == 2
    assert engine.average_delay == 250


def test_inject_works_while_disconnected(make_engine, gateway):
    engine = make_engine(autostart=False)
    assert engine.connection_status == ConnectionStatus.DISCONNECTED
    assert gateway.connections == []

    engine.inject_frame(REFERENCE_FRAME)
    assert len(engine.ticks) == 1
    assert engine.raw_messages == []


def test_invalid_frame_adds_exactly_one_data_alert(make_engine):
    engine = make_engine()
    engine.inject_frame(REFERENCE_FRAME)
    ticks_before = engine.ticks

    result = engine.inject_frame("{oops")

    assert result == []
    assert engine.ticks == ticks_before
    data_alerts = _data_alerts(engine)
    assert len(data_alerts) == 1
    assert data_alerts[0].severity == "medium"
    assert "parse error" in data_alerts[0].message


def test_undecodable_entry_raises_data_alert_but_keeps_good_ticks(make_engine):
    engine = make_engine(autostart=False)
    frame = (
        '{"type":"live_feed","feeds":{'
        '"A|1":{"ff":{"marketFF":{"ltpc":{"ltp":"x"}}}},'
        '"B|2":{"ff":{"marketFF":{"ltpc":{"ltp":5,"ltt":10}}}}}}'
    )
    ticks = engine.inject_frame(frame)

    assert [t.instrument_key for t in ticks] == ["B|2"]
    assert len(_data_alerts(engine)) == 1


def test_unrecognized_frame_is_logged_not_alerted(make_engine):
    engine = make_engine(autostart=False)
    engine.inject_frame('{"type":"market_info"}')

    assert engine.ticks == []
    assert engine.alerts == []
    assert any("received message type: market_info" in line for line in engine.debug_info)


def test_live_frames_are_logged_and_decoded(make_engine, gateway):
    engine = make_engine()
    gateway.last.accept()
    gateway.last.push(REFERENCE_FRAME)

    assert len(engine.ticks) == 1
    assert engine.raw_messages == [f"[upstox] {REFERENCE_FRAME[:100]}..."]
    assert engine.last_tick_time is not None


def test_silence_freezes_once_and_decoded_tick_clears(make_engine, gateway, clock):
    engine = make_engine()
    gateway.last.accept()

    clock.advance(30)
    assert engine.is_frozen
    assert engine.freezing_incidents == 1
    freeze = [a for a in engine.alerts if a.kind == "freeze"]
    assert len(freeze) == 1
    assert freeze[0].severity == "high"

    clock.advance(120)
    assert engine.freezing_incidents == 1

    # garbage re-arms the watchdog but does not clear the freeze
    gateway.last.push("garbage")
    assert engine.is_frozen

    gateway.last.push(REFERENCE_FRAME)
    assert not engine.is_frozen
    assert engine.freezing_incidents == 1


def test_live_frames_keep_the_watchdog_quiet(make_engine, gateway, clock):
    engine = make_engine()
    gateway.last.accept()
    for i in range(10):
        clock.advance(20)
        gateway.last.push(live_feed_frame("NSE_EQ|XYZ", 100.0 + i, ltt=1000 + i))
    assert not engine.is_frozen
    assert engine.freezing_incidents == 0


def test_injected_frames_do_not_count_as_liveness(make_engine, gateway, clock):
    engine = make_engine()
    gateway.last.accept()

    clock.advance(20)
    engine.inject_frame(REFERENCE_FRAME)
    clock.advance(10)

    assert engine.is_frozen


def test_total_ticks_survives_eviction(make_engine):
    engine = make_engine(autostart=False, max_ticks=2)
    for i in range(5):
        engine.inject_frame(live_feed_frame("NSE_EQ|XYZ", 100.0, ltt=1000 + i * 10))

    assert len(engine.ticks) == 2
    assert engine.total_ticks == 5
    assert engine.average_delay == 10


def test_buffers_are_bounded(make_engine, gateway):
    engine = make_engine(max_alerts=3, max_raw_messages=2, max_debug_info=4)
    gateway.last.accept()
    for _ in range(10):
        gateway.last.push("nope")

    assert len(engine.alerts) == 3
    assert len(engine.raw_messages) == 2
    assert len(engine.debug_info) == 4


def test_clear_alerts(make_engine):
    engine = make_engine(autostart=False)
    engine.inject_frame("nope")
    assert engine.alerts

    engine.clear_alerts()
    assert engine.alerts == []


def test_debug_lines_are_timestamped(make_engine):
    engine = make_engine(autostart=False, debug_log_timezone="UTC")
    engine.inject_frame(REFERENCE_FRAME)
    assert all(re.match(r"^\[\d{2}:\d{2}:\d{2}\] ", line) for line in engine.debug_info)


def test_average_delay_of_empty_history_is_zero(make_engine):
    assert make_engine(autostart=False).average_delay == 0


def test_closed_engine_cannot_restart(make_engine):
    engine = make_engine(autostart=False)
    assert not engine.closed
    engine.close()
    assert engine.closed
    with pytest.raises(RuntimeError):
        engine.start()
