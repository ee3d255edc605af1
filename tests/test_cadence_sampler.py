import pytest

from stepbeat.core.cadence_sampler import CadenceSampler
from stepbeat.core.cadence_source import PushCadenceSource
from stepbeat.models.cadence import CadenceReading


def _reading(sps):
    return CadenceReading(steps_per_sec=sps, timestamp=0.0)


def test_last_value_in_steps_per_minute():
    sampler = CadenceSampler(window=1)
    sampler.on_reading(_reading(2.5))
    sampler.on_reading(_reading(2.8))
    assert sampler.current() == pytest.approx(168.0)


def test_moving_average_window():
    sampler = CadenceSampler(window=3)
    for sps in (2.0, 2.5, 3.0, 3.5):
        sampler.on_reading(_reading(sps))
    assert sampler.current() == pytest.approx(180.0)


def test_negative_reading_rejected():
    sampler = CadenceSampler()
    with pytest.raises(ValueError):
        sampler.on_reading(_reading(-1.0))
    assert sampler.current() == 0.0


def test_listeners_see_readings_in_order():
    sampler = CadenceSampler()
    seen = []
    sampler.subscribe(seen.append)
    for sps in (1.0, 2.0, 3.0):
        sampler.on_reading(_reading(sps))
    assert seen == [60.0, 120.0, 180.0]


def test_failing_listener_does_not_block_others():
    sampler = CadenceSampler()
    seen = []

    def broken(_):
        raise RuntimeError("listener bug")

    sampler.subscribe(broken)
    sampler.subscribe(seen.append)
    sampler.on_reading(_reading(2.0))
    assert seen == [120.0]


def test_unsubscribe_and_reset():
    sampler = CadenceSampler()
    seen = []
    sampler.subscribe(seen.append)
    sampler.on_reading(_reading(2.0))
    sampler.unsubscribe(seen.append)
    sampler.on_reading(_reading(3.0))
    sampler.reset()
    assert seen == [120.0]
    assert sampler.current() == 0.0


def test_push_source_drops_when_stopped():
    source = PushCadenceSource()
    sampler = CadenceSampler()
    assert source.push(2.0) is False

    source.start(sampler.on_reading)
    assert source.is_running
    assert source.push(2.0) is True
    assert sampler.current() == pytest.approx(120.0)

    source.stop()
    source.stop()
    assert source.push(3.0) is False
    assert sampler.current() == pytest.approx(120.0)


def test_push_source_reports_unavailable():
    source = PushCadenceSource()
    failures = []
    source.start(lambda r: None, failures.append)
    source.report_unavailable("no pedometer")
    assert len(failures) == 1
    assert "no pedometer" in str(failures[0])
