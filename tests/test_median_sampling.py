"""Paced median sampling over calibrated weights and raw channels."""

from __future__ import annotations

import pytest

from phidscale.scale import DeviceFaultError, DisconnectedScale, wait_until_elapsed


@pytest.fixture()
def scale(bank, clock):
    return DisconnectedScale(
        bank.device_serial,
        channel_factory=bank.factory,
        clock=clock,
        sleep=clock.sleep,
    ).connect(0.0, [1.0, 0.0, 0.0, 0.0])


def test_median_weight_uses_lower_median(bank, scale):
    bank.set_ratios(0, [4.0, 1.0, 3.0, 2.0])

    assert scale.get_median_weight(4, min_interval=0) == 2.0


def test_median_weight_rejects_noise_spike(bank, scale):
    bank.set_ratios(0, [10.0, 10.5, 250.0, 9.5, 10.0])

    assert scale.get_median_weight(5, min_interval=0) == 10.0


@pytest.mark.parametrize("samples", [0, -3])
def test_median_weight_rejects_non_positive_sample_count(bank, scale, samples):
    with pytest.raises(ValueError, match="samples debe ser >= 1"):
        scale.get_median_weight(samples)

    assert bank.reads() == []


def test_median_weight_defaults_to_channel_interval(bank, clock, scale):
    scale.get_median_weight(3)

    assert clock.sleeps == [bank.min_interval, bank.min_interval]


def test_read_time_counts_toward_interval(bank, clock, scale):
    # Each weight costs 4 reads of 0.25 s.
    bank.read_cost = 0.25

    scale.get_median_weight(3, min_interval=1.5)

    assert clock.sleeps == [0.5, 0.5]
    assert clock.now == 4.0


def test_no_sleep_when_reads_outlast_interval(bank, clock, scale):
    bank.read_cost = 0.5

    scale.get_median_weight(3, min_interval=1.0)

    assert clock.sleeps == []


def test_failure_mid_collection_aborts_median(bank, scale, monkeypatch):
    calls = []
    original = scale.get_raw_readings

    def flaky_readings():
        calls.append(1)
        if len(calls) == 3:
            bank.read_failures.add(2)
        return original()

    monkeypatch.setattr(type(scale), "get_raw_readings", lambda self: flaky_readings())

    with pytest.raises(DeviceFaultError) as excinfo:
        scale.get_median_weight(5, min_interval=0)

    assert excinfo.value.channel_index == 2
    assert len(calls) == 3


def test_negative_interval_is_rejected(scale):
    with pytest.raises(ValueError, match="min_interval"):
        scale.get_median_weight(3, min_interval=-0.5)


def test_raw_medians_are_computed_per_channel(bank, clock, scale):
    bank.set_ratios(0, [0.3, 0.1, 0.2])
    bank.set_ratios(1, [5.0, 5.0, 9.0])
    bank.set_ratios(2, [-1.0, -2.0, -3.0])
    bank.set_ratios(3, [0.0, 100.0, 0.5])

    medians = scale.get_raw_medians(3, min_interval=0.5)

    assert medians == [0.2, 5.0, -2.0, 0.5]
    assert clock.sleeps == [0.5, 0.5]


def test_raw_medians_reject_zero_samples(scale):
    with pytest.raises(ValueError):
        scale.get_raw_medians(0)


def test_wait_until_elapsed_sleeps_remaining_time(clock):
    clock.now = 2.0

    wait_until_elapsed(1.5, 1.0, clock=clock, sleep=clock.sleep)

    assert clock.sleeps == [0.5]
    assert clock.now == 2.5
