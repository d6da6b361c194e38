"""Calibrated weights, per-channel fault attribution and calibration updates."""

from __future__ import annotations

import pytest

from phidscale.scale import (
    ChannelFault,
    DeviceFaultError,
    DisconnectedScale,
    ScaleIOError,
    ScaleMetrics,
)


@pytest.fixture()
def scale(bank):
    return DisconnectedScale(bank.device_serial, channel_factory=bank.factory).connect(
        0.0, [1.0, 2.0, 3.0, 4.0]
    )


@pytest.mark.parametrize("offset, expected", [(0.0, 10.0), (2.0, 8.0), (-1.5, 11.5)])
def test_get_weight_is_dot_product_minus_offset(scale, offset, expected):
    assert scale.update_offset(offset).get_weight() == pytest.approx(expected)


def test_get_raw_readings_in_channel_order(bank, scale):
    for index, value in enumerate([0.1, 0.2, 0.3, 0.4]):
        bank.set_ratios(index, [value])

    assert scale.get_raw_readings() == [0.1, 0.2, 0.3, 0.4]
    assert bank.reads() == [0, 1, 2, 3]


def test_first_faulting_channel_short_circuits_read(bank, scale):
    bank.read_failures.add(2)

    with pytest.raises(DeviceFaultError) as excinfo:
        scale.get_raw_readings()

    assert excinfo.value.channel_index == 2
    assert excinfo.value.code == 51
    assert bank.reads() == [0, 1, 2]


def test_get_weight_surfaces_channel_attributed_error(bank, scale):
    bank.read_failures.update({1, 3})

    with pytest.raises(DeviceFaultError) as excinfo:
        scale.get_weight()

    assert excinfo.value.channel_index == 1
    assert isinstance(excinfo.value.__cause__, ChannelFault)


def test_updates_return_new_scale_sharing_channels(bank, scale):
    updated = scale.update_offset(3.0).update_coefficients([4.0, 3.0, 2.0, 1.0])

    assert updated is not scale
    assert updated.channels is scale.channels
    assert updated.channel_count == scale.channel_count
    assert updated.phidget_id == scale.phidget_id
    assert scale.offset == 0.0
    assert scale.coefficients == (1.0, 2.0, 3.0, 4.0)
    assert updated.offset == 3.0
    assert updated.get_weight() == pytest.approx(7.0)
    assert len(bank.channels) == 4


def test_get_weight_is_repeatable_for_steady_readings(scale):
    weights = [scale.get_weight() for _ in range(5)]

    assert weights == [weights[0]] * 5


def test_reading_after_close_raises_io_error(scale):
    scale.close()

    with pytest.raises(ScaleIOError):
        scale.get_weight()


def test_transport_error_is_not_attributed_to_a_channel(bank, scale, monkeypatch):
    def broken_read():
        raise OSError("usb disconnected")

    monkeypatch.setattr(bank.channels[0], "voltage_ratio", broken_read)

    with pytest.raises(ScaleIOError):
        scale.get_raw_readings()


def test_metrics_count_reads_and_faults(bank):
    metrics = ScaleMetrics(log_interval_s=600.0)
    scale = DisconnectedScale(bank.device_serial, channel_factory=bank.factory, metrics=metrics).connect(
        0.0, [1.0, 1.0, 1.0, 1.0]
    )

    scale.get_weight()
    bank.read_failures.add(3)
    with pytest.raises(DeviceFaultError):
        scale.get_weight()

    snapshot = metrics.snapshot()
    assert snapshot["raw_reads"] == 4
    assert snapshot["weights_read"] == 1
    assert snapshot["device_faults"] == 1
    assert snapshot["faults_by_channel"] == {3: 1}
