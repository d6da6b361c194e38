"""Shared fakes standing in for Phidget hardware."""

from __future__ import annotations

from itertools import cycle
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pytest

from phidscale.scale import ChannelFault

TIMEOUT_CODE = 3
UNKNOWN_VALUE_CODE = 51
INVALID_ARG_CODE = 4


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeChannel:
    def __init__(self, bank: "FakeBank") -> None:
        self.bank = bank
        self.serial: Optional[int] = None
        self.index: Optional[int] = None
        self.opened = False
        self.closed = False
        self.interval: Optional[float] = None

    def set_device_serial_number(self, serial_number: int) -> None:
        self.bank.calls.append(("serial", serial_number))
        if serial_number not in self.bank.known_serials:
            raise ChannelFault(INVALID_ARG_CODE, "Invalid Argument")
        self.serial = serial_number

    def set_channel(self, channel_index: int) -> None:
        self.index = channel_index

    def open_wait_for_attachment(self, timeout_s: float) -> None:
        self.bank.calls.append(("open", self.index))
        if self.index in self.bank.attach_errors:
            raise self.bank.attach_errors[self.index]
        if self.index in self.bank.attach_failures:
            raise ChannelFault(TIMEOUT_CODE, "Timed Out")
        self.opened = True

    def min_data_interval(self) -> float:
        if self.index in self.bank.interval_failures:
            raise ChannelFault(UNKNOWN_VALUE_CODE, "Unknown or Invalid Value")
        return self.bank.min_interval

    def set_data_interval(self, interval_s: float) -> None:
        self.interval = interval_s

    def voltage_ratio(self) -> float:
        self.bank.calls.append(("read", self.index))
        if self.bank.clock is not None and self.bank.read_cost:
            self.bank.clock.now += self.bank.read_cost
        if self.index in self.bank.read_failures:
            raise ChannelFault(UNKNOWN_VALUE_CODE, "Unknown or Invalid Value")
        return next(self.bank.ratios[self.index])

    def device_serial_number(self) -> int:
        if self.bank.serial_failure:
            raise ChannelFault(UNKNOWN_VALUE_CODE, "Unknown or Invalid Value")
        return self.bank.device_serial

    def close(self) -> None:
        self.closed = True
        self.opened = False


class FakeBank:
    """Factory of fake channels sharing one simulated device."""

    def __init__(self, device_serial: int = 561234, min_interval: float = 0.125) -> None:
        self.device_serial = device_serial
        self.known_serials: Set[int] = {device_serial}
        self.min_interval = min_interval
        self.attach_failures: Set[int] = set()
        self.attach_errors: Dict[int, BaseException] = {}
        self.interval_failures: Set[int] = set()
        self.read_failures: Set[int] = set()
        self.serial_failure = False
        self.ratios: Dict[int, Iterable[float]] = {i: cycle([1.0]) for i in range(4)}
        self.channels: List[FakeChannel] = []
        self.calls: List[Tuple[str, object]] = []
        self.clock: Optional[FakeClock] = None
        self.read_cost = 0.0

    def set_ratios(self, index: int, values: List[float]) -> None:
        self.ratios[index] = cycle(values)

    def factory(self) -> FakeChannel:
        channel = FakeChannel(self)
        self.channels.append(channel)
        return channel

    def reads(self) -> List[object]:
        return [index for kind, index in self.calls if kind == "read"]


@pytest.fixture()
def bank() -> FakeBank:
    return FakeBank()


@pytest.fixture()
def clock(bank: FakeBank) -> FakeClock:
    fake = FakeClock()
    bank.clock = fake
    return fake
