import json
import logging
import threading
import time
from typing import Dict, Optional


class ScaleMetrics:
    """Thread-safe accumulator for scale read and fault counters."""

    def __init__(self, log_interval_s: float = 30.0, logger: logging.Logger | None = None) -> None:
        self.log_interval_s = max(0.0, float(log_interval_s))
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._start_time = time.time()
        self._last_log_time = self._start_time
        self._counters = self._initial_counters()
        self._faults_by_channel: Dict[int, int] = {}
        self._last_fault_channel: Optional[int] = None
        self._last_fault_time: Optional[float] = None
        self._last_snapshot = self._counters.copy()

    @staticmethod
    def _initial_counters() -> Dict[str, int]:
        return {
            "raw_reads": 0,
            "weights_read": 0,
            "median_requests": 0,
            "device_faults": 0,
        }

    def record_raw_read(self, channel_count: int) -> None:
        with self._lock:
            self._counters["raw_reads"] += max(0, channel_count)
        self.maybe_log()

    def record_weight(self) -> None:
        with self._lock:
            self._counters["weights_read"] += 1
        self.maybe_log()

    def record_median_request(self) -> None:
        with self._lock:
            self._counters["median_requests"] += 1
        self.maybe_log()

    def record_device_fault(self, channel_index: int) -> None:
        with self._lock:
            self._counters["device_faults"] += 1
            self._faults_by_channel[channel_index] = self._faults_by_channel.get(channel_index, 0) + 1
            self._last_fault_channel = channel_index
            self._last_fault_time = time.time()
        # Faults are always reported, regardless of the log interval.
        self.maybe_log(force=True)

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            payload: Dict[str, object] = dict(self._counters)
            payload["faults_by_channel"] = dict(self._faults_by_channel)
            payload["last_fault_channel"] = self._last_fault_channel
        return payload

    def maybe_log(self, force: bool = False) -> None:
        now = time.time()
        with self._lock:
            elapsed = now - self._last_log_time
            if not force and self.log_interval_s > 0.0 and elapsed < self.log_interval_s:
                return
            payload = self._scale_payload(now, elapsed)
            self._last_log_time = now
            self._last_snapshot = self._counters.copy()

        level = logging.WARNING if payload["delta"]["device_faults"] else logging.INFO
        self._logger.log(level, "scale_metrics %s", json.dumps(payload, sort_keys=True))

    def _scale_payload(self, now: float, elapsed: float) -> Dict[str, object]:
        delta = {key: value - self._last_snapshot.get(key, 0) for key, value in self._counters.items()}
        weights = self._counters["weights_read"]
        fault_age = None if self._last_fault_time is None else round(now - self._last_fault_time, 3)
        return {
            "type": "scale_metrics",
            "uptime_s": round(now - self._start_time, 3),
            "interval_s": round(elapsed, 3),
            "counters": self._counters.copy(),
            "delta": delta,
            "weights_per_s": round(delta["weights_read"] / elapsed, 3) if elapsed > 0 else None,
            "fault_ratio": round(self._counters["device_faults"] / weights, 6) if weights else None,
            "faults_by_channel": {str(k): v for k, v in sorted(self._faults_by_channel.items())},
            "last_fault_channel": self._last_fault_channel,
            "last_fault_age_s": fault_age,
        }
