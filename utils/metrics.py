import logging
import threading
from collections import defaultdict
from typing import Any

logger = logging.getLogger("api.metrics")

_LOCK = threading.Lock()
_COUNTERS: dict[tuple, float] = defaultdict(float)
_TIMINGS: dict[tuple, list[float]] = defaultdict(list)
_MAX_SAMPLES = 500


def _key(name: str, labels: dict[str, Any]) -> tuple:
    return (name, tuple(sorted((k, str(v)) for k, v in labels.items())))


def incr(name: str, amount: float = 1, **labels: Any) -> None:
    with _LOCK:
        _COUNTERS[_key(name, labels)] += amount
    logger.debug("metric_incr name=%s amount=%s labels=%s", name, amount, labels)


def observe_ms(name: str, value_ms: float, **labels: Any) -> None:
    with _LOCK:
        samples = _TIMINGS[_key(name, labels)]
        samples.append(float(value_ms))
        if len(samples) > _MAX_SAMPLES:
            del samples[: len(samples) - _MAX_SAMPLES]


def snapshot() -> dict:
    with _LOCK:
        counters = [
            {"name": name, "labels": dict(labels), "value": value}
            for (name, labels), value in _COUNTERS.items()
        ]
        timings = []
        for (name, labels), samples in _TIMINGS.items():
            if not samples:
                continue
            ordered = sorted(samples)
            timings.append(
                {
                    "name": name,
                    "labels": dict(labels),
                    "count": len(ordered),
                    "p50_ms": ordered[len(ordered) // 2],
                    "max_ms": ordered[-1],
                }
            )
    return {"counters": counters, "timings": timings}


def reset() -> None:
    with _LOCK:
        _COUNTERS.clear()
        _TIMINGS.clear()
