"""Pure helpers combining channel readings."""

from __future__ import annotations

from typing import Iterable, Sequence


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    # weight = sum(reading_i * coefficient_i)
    return sum(x * y for x, y in zip(a, b, strict=True))


def median(samples: Iterable[float]) -> float:
    """Return the lower median.

    Odd counts give the middle element; even counts give the lower of the two
    middle elements (sorted index ``(n - 1) // 2``), never their average.
    """

    ordered = sorted(samples)
    if not ordered:
        raise ValueError("median requiere al menos una muestra")
    return ordered[(len(ordered) - 1) // 2]
