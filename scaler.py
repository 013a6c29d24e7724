"""Квантування значень серій у колонки терміналу.

Діапазон значень (`ValueRange`) фіксується один раз на старті стріму і
не перераховується: точки поза ним у наступних кадрах просто не малюються.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from frames import SampleMatrix

QuantizedSeries = List[Optional[int]]


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float

    @classmethod
    def from_matrix(cls, matrix: SampleMatrix) -> "ValueRange":
        """Глобальні min/max по всіх наявних значеннях матриці.

        Без жодного значення повертає `(+inf, -inf)`: такий діапазон
        валідний, просто всі точки будуть поза ним.
        """

        frame = matrix.frame
        low = frame.min(skipna=True).min(skipna=True) if len(frame.columns) else math.nan
        high = frame.max(skipna=True).max(skipna=True) if len(frame.columns) else math.nan
        if low is None or math.isnan(low):
            low = math.inf
        if high is None or math.isnan(high):
            high = -math.inf
        return cls(min=float(low), max=float(high))

    @property
    def span(self) -> float:
        return self.max - self.min


def column_factor(value_range: ValueRange, width: int) -> float:
    span = value_range.span
    if span == 0:
        # (width-1)/0 → ±inf; кожна точка стане NaN/inf і відкинеться.
        return math.inf
    return (width - 1) / span


def scale_value(value: Optional[float], value_range: ValueRange, width: int) -> Optional[int]:
    """Номер колонки `[0, width)` для значення або None, якщо позиція не влазить у полотно."""

    if value is None:
        return None
    position = (value - value_range.min) * column_factor(value_range, width)
    if not math.isfinite(position) or position < 0 or position >= width:
        return None
    return int(math.floor(position))


def scale_series(
    values: Sequence[Optional[float]], value_range: ValueRange, width: int
) -> QuantizedSeries:
    return [scale_value(value, value_range, width) for value in values]


def scale_matrix(matrix: SampleMatrix, value_range: ValueRange, width: int) -> List[QuantizedSeries]:
    return [scale_series(values, value_range, width) for values in matrix.iter_series()]
