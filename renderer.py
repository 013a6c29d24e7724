"""Рендер квантованих серій у рядки кольорових гліфів.

Кожен рядок `i` малює відрізок між точками `i-1` та `i`, тому з `n` точок
виходить `n-1` рядків. Пріоритет у колонці: підпис осі → перша серія, що
влучила (за порядком серій) → лінія сітки → пробіл.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence

from config import ConfigError
from graf_schema import (
    DIM_COLOR,
    LABEL_FIELD_WIDTH,
    LABEL_SPACING,
    PLAIN_COLOR,
    SERIES_COLORS,
    TIME_GUTTER_WIDTH,
    TIMESTAMP_EVERY_ROWS,
)
from instants import format_timestamp
from scaler import QuantizedSeries, ValueRange


class Glyph(NamedTuple):
    code: int
    char: str


BLANK = Glyph(PLAIN_COLOR, " ")
GRID = Glyph(DIM_COLOR, "|")


@dataclass(frozen=True)
class CanvasGeometry:
    """Розмір полотна: `rows` рядків терміналу та `width` колонок даних."""

    rows: int
    width: int

    @classmethod
    def from_terminal(cls, rows: int, cols: int) -> "CanvasGeometry":
        if rows < 1 or cols <= TIME_GUTTER_WIDTH:
            raise ConfigError(
                f"Термінал {cols}x{rows} замалий: потрібно більше {TIME_GUTTER_WIDTH} колонок."
            )
        return cls(rows=int(rows), width=int(cols) - TIME_GUTTER_WIDTH)


@dataclass
class RenderedRow:
    gutter: str
    glyphs: List[Glyph]

    @property
    def text(self) -> str:
        """Рядок без кольорів (для тестів і логів)."""
        return self.gutter + "".join(glyph.char for glyph in self.glyphs)


def series_color(k: int) -> int:
    return SERIES_COLORS[k % len(SERIES_COLORS)]


def header_line(value_range: ValueRange, width: int) -> str:
    """Підписи осі значень кожні 16 колонок, по 2 знаки після коми."""

    step = value_range.span / width * LABEL_SPACING
    return "".join(
        f" {value_range.min + step * k:<{LABEL_FIELD_WIDTH}.2f}"
        for k in range((width + 1) // LABEL_SPACING + 1)
    )


def time_gutter(timeline: Sequence[int], i: int, row_offset: int) -> str:
    if (row_offset + i) % TIMESTAMP_EVERY_ROWS == 1:
        return f"{format_timestamp(timeline[i])} "
    return " " * TIME_GUTTER_WIDTH


def series_glyph(k: int, curr: Optional[int], prev: Optional[int], j: int) -> Optional[Glyph]:
    if curr is None or prev is None:
        return None
    if prev < j < curr or curr < j < prev:
        char = "-"
    elif curr == j and prev == j:
        char = "|"
    elif curr == j:
        char = "."
    elif prev == j:
        char = "'"
    else:
        return None
    return Glyph(series_color(k), char)


def column_glyph(j: int, header_char: Optional[str], quantized: Sequence[QuantizedSeries], i: int) -> Glyph:
    if header_char is not None and header_char != " ":
        return Glyph(DIM_COLOR, header_char)
    hit = next(
        (
            glyph
            for glyph in (
                series_glyph(k, values[i], values[i - 1], j) for k, values in enumerate(quantized)
            )
            if glyph is not None
        ),
        None,
    )
    if hit is not None:
        return hit
    return GRID if j % LABEL_SPACING == 0 else BLANK


def render_row(
    i: int,
    quantized: Sequence[QuantizedSeries],
    timeline: Sequence[int],
    row_offset: int,
    geometry: CanvasGeometry,
    value_range: ValueRange,
) -> RenderedRow:
    header = ""
    if (row_offset + i) % geometry.rows == 1:
        header = header_line(value_range, geometry.width)
    glyphs = [
        column_glyph(j, header[j] if j < len(header) else None, quantized, i)
        for j in range(geometry.width)
    ]
    return RenderedRow(gutter=time_gutter(timeline, i, row_offset), glyphs=glyphs)


def render_rows(
    quantized: Sequence[QuantizedSeries],
    timeline: Sequence[int],
    row_offset: int,
    geometry: CanvasGeometry,
    value_range: ValueRange,
) -> Iterator[RenderedRow]:
    """Генерує рядки для всіх пар сусідніх точок, по одному за раз."""

    for i in range(1, len(timeline)):
        yield render_row(i, quantized, timeline, row_offset, geometry, value_range)


def encode_row(row: RenderedRow) -> str:
    """Кодує рядок у текст з ANSI SGR; код 0 виводиться без escape."""

    parts = [row.gutter]
    for glyph in row.glyphs:
        if glyph.code == PLAIN_COLOR:
            parts.append(glyph.char)
        else:
            parts.append(f"\x1b[{glyph.code}m{glyph.char}\x1b[0m")
    return "".join(parts)
