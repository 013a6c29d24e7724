"""Цикл fetch → scale → render для термінального графіка.

Режими:
    • once — одне вікно `(from, to)`, один рендер, вихід;
    • follow — нескінченний стрім: кожен наступний кадр починається там, де
      закінчився попередній, і закінчується на межі `interval`, вирівняній
      до реального годинника.

Якщо процес відстав (повільна мережа, сон системи), кінець вікна стрибає
вперед кроками `interval`, тож наступний кадр ширший, але без дірок у часі.
Діапазон значень фіксується на першому кадрі й далі не змінюється.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from prometheus_client import Counter, Gauge

from frames import SampleMatrix
from renderer import CanvasGeometry, encode_row, render_rows
from scaler import ValueRange, scale_matrix

log = logging.getLogger("graf.stream")
if not log.handlers:
    log.addHandler(logging.NullHandler())

NO_DATA_NOTICE = "no data"

Window = Tuple[int, int]
FetchFn = Callable[[Window], Optional[SampleMatrix]]

PROM_FETCH_TOTAL = Counter("graf_fetch_total", "Кількість запитів вікна до Grafana")
PROM_FETCH_EMPTY_TOTAL = Counter("graf_fetch_empty_total", "Запити, що повернули нуль фреймів")
PROM_ROWS_RENDERED_TOTAL = Counter("graf_rows_rendered_total", "Кількість виведених рядків графіка")
PROM_CATCHUP_SKIPS_TOTAL = Counter(
    "graf_catchup_skips_total",
    "Скільки разів кінець вікна стрибнув уперед через відставання",
)
PROM_WINDOW_TO_SECONDS = Gauge("graf_window_to_seconds", "UNIX-час кінця останнього запитаного вікна")


def _now_seconds() -> int:
    return int(time.time())


def default_interval(window: Window, rows: int) -> int:
    """Крок між кадрами за замовчуванням: ширина вікна на рядок терміналу (мінімум 1 с)."""

    start, end = window
    return max(1, (end - start) // max(1, rows))


def catch_up(window_end: int, interval: int, real_now: int) -> Tuple[int, int]:
    """Наступний кінець вікна після `window_end` з урахуванням відставання.

    Returns:
        `(new_to, skipped)`: `new_to + interval >= real_now` та кількість
        пропущених кроків.
    """

    new_to = window_end + interval
    skipped = 0
    while real_now > new_to + interval:
        new_to += interval
        skipped += 1
    return new_to, skipped


@dataclass
class StreamCursor:
    """Стан між кадрами: зсув рядків для каденсу підписів та поточне вікно."""

    row_offset: int
    window: Window


class PlotStreamer:
    """Керує режимами once/follow поверх зовнішнього fetch-колаборатора.

    `clock` та `sleep` інʼєктуються, щоб тести могли підмінити годинник.
    """

    def __init__(
        self,
        fetch: FetchFn,
        geometry: CanvasGeometry,
        interval: int,
        *,
        output: Callable[[str], None],
        clock: Callable[[], int] = _now_seconds,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 1:
            raise ValueError("interval має бути додатним")
        self.fetch = fetch
        self.geometry = geometry
        self.interval = int(interval)
        self.output = output
        self.clock = clock
        self.sleep = sleep
        self.value_range: Optional[ValueRange] = None

    def _fetch(self, window: Window) -> Optional[SampleMatrix]:
        PROM_FETCH_TOTAL.inc()
        PROM_WINDOW_TO_SECONDS.set(window[1])
        matrix = self.fetch(window)
        if matrix is None:
            PROM_FETCH_EMPTY_TOTAL.inc()
            log.debug("Вікно %s..%s без даних.", window[0], window[1])
            self.output(NO_DATA_NOTICE)
        return matrix

    def _render(self, matrix: SampleMatrix, cursor: StreamCursor, value_range: ValueRange) -> int:
        quantized = scale_matrix(matrix, value_range, self.geometry.width)
        rendered = 0
        for row in render_rows(
            quantized,
            matrix.timeline,
            cursor.row_offset,
            self.geometry,
            value_range,
        ):
            self.output(encode_row(row))
            rendered += 1
        PROM_ROWS_RENDERED_TOTAL.inc(rendered)
        cursor.row_offset += rendered
        return rendered

    def _await_window_end(self, window_end: int) -> int:
        real_now = self.clock()
        new_to, skipped = catch_up(window_end, self.interval, real_now)
        if skipped:
            PROM_CATCHUP_SKIPS_TOTAL.inc(skipped)
            log.debug("Відставання: кінець вікна зсунуто на %d кроків до %d.", skipped, new_to)
        lag = new_to - real_now
        if lag > 0:
            self.sleep(lag)
        return new_to

    def run(self, window: Window, *, follow: bool = False, max_cycles: Optional[int] = None) -> Optional[StreamCursor]:
        """Малює вікно та, у режимі follow, продовжує стрім.

        Args:
            window: Початкове вікно `(from, to)` у секундах.
            follow: Нескінченно дотягувати нові дані.
            max_cycles: Обмеження кількості follow-циклів (для тестів).

        Returns:
            Курсор після останнього кадру або None, якщо перше вікно порожнє.
        """

        matrix = self._fetch(window)
        if matrix is None:
            return None

        value_range = ValueRange.from_matrix(matrix)
        self.value_range = value_range
        log.debug(
            "value range min:%s max:%s cols:%d rows:%d",
            value_range.min,
            value_range.max,
            self.geometry.width,
            self.geometry.rows,
        )
        cursor = StreamCursor(row_offset=0, window=window)
        self._render(matrix, cursor, value_range)
        if not follow:
            return cursor

        pending_from = cursor.window[1]
        pending_to = cursor.window[1]
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            pending_to = self._await_window_end(pending_to)
            matrix = self._fetch((pending_from, pending_to))
            cycles += 1
            if matrix is None:
                # Початок вікна не рухаємо: порожній відрізок потрапить у наступний запит.
                continue
            cursor.window = (pending_from, pending_to)
            self._render(matrix, cursor, value_range)
            pending_from = pending_to
        return cursor
