from __future__ import annotations

import unittest
from typing import List, Optional

from frames import SampleMatrix
from renderer import CanvasGeometry
from scaler import ValueRange
from streamer import NO_DATA_NOTICE, PlotStreamer, Window, catch_up, default_interval

GEOMETRY = CanvasGeometry(rows=24, width=20)


class FakeClock:
    """Годинник, який рухається лише через sleep або штучну затримку fetch."""

    def __init__(self, now: int) -> None:
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(seconds)


class ScriptedFetch:
    """Повертає заготовлені матриці по черзі та запамʼятовує запитані вікна."""

    def __init__(self, responses: List[Optional[SampleMatrix]], clock: Optional[FakeClock] = None, lag: int = 0) -> None:
        self.responses = list(responses)
        self.windows: List[Window] = []
        self.clock = clock
        self.lag = lag

    def __call__(self, window: Window) -> Optional[SampleMatrix]:
        self.windows.append(window)
        if self.clock is not None:
            self.clock.now += self.lag
        return self.responses.pop(0)


def _matrix(start: int, values: List[Optional[float]], step: int = 10) -> SampleMatrix:
    return SampleMatrix.from_series([start + step * i for i in range(len(values))], [values])


class CatchUpTest(unittest.TestCase):
    def test_on_time_advances_one_interval(self) -> None:
        self.assertEqual(catch_up(100, 10, 100), (110, 0))
        self.assertEqual(catch_up(100, 10, 120), (110, 0))

    def test_lagging_skips_forward_in_interval_steps(self) -> None:
        new_to, skipped = catch_up(100, 10, 135)

        self.assertEqual((new_to, skipped), (130, 2))
        self.assertGreaterEqual(new_to + 10, 135)
        self.assertEqual((new_to - (100 + 10)) % 10, 0)

    def test_default_interval_spreads_window_over_rows(self) -> None:
        self.assertEqual(default_interval((0, 300), 30), 10)
        self.assertEqual(default_interval((0, 5), 30), 1)


class OnceModeTest(unittest.TestCase):
    def test_once_renders_window_and_stops(self) -> None:
        lines: List[str] = []
        fetch = ScriptedFetch([_matrix(0, [0.0, 5.0, 10.0])])
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append, clock=FakeClock(1000))

        cursor = streamer.run((0, 20))

        assert cursor is not None
        self.assertEqual(fetch.windows, [(0, 20)])
        self.assertEqual(len(lines), 2)
        self.assertEqual(cursor.row_offset, 2)
        self.assertEqual(streamer.value_range, ValueRange(min=0.0, max=10.0))

    def test_once_empty_prints_notice_and_stops(self) -> None:
        lines: List[str] = []
        fetch = ScriptedFetch([None])
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append)

        cursor = streamer.run((0, 20))

        self.assertIsNone(cursor)
        self.assertEqual(lines, [NO_DATA_NOTICE])
        self.assertEqual(len(fetch.windows), 1)

    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            PlotStreamer(ScriptedFetch([]), GEOMETRY, 0, output=print)


class FollowModeTest(unittest.TestCase):
    def test_follow_windows_are_contiguous_and_wait_for_wall_clock(self) -> None:
        clock = FakeClock(100)
        fetch = ScriptedFetch(
            [_matrix(40, [1.0, 2.0, 3.0]), _matrix(100, [1.5, 2.5]), _matrix(110, [2.0, 3.0])]
        )
        lines: List[str] = []
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append, clock=clock, sleep=clock.sleep)

        cursor = streamer.run((40, 100), follow=True, max_cycles=2)

        assert cursor is not None
        self.assertEqual(fetch.windows, [(40, 100), (100, 110), (110, 120)])
        self.assertEqual(clock.sleeps, [10, 10])
        self.assertEqual(cursor.window, (110, 120))
        self.assertEqual(cursor.row_offset, 2 + 1 + 1)
        self.assertEqual(len(lines), 4)

    def test_follow_catches_up_after_lag_without_sleeping(self) -> None:
        clock = FakeClock(100)
        fetch = ScriptedFetch([_matrix(90, [1.0, 2.0]), _matrix(100, [1.0, 2.0])], clock=clock, lag=35)
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lambda line: None, clock=clock, sleep=clock.sleep)

        streamer.run((90, 100), follow=True, max_cycles=1)

        self.assertEqual(fetch.windows[1], (100, 130))
        self.assertEqual(clock.sleeps, [])

    def test_follow_empty_cycle_keeps_streaming(self) -> None:
        clock = FakeClock(100)
        fetch = ScriptedFetch([_matrix(40, [1.0, 2.0]), None, _matrix(100, [1.0, 2.0, 1.5])])
        lines: List[str] = []
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append, clock=clock, sleep=clock.sleep)

        cursor = streamer.run((40, 100), follow=True, max_cycles=2)

        assert cursor is not None
        self.assertEqual(fetch.windows, [(40, 100), (100, 110), (100, 120)])
        self.assertIn(NO_DATA_NOTICE, lines)
        self.assertEqual(cursor.window, (100, 120))
        self.assertEqual(cursor.row_offset, 1 + 2)

    def test_value_range_is_fixed_for_the_session(self) -> None:
        clock = FakeClock(100)
        fetch = ScriptedFetch([_matrix(80, [0.0, 10.0, 5.0]), _matrix(100, [100.0, 200.0])])
        lines: List[str] = []
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append, clock=clock, sleep=clock.sleep)

        streamer.run((80, 100), follow=True, max_cycles=1)

        self.assertEqual(streamer.value_range, ValueRange(min=0.0, max=10.0))
        self.assertEqual(len(lines), 3)
        self.assertIn("\x1b[31m", lines[1])
        # Значення поза початковим діапазоном не малюються.
        self.assertNotIn("\x1b[31m", lines[2])

    def test_label_cadence_continues_across_frames(self) -> None:
        clock = FakeClock(100)
        fetch = ScriptedFetch([_matrix(0, [1.0, 2.0, 3.0, 4.0]), _matrix(100, [1.0, 2.0, 3.0])])
        lines: List[str] = []
        streamer = PlotStreamer(fetch, GEOMETRY, 10, output=lines.append, clock=clock, sleep=clock.sleep)

        streamer.run((0, 100), follow=True, max_cycles=1)

        # Рядки 1..3 першого кадру та 4..5 другого; наступна мітка була б лише на рядку 6.
        labelled = [n for n, line in enumerate(lines, start=1) if not line.startswith(" " * 9)]
        self.assertEqual(labelled, [1])
        self.assertEqual(len(lines), 5)


if __name__ == "__main__":
    unittest.main()
