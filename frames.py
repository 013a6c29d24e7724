"""Sample Matrix: вирівняні дані серій одного вікна запиту.

Призначення:
    • Розбір відповіді `/api/ds/query` у таблицю `timestamp × серія`
    • Нормалізація часу (мс → с) та значень (нечислові/NaN/inf → пропуск)
    • Вирівнювання всіх серій на спільну часову вісь першого фрейму

Принципи:
    • Пропуск (`NaN`) означає розрив даних, а не нуль
    • Матриця незмінна; на кожен fetch створюється нова
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from graf_schema import QueryResponse
from grafana_client import GrafanaFetchError

log = logging.getLogger("graf.frames")
if not log.handlers:
    log.addHandler(logging.NullHandler())

TIMESTAMP_INDEX = "timestamp"


def _coerce_values(raw: Sequence[Any], length: int) -> pd.Series:
    """Перетворює сирі значення у float-серію довжини `length` з NaN на місці сміття."""

    values = pd.to_numeric(pd.Series(list(raw), dtype=object), errors="coerce").astype("float64")
    values = values.replace([math.inf, -math.inf], math.nan)
    return values.reindex(range(length)).reset_index(drop=True)


@dataclass(frozen=True)
class SampleMatrix:
    """Набір серій зі спільною часовою віссю.

    `frame` індексований колонкою `timestamp` (секунди UTC), колонки —
    позиційні номери серій `0..n-1`; імена серій зберігаються окремо,
    щоб дублікати імен не ламали таблицю.
    """

    frame: pd.DataFrame
    names: Tuple[str, ...]

    @classmethod
    def from_series(
        cls,
        timeline: Sequence[int],
        series: Sequence[Sequence[Any]],
        names: Optional[Sequence[str]] = None,
    ) -> "SampleMatrix":
        length = len(timeline)
        columns = {k: _coerce_values(values, length) for k, values in enumerate(series)}
        index = pd.Index([int(t) for t in timeline], dtype="int64", name=TIMESTAMP_INDEX)
        frame = pd.DataFrame(columns, index=range(length))
        frame.index = index
        if names is None:
            names = [f"series-{k}" for k in range(len(series))]
        return cls(frame=frame, names=tuple(names))

    @property
    def timeline(self) -> List[int]:
        return [int(t) for t in self.frame.index]

    @property
    def series_count(self) -> int:
        return len(self.frame.columns)

    def __len__(self) -> int:
        return len(self.frame.index)

    def series(self, k: int) -> List[Optional[float]]:
        return [None if math.isnan(v) else float(v) for v in self.frame[k].tolist()]

    def iter_series(self) -> List[List[Optional[float]]]:
        return [self.series(k) for k in range(self.series_count)]


def _frame_name(frame: Mapping[str, Any], ref_id: str, k: int) -> str:
    schema = frame.get("schema")
    if isinstance(schema, Mapping):
        name = schema.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
        fields = schema.get("fields")
        if isinstance(fields, list) and len(fields) > 1 and isinstance(fields[1], Mapping):
            field_name = str(fields[1].get("name") or "").strip()
            labels = fields[1].get("labels")
            if isinstance(labels, Mapping) and labels:
                rendered = ",".join(f"{key}={value}" for key, value in sorted(labels.items()))
                field_name = f"{field_name}{{{rendered}}}"
            if field_name:
                return field_name
    return f"{ref_id}-{k}"


def _frame_values(frame: Any) -> List[Any]:
    if not isinstance(frame, Mapping):
        raise GrafanaFetchError("Фрейм відповіді не є JSON-об'єктом.")
    data = frame.get("data")
    values = data.get("values") if isinstance(data, Mapping) else None
    if not isinstance(values, list):
        raise GrafanaFetchError("У фреймі відсутнє поле data.values.")
    return values


def _parse_timeline(values: List[Any]) -> List[int]:
    if not values or not isinstance(values[0], list):
        raise GrafanaFetchError("У фреймі відсутня часова колонка data.values[0].")
    times_ms = pd.to_numeric(pd.Series(values[0], dtype=object), errors="coerce")
    if times_ms.isna().any():
        raise GrafanaFetchError("Часова колонка містить нечислові значення.")
    return [int(t) for t in (times_ms.astype("float64") // 1000).astype("int64")]


def parse_frames(response: QueryResponse, ref_id: str) -> Optional[SampleMatrix]:
    """Будує Sample Matrix з відповіді `/api/ds/query` для target `ref_id`.

    Returns:
        SampleMatrix або None, якщо запит повернув нуль фреймів.

    Raises:
        GrafanaFetchError: структура відповіді не відповідає контракту.
    """

    results = response.get("results") if isinstance(response, Mapping) else None
    if not isinstance(results, Mapping):
        raise GrafanaFetchError("У відповіді /api/ds/query відсутній блок results.")
    result = results.get(ref_id)
    if result is None:
        return None
    if not isinstance(result, Mapping):
        raise GrafanaFetchError(f"Некоректний результат для refId={ref_id}.")
    error = result.get("error")
    if error:
        raise GrafanaFetchError(f"Grafana повернула помилку для refId={ref_id}: {error}")
    frames = result.get("frames")
    if frames is None:
        return None
    if not isinstance(frames, list):
        raise GrafanaFetchError(f"frames для refId={ref_id} не є списком.")
    if not frames:
        return None

    timeline = _parse_timeline(_frame_values(frames[0]))
    series: List[List[Any]] = []
    names: List[str] = []
    for k, frame in enumerate(frames):
        values = _frame_values(frame)
        raw = values[1] if len(values) > 1 and isinstance(values[1], list) else []
        frame_len = len(values[0]) if values and isinstance(values[0], list) else 0
        if frame_len != len(timeline):
            log.debug(
                "Фрейм %d має %d точок при часовій осі %d; вирівнюємо.",
                k,
                frame_len,
                len(timeline),
            )
        series.append(raw)
        names.append(_frame_name(frame, ref_id, k))
    return SampleMatrix.from_series(timeline, series, names)

