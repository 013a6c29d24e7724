"""Спільні TypedDict-схеми та константи для Grafana-клієнта і рендера.

Модуль описує «контракти» JSON-відповідей Grafana HTTP API, з якими працює
графік у терміналі. TypedDict-и не впливають на runtime, але фіксують очікувані
поля/типи. Палітра ANSI-кодів теж є частиною контракту виводу.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict

# Палітра SGR-кодів: червоний, зелений, жовтий, синій, пурпурний, блакитний.
SERIES_COLORS = (31, 32, 33, 34, 35, 36)
DIM_COLOR = 90  # header/grid (bright black)
PLAIN_COLOR = 0  # без escape-послідовності

TIME_GUTTER_WIDTH = 9  # "13:04:05 "
LABEL_SPACING = 16  # крок між підписами осі та лініями сітки
LABEL_FIELD_WIDTH = 15
TIMESTAMP_EVERY_ROWS = 5


class DashboardSearchHit(TypedDict, total=False):
    """Елемент відповіді `/api/search?type=dash-db`."""

    id: int
    uid: str
    title: str
    url: str
    type: str
    tags: List[str]


class PanelTarget(TypedDict, total=False):
    """Target (запит) панелі; довільні поля datasource зберігаються як є."""

    refId: str
    datasource: Dict[str, Any]
    expr: str
    maxDataPoints: int
    intervalMs: int


class Panel(TypedDict, total=False):
    id: int
    title: str
    type: str
    targets: List[PanelTarget]


class DashboardModel(TypedDict, total=False):
    uid: str
    title: str
    panels: List[Panel]


class DashboardResponse(TypedDict, total=False):
    """Відповідь `/api/dashboards/uid/{uid}`."""

    dashboard: DashboardModel
    meta: Dict[str, Any]


class FrameField(TypedDict, total=False):
    name: str
    type: str
    labels: Dict[str, str]


class FrameSchema(TypedDict, total=False):
    name: str
    refId: str
    fields: List[FrameField]


class FrameData(TypedDict, total=False):
    # values[0] — час у мілісекундах, values[1] — значення серії.
    values: List[List[Optional[Any]]]


class DataFrame(TypedDict, total=False):
    schema: FrameSchema
    data: FrameData


class QueryResult(TypedDict, total=False):
    status: int
    frames: List[DataFrame]
    error: str


class QueryResponse(TypedDict, total=False):
    """Відповідь `POST /api/ds/query`."""

    results: Dict[str, QueryResult]


# Тіло `POST /api/ds/query`; межі вікна — мілісекунди рядком.
# `from` — ключове слово Python, тому лише функціональний синтаксис.
QueryRequest = TypedDict(
    "QueryRequest",
    {"queries": List[PanelTarget], "from": str, "to": str},
)
