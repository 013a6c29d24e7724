"""HTTP-клієнт Grafana API для термінального графіка.

Клієнт лише транспорт: пошук дашбордів, читання моделі дашборду та виконання
запитів `/api/ds/query`. Будь-яка транспортна помилка, HTTP-статус поза 2xx або
не-JSON тіло — фатальні й піднімаються як `GrafanaFetchError`; ретраїв немає.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from graf_schema import DashboardResponse, DashboardSearchHit, PanelTarget, QueryRequest, QueryResponse

log = logging.getLogger("graf.client")
if not log.handlers:
    log.addHandler(logging.NullHandler())

DEFAULT_TIMEOUT_SECONDS = 30.0
_JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class GrafanaFetchError(RuntimeError):
    """Фатальна помилка отримання/розбору відповіді Grafana."""


def _split_userpass(userpass: str) -> Tuple[str, str]:
    user, _, password = userpass.partition(":")
    return user, password


def build_target_query(target: Mapping[str, Any], rows: int, interval: int) -> PanelTarget:
    """Клонує target панелі та задає роздільну здатність під висоту терміналу.

    `maxDataPoints` = кількість рядків терміналу, `intervalMs` = крок у мс.
    Оригінальний target не змінюється.
    """

    query: Dict[str, Any] = copy.deepcopy(dict(target))
    query["maxDataPoints"] = int(rows)
    query["intervalMs"] = int(interval) * 1000
    return query  # type: ignore[return-value]


def build_query_request(query: PanelTarget, window: Tuple[int, int]) -> QueryRequest:
    start, end = window
    return {
        "queries": [query],
        "from": str(int(start) * 1000),
        "to": str(int(end) * 1000),
    }


class GrafanaClient:
    """Мінімальний синхронний клієнт поверх `requests.Session`."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        userpass: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        verbosity: int = 0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.verbosity = int(verbosity)
        self._session = session or requests.Session()
        self._session.headers.update(_JSON_HEADERS)
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        elif userpass:
            self._session.auth = _split_userpass(userpass)

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        if self.verbosity > 1:
            log.debug("-> %s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                data=json.dumps(payload) if payload is not None else None,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GrafanaFetchError(f"{method} {url}: {exc}") from exc

        if not response.ok:
            raise GrafanaFetchError(
                f"{method} {url}: HTTP {response.status_code} {response.text[:200]!r}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise GrafanaFetchError(f"json ({url}): {exc}") from exc
        if self.verbosity > 2:
            log.debug("<- json: %s", json.dumps(body, ensure_ascii=False))
        return body

    def search_dashboards(self) -> List[DashboardSearchHit]:
        body = self._request("GET", "/api/search?type=dash-db")
        if not isinstance(body, list):
            raise GrafanaFetchError("Очікувався список дашбордів у /api/search.")
        return body

    def get_dashboard(self, uid: str) -> DashboardResponse:
        body = self._request("GET", f"/api/dashboards/uid/{uid}")
        if not isinstance(body, dict) or not isinstance(body.get("dashboard"), dict):
            raise GrafanaFetchError(f"Некоректна модель дашборду uid={uid}.")
        return body  # type: ignore[return-value]

    def query(self, query: PanelTarget, window: Tuple[int, int]) -> QueryResponse:
        request = build_query_request(query, window)
        if self.verbosity > 0:
            log.debug("query: %s", json.dumps(request, ensure_ascii=False))
        body = self._request("POST", "/api/ds/query", request)
        if not isinstance(body, dict):
            raise GrafanaFetchError("Очікувався JSON-об'єкт у відповіді /api/ds/query.")
        return body  # type: ignore[return-value]
