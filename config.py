"""Конфігураційні структури та завантаження ENV для термінального графіка Grafana."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

FROM_DEFAULT = "now-5m"  # Початок вікна за замовчуванням
TO_DEFAULT = "now"  # Кінець вікна; follow працює лише з "now"
HTTP_TIMEOUT_DEFAULT_SECONDS = 30.0
METRICS_DEFAULT_PORT = 9210
RUNTIME_SETTINGS_FILE = Path("config/runtime_settings.json")


class ConfigError(ValueError):
    """Конфігурація або геометрія терміналу непридатні для запуску."""


def _load_json_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:  # pragma: no cover - конфіг краще падати одразу
        raise ConfigError(f"Некоректний JSON у {path}: {exc}") from exc


def _get_env_str(name: str) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_int(value: Any, default: Optional[int], *, min_value: int = 1) -> Optional[int]:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return max(min_value, parsed)


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return default


def _coerce_float(value: Any, default: float, *, min_value: float = 0.1) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return max(min_value, parsed)


def _section(payload: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = payload.get(name)
    return raw if isinstance(raw, Mapping) else {}


@dataclass(frozen=True)
class GrafanaSettings:
    url: str
    token: Optional[str]
    userpass: Optional[str]
    timeout_seconds: float


@dataclass(frozen=True)
class StreamSettings:
    from_spec: str
    to_spec: str
    # None → (to - from) / rows, обчислюється після визначення геометрії
    interval_seconds: Optional[int]
    follow: bool


@dataclass(frozen=True)
class ObservabilitySettings:
    metrics_enabled: bool
    metrics_port: int


@dataclass(frozen=True)
class GrafConfig:
    grafana: GrafanaSettings
    stream: StreamSettings
    observability: ObservabilitySettings
    verbosity: int


def _pick(overrides: Mapping[str, Any], key: str, *fallbacks: Any) -> Any:
    value = overrides.get(key)
    if value is not None:
        return value
    for fallback in fallbacks:
        if fallback is not None:
            return fallback
    return None


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> GrafConfig:
    """Зчитує налаштування: дефолти → runtime_settings.json → ENV → CLI.

    Args:
        overrides: Значення з командного рядка; `None`-ключі ігноруються.

    Raises:
        ConfigError: не задано URL або креденшали, чи JSON зіпсований.
    """

    cli = dict(overrides or {})
    runtime_settings = _load_json_file(RUNTIME_SETTINGS_FILE)
    grafana_cfg = _section(runtime_settings, "grafana")
    stream_cfg = _section(runtime_settings, "stream")
    observability_cfg = _section(runtime_settings, "observability")

    url = _pick(cli, "url", _get_env_str("GRAF_URL"), grafana_cfg.get("url"))
    if not url or not str(url).strip():
        raise ConfigError("URL must be provided")

    token = _pick(cli, "token", _get_env_str("GRAF_TOKEN"))
    userpass = _pick(cli, "user", _get_env_str("GRAF_USER"))
    if not token and not userpass:
        raise ConfigError("either USER:PASS or TOKEN must be provided")

    timeout_seconds = _coerce_float(
        _pick(cli, "timeout", _get_env_str("GRAF_TIMEOUT_SECONDS"), grafana_cfg.get("timeout_seconds")),
        HTTP_TIMEOUT_DEFAULT_SECONDS,
        min_value=1.0,
    )

    from_spec = str(_pick(cli, "from", _get_env_str("GRAF_FROM"), stream_cfg.get("from"), FROM_DEFAULT))
    to_spec = str(_pick(cli, "to", _get_env_str("GRAF_TO"), stream_cfg.get("to"), TO_DEFAULT))

    raw_interval = _pick(cli, "interval", _get_env_str("GRAF_INTERVAL"), stream_cfg.get("interval_seconds"))
    interval_seconds: Optional[int] = None
    if raw_interval is not None:
        try:
            interval_seconds = int(str(raw_interval).strip(), 10)
        except ValueError as exc:
            raise ConfigError("SECS must be a number") from exc
        if interval_seconds < 1:
            raise ConfigError("SECS must be a positive number")

    follow = _coerce_bool(_pick(cli, "follow", stream_cfg.get("follow")), False)

    observability = ObservabilitySettings(
        metrics_enabled=_get_bool_env(
            "GRAF_METRICS_ENABLED",
            _coerce_bool(observability_cfg.get("metrics_enabled"), False),
        ),
        metrics_port=_coerce_int(
            _get_env_str("GRAF_METRICS_PORT") or observability_cfg.get("metrics_port"),
            METRICS_DEFAULT_PORT,
            min_value=1024,
        )
        or METRICS_DEFAULT_PORT,
    )

    verbosity = _coerce_int(cli.get("verbosity"), 0, min_value=0) or 0

    return GrafConfig(
        grafana=GrafanaSettings(
            url=str(url).strip().rstrip("/"),
            token=str(token).strip() if token else None,
            userpass=str(userpass).strip() if userpass and not token else None,
            timeout_seconds=timeout_seconds,
        ),
        stream=StreamSettings(
            from_spec=from_spec,
            to_spec=to_spec,
            interval_seconds=interval_seconds,
            follow=follow,
        ),
        observability=observability,
        verbosity=verbosity,
    )
