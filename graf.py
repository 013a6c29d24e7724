"""Вибір панелі Grafana та вивід її даних графіком у термінал.

Логіка:
- читаємо `.env` (python-dotenv), runtime_settings.json, ENV та аргументи CLI;
- інтерактивно обираємо дашборд → панель → target;
- малюємо вікно `--from..--to`, а з `-f` — нескінченно дотягуємо нові дані.

Приклад запуску:
    $ python graf.py -t "$GRAF_TOKEN" https://grafana.example.com --from now-15m -f
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
import sys
import time
from logging import Logger
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from dotenv import load_dotenv
from prometheus_client import start_http_server
from rich.console import Console
from rich.logging import RichHandler

from config import TO_DEFAULT, ConfigError, GrafConfig, load_config
from frames import SampleMatrix, parse_frames
from grafana_client import GrafanaClient, GrafanaFetchError, build_target_query
from graf_schema import PanelTarget
from instants import INSTANT_FORMS_HELP, parse_instant
from renderer import CanvasGeometry
from streamer import PlotStreamer, Window, default_interval

# Налаштування логування
log: Logger = logging.getLogger("graf")
_LOGGING_CONFIGURED = False
_RICH_CONSOLE: Optional[Console] = None

USAGE = (
    "usage: graf [-h|--help] <-u USER:PASS|-t TOKEN> URL [--from FROM] [--to TO] "
    "[--interval SECS] [-f]"
)


def setup_logging(verbosity: int = 0) -> None:
    """Налаштовуємо логування з RichHandler у stderr.

    stdout лишається тільки для рядків графіка та інтерактивних підказок.
    """
    global _LOGGING_CONFIGURED
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    if _LOGGING_CONFIGURED:
        log.setLevel(level)
        return

    global _RICH_CONSOLE
    if _RICH_CONSOLE is None:
        force_terminal = bool(sys.stderr.isatty()) or os.getenv("GRAF_RICH_FORCE_TERMINAL") == "1"
        _RICH_CONSOLE = Console(
            stderr=True,
            force_terminal=force_terminal,
            color_system="standard" if force_terminal else None,
        )

    for handler in log.handlers:
        if isinstance(handler, RichHandler):
            log.setLevel(level)
            _LOGGING_CONFIGURED = True
            return

    handler = RichHandler(
        console=_RICH_CONSOLE,
        rich_tracebacks=True,
        show_path=False,
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    log.setLevel(level)
    log.addHandler(handler)
    log.propagate = False
    _LOGGING_CONFIGURED = True


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="graf",
        description="select and print grafana dashboard panel to terminal",
    )
    parser.add_argument("url", nargs="?", default=None, help="grafana base url")
    parser.add_argument("-u", "--user", default=None, help="USER:PASS basic user password authentication")
    parser.add_argument("-t", "--token", default=None, help="api token")
    parser.add_argument(
        "--from",
        dest="from_spec",
        default=None,
        help="time specifier for grafana (defaults to now-5m)",
    )
    parser.add_argument(
        "--to",
        dest="to_spec",
        default=None,
        help="time specifier for grafana (defaults to now)",
    )
    parser.add_argument(
        "--interval",
        default=None,
        help="interval in seconds between frames (defaults to (TO-FROM) / <terminal rows>)",
    )
    parser.add_argument(
        "-f",
        "--follow",
        action="store_true",
        default=None,
        help="follow, update data every INTERVAL seconds",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v queries, -vv requests, -vvv json")
    parser.add_argument("--env-file", default=None, help="шлях до .env (за замовчуванням — пошук .env)")
    return parser.parse_args(argv)


def select_item(
    label: str,
    items: Sequence[Mapping[str, Any]],
    keys: Sequence[str],
    *,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> Mapping[str, Any]:
    """Просить користувача обрати елемент зі списку; один елемент — без питань."""

    if not items:
        raise GrafanaFetchError(f"Grafana не повернула жодного варіанту для: {label}.")
    if len(items) == 1:
        return items[0]
    for i, item in enumerate(items):
        described = "".join(f" {key}={json.dumps(item.get(key), ensure_ascii=False)}" for key in keys)
        output_fn(f"{i} -{described}")
    while True:
        raw = input_fn(f"Please select {label}: ")
        try:
            index = int(raw.strip())
        except ValueError:
            continue
        if 0 <= index < len(items):
            return items[index]


def choose_target(
    client: GrafanaClient,
    *,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> Tuple[PanelTarget, str]:
    """Дашборд → панель → target; повертає target та його refId."""

    dashboard = select_item("a dashboard", client.search_dashboards(), ["title"], input_fn=input_fn, output_fn=output_fn)
    model = client.get_dashboard(str(dashboard.get("uid") or ""))
    panels: List[Mapping[str, Any]] = list(model["dashboard"].get("panels") or [])
    panel = select_item("a panel", panels, ["title"], input_fn=input_fn, output_fn=output_fn)
    targets: List[Mapping[str, Any]] = list(panel.get("targets") or [])
    target = select_item("a target", targets, ["refId"], input_fn=input_fn, output_fn=output_fn)
    ref_id = str(target.get("refId") or "A")
    return dict(target), ref_id  # type: ignore[return-value]


def terminal_size() -> Tuple[int, int]:
    size = shutil.get_terminal_size(fallback=(80, 24))
    return size.lines, size.columns


def write_row(line: str) -> None:
    sys.stdout.write(line)
    sys.stdout.write("\n")
    sys.stdout.flush()


def _ensure_metrics_server(port: int) -> None:
    try:
        start_http_server(port)
    except OSError as exc:
        log.warning("Не вдалося запустити Prometheus exporter на порту %s: %s", port, exc)
    else:
        log.info("Prometheus exporter слухає порт %s.", port)


def _resolve_window(config: GrafConfig, now: int) -> Optional[Window]:
    start = parse_instant(config.stream.from_spec, now)
    end = parse_instant(config.stream.to_spec, now)
    if start is None or end is None:
        return None
    return start, end


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(args.verbose)
    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()

    try:
        config = load_config(
            {
                "url": args.url,
                "user": args.user,
                "token": args.token,
                "from": args.from_spec,
                "to": args.to_spec,
                "interval": args.interval,
                "follow": args.follow,
                "verbosity": args.verbose,
            }
        )
        geometry = CanvasGeometry.from_terminal(*terminal_size())
    except ConfigError as exc:
        log.error("error: %s", exc)
        print(USAGE)
        return 2

    follow = config.stream.follow
    if follow and config.stream.to_spec.strip() != TO_DEFAULT:
        log.error("error: -f is only supported for --to now, disabling follow")
        follow = False

    window = _resolve_window(config, int(time.time()))
    if window is None:
        log.error("error: %s", INSTANT_FORMS_HELP)
        return 2
    interval = config.stream.interval_seconds or default_interval(window, geometry.rows)
    if config.verbosity > 1:
        log.debug("rows:%d cols:%d interval:%ds", geometry.rows, geometry.width, interval)

    if config.observability.metrics_enabled:
        _ensure_metrics_server(config.observability.metrics_port)

    client = GrafanaClient(
        config.grafana.url,
        token=config.grafana.token,
        userpass=config.grafana.userpass,
        timeout=config.grafana.timeout_seconds,
        verbosity=config.verbosity,
    )
    try:
        target, ref_id = choose_target(client)
        query = build_target_query(target, geometry.rows, interval)

        def fetch(window: Window) -> Optional[SampleMatrix]:
            return parse_frames(client.query(query, window), ref_id)

        streamer = PlotStreamer(fetch, geometry, interval, output=write_row)
        streamer.run(window, follow=follow)
    except GrafanaFetchError as exc:
        log.error("%s", exc)
        return 1
    except (KeyboardInterrupt, EOFError):
        log.info("Зупинено користувачем.")
        return 130
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
