"""JSON CLI API for Seismo-Mind client integration.

All subcommands output JSON to stdout. Errors go to stderr with exit code 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Optional

from .apportion import TOTAL_SEATS, apportion
from .aggregate import filter_by_category, summarize, validate_events
from .config import Config, apply_overrides, default_config, load_config, resolve_timezone
from .datasource import get_data_source
from .logging_setup import LoggerConfig, setup_logging
from .models import CATEGORY_ORDER, Category
from .parliament import parliament_report
from .poster import compose_poster
from .rasterize import render_png
from .time_utils import resolve_window

logger = logging.getLogger(__name__)

# Stdio daemon mode: when True, _die() prints JSON error and raises StdioModeError instead of exiting
_stdio_mode = False


class StdioModeError(Exception):
    """Raised by _die() in stdio mode so the daemon loop can continue."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def _die(msg: str) -> None:
    """Write error to stderr and exit with code 1. In stdio mode, print JSON to stdout and raise instead."""
    print(msg, file=sys.stderr)
    if _stdio_mode:
        print(json.dumps({"type": "error", "message": msg}, ensure_ascii=False), flush=True)
        raise StdioModeError(msg)
    sys.exit(1)


def _emit(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False), flush=True)


# ---------------------------------------------------------------------------
# shared context: config, time zone, reference instant, events
# ---------------------------------------------------------------------------


def _window_days(hint) -> Optional[int]:
    return None if hint is None else resolve_window(hint)


def _load_settings(args) -> Config:
    config = load_config(args.config) if getattr(args, "config", None) else default_config()
    return apply_overrides(config, {
        "analysis": {
            "window_days": _window_days(getattr(args, "window", None)),
            "timezone": getattr(args, "tz", None),
        },
        "poster": {"seed": getattr(args, "seed", None)},
    })


def _load_context(args):
    """Resolve config, time zone, ``now`` and the event list for a command."""
    config = _load_settings(args)
    tz = resolve_timezone(config.analysis.timezone)
    now = getattr(args, "now", None)
    if now is None:
        now = int(time.time() * 1000)
    source = get_data_source(
        getattr(args, "source", None) or "mock",
        path=getattr(args, "file", None),
        seed=config.poster.seed,
        now=now,
    )
    events = validate_events(source.list_events())
    logger.debug("Loaded %d events (window %d days)", len(events), config.analysis.window_days)
    return config, tz, now, events


def _selected_categories(name: Optional[str]) -> tuple[Category, ...]:
    if not name or name == "all":
        return CATEGORY_ORDER
    return (Category.parse(name),)


# ---------------------------------------------------------------------------
# summary
# ---------------------------------------------------------------------------


def _cmd_summary(args) -> None:
    config, tz, now, events = _load_context(args)
    window = config.analysis.window_days
    out = {"now": now, "window_days": window, "categories": {}}
    for category in _selected_categories(getattr(args, "category", None)):
        summary = summarize(filter_by_category(events, category), window, now, tz)
        out["categories"][category.value] = summary.to_dict()
    _emit(out)


# ---------------------------------------------------------------------------
# seats
# ---------------------------------------------------------------------------


def _cmd_seats(args) -> None:
    weights = args.weights
    if isinstance(weights, str):
        try:
            weights = json.loads(weights)
        except json.JSONDecodeError as e:
            _die(f"Invalid --weights JSON: {e}")
    if not isinstance(weights, dict):
        _die("--weights must be a JSON object of key -> weight")
    allocation = apportion(
        weights,
        total=TOTAL_SEATS if args.total is None else args.total,
        floor=args.floor or 0,
    )
    _emit(allocation.to_dict())


# ---------------------------------------------------------------------------
# parliament
# ---------------------------------------------------------------------------


def _cmd_parliament(args) -> None:
    config, tz, now, events = _load_context(args)
    report = parliament_report(events, now, tz, config.analysis.window_days)
    _emit(report.to_dict())


# ---------------------------------------------------------------------------
# poster
# ---------------------------------------------------------------------------


def _cmd_poster(args) -> None:
    config, tz, now, events = _load_context(args)
    if not args.out:
        _die("--out is required")
    doc = compose_poster(
        events,
        now,
        config=config.poster,
        window_days=config.analysis.window_days,
        tz=tz,
        slogan=getattr(args, "slogan", None),
    )
    doc.save(args.out)

    png_path = getattr(args, "png", None)
    if png_path:
        scale = getattr(args, "scale", None) or config.raster.scale
        with open(png_path, "wb") as f:
            f.write(render_png(doc.svg, doc.width, doc.height, scale))

    _emit({
        "svg": args.out,
        "png": png_path or None,
        "width": doc.width,
        "height": doc.height,
        "slogan": doc.slogan,
        "degraded": doc.degraded,
        "heatmaps": {
            c.value: {"tags": h.tag_count, "columns": h.columns, "cell_size": round(h.cell_size, 2)}
            for c, h in doc.heatmaps.items()
        },
    })


# ---------------------------------------------------------------------------
# stdio daemon (one process per client lifecycle)
# ---------------------------------------------------------------------------


class _Namespace:
    """Minimal namespace for dispatching to _cmd_* without argparse."""

    def __init__(self, d: dict) -> None:
        self.__dict__.update(d)


_CONTEXT_KEYS = ("config", "source", "file", "seed", "now", "tz", "window")


def _cmd_stdio(args) -> None:
    """Read JSON lines from stdin, dispatch to existing _cmd_* by cmd, write responses to stdout."""
    global _stdio_mode
    _stdio_mode = True
    try:
        _serve(args, sys.stdin)
    finally:
        _stdio_mode = False


def _serve(args, stream) -> None:
    defaults = {k: getattr(args, k, None) for k in _CONTEXT_KEYS}

    for line in stream:
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            _emit({"type": "error", "message": f"Invalid JSON: {e}"})
            continue
        if not isinstance(data, dict):
            _emit({"type": "error", "message": "Request must be a JSON object"})
            continue

        cmd = data.get("cmd")
        if not cmd:
            _emit({"type": "error", "message": "Missing 'cmd' field"})
            continue

        # Payload keys match CLI option names and override the daemon's defaults
        base = {k: data.get(k, v) for k, v in defaults.items()}
        if cmd == "summary":
            ns = _Namespace({**base, "category": data.get("category")})
            func = _cmd_summary
        elif cmd == "seats":
            ns = _Namespace({
                "weights": data.get("weights"),
                "floor": data.get("floor", 0),
                "total": data.get("total"),
            })
            func = _cmd_seats
        elif cmd == "parliament":
            ns = _Namespace(base)
            func = _cmd_parliament
        elif cmd == "poster":
            ns = _Namespace({
                **base,
                "out": data.get("out"),
                "png": data.get("png"),
                "scale": data.get("scale"),
                "slogan": data.get("slogan"),
            })
            func = _cmd_poster
        else:
            _emit({"type": "error", "message": f"Unknown cmd: {cmd}"})
            continue

        try:
            func(ns)
        except StdioModeError:
            pass
        except Exception as e:
            _emit({"type": "error", "message": str(e)})


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seismo-Mind JSON CLI")
    parser.add_argument("--config", default=None, help="Path to config.yml (defaults apply when omitted)")
    parser.add_argument("--source", choices=["mock", "file"], default="mock", help="Event source (default: mock)")
    parser.add_argument("--file", default=None, help="Event export JSON (with --source file)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for mock data and the slogan")
    parser.add_argument("--now", type=int, default=None, help="Reference instant in epoch ms (default: current time)")
    parser.add_argument("--tz", default=None, help='Time zone: "local", "UTC", "+08:00" or an IANA name')
    parser.add_argument("--window", default=None, help='Trailing window: days ("30"), "30d", "week", "month" or "year"')
    parser.add_argument("--debug", action="store_true", help="Print debug logs to stderr")
    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # summary
    p_summary = subparsers.add_parser("summary")
    p_summary.add_argument("--category", choices=["all", "negative", "positive"], default="all")
    p_summary.set_defaults(func=_cmd_summary)

    # seats
    p_seats = subparsers.add_parser("seats")
    p_seats.add_argument("--weights", required=True, help='JSON object, e.g. \'{"work": 6, "sleep": 4}\'')
    p_seats.add_argument("--floor", type=int, default=0, help="Minimum seats per key")
    p_seats.add_argument("--total", type=int, default=None, help=f"Seats to allocate (default: {TOTAL_SEATS})")
    p_seats.set_defaults(func=_cmd_seats)

    # parliament
    p_parl = subparsers.add_parser("parliament")
    p_parl.set_defaults(func=_cmd_parliament)

    # poster
    p_poster = subparsers.add_parser("poster")
    p_poster.add_argument("--out", required=True, help="SVG output path")
    p_poster.add_argument("--png", default=None, help="Also write a PNG here (needs the png extra)")
    p_poster.add_argument("--scale", type=float, default=None, help="PNG scale factor")
    p_poster.add_argument("--slogan", default=None, help="Fixed slogan instead of the seeded pick")
    p_poster.set_defaults(func=_cmd_poster)

    # stdio daemon (one process per client; requests as JSON lines on stdin)
    p_stdio = subparsers.add_parser("stdio")
    p_stdio.set_defaults(func=_cmd_stdio)

    return parser


def main() -> None:
    # Force UTF-8 for stdout/stderr on Windows so Chinese labels render correctly
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except Exception:
            pass

    args = build_parser().parse_args()
    setup_logging(LoggerConfig(level=logging.DEBUG if args.debug else logging.WARNING))
    try:
        args.func(args)
    except StdioModeError:
        sys.exit(1)
    except Exception as e:
        _die(str(e))


if __name__ == "__main__":
    main()
