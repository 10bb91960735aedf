# service/cli.py
"""
User-facing command-line entrypoints.

Subcommands
-----------
serve
    - Starts the APScheduler loop via service.scheduler.start()
    - Starts the chat command listener in a secondary thread via service.command_listener.start()
    - Runs until SIGINT/SIGTERM, then stops the listener and the scheduler

check [--dry-run] [--print] [--kwargs k=v ...]
    - Runs one check-and-notify cycle now via modules.job_alert.main.run()
    - --dry-run logs messages instead of sending them; --print echoes each message to stdout

list-sources
    - Prints the enabled job sources in priority order

clear-history
    - Empties the seen-job file so every posting is treated as new again

validate-config
    - Loads/validates config and environment, returns nonzero on error
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from modules.job_alert import main as job_alert_main
from modules.job_alert.lib.config import ConfigError, Settings
from modules.job_alert.lib.render import payload_text, source_label
from modules.job_alert.lib.seen_store import SeenJobStore
from service import chat as _chat
from service import command_listener as _listener
from service import config_schema as _config_schema
from service import logging_utils as L
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")


def _ensure_logging() -> None:
    """Console logging at LOG_LEVEL unless the host already configured handlers."""
    if logging.getLogger().handlers:
        return
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    `--kwargs` items -> settings overrides. JSON literals (5, true, null, [..])
    are decoded so `limit=5` arrives as an int; anything else stays a string.
    """
    overrides: dict[str, Any] = {}
    for item in pairs:
        name, eq, value = item.partition("=")
        name = name.strip()
        if not eq or not name:
            raise argparse.ArgumentTypeError(f"expected key=value in --kwargs, got {item!r}")
        value = value.strip()
        try:
            overrides[name] = json.loads(value)
        except ValueError:
            overrides[name] = value
    return overrides


def _print_sources(rows: list[tuple[str, str]]) -> None:
    width = max([len("SOURCE")] + [len(name) for name, _ in rows])
    print(f"{'SOURCE'.ljust(width)}  LABEL")
    for name, label in rows:
        print(f"{name.ljust(width)}  {label}")


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def _load_settings(args: argparse.Namespace, overrides: dict[str, Any] | None = None) -> tuple[dict, Settings]:
    cfg = _config_schema.load_config(args.config)
    _config_schema.validate(cfg)
    return cfg, Settings.from_env_and_kwargs(overrides or {}, file_cfg=cfg)


class _PrintingChannel:
    """Echo each outgoing message to stdout before handing it to the real channel."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner

    def send(self, payload: dict[str, Any]) -> Any:
        print(payload_text(payload))
        print("-" * 40)
        return self._inner.send(payload)



def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        _cfg, settings = _load_settings(args)
        print(
            "OK: configuration is valid "
            f"(strategy={settings.strategy.value}, sources={[s.kind for s in settings.active_sources()]})."
        )
        return 0
    except KeyboardInterrupt:
        return 130
    except ConfigError as e:
        LOG.error("Configuration validation failed: %s", e)
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1


def cmd_list_sources(args: argparse.Namespace) -> int:
    try:
        _cfg, settings = _load_settings(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    rows = [(f"{i}. {s.kind}", source_label(s.kind)) for i, s in enumerate(settings.active_sources(), start=1)]
    print(f"Strategy: {settings.strategy.value}")
    _print_sources(rows)
    return 0


def cmd_clear_history(args: argparse.Namespace) -> int:
    try:
        _cfg, settings = _load_settings(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    store = SeenJobStore(settings.jobs_data_file)
    store.load()
    dropped = store.clear()
    if not store.persist():
        print(f"FAILURE: could not write {settings.jobs_data_file}", file=sys.stderr)
        return 1
    print(f"Cleared {dropped} seen job(s) from {settings.jobs_data_file}.")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    channel = None
    try:
        kwargs = _parse_kv_pairs(args.kwargs or [])
        if args.dry_run:
            kwargs["dry_run"] = True
        cfg, settings = _load_settings(args, kwargs)

        channel = _chat.resolve_channel(settings)
        target = _PrintingChannel(channel) if (channel is not None and args.print) else channel
        summary = job_alert_main.run(channel=target, file_cfg=cfg, **kwargs)

        L.write_activity_log({"component": "service.cli", "op": "check", "ts": _now_iso(), **summary})
        if summary.get("status") != "ok":
            print(f"FAILURE: {summary.get('status')}", file=sys.stderr)
            return 1
        print(
            f"DONE: {summary['new']} new, {summary['delivered']} delivered, "
            f"{summary['failed']} failed, {summary['skipped']} over the cap "
            f"(tried: {', '.join(summary['tried']) or '-'})"
        )
        return 0

    except KeyboardInterrupt:
        return 130
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({"component": "service.cli", "op": "check", "ts": _now_iso(), "error": repr(e)})
        return 1
    finally:
        if channel is not None:
            channel.close()


def cmd_serve(args: argparse.Namespace) -> int:
    """
    Poll on the configured interval and answer chat commands until SIGINT or
    SIGTERM. Components are stopped in reverse start order.
    """
    done = threading.Event()
    handles: list[tuple[str, Any]] = []

    def _on_signal(signum=None, frame=None):
        LOG.info("Stopping job alert service (signal %s)", signum)
        done.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _on_signal)

    L.write_activity_log({"component": "service.cli", "op": "serve_start", "ts": _now_iso()})
    rc = 0
    try:
        controller = _scheduler.start(config_path=args.config)
        handles.append(("scheduler", controller))
        listener = _listener.start(controller)
        if listener is not None:
            handles.append(("command_listener", listener))
        LOG.info("Command listener %s", "started" if listener else "disabled (no bot token/channel)")
        while not done.wait(0.3):
            pass
    except KeyboardInterrupt:
        rc = 130
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        rc = 1
    except Exception:
        LOG.exception("Job alert service crashed")
        rc = 1
    finally:
        for name, handle in reversed(handles):
            _stop_quietly(name, handle)
        L.write_activity_log({"component": "service.cli", "op": "serve_stop", "ts": _now_iso(), "rc": rc})
    return rc


def _stop_quietly(name: str, handle: Any) -> None:
    """stop() then join(); a failure in one component must not block the other."""
    try:
        handle.stop()
        join = getattr(handle, "join", None)
        if callable(join):
            join(timeout=10.0)
    except Exception:  # pragma: no cover
        LOG.exception("Error shutting down %s", name)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="Job alert poller command-line tools",
    )
    p.add_argument(
        "--config",
        help="Path to a JSON/YAML config file (fallbacks to CONFIG_PATH env, then environment only).",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="Run the scheduler loop and the chat command listener.")
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("check", help="Run one check-and-notify cycle now.")
    sp.add_argument("--dry-run", action="store_true", help="Log messages instead of sending them.")
    sp.add_argument("--print", action="store_true", help="Print every outgoing message to stdout.")
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Settings overrides, e.g. keyword=\"data engineer\" limit=5 strategy=fanout.",
    )
    sp.set_defaults(func=cmd_check)

    sp = sub.add_parser("list-sources", help="Print enabled job sources in priority order.")
    sp.set_defaults(func=cmd_list_sources)

    sp = sub.add_parser("clear-history", help="Forget every job already posted.")
    sp.set_defaults(func=cmd_clear_history)

    sp = sub.add_parser("validate-config", help="Verify configuration correctness.")
    sp.set_defaults(func=cmd_validate_config)

    return p



def main(argv: Iterable[str] | None = None) -> int:
    load_dotenv()
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
