from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import platform
import shutil
import sys

from rich.console import Console

from quotabar import __version__
from quotabar.actions import ActionDispatcher
from quotabar.config import (
    CONFIG_PATH,
    ConfigError,
    effective_refresh_seconds,
    effective_service_command,
    load_config,
    save_config,
    set_config_value,
)
from quotabar.logging_setup import configure_logging
from quotabar.models import ProviderEntry, normalize_provider_id
from quotabar.poller import Poller
from quotabar.session import SessionState
from quotabar.snapshot import snapshot_to_json
from quotabar.ui.theme import theme_from_name
from quotabar.ui.widgets import entry_panel


def _one_shot(cfg) -> SessionState:
    session = SessionState()
    Poller(session, cfg).refresh_sync()
    return session


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="quotabar")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("widget")

    panel = sub.add_parser("panel")
    panel.add_argument("--provider", default="", help="provider id; default follows the selection policy")
    panel.add_argument("--all", action="store_true", help="render every provider in the snapshot")

    sub.add_parser("snapshot")
    sub.add_parser("health")

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_cmd")
    config_sub.add_parser("show")
    config_set = config_sub.add_parser("set")
    config_set.add_argument("key")
    config_set.add_argument("value")

    open_cmd = sub.add_parser("open")
    open_cmd.add_argument("target", choices=["dashboard", "status", "account"])
    open_cmd.add_argument("--provider", default="")

    tray = sub.add_parser("tray")
    tray_sub = tray.add_subparsers(dest="tray_cmd")
    tray_sub.add_parser("run")

    args = parser.parse_args(argv)
    try:
        cfg = load_config()
    except ConfigError as exc:
        parser.error(str(exc))
    configure_logging("DEBUG" if args.verbose else cfg.general.log_level)

    cmd = args.cmd or "widget"
    console = Console()

    if cmd == "widget":
        from quotabar.app import run_widget

        run_widget(cfg)
        return

    if cmd == "panel":
        session = _one_shot(cfg)
        theme = theme_from_name(cfg.general.theme)
        if args.all and session.snapshot.entries:
            for entry in session.snapshot.entries:
                console.print(entry_panel(entry, theme))
            return
        entry = session.display_entry()
        if args.provider:
            provider = normalize_provider_id(args.provider)
            entry = session.snapshot.entry_for(provider) or ProviderEntry.empty(provider)
        console.print(entry_panel(entry, theme, session.last_error))
        return

    if cmd == "snapshot":
        session = _one_shot(cfg)
        if session.last_error:
            print(session.last_error, file=sys.stderr)
            sys.exit(1)
        print(snapshot_to_json(session.snapshot))
        return

    if cmd == "health":
        command = effective_service_command(cfg)
        checks = {
            "version": __version__,
            "config": str(CONFIG_PATH),
            "service_command": command,
            "service_binary": shutil.which(command.split()[0]) if command.split() else None,
            "refresh_seconds": effective_refresh_seconds(cfg),
            "platform": platform.platform(),
        }
        print(json.dumps(checks, indent=2))
        return

    if cmd == "config":
        if args.config_cmd == "show":
            print(json.dumps(asdict(cfg), indent=2, default=str))
            return
        if args.config_cmd == "set":
            try:
                set_config_value(cfg, args.key, args.value)
            except ValueError as exc:
                parser.error(str(exc))
            save_config(cfg)
            print(f"updated {args.key}")
            return
        parser.error("config requires show or set")

    if cmd == "open":
        session = _one_shot(cfg)
        provider = normalize_provider_id(args.provider) if args.provider else None
        dispatcher = ActionDispatcher(session)
        action = {
            "dashboard": dispatcher.open_usage_dashboard,
            "status": dispatcher.open_status_page,
            "account": dispatcher.run_account_action,
        }[args.target]
        if not action(provider):
            console.print(f"[yellow]{args.target} is not available for {provider or session.preferred_provider_id()}[/]")
            sys.exit(1)
        return

    if cmd == "tray":
        if args.tray_cmd != "run":
            parser.error("tray requires run")
        if not cfg.tray.enabled:
            print("tray icon is disabled; run `quotabar config set tray.enabled true`", file=sys.stderr)
            sys.exit(1)
        from quotabar.tray.icon import run_tray

        run_tray(cfg)
        return

    parser.error("unknown command")


if __name__ == "__main__":
    main()
