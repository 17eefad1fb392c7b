#!/usr/bin/env python3
"""
Companion Store CLI

Command-line interface for browsing, enabling and managing apps.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from common.exceptions import StoreError, ConfigError, AppNotFoundError
from common.logging_config import setup_logging, LogContext
from store.alerts import ConsoleAlertSink
from store.analytics import LoggingAnalytics
from store.app_catalog import AppRecord
from store.catalog_state import CatalogState
from store.config import StoreConfig
from store.preferences import PreferenceStore, NO_SELECTED_APP
from store.remote import HttpAppService

logger = logging.getLogger(__name__)


def build_state(args) -> CatalogState:
    """Wire a CatalogState to the configured service and preferences."""
    config = getattr(args, "store_config", None) or StoreConfig.load()
    return CatalogState(
        service=HttpAppService.from_config(config),
        preferences=PreferenceStore(config.preferences_path),
        alerts=ConsoleAlertSink(),
        analytics=LoggingAnalytics(),
    )


def _require_index(state: CatalogState, app_id: str) -> int:
    index = state.find_index(app_id)
    if index is None:
        raise AppNotFoundError(app_id)
    return index


def _print_app(app: AppRecord) -> None:
    status = "enabled" if app.enabled else "disabled"
    visibility = "public" if app.is_public else "private"
    print(f"  {app.id}")
    print(f"    {app.name} ({status}, {visibility})")
    if app.capabilities:
        print(f"    works with: {', '.join(app.capabilities)}")
    if app.description:
        print(f"    {app.description[:80]}")
    print()


def cmd_list(args):
    """List apps."""
    state = build_state(args)

    async def run():
        if args.offline:
            state.load_from_cache()
            if args.chat_only:
                state.filter_memories = False
                state.filter_external = False
        else:
            await state.initialize(chat_filter_only=args.chat_only)

    asyncio.run(run())

    apps = state.filtered_apps
    if args.enabled:
        apps = [app for app in apps if app.enabled]

    if not apps:
        print("No apps found.")
        return 0

    print(f"Apps ({len(apps)}):\n")
    for app in apps:
        _print_app(app)

    return 0


def cmd_search(args):
    """Search apps by name."""
    state = build_state(args)
    asyncio.run(state.refresh_catalog())
    state.update_search_query(args.query)

    results = state.filtered_apps
    if not results:
        print(f"No apps found for: {args.query}")
        return 0

    print(f"Found {len(results)} app(s):\n")
    for app in results:
        _print_app(app)

    return 0


def cmd_info(args):
    """Show detailed app information."""
    state = build_state(args)

    async def run():
        state.load_from_cache()
        if state.find_index(args.app_id) is None:
            await state.refresh_catalog()
        index = _require_index(state, args.app_id)
        await state.check_ownership(args.app_id)
        return state.apps[index]

    app = asyncio.run(run())

    print(f"Name:        {app.name}")
    print(f"ID:          {app.id}")
    if app.author:
        print(f"Author:      {app.author}")
    if app.description:
        print(f"Description: {app.description}")
    if app.capabilities:
        print(f"Works with:  {', '.join(app.capabilities)}")
    print(f"Visibility:  {'Public' if state.is_public(app.id) else 'Private'}")
    print(f"Enabled:     {'Yes' if app.enabled else 'No'}")
    print(f"Owner:       {'Yes' if state.is_app_owner else 'No'}")
    if app.rating_avg is not None:
        print(f"Rating:      {app.rating_avg:.1f} ({app.rating_count} reviews)")
    print(f"Installs:    {app.installs}")

    return 0


def _toggle(args, enable: bool) -> int:
    state = build_state(args)

    async def run():
        await state.refresh_catalog()
        index = _require_index(state, args.app_id)
        await state.toggle_enabled(args.app_id, enable, index)
        index = state.find_index(args.app_id)
        return index is not None and state.apps[index].enabled == enable

    if not asyncio.run(run()):
        return 1

    print(f"{'Enabled' if enable else 'Disabled'} {args.app_id}")
    return 0


def cmd_enable(args):
    """Enable an app."""
    return _toggle(args, True)


def cmd_disable(args):
    """Disable an app."""
    return _toggle(args, False)


def cmd_delete(args):
    """Delete an app you own."""
    state = build_state(args)
    state.load_from_cache()
    deleted = asyncio.run(state.delete_app(args.app_id))
    return 0 if deleted else 1


def cmd_select(args):
    """Show or change the app used in chat."""
    state = build_state(args)
    state.load_from_cache()

    if args.app_id is None:
        state.set_selected_app(None)
        if state.selected_app_id == NO_SELECTED_APP:
            print("No app selected.")
            return 0
        app = state.get_selected_app()
        name = app.name if app else "not in cached catalog"
        print(f"Selected: {state.selected_app_id} ({name})")
        return 0

    _require_index(state, args.app_id)
    state.set_selected_app(args.app_id)
    print(f"Selected {args.app_id}")
    return 0


def cmd_visibility(args):
    """Make an app public or private."""
    state = build_state(args)
    state.load_from_cache()

    async def run():
        return await state.set_app_visibility(args.app_id, args.visibility == "public")

    return 0 if asyncio.run(run()) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="companion-store",
        description="Companion app catalog",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to store.json"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # list
    list_p = subparsers.add_parser("list", help="List apps")
    list_p.add_argument("--enabled", action="store_true", help="Only enabled apps")
    list_p.add_argument("--offline", action="store_true", help="Use the cached catalog")
    list_p.add_argument("--chat-only", action="store_true", help="Only chat apps")
    list_p.set_defaults(func=cmd_list)

    # search
    search_p = subparsers.add_parser("search", help="Search apps by name")
    search_p.add_argument("query", help="Search query")
    search_p.set_defaults(func=cmd_search)

    # info
    info_p = subparsers.add_parser("info", help="Show app details")
    info_p.add_argument("app_id", help="App ID")
    info_p.set_defaults(func=cmd_info)

    # enable
    enable_p = subparsers.add_parser("enable", help="Enable an app")
    enable_p.add_argument("app_id", help="App ID")
    enable_p.set_defaults(func=cmd_enable)

    # disable
    disable_p = subparsers.add_parser("disable", help="Disable an app")
    disable_p.add_argument("app_id", help="App ID")
    disable_p.set_defaults(func=cmd_disable)

    # delete
    delete_p = subparsers.add_parser("delete", help="Delete an app you own")
    delete_p.add_argument("app_id", help="App ID")
    delete_p.set_defaults(func=cmd_delete)

    # select
    select_p = subparsers.add_parser("select", help="Show or change the chat app")
    select_p.add_argument("app_id", nargs="?", default=None, help="App ID")
    select_p.set_defaults(func=cmd_select)

    # visibility
    vis_p = subparsers.add_parser(
        "visibility", help="Make an app public or private (exits 1 if the service refuses)"
    )
    vis_p.add_argument("app_id", help="App ID")
    vis_p.add_argument("visibility", choices=["public", "private"])
    vis_p.set_defaults(func=cmd_visibility)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = StoreConfig.load(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=config.log_file,
        json_logs=config.json_logs,
    )
    args.store_config = config

    try:
        with LogContext(command=args.command, app_id=getattr(args, "app_id", None)):
            return args.func(args)
    except StoreError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
