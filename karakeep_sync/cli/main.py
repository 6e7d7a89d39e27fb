"""Command line entry point.

Usage:
    karakeep-sync [--settings PATH] sync
    karakeep-sync [--settings PATH] watch
    karakeep-sync notebooks
    karakeep-sync [--settings PATH] show-settings

Example crontab entry (hourly one-shot sync):
    0 * * * * karakeep-sync --settings ~/.config/karakeep-sync.json sync >> /var/log/karakeep_sync.log 2>&1
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import sys

from karakeep_sync.adapters.siyuan.client import SiYuanAPIError, SiYuanClient
from karakeep_sync.adapters.siyuan.store import SiYuanDocumentStore
from karakeep_sync.config import AppConfig, SyncSettingsStore, load_config
from karakeep_sync.core.logging_utils import mask_secret, setup_logging
from karakeep_sync.services.scheduler import SchedulerService
from karakeep_sync.services.sync_runner import SyncRunner, default_engine_factory


def _build_runner(config: AppConfig, settings_path: str) -> SyncRunner:
    return SyncRunner(SyncSettingsStore(settings_path), default_engine_factory(config))


async def run_sync(config: AppConfig, settings_path: str) -> int:
    """Run one sync and print the summary.

    Returns:
        Exit code (0 for success, 1 for any error)
    """
    runner = _build_runner(config, settings_path)
    summary = await runner.run(trigger="manual")

    print(summary.message)
    if summary.stats.error_messages:
        print(f"\nErrors ({len(summary.stats.error_messages)}):")
        for err in summary.stats.error_messages[:10]:
            print(f"  - {err}")
    return 0 if summary.success else 1


async def run_watch(config: AppConfig, settings_path: str) -> int:
    """Sync now, then keep syncing on the configured interval until interrupted."""
    store = SyncSettingsStore(settings_path)
    try:
        interval = store.load().sync_interval_minutes
    except RuntimeError as exc:
        print(f"ERROR: {exc}")
        return 1
    if interval <= 0:
        print("Periodic sync is disabled (syncIntervalMinutes is 0); running once.")
        return await run_sync(config, settings_path)

    runner = SyncRunner(store, default_engine_factory(config))
    scheduler = SchedulerService(runner)

    summary = await runner.run(trigger="startup")
    print(summary.message)

    scheduler.start(interval)
    print(f"Syncing every {interval} minutes. Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
    return 0


async def list_notebooks(config: AppConfig) -> int:
    async with SiYuanClient(
        config.siyuan.api_url, config.siyuan.api_token, timeout=config.runtime.request_timeout_sec
    ) as client:
        try:
            notebooks = await SiYuanDocumentStore(client).list_notebooks()
        except SiYuanAPIError as exc:
            print(f"ERROR: {exc}")
            return 1

    if not notebooks:
        print("No notebooks found.")
        return 0
    for notebook in notebooks:
        status = " (closed)" if notebook.closed else ""
        print(f"{notebook.id}  {notebook.name}{status}")
    return 0


def show_settings(settings_path: str) -> int:
    try:
        settings = SyncSettingsStore(settings_path).load()
    except RuntimeError as exc:
        print(f"ERROR: {exc}")
        return 1
    data = settings.to_storage()
    data["apiKey"] = mask_secret(settings.api_key)
    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="karakeep-sync",
        description="One-way sync of Karakeep bookmarks into SiYuan documents",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Path of the sync settings JSON file (default: KARAKEEP_SYNC_SETTINGS_PATH)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("sync", help="Run one sync now")
    subparsers.add_parser("watch", help="Sync now and then on the configured interval")
    subparsers.add_parser("notebooks", help="List SiYuan notebooks and their ids")
    subparsers.add_parser("show-settings", help="Print effective settings (API key masked)")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except RuntimeError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    setup_logging(
        config.runtime.log_level,
        log_format=config.runtime.log_format,
        log_file=config.runtime.log_file,
    )
    settings_path = args.settings or config.runtime.settings_path

    if args.command == "show-settings":
        sys.exit(show_settings(settings_path))

    if args.command == "notebooks":
        exit_code = asyncio.run(list_notebooks(config))
    elif args.command == "watch":
        exit_code = 0
        with contextlib.suppress(KeyboardInterrupt):
            exit_code = asyncio.run(run_watch(config, settings_path))
    else:
        exit_code = asyncio.run(run_sync(config, settings_path))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
