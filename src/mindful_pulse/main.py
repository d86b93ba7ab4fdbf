"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn

from mindful_pulse.config import get_settings
from mindful_pulse.logger import setup_logging


async def _show_settings() -> str:
    from mindful_pulse.state.settings_store import SettingsStore
    from mindful_pulse.storage.database import close_db, init_db
    from mindful_pulse.storage.repository import KeyValueRepository

    await init_db()
    try:
        store = SettingsStore(KeyValueRepository())
        record = await store.load()
    finally:
        await close_db()
    return record.model_dump_json(by_alias=True, indent=2)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="mindful-pulse",
        description="Data-collection lifecycle service for the MindfulPulse journal.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── show-settings ─────────────────────────────────────────
    sub.add_parser("show-settings", help="Print the persisted settings record.")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "mindful_pulse.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from mindful_pulse.storage.database import close_db, init_db

        async def _init() -> None:
            await init_db()
            await close_db()

        asyncio.run(_init())
        print("Database tables created.")
    elif args.command == "show-settings":
        print(asyncio.run(_show_settings()))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
