#!/usr/bin/env python3
"""
Start the RKC Financeiro web server.

    python main.py                        # 127.0.0.1:8000, opens a browser tab
    python main.py --db data/rkc.sqlite   # use another database file
    python main.py --host 0.0.0.0 --port 9000 --no-browser
    python main.py --reload               # development mode

Defaults come from the APP_* environment variables (see utils.config).
"""

from __future__ import annotations

import argparse
import os
import threading
import webbrowser
from pathlib import Path

import uvicorn

from utils.config import AppConfig


def build_parser(cfg: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the RKC financial dashboard.")
    parser.add_argument("--host", default=cfg.api_host,
                        help=f"bind address (default: {cfg.api_host})")
    parser.add_argument("--port", type=int, default=cfg.api_port,
                        help=f"port (default: {cfg.api_port})")
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help=f"SQLite database file (default: {cfg.db_path})")
    parser.add_argument("--reload", action="store_true",
                        help="restart the server when source files change")
    parser.add_argument("--no-browser", action="store_true",
                        help="do not open the dashboard in a browser")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser(AppConfig.from_env()).parse_args(argv)

    # The server process (and its reloader) resolves the path from the env.
    os.environ["APP_DB_PATH"] = str(args.db)
    if not args.db.exists():
        print(f"No database at {args.db}. Create one with:")
        print(f"  python schema.py --db {args.db}")
        print(f"  python seed_demo_data.py --db {args.db}   # optional demo data")

    shown_host = "localhost" if args.host in ("0.0.0.0", "::") else args.host
    url = f"http://{shown_host}:{args.port}/"
    print(f"RKC Financeiro on {url} (database: {args.db})")

    if not args.no_browser:
        threading.Timer(1.5, webbrowser.open, args=(url,)).start()

    uvicorn.run("api.app:app", host=args.host, port=args.port,
                reload=args.reload, log_level="info")


if __name__ == "__main__":
    main()
