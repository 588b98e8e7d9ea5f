"""Run the PhotoFlow upload API."""
from __future__ import annotations

import argparse
import os
from dataclasses import replace

import uvicorn

from photoflow.config import Settings, configure_logging
from photoflow.web import create_app


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the PhotoFlow upload API")
    parser.add_argument(
        "--store",
        choices=["memory", "redis", "sql"],
        default=os.getenv("PHOTOFLOW_STORE", "memory"),
        help="Idempotency store backend (env: PHOTOFLOW_STORE).",
    )
    parser.add_argument(
        "--broker",
        choices=["memory", "redis"],
        default=os.getenv("PHOTOFLOW_BROKER", "memory"),
        help="Message broker backend (env: PHOTOFLOW_BROKER).",
    )
    parser.add_argument(
        "--embedded-worker",
        action="store_true",
        help="Also process jobs inside the API process.",
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    return parser


if __name__ == "__main__":
    args = build_arg_parser().parse_args()
    settings = replace(
        Settings.from_env(),
        store=args.store,
        broker=args.broker,
    )
    if args.embedded_worker:
        settings = replace(settings, embedded_worker=True)
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=args.host, port=args.port)
