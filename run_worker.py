"""Run PhotoFlow job workers."""
from __future__ import annotations

import argparse
import logging
import os
import signal
import threading
from dataclasses import replace

from photoflow.config import Settings, configure_logging, create_broker
from photoflow.imaging.pillow_service import PillowImageService
from photoflow.server.processor import JobDispatcher
from photoflow.server.worker import Worker

logger = logging.getLogger("photoflow.run_worker")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run PhotoFlow job workers")
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.getenv("PHOTOFLOW_WORKERS", "1")),
        help="Number of concurrent workers (env: PHOTOFLOW_WORKERS).",
    )
    parser.add_argument(
        "--redis-url",
        default=os.getenv("PHOTOFLOW_REDIS_URL"),
        help="Redis URL of the broker (env: PHOTOFLOW_REDIS_URL).",
    )
    return parser


def main() -> None:
    args = build_arg_parser().parse_args()
    settings = Settings.from_env()
    if args.redis_url:
        settings = replace(settings, redis_url=args.redis_url)
    # An in-memory broker cannot be shared with the API process.
    settings = replace(settings, broker="redis")
    configure_logging(settings.log_level)

    broker = create_broker(settings)
    broker.declare_topology(settings.topology)
    dispatcher = JobDispatcher(PillowImageService.from_settings(settings))

    workers = [Worker(broker, dispatcher, queue=settings.queue) for _ in range(args.workers)]
    threads = [
        threading.Thread(target=w.run, name=f"photoflow-worker-{i}")
        for i, w in enumerate(workers)
    ]

    def request_shutdown(signum, frame):
        logger.info("Shutdown requested, finishing current jobs...")
        for w in workers:
            w.stop()

    signal.signal(signal.SIGINT, request_shutdown)
    signal.signal(signal.SIGTERM, request_shutdown)

    for t in threads:
        t.start()
    for t in threads:
        t.join()


if __name__ == "__main__":
    main()
