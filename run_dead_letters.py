"""CLI utility to inspect and replay dead-lettered PhotoFlow jobs."""

from __future__ import annotations

import argparse
import os

import redis

from photoflow.broker.redis_broker import RedisBroker
from photoflow.common.exceptions import MessageDecodeError, TaskExecutionFailure
from photoflow.config import Settings
from photoflow.serialization.json_serializer import JsonSerializer


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and replay dead-lettered jobs")
    parser.add_argument(
        "command",
        choices=["list", "requeue", "recover"],
        help="list dead letters, requeue them, or recover unacked messages",
    )
    parser.add_argument(
        "--redis-url",
        default=os.getenv("PHOTOFLOW_REDIS_URL", "redis://localhost:6379/0"),
        help="Redis URL of the broker (env: PHOTOFLOW_REDIS_URL).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of messages to list or requeue.",
    )
    return parser


def main() -> None:
    args = build_arg_parser().parse_args()
    topology = Settings.from_env().topology
    broker = RedisBroker(redis_client=redis.Redis.from_url(args.redis_url, decode_responses=True))

    if args.command == "list":
        serializer = JsonSerializer()
        messages = broker.peek(topology.dead_letter_queue, limit=args.limit)
        if not messages:
            print("No dead-lettered jobs.")
            return
        print(f"{len(messages)} dead-lettered jobs:")
        for body in messages:
            try:
                job = serializer.deserialize_job(body)
            except (MessageDecodeError, TaskExecutionFailure) as e:
                print(f"- <undecodable> {e}")
                continue
            tasks = ",".join(task.value for task in job.tasks)
            print(f"- jobId={job.job_id} photoId={job.photo_id} tasks={tasks}")
    elif args.command == "requeue":
        moved = broker.requeue_dead_letters(topology.queue, limit=args.limit)
        print(f"Requeued {moved} dead-lettered jobs onto {topology.queue}.")
    else:
        moved = broker.recover_unacked(topology.queue)
        print(f"Recovered {moved} unacked jobs onto {topology.queue}.")


if __name__ == "__main__":
    main()
