from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dynamo_bridge.app import configure_logging, get_eventbridge_client, process_stream_event
from dynamo_bridge.dispatcher import DispatchError
from dynamo_bridge.settings import Settings

LOGGER = logging.getLogger("dynamo_bridge")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay a saved DynamoDB stream event onto EventBridge."
    )
    parser.add_argument("event_file", type=Path)
    parser.add_argument("--batch-size", type=int, default=None)

    args = parser.parse_args(argv)

    configure_logging()
    settings = Settings()
    event = json.loads(args.event_file.read_text(encoding="utf-8"))
    client = get_eventbridge_client(settings.aws_region)

    try:
        asyncio.run(
            process_stream_event(
                event,
                settings=settings,
                client=client,
                batch_size=args.batch_size,
            )
        )
    except DispatchError:
        LOGGER.exception("stream_replay_failed", extra={"event_file": str(args.event_file)})
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
