from __future__ import annotations

import asyncio
import functools
import logging
import os
from collections.abc import Mapping
from typing import Any

from dynamo_bridge.dispatcher import BatchDispatcher
from dynamo_bridge.eventbridge import (
    EventBridgeClient,
    EventBridgePublisher,
    create_eventbridge_client,
)
from dynamo_bridge.settings import Settings

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # The Lambda runtime installs its own root handler, which makes basicConfig a no-op.
    logging.getLogger().setLevel(level)


@functools.lru_cache(maxsize=None)
def get_eventbridge_client(region_name: str | None) -> EventBridgeClient:
    return create_eventbridge_client(region_name=region_name)


def stream_records(event: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    return list(event.get("Records") or [])


async def process_stream_event(
    event: Mapping[str, Any],
    *,
    settings: Settings,
    client: EventBridgeClient,
    batch_size: int | None = None,
) -> int:
    records = stream_records(event)
    dispatcher = BatchDispatcher(
        publisher=EventBridgePublisher(client=client),
        event_bus_name=settings.event_bus_name,
        event_source=settings.event_source_name,
        batch_size=settings.event_batch_size if batch_size is None else batch_size,
    )
    await dispatcher.dispatch(records)
    return len(records)


def lambda_handler(event: Mapping[str, Any], context: Any) -> None:
    configure_logging()
    settings = Settings()
    client = get_eventbridge_client(settings.aws_region)

    asyncio.run(process_stream_event(event, settings=settings, client=client))
