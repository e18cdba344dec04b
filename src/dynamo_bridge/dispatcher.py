from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Union

from dynamo_bridge.batching import MAX_ENTRIES_PER_PUT, partition
from dynamo_bridge.decoder import decode_snapshot, serialize_detail
from dynamo_bridge.eventbridge import EventBridgePublisher
from dynamo_bridge.models import ChangeRecord, TransportEntry

LOGGER = logging.getLogger(__name__)

# Raw Lambda stream records are validated one record at a time during the transform.
StreamRecord = Union[ChangeRecord, Mapping[str, Any]]


class DispatchError(RuntimeError):
    """Aggregate failure of one dispatch invocation.

    ``record_failures`` maps the 0-based input index of each record that failed
    to transform to its cause. ``batch_failures`` maps each batch index that was
    not delivered to its cause: the submission error, or the first record error
    for batches that were never submitted.
    """

    def __init__(
        self,
        *,
        record_failures: Mapping[int, Exception],
        batch_failures: Mapping[int, Exception],
    ) -> None:
        self.record_failures = dict(record_failures)
        self.batch_failures = dict(batch_failures)
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = [f"{len(self.batch_failures)} batch(es) failed"]
        for batch_index in sorted(self.batch_failures):
            parts.append(f"batch {batch_index}: {self.batch_failures[batch_index]}")
        for record_index in sorted(self.record_failures):
            parts.append(f"record {record_index}: {self.record_failures[record_index]}")
        return "; ".join(parts)


def build_entry(record: ChangeRecord, *, event_bus_name: str, event_source: str) -> TransportEntry:
    detail_type = record.detail_type
    detail = serialize_detail(decode_snapshot(record.snapshot))
    return TransportEntry(
        event_bus_name=event_bus_name,
        source=event_source,
        detail_type=detail_type,
        detail=detail,
    )


class BatchDispatcher:
    def __init__(
        self,
        *,
        publisher: EventBridgePublisher,
        event_bus_name: str,
        event_source: str,
        batch_size: int = MAX_ENTRIES_PER_PUT,
    ) -> None:
        if batch_size <= 0 or batch_size > MAX_ENTRIES_PER_PUT:
            raise ValueError(f"batch_size must be between 1 and {MAX_ENTRIES_PER_PUT}")

        self._publisher = publisher
        self._event_bus_name = event_bus_name
        self._event_source = event_source
        self._batch_size = batch_size

    async def dispatch(self, records: Sequence[StreamRecord]) -> None:
        batches = partition(records, size=self._batch_size)
        LOGGER.info(
            "stream_processing_started",
            extra={"record_count": len(records), "batch_count": len(batches)},
        )

        record_failures: dict[int, Exception] = {}
        batch_failures: dict[int, Exception] = {}
        ready: list[tuple[int, list[TransportEntry]]] = []

        for batch_index, batch in enumerate(batches):
            entries, failures = self._transform_batch(
                batch,
                offset=batch_index * self._batch_size,
            )
            if failures:
                # A partially represented batch is not published.
                record_failures.update(failures)
                batch_failures[batch_index] = failures[min(failures)]
                continue
            ready.append((batch_index, entries))

        tasks = [
            asyncio.create_task(
                self._publisher.publish(entries, batch_index=batch_index),
                name=f"put_events_batch_{batch_index}",
            )
            for batch_index, entries in ready
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for (batch_index, entries), result in zip(ready, results, strict=True):
            if result is None:
                continue
            if not isinstance(result, Exception):
                raise result
            LOGGER.error(
                "event_batch_failed",
                extra={
                    "batch_index": batch_index,
                    "entry_count": len(entries),
                    "error": str(result),
                },
            )
            batch_failures[batch_index] = result

        if batch_failures:
            LOGGER.error(
                "stream_processing_failed",
                extra={
                    "failed_batches": sorted(batch_failures),
                    "failed_records": sorted(record_failures),
                },
            )
            raise DispatchError(record_failures=record_failures, batch_failures=batch_failures)

        LOGGER.info(
            "stream_processing_completed",
            extra={"record_count": len(records), "batch_count": len(batches)},
        )

    def _transform_batch(
        self,
        batch: Sequence[StreamRecord],
        *,
        offset: int,
    ) -> tuple[list[TransportEntry], dict[int, Exception]]:
        entries: list[TransportEntry] = []
        failures: dict[int, Exception] = {}

        for position, raw in enumerate(batch):
            record_index = offset + position
            try:
                record = _as_change_record(raw)
                entries.append(
                    build_entry(
                        record,
                        event_bus_name=self._event_bus_name,
                        event_source=self._event_source,
                    )
                )
            except ValueError as exc:
                LOGGER.error(
                    "record_transform_failed",
                    extra={
                        "record_index": record_index,
                        "event_id": _event_id(raw),
                        "error": str(exc),
                    },
                )
                failures[record_index] = exc

        return entries, failures


def _as_change_record(raw: StreamRecord) -> ChangeRecord:
    if isinstance(raw, ChangeRecord):
        return raw
    if not isinstance(raw, Mapping):
        raise ValueError(f"Stream record must be a mapping, got {type(raw).__name__}")
    return ChangeRecord.from_stream_record(raw)


def _event_id(raw: StreamRecord) -> str | None:
    if isinstance(raw, ChangeRecord):
        return raw.event_id
    if isinstance(raw, Mapping):
        return raw.get("eventID")
    return None
