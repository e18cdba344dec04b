from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import boto3

from dynamo_bridge.batching import MAX_ENTRIES_PER_PUT
from dynamo_bridge.models import TransportEntry

LOGGER = logging.getLogger(__name__)


class EventBridgeClient(Protocol):
    def put_events(self, *, Entries: list[dict[str, Any]]) -> dict[str, Any]:
        ...


def create_eventbridge_client(*, region_name: str | None = None) -> EventBridgeClient:
    return boto3.client("events", region_name=region_name)


class SubmissionError(RuntimeError):
    """Raised when one PutEvents call fails as a whole or rejects entries."""

    def __init__(
        self,
        message: str,
        *,
        batch_index: int,
        error_code: str | None = None,
        failed_entry_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.batch_index = batch_index
        self.error_code = error_code
        self.failed_entry_count = failed_entry_count


class EventBridgePublisher:
    """Submits one batch of entries per ``put_events`` call.

    The blocking boto3 call runs on a worker thread so several batches can be in
    flight at once over the same client.
    """

    def __init__(self, *, client: EventBridgeClient) -> None:
        self._client = client

    async def publish(self, entries: Sequence[TransportEntry], *, batch_index: int) -> None:
        if len(entries) > MAX_ENTRIES_PER_PUT:
            raise ValueError(
                f"PutEvents accepts at most {MAX_ENTRIES_PER_PUT} entries, got {len(entries)}"
            )

        try:
            response = await self._put_events(entries)
        except Exception as exc:
            error_code, error_message = _extract_exception_error(exc)
            raise SubmissionError(
                f"PutEvents failed for batch {batch_index}: {error_message}",
                batch_index=batch_index,
                error_code=error_code,
                failed_entry_count=len(entries),
            ) from exc

        failed_count = int(response.get("FailedEntryCount") or 0)
        if failed_count:
            error_codes = sorted(
                {
                    str(result["ErrorCode"])
                    for result in response.get("Entries", [])
                    if result.get("ErrorCode")
                }
            )
            raise SubmissionError(
                f"PutEvents rejected {failed_count} of {len(entries)} entries "
                f"in batch {batch_index} ({', '.join(error_codes) or 'unknown error'})",
                batch_index=batch_index,
                error_code=error_codes[0] if error_codes else None,
                failed_entry_count=failed_count,
            )

        LOGGER.debug(
            "event_batch_published",
            extra={"batch_index": batch_index, "entry_count": len(entries)},
        )

    async def _put_events(self, entries: Sequence[TransportEntry]) -> dict[str, Any]:
        payload = [entry.to_request_entry() for entry in entries]
        return await asyncio.to_thread(self._client.put_events, Entries=payload)


def _extract_exception_error(exc: Exception) -> tuple[str | None, str | None]:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        error = response.get("Error")
        if isinstance(error, dict):
            code = error.get("Code")
            message = error.get("Message")
            return (
                str(code) if code is not None else None,
                str(message) if message is not None else None,
            )

    return None, str(exc)
