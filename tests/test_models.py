from __future__ import annotations

import pytest
from pydantic import ValidationError

from dynamo_bridge.models import ChangeRecord, EncodedAttribute, TransportEntry

SOURCE_ARN = "arn:aws:dynamodb:region:acct:table/Orders/stream/2024"


def _stream_record(event_name: str, **images: dict) -> dict:
    return {
        "eventID": "c4ca4238a0b923820dcc509a6f75849b",
        "eventName": event_name,
        "eventVersion": "1.1",
        "eventSource": "aws:dynamodb",
        "awsRegion": "us-east-1",
        "eventSourceARN": SOURCE_ARN,
        "dynamodb": {
            "Keys": {"Id": {"N": "101"}},
            "SequenceNumber": "111",
            "StreamViewType": "NEW_AND_OLD_IMAGES",
            **images,
        },
    }


def test_detail_type_uses_table_segment_and_change_kind() -> None:
    record = ChangeRecord.from_stream_record(_stream_record("INSERT"))

    assert record.detail_type == "Orders-INSERT"


def test_detail_type_requires_slash_segment() -> None:
    raw = _stream_record("MODIFY")
    raw["eventSourceARN"] = "arn:aws:dynamodb:region:acct:table"
    record = ChangeRecord.from_stream_record(raw)

    with pytest.raises(ValueError):
        record.detail_type


@pytest.mark.parametrize("event_name", ["INSERT", "MODIFY"])
def test_insert_and_modify_select_new_image(event_name: str) -> None:
    record = ChangeRecord.from_stream_record(
        _stream_record(
            event_name,
            NewImage={"status": {"S": "new"}},
            OldImage={"status": {"S": "old"}},
        )
    )

    assert record.snapshot["status"].s == "new"


def test_remove_selects_old_image() -> None:
    record = ChangeRecord.from_stream_record(
        _stream_record(
            "REMOVE",
            NewImage={"status": {"S": "new"}},
            OldImage={"status": {"S": "old"}},
        )
    )

    assert record.snapshot["status"].s == "old"


def test_missing_image_is_an_empty_snapshot() -> None:
    record = ChangeRecord.from_stream_record(_stream_record("REMOVE"))

    assert record.snapshot == {}
    assert record.event_id == "c4ca4238a0b923820dcc509a6f75849b"


def test_unknown_change_kind_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ChangeRecord.from_stream_record(_stream_record("UPSERT"))


def test_binary_attributes_accept_base64_text() -> None:
    attribute = EncodedAttribute.model_validate({"B": "aGVsbG8=", "BS": ["AQ=="]})

    assert attribute.b == b"hello"
    assert attribute.bs == [b"\x01"]


def test_invalid_base64_binary_is_rejected() -> None:
    with pytest.raises(ValidationError):
        EncodedAttribute.model_validate({"B": "not base64!"})


def test_unknown_attribute_keys_are_ignored() -> None:
    attribute = EncodedAttribute.model_validate({"X": "?"})

    assert attribute.s is None
    assert attribute.ss == []


def test_transport_entry_request_shape() -> None:
    entry = TransportEntry(
        event_bus_name="bus",
        source="orders.stream",
        detail_type="Orders-INSERT",
        detail="{}",
    )

    assert entry.to_request_entry() == {
        "EventBusName": "bus",
        "Source": "orders.stream",
        "DetailType": "Orders-INSERT",
        "Detail": "{}",
    }
