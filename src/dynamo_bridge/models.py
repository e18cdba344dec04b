from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChangeKind = Literal["INSERT", "MODIFY", "REMOVE"]


def _b64_to_bytes(value: Any) -> Any:
    # Lambda delivers binary attributes base64-encoded; boto3 hands over raw bytes.
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    return value


class EncodedAttribute(BaseModel):
    """Single DynamoDB attribute value in its type-tagged wire shape."""

    model_config = ConfigDict(frozen=True)

    n: str | None = Field(default=None, alias="N")
    s: str | None = Field(default=None, alias="S")
    m: dict[str, EncodedAttribute] | None = Field(default=None, alias="M")
    l: list[EncodedAttribute] | None = Field(default=None, alias="L")  # noqa: E741
    bool_: bool | None = Field(default=None, alias="BOOL")
    null: bool | None = Field(default=None, alias="NULL")
    b: bytes | None = Field(default=None, alias="B")
    bs: list[bytes] = Field(default_factory=list, alias="BS")
    ss: list[str] = Field(default_factory=list, alias="SS")
    ns: list[str] = Field(default_factory=list, alias="NS")

    @field_validator("b", mode="before")
    @classmethod
    def _decode_binary(cls, value: Any) -> Any:
        return _b64_to_bytes(value)

    @field_validator("bs", mode="before")
    @classmethod
    def _decode_binary_set(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_b64_to_bytes(item) for item in value]
        return value


class ChangeRecord(BaseModel):
    """One row-level mutation from a DynamoDB stream."""

    model_config = ConfigDict(frozen=True)

    event_id: str | None = Field(default=None, alias="eventID")
    source_identifier: str = Field(alias="eventSourceARN")
    change_kind: ChangeKind = Field(alias="eventName")
    new_snapshot: dict[str, EncodedAttribute] | None = Field(default=None, alias="NewImage")
    old_snapshot: dict[str, EncodedAttribute] | None = Field(default=None, alias="OldImage")

    @classmethod
    def from_stream_record(cls, raw: Mapping[str, Any]) -> ChangeRecord:
        stream_data = raw.get("dynamodb") or {}
        if not isinstance(stream_data, Mapping):
            raise ValueError("Stream record field 'dynamodb' must be a mapping")
        return cls.model_validate(
            {
                **raw,
                "NewImage": stream_data.get("NewImage"),
                "OldImage": stream_data.get("OldImage"),
            }
        )

    @property
    def snapshot(self) -> dict[str, EncodedAttribute]:
        if self.change_kind == "REMOVE":
            image = self.old_snapshot
        else:
            image = self.new_snapshot
        return image or {}

    @property
    def detail_type(self) -> str:
        segments = self.source_identifier.split("/")
        if len(segments) < 2:
            raise ValueError(
                f"Cannot derive table name from source identifier {self.source_identifier!r}"
            )
        return f"{segments[1]}-{self.change_kind}"


class TransportEntry(BaseModel):
    """Single EventBridge PutEvents entry."""

    model_config = ConfigDict(frozen=True)

    event_bus_name: str
    source: str
    detail_type: str
    detail: str

    def to_request_entry(self) -> dict[str, str]:
        return {
            "EventBusName": self.event_bus_name,
            "Source": self.source,
            "DetailType": self.detail_type,
            "Detail": self.detail,
        }
