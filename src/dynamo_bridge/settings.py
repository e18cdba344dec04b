from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynamo_bridge.batching import MAX_ENTRIES_PER_PUT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    event_bus_name: str = Field(alias="EventBusName")
    event_source_name: str = Field(alias="EventSourceName")
    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    event_batch_size: int = Field(default=MAX_ENTRIES_PER_PUT, alias="EVENT_BATCH_SIZE")

    @field_validator("event_batch_size")
    @classmethod
    def _validate_batch_size(cls, value: int) -> int:
        if value < 1 or value > MAX_ENTRIES_PER_PUT:
            raise ValueError(f"EVENT_BATCH_SIZE must be between 1 and {MAX_ENTRIES_PER_PUT}")
        return value
