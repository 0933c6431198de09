from __future__ import annotations

import logging
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class RegisterLayout(BaseModel):
    """
    Holding register block read from one machine.

    `counter_offset` is the index of the production counter inside the block
    returned by a read. When omitted it is derived from `counter_address - start_address`.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    start_address: int = Field(..., ge=0, le=65535, description="First register of the block")
    length: int = Field(..., ge=1, le=125, description="Number of registers in the block")
    counter_address: int = Field(..., ge=0, le=65535, description="Register written with 0 on reset")
    counter_offset: int | None = Field(default=None, ge=0, description="Counter index inside the block")

    @model_validator(mode="before")
    @classmethod
    def _derive_counter_offset(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("counter_offset") is not None:
            return data
        try:
            derived = int(data["counter_address"]) - int(data["start_address"])
        except (KeyError, TypeError, ValueError):
            return data
        return {**data, "counter_offset": derived}

    @model_validator(mode="after")
    def _validate_offset_in_block(self) -> "RegisterLayout":
        if self.counter_offset is None or self.counter_offset >= self.length:
            raise ValueError(
                f"counter_offset={self.counter_offset} must fall inside the block (length={self.length})"
            )
        return self


class DeviceDescriptor(BaseModel):
    """One machine row in `machines:`."""

    model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

    code: str = Field(..., min_length=1, validation_alias=AliasChoices("code", "machine_code"))
    host: str
    port: int = Field(default=502, ge=1, le=65535)
    unit_id: int = Field(default=1, ge=0, le=255)
    registers: RegisterLayout

    @field_validator("code", mode="before")
    @classmethod
    def _code_to_str(cls, v: Any) -> str:
        return str(v)

    @field_validator("port", "unit_id", mode="before")
    @classmethod
    def _to_int(cls, v: Any) -> Any:
        try:
            return int(v)
        except (TypeError, ValueError):
            return v


class ResetScheduleConfig(BaseModel):
    """Daily reset window and retry policy."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    hour: int = Field(..., ge=0, le=23, description="Reset hour (24h)")
    minute: int = Field(..., ge=0, le=59, description="Reset minute")
    timezone: str = Field(default="Asia/Jakarta", description="IANA timezone for the window and daily guard")
    window_minutes: int = Field(default=15, ge=1, le=720)
    pre_check_lead_minutes: int = Field(default=5, ge=0, le=60)
    pre_check_tail_minutes: int = Field(default=5, ge=0, le=60)

    max_retries: int = Field(default=5, ge=1, le=100, description="Attempts per device per cycle")
    retry_delay_ms: int = Field(default=5000, ge=0, description="Constant delay between attempts")
    settle_delay_ms: int = Field(default=1000, ge=0, description="Pause after connect and after write")
    io_timeout_sec: float | None = Field(default=None, gt=0, description="Per gateway call timeout (None = off)")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {v!r}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def retry_delay_sec(self) -> float:
        return self.retry_delay_ms / 1000.0

    @property
    def settle_delay_sec(self) -> float:
        return self.settle_delay_ms / 1000.0


class ResetServiceConfig(BaseModel):
    """
    Root config for reset_service.yml
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    reset_schedule: ResetScheduleConfig
    machine_list: list[DeviceDescriptor] = Field(default_factory=list, validation_alias="machines")

    connect_settle_ms: int = Field(default=1000, ge=0, description="Pause after each startup connect")
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False)
    log_dir: str = Field(default="logs")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: Any) -> str:
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            logger.warning(f"[reset_config] invalid log_level={v!r}, fallback=INFO")
            return "INFO"
        return level
