"""Result type for optional telemetry (speed, weather).

Optional sub-calls never raise. They report one of three outcomes so callers
can tell "the provider has nothing for this point" apart from "the call failed".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class TelemetryStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass(frozen=True)
class Telemetry(Generic[T]):
    status: TelemetryStatus
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> "Telemetry[T]":
        return cls(TelemetryStatus.OK, value=value)

    @classmethod
    def no_data(cls) -> "Telemetry[T]":
        return cls(TelemetryStatus.NO_DATA)

    @classmethod
    def failed(cls, error: str) -> "Telemetry[T]":
        return cls(TelemetryStatus.FAILED, error=error)

    @property
    def available(self) -> bool:
        return self.status is TelemetryStatus.OK

    def value_or_none(self) -> T | None:
        return self.value if self.available else None
