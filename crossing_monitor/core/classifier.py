"""Map route delay to a congestion severity."""

from collections.abc import Iterable
from dataclasses import dataclass

from crossing_monitor.schemas.reading import Severity


@dataclass(frozen=True)
class SeverityThresholds:
    # Inclusive upper bounds, in minutes of delay
    low_max: float = 2
    moderate_max: float = 10

    def __post_init__(self) -> None:
        if self.low_max > self.moderate_max:
            raise ValueError("low_max must not exceed moderate_max")


DEFAULT_THRESHOLDS = SeverityThresholds()


def classify(delay_min: float, thresholds: SeverityThresholds = DEFAULT_THRESHOLDS) -> Severity:
    if delay_min <= thresholds.low_max:
        return Severity.LOW
    if delay_min <= thresholds.moderate_max:
        return Severity.MODERATE
    return Severity.HIGH


def worst(levels: Iterable[Severity | None]) -> Severity | None:
    """Highest severity among the given levels, ignoring missing ones."""
    present = [lvl for lvl in levels if lvl is not None]
    if not present:
        return None
    return max(present)
