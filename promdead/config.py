"""Run configuration for a check."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OutputFormat = Literal["human", "csv", "json"]
OUTPUT_FORMATS: tuple[str, ...] = ("human", "csv", "json")


@dataclass(frozen=True)
class CheckConfig:
    """Options threaded through the engine, the checker and the filters."""

    delay_s: float = 0.0  # sleep before every existence check
    expand_regex: bool = True
    ignore_patterns: tuple[str, ...] = ()
    output_format: OutputFormat = "human"

    def __post_init__(self) -> None:
        if self.delay_s < 0:
            raise ValueError("delay must not be negative")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"unknown output format: {self.output_format}")
