"""PromQL parse errors."""

from __future__ import annotations


class PromQLParseError(ValueError):
    """Raised when a query cannot be parsed."""

    def __init__(self, message: str, pos: int | None = None) -> None:
        self.message = message
        self.pos = pos
        if pos is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} (at char {pos})")
