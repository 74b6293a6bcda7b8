"""Series-count checks against the query endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

from ..prometheus import PrometheusError

logger = logging.getLogger(__name__)


class QueryClient(Protocol):
    def query(self, expr: str) -> list[dict[str, Any]]: ...


class ExistenceChecker:
    """Counts the series behind a selector with `count(<selector>)`."""

    def __init__(
        self,
        client: QueryClient,
        delay_s: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.delay_s = delay_s
        self._sleep = sleep

    def count(self, selector: str) -> int:
        """Return the number of series matching `selector`.

        Anything other than a single result row means no data and counts as 0.
        """
        if self.delay_s > 0:
            self._sleep(self.delay_s)

        result = self.client.query(f"count({selector})")
        if len(result) != 1:
            logger.debug("count(%s): %d result rows, treating as 0", selector, len(result))
            return 0

        try:
            raw = result[0]["value"][1]
        except (KeyError, IndexError, TypeError) as e:
            raise PrometheusError(f"Malformed sample for count({selector}): {result[0]!r}") from e

        if not isinstance(raw, str) or not (raw.isascii() and raw.isdigit()):
            raise PrometheusError(f"Cannot parse series count {raw!r} for {selector}")
        value = int(raw)
        logger.debug("count(%s) = %d", selector, value)
        return value
