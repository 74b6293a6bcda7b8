"""Prometheus HTTP API client (small, dependency-free).

Only the two read endpoints the checker needs:
  - GET /api/v1/rules
  - GET /api/v1/query?query=...
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..models import Rule, RuleGroup

logger = logging.getLogger(__name__)


class PrometheusError(RuntimeError):
    """The backend could not be queried or answered with something unusable."""


@dataclass(frozen=True)
class PrometheusHttpConfig:
    base_url: str
    timeout_s: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)


class PrometheusHttpClient:
    """Minimal Prometheus HTTP API client."""

    def __init__(self, cfg: PrometheusHttpConfig) -> None:
        self._cfg = cfg
        self._base = cfg.base_url.rstrip("/")

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET an API path and return the `data` member of a successful reply."""
        url = f"{self._base}{path}"
        if params:
            url += "?" + urlencode(params)

        req = Request(
            url,
            method="GET",
            headers={"Accept": "application/json", **self._cfg.headers},
        )
        logger.debug("GET %s", url)
        try:
            with urlopen(req, timeout=self._cfg.timeout_s) as resp:
                body = resp.read()
        except HTTPError as e:
            body = e.read() if e.fp is not None else b""
            detail = _error_detail(body)
            msg = f"Prometheus HTTP error {e.code}: {e.reason}"
            if detail:
                msg += f" ({detail})"
            raise PrometheusError(msg) from e
        except URLError as e:
            raise PrometheusError(f"Prometheus connection error: {e.reason}") from e

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PrometheusError(f"Prometheus returned invalid JSON for {path}: {e}") from e

        if not isinstance(payload, dict):
            raise PrometheusError(f"Prometheus returned unexpected payload for {path}")

        status = payload.get("status")
        if status != "success":
            detail = _error_detail(payload)
            msg = f"Unexpected status {status!r} from {path}"
            if detail:
                msg += f": {detail}"
            raise PrometheusError(msg)

        return payload.get("data")

    def get_rules(self) -> list[RuleGroup]:
        """Fetch all rule groups."""
        data = self._get("/api/v1/rules")
        try:
            groups = data["groups"]
            return [
                RuleGroup(
                    name=g["name"],
                    file=g.get("file", ""),
                    rules=tuple(Rule(name=r["name"], query=r["query"]) for r in g.get("rules") or []),
                )
                for g in groups or []
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise PrometheusError(f"Malformed rules response: {e!r}") from e

    def query(self, expr: str) -> list[dict[str, Any]]:
        """Run an instant query and return the result rows."""
        data = self._get("/api/v1/query", {"query": expr})
        if not isinstance(data, dict) or not isinstance(data.get("result"), list):
            raise PrometheusError(f"Malformed query response for {expr!r}")
        return data["result"]


def _error_detail(payload: Any) -> str:
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return ""
    if not isinstance(payload, dict):
        return ""
    error_type = payload.get("errorType")
    error = payload.get("error")
    if error_type and error:
        return f"{error_type}: {error}"
    return str(error or error_type or "")
