"""
HTTPS client for the plant measurement API.

Fetches a plant document from ``{base_url}/plants/{plant_id}`` and extracts
the measurement series for one resolution. The API gateway sometimes wraps
the document as ``{"body": "<json string>"}``; both forms are accepted.

A fetch never returns a partial series: on any transport error, non-200
status, or malformed payload the result carries an empty series and an
error message instead, and the failure is logged.

CHANGELOG:
- 2026-10-09: Return plant timezone alongside the series (STORY-107)
- 2026-10-07: Initial creation, adapted from the edge uploader (STORY-107)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from portal.src.models import MeasurementSeries, Resolution

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 10.0


class MalformedPayloadError(ValueError):
    """The plant document does not have the expected structure."""


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a measurement fetch.

    Attributes:
        series: The measurement series; empty when *error* is set.
        error: Human-readable failure reason, or None on success.
        timezone: IANA timezone of the plant, when the document has one.
    """

    series: MeasurementSeries
    error: str | None = None
    timezone: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_plant_payload(payload: Any, resolution: Resolution) -> FetchResult:
    """Extract one resolution's series from a plant document.

    Raises:
        MalformedPayloadError: If the document or its ``set`` list is
            missing or has the wrong shape.
    """
    if isinstance(payload, dict) and isinstance(payload.get("body"), str):
        try:
            payload = json.loads(payload["body"])
        except ValueError as exc:
            raise MalformedPayloadError(f"body is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedPayloadError("plant document is not an object")

    measurements = payload.get("measurements")
    if not isinstance(measurements, dict):
        raise MalformedPayloadError("plant document has no measurements")
    period = measurements.get(resolution.value) or {}
    rows = period.get("set", []) if isinstance(period, dict) else None
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise MalformedPayloadError(f"{resolution.value} set is not a list of objects")

    location = payload.get("location")
    timezone = location.get("timezone") if isinstance(location, dict) else None

    return FetchResult(
        series=MeasurementSeries.from_set(resolution, rows),
        timezone=timezone or None,
    )


class MeasurementClient:
    """Reads plant measurement series over HTTPS.

    Args:
        base_url: Measurement API base URL. Must start with ``https://``.
        timeout_s: Request timeout in seconds.
        transport: Optional httpx transport, for tests.

    Raises:
        ValueError: If *base_url* does not start with ``https://``.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url.lower().startswith("https://"):
            raise ValueError(f"Measurement API URL must use HTTPS (got: '{base_url}').")
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport

    async def fetch(self, plant_id: str, resolution: Resolution | str) -> FetchResult:
        """Fetch the series of *plant_id* for *resolution*.

        Returns:
            FetchResult: The series, or an empty series plus an error.
        """
        resolution = Resolution(resolution)
        empty = MeasurementSeries(resolution=resolution)
        url = f"{self._base_url}/plants/{quote(plant_id, safe='')}"

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                verify=True,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    url, headers={"Content-Type": "application/json"}
                )
        except httpx.HTTPError as exc:
            logger.warning("Measurement fetch failed for plant %s: %s", plant_id, exc)
            return FetchResult(series=empty, error=f"network error: {exc}")

        if response.status_code != 200:
            logger.warning(
                "Measurement fetch for plant %s returned HTTP %d",
                plant_id,
                response.status_code,
            )
            return FetchResult(
                series=empty,
                error=f"measurement API returned HTTP {response.status_code}",
            )

        try:
            return parse_plant_payload(response.json(), resolution)
        except (ValueError, MalformedPayloadError) as exc:
            logger.warning(
                "Malformed measurement payload for plant %s: %s", plant_id, exc
            )
            return FetchResult(series=empty, error=f"malformed payload: {exc}")
