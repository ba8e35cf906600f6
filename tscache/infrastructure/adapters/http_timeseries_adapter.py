"""
HTTP time-series adapter.

Fetches records for a (symbol, period, [start, end)) window from a JSON
HTTP API:

    GET {base_url}?symbol=AAPL&period=1min&start=...Z&end=...Z

The response body is either a JSON array of records or an object with the
array under "data". Implements TimeSeriesSource.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, List, Optional

import requests

from ...domain.exceptions import UpstreamFetchError
from ...domain.interfaces.timeseries_source import Record
from ...utils.logging_setup import get_logger
from ...utils.timezone import to_iso_z

logger = get_logger(__name__)


class HttpTimeSeriesAdapter:
    """
    Upstream provider client over HTTP.

    requests is blocking, so each call runs in a worker thread via
    asyncio.to_thread. One Session is reused for connection pooling.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            base_url: Provider endpoint URL.
            timeout_seconds: Connect/read timeout per request.
            session: Optional pre-configured session (tests, custom headers).
        """
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def source_name(self) -> str:
        return "http"

    @property
    def base_url(self) -> str:
        return self._base_url

    async def fetch_records(
        self,
        symbol: str,
        period: str,
        start: datetime,
        end: datetime,
    ) -> List[Record]:
        """
        Fetch records for [start, end).

        Raises:
            UpstreamFetchError: On network errors, timeouts, non-2xx
                responses, or an unexpected body.
        """
        return await asyncio.to_thread(self._get, symbol, period, start, end)

    def close(self) -> None:
        self._session.close()

    def _get(self, symbol: str, period: str, start: datetime, end: datetime) -> List[Record]:
        params = {
            "symbol": symbol,
            "period": period,
            "start": to_iso_z(start),
            "end": to_iso_z(end),
        }

        def fail(message: str) -> UpstreamFetchError:
            return UpstreamFetchError(message, symbol=symbol, period=period, start=start, end=end)

        try:
            resp = self._session.get(self._base_url, params=params, timeout=self._timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.Timeout as e:
            logger.warning(f"Upstream timeout for {symbol} {period} {params['start']}..{params['end']}")
            raise fail(f"Upstream request timed out after {self._timeout}s") from e
        except requests.JSONDecodeError as e:
            logger.error(f"Upstream returned non-JSON body for {symbol} {period}")
            raise fail("Upstream returned an invalid JSON body") from e
        except requests.RequestException as e:
            logger.error(f"Upstream request failed for {symbol} {period}: {e}")
            raise fail(f"Upstream request failed: {e}") from e

        records = self._extract_records(payload)
        if records is None:
            logger.error(f"Unexpected upstream payload type for {symbol} {period}: {type(payload).__name__}")
            raise fail("Upstream returned an unexpected payload")

        logger.debug(f"Fetched {len(records)} records for {symbol} {period} {params['start']}..{params['end']}")
        return records

    @staticmethod
    def _extract_records(payload: Any) -> Optional[List[Record]]:
        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]
        if not isinstance(payload, list):
            return None
        return payload
