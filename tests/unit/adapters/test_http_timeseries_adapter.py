"""Tests for HttpTimeSeriesAdapter (requests session mocked)."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from tscache.domain.exceptions import UpstreamFetchError
from tscache.domain.interfaces.timeseries_source import TimeSeriesSource
from tscache.infrastructure.adapters.http_timeseries_adapter import HttpTimeSeriesAdapter

START = datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)
END = datetime(2024, 3, 1, 14, 31, tzinfo=timezone.utc)


def _response(payload=None, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    resp.json.return_value = payload
    return resp


def _raw_response(content: bytes, status_code: int = 200) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = content
    resp.url = "https://provider.test/bars"
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def adapter(session):
    return HttpTimeSeriesAdapter("https://provider.test/bars", timeout_seconds=5, session=session)


class TestHttpTimeSeriesAdapter:

    def test_satisfies_protocol(self, adapter):
        assert isinstance(adapter, TimeSeriesSource)
        assert adapter.source_name == "http"

    @pytest.mark.asyncio
    async def test_sends_query_params(self, adapter, session):
        session.get.return_value = _response([{"close": 1.0}])

        records = await adapter.fetch_records("AAPL", "1min", START, END)

        assert records == [{"close": 1.0}]
        session.get.assert_called_once_with(
            "https://provider.test/bars",
            params={
                "symbol": "AAPL",
                "period": "1min",
                "start": "2024-03-01T14:30:00.000Z",
                "end": "2024-03-01T14:31:00.000Z",
            },
            timeout=5,
        )

    @pytest.mark.asyncio
    async def test_unwraps_data_envelope(self, adapter, session):
        session.get.return_value = _response({"data": [{"close": 2.0}]})

        assert await adapter.fetch_records("AAPL", "1min", START, END) == [{"close": 2.0}]

    @pytest.mark.asyncio
    async def test_http_error_status(self, adapter, session):
        session.get.return_value = _response(status_code=503)

        with pytest.raises(UpstreamFetchError) as exc_info:
            await adapter.fetch_records("AAPL", "1min", START, END)

        assert exc_info.value.symbol == "AAPL"
        assert exc_info.value.start == START

    @pytest.mark.asyncio
    async def test_timeout(self, adapter, session):
        session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(UpstreamFetchError, match="timed out"):
            await adapter.fetch_records("AAPL", "1min", START, END)

    @pytest.mark.asyncio
    async def test_connection_error(self, adapter, session):
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(UpstreamFetchError):
            await adapter.fetch_records("AAPL", "1min", START, END)

    @pytest.mark.asyncio
    async def test_invalid_json(self, adapter, session):
        session.get.return_value = _raw_response(b"<html>oops</html>")

        with pytest.raises(UpstreamFetchError, match="invalid JSON") as exc_info:
            await adapter.fetch_records("AAPL", "1min", START, END)

        assert isinstance(exc_info.value.__cause__, requests.JSONDecodeError)

    @pytest.mark.asyncio
    async def test_real_response_body_is_parsed(self, adapter, session):
        session.get.return_value = _raw_response(b'[{"close": 3.0}]')

        assert await adapter.fetch_records("AAPL", "1min", START, END) == [{"close": 3.0}]

    @pytest.mark.asyncio
    async def test_real_error_status(self, adapter, session):
        session.get.return_value = _raw_response(b"unavailable", status_code=503)

        with pytest.raises(UpstreamFetchError, match="request failed"):
            await adapter.fetch_records("AAPL", "1min", START, END)

    @pytest.mark.asyncio
    async def test_unexpected_payload_shape(self, adapter, session):
        session.get.return_value = _response({"status": "ok"})

        with pytest.raises(UpstreamFetchError, match="unexpected payload"):
            await adapter.fetch_records("AAPL", "1min", START, END)

    def test_close_closes_session(self, adapter, session):
        adapter.close()

        session.close.assert_called_once()
