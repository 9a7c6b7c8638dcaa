"""Tests for the HTTP client helpers."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from domain.models import TileAddress
from infrastructure.http.client import make_http_session, validate_source
from tiles.fetcher import ElevationSource

SOURCE = ElevationSource('dem5a', 'https://dem.test/{z}/{x}/{y}.png')
ADDRESS = TileAddress(z=15, x=1, y=2)


def _session_answering(status: int) -> MagicMock:
    """MagicMock session usable as `async with session` and `async with session.get()`."""
    resp = MagicMock()
    resp.status = status
    resp.read = AsyncMock(return_value=b'')
    session = MagicMock()
    session.__aenter__.return_value = session
    session.get.return_value.__aenter__.return_value = resp
    return session


class TestMakeHttpSession:
    """Tests for make_http_session."""

    @pytest.mark.asyncio
    async def test_returns_client_session(self):
        session = make_http_session(limit=7)
        try:
            assert isinstance(session, aiohttp.ClientSession)
            assert session.connector.limit == 7
        finally:
            await session.close()


class TestValidateSource:
    """Tests for validate_source."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [200, 404])
    async def test_reachable(self, status):
        session = _session_answering(status)
        with patch('infrastructure.http.client.make_http_session', return_value=session):
            await validate_source(SOURCE, ADDRESS)
        assert session.get.call_args.args[0] == 'https://dem.test/15/1/2.png'

    @pytest.mark.asyncio
    async def test_server_error(self):
        session = _session_answering(503)
        with (
            patch('infrastructure.http.client.make_http_session', return_value=session),
            pytest.raises(RuntimeError, match='HTTP 503'),
        ):
            await validate_source(SOURCE, ADDRESS)

    @pytest.mark.asyncio
    async def test_unreachable(self):
        session = MagicMock()
        session.__aenter__.return_value = session
        session.get.return_value.__aenter__.side_effect = TimeoutError()
        with (
            patch('infrastructure.http.client.make_http_session', return_value=session),
            pytest.raises(RuntimeError, match='unreachable'),
        ):
            await validate_source(SOURCE, ADDRESS)
