from __future__ import annotations

import contextlib
import ssl
from typing import TYPE_CHECKING

import aiohttp
import certifi

from shared.constants import HTTP_NOT_FOUND, HTTP_OK

if TYPE_CHECKING:
    from domain.models import TileAddress
    from tiles.fetcher import ElevationSource


def make_http_session(*, limit: int = 100) -> aiohttp.ClientSession:
    """Plain aiohttp session using the certifi CA bundle.

    Args:
        limit: Connection pool size.

    """
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context, limit=limit)
    return aiohttp.ClientSession(connector=connector)


async def validate_source(source: ElevationSource, address: TileAddress) -> None:
    """Check that an elevation source answers for a known tile.

    A 404 counts as reachable: DEM sources legitimately have no tile over sea.
    """
    url = source.url_for(address)
    timeout = aiohttp.ClientTimeout(total=10, connect=10, sock_connect=10, sock_read=10)
    try:
        async with (
            make_http_session() as client,
            client.get(url, timeout=timeout) as resp,
        ):
            sc = resp.status
            if sc == HTTP_OK:
                with contextlib.suppress(aiohttp.ClientError):
                    await resp.read()
                return
            if sc == HTTP_NOT_FOUND:
                return
            msg = f'Elevation source {source.name} answered HTTP {sc} for {url}'
            raise RuntimeError(msg)
    except (TimeoutError, aiohttp.ClientConnectorError, aiohttp.ClientOSError):
        msg = f'Elevation source {source.name} is unreachable ({url})'
        raise RuntimeError(msg) from None
