"""Pytest configuration and fixtures for terrain slope tests."""

import sys
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from geo.topography import encode_elevation  # noqa: E402


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int, body: bytes = b'') -> None:
        self.status = status
        self._body = body

    async def read(self) -> bytes:
        return self._body


class _RequestContext:
    def __init__(self, outcome) -> None:
        self._outcome = outcome

    async def __aenter__(self):
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """Routes URLs to canned responses; unknown URLs answer 404.

    A route given several outcomes plays them in order and then repeats
    the last one. An outcome may be an exception instance to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.calls: list[str] = []
        self.closed = False

    def route(self, url: str, *outcomes) -> None:
        self.routes[url] = list(outcomes)

    def get(self, url: str, **kwargs) -> _RequestContext:
        self.calls.append(url)
        outcomes = self.routes.get(url)
        if not outcomes:
            return _RequestContext(FakeResponse(404))
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        return _RequestContext(outcome)


def _encode_pixels(elevations, size: int = 256) -> np.ndarray:
    """Encode a scalar, None or 2-D array (NaN = no data) as Terrain PNG pixels."""
    if elevations is None or np.isscalar(elevations):
        pixels = np.zeros((size, size, 3), dtype=np.uint8)
        pixels[:, :] = encode_elevation(None if elevations is None else float(elevations))
        return pixels
    grid = np.asarray(elevations, dtype=np.float64)
    h, w = grid.shape
    pixels = np.zeros((h, w, 3), dtype=np.uint8)
    for y in range(h):
        for x in range(w):
            v = grid[y, x]
            pixels[y, x] = encode_elevation(None if np.isnan(v) else float(v))
    return pixels


def _png_bytes(pixels: np.ndarray) -> bytes:
    buf = BytesIO()
    Image.fromarray(pixels).save(buf, format='PNG')
    return buf.getvalue()


@pytest.fixture
def tile_pixels():
    """Factory: elevation(s) -> H x W x 3 uint8 Terrain PNG pixels."""
    return _encode_pixels


@pytest.fixture
def tile_png():
    """Factory: elevation(s) -> PNG bytes of an encoded tile."""

    def _make(elevations, size: int = 256) -> bytes:
        return _png_bytes(_encode_pixels(elevations, size))

    return _make


@pytest.fixture
def fake_session():
    """FakeSession with no routes (every request answers 404)."""
    return FakeSession()


@pytest.fixture
def response():
    """Factory for FakeResponse objects."""
    return FakeResponse
