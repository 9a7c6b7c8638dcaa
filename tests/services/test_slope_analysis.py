"""Tests for the slope analysis pipeline."""

import asyncio
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from domain.errors import (
    EmptyGridError,
    GridTooLargeError,
    InvalidInputError,
    ResolutionTimeoutError,
)
from domain.models import AnalysisRequest, Direction8, SlopeClass
from domain.settings import EngineSettings
from services.slope_analysis import (
    SlopeAnalysisService,
    analyze_point,
    analyze_polygon,
    parse_request,
    run_analysis,
)

# About 55 m x 55 m south-east of (35.0, 139.0)
POLYGON = [
    [139.0, 35.0],
    [139.0006, 35.0],
    [139.0006, 34.9995],
    [139.0, 34.9995],
    [139.0, 35.0],
]
TINY = [[139.0, 35.0], [139.0002, 35.0], [139.0002, 35.0002], [139.0, 35.0002], [139.0, 35.0]]
BASE_ROW = 12979 * 256


class PlaneProvider:
    """Tile provider whose terrain rises 0.5 m per global pixel row southwards."""

    zoom = 15
    tile_size = 256

    def __init__(self, encode):
        self._encode = encode
        self.requests = []

    async def get_tile(self, address):
        self.requests.append(address)
        rows = 1000.0 + (address.y * 256 + np.arange(256) - BASE_ROW) * 0.5
        return self._encode(np.repeat(rows[:, None], 256, axis=1))


class ConstantProvider:
    zoom = 15
    tile_size = 256

    def __init__(self, pixels):
        self.pixels = pixels
        self.requests = []

    async def get_tile(self, address):
        self.requests.append(address)
        return self.pixels


class StalledProvider:
    zoom = 15
    tile_size = 256

    async def get_tile(self, address):
        await asyncio.sleep(3600)


@pytest.fixture
def plane(tile_pixels):
    return PlaneProvider(tile_pixels)


@pytest.fixture
def flat(tile_pixels):
    return ConstantProvider(tile_pixels(100.0))


class TestParseRequest:
    """Tests for request parsing at the service boundary."""

    def test_passthrough(self):
        req = AnalysisRequest(polygon=POLYGON)
        assert parse_request(req) is req

    def test_validation_error_becomes_invalid_input(self):
        with pytest.raises(InvalidInputError, match='polygon'):
            parse_request({'polygon': POLYGON[:2]})

    def test_missing_polygon(self):
        with pytest.raises(InvalidInputError):
            parse_request({'interval': 5})


class TestAnalyzePolygon:
    """Tests for analyze_polygon."""

    @pytest.mark.asyncio
    async def test_tilted_plane(self, plane):
        result = await analyze_polygon({'polygon': POLYGON, 'interval': 10}, plane)

        info = result.grid_info
        assert info.total_points > 0
        assert len(result.elevation_matrix) == info.rows
        assert all(len(row) == info.cols for row in result.elevation_matrix)
        assert len(result.slope_matrix) == info.rows
        assert result.slopes
        for s in result.slopes:
            assert s.degrees > 0
            # Terrain rises southwards, so it faces north
            assert s.aspect_direction is Direction8.N
            assert result.slope_matrix[s.row][s.col] == s.degrees
        assert result.stats.mean_degrees > 0
        assert result.stats.max_elevation > result.stats.min_elevation

    @pytest.mark.asyncio
    async def test_auto_cross_section(self, plane):
        result = await analyze_polygon({'polygon': POLYGON, 'interval': 10}, plane)
        assert result.auto_cross_section_line is not None
        assert len(result.auto_cross_section_line) == 2
        assert result.cross_section
        # From the highest cell down to the lowest one
        assert result.cross_section[0].elevation > result.cross_section[-1].elevation

    @pytest.mark.asyncio
    async def test_explicit_cross_section(self, plane):
        line = [[139.0002, 34.9997], [139.0004, 34.9997]]
        result = await analyze_polygon(
            {'polygon': POLYGON, 'interval': 5, 'cross_section_line': line, 'num_samples': 8},
            plane,
        )
        assert result.auto_cross_section_line is None
        assert 0 < len(result.cross_section) <= 8
        distances = [p.distance for p in result.cross_section]
        assert distances == sorted(distances)

    @pytest.mark.asyncio
    async def test_flat_terrain(self, flat):
        result = await analyze_polygon(
            AnalysisRequest(polygon=POLYGON, interval=10), flat, EngineSettings()
        )
        assert all(s.classification is SlopeClass.FLAT for s in result.slopes)
        assert result.stats.flat_percent == 100.0
        assert result.stats.elevation_range == 0.0
        assert result.auto_cross_section_line is None
        assert result.cross_section is None

    @pytest.mark.asyncio
    async def test_tiles_requested_once_per_address(self, flat):
        result = await analyze_polygon({'polygon': POLYGON, 'interval': 5}, flat)
        assert result.grid_info.total_points > len(flat.requests)
        assert len(flat.requests) == len(set(flat.requests))

    @pytest.mark.asyncio
    async def test_no_data_everywhere(self, tile_pixels):
        provider = ConstantProvider(tile_pixels(None))
        result = await analyze_polygon({'polygon': POLYGON, 'interval': 10}, provider)
        assert all(v is None for row in result.elevation_matrix for v in row)
        assert result.slopes == []
        assert result.stats.distribution == []
        assert result.cross_section is None

    @pytest.mark.asyncio
    async def test_too_many_points(self, flat):
        with pytest.raises(GridTooLargeError) as exc_info:
            await analyze_polygon({'polygon': POLYGON, 'interval': 2, 'max_points': 10}, flat)
        assert exc_info.value.max_points == 10
        assert flat.requests == []

    @pytest.mark.asyncio
    async def test_empty_grid_is_a_result(self, flat):
        result = await analyze_polygon({'polygon': TINY, 'interval': 50}, flat)
        assert result.grid_info.total_points == 0
        assert result.slopes == []
        assert result.stats.mean_degrees == 0.0
        assert flat.requests == []

    @pytest.mark.asyncio
    async def test_empty_grid_when_points_required(self, flat):
        with pytest.raises(EmptyGridError):
            await analyze_polygon(
                {'polygon': TINY, 'interval': 50, 'require_points': True}, flat
            )

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(ResolutionTimeoutError) as exc_info:
            await analyze_polygon(
                {'polygon': POLYGON, 'interval': 10, 'timeout_s': 0.05}, StalledProvider()
            )
        assert exc_info.value.timeout_s == 0.05


class TestAnalyzePoint:
    """Tests for analyze_point."""

    @pytest.mark.asyncio
    async def test_tilted_plane(self, plane):
        result = await analyze_point(34.9997, 139.0003, plane)
        assert result.offset_m == 10.0
        assert result.center_elevation is not None
        assert len(result.samples) == 5
        assert result.slope is not None
        assert result.slope.aspect_direction is Direction8.N

    @pytest.mark.asyncio
    async def test_missing_samples(self, tile_pixels):
        provider = ConstantProvider(tile_pixels(None))
        result = await analyze_point(34.9997, 139.0003, provider)
        assert result.center_elevation is None
        assert result.slope is None

    @pytest.mark.asyncio
    async def test_invalid_coordinates(self, flat):
        with pytest.raises(InvalidInputError):
            await analyze_point(95.0, 139.0, flat)
        with pytest.raises(InvalidInputError):
            await analyze_point(35.0, 139.0, flat, offset_m=0)


class TestSlopeAnalysisService:
    """Tests for the session-owning service and the blocking wrapper."""

    def _patched(self, provider):
        session = MagicMock()
        session.__aenter__.return_value = session
        return (
            patch('services.slope_analysis.make_http_session', return_value=session),
            patch(
                'services.slope_analysis.ElevationTileProvider.from_settings',
                return_value=provider,
            ),
        )

    def test_run_analysis(self, flat):
        session_patch, provider_patch = self._patched(flat)
        with session_patch, provider_patch:
            result = run_analysis({'polygon': POLYGON, 'interval': 10})
        assert result.grid_info.total_points > 0
        assert flat.requests

    def test_cache_shared_between_calls(self, flat):
        service = SlopeAnalysisService(EngineSettings(cache_capacity=5))
        session_patch, provider_patch = self._patched(flat)
        with session_patch, provider_patch as from_settings:
            asyncio.run(service.analyze({'polygon': POLYGON, 'interval': 10}))
            asyncio.run(service.analyze({'polygon': POLYGON, 'interval': 20}))
        caches = [c.kwargs['cache'] for c in from_settings.call_args_list]
        assert caches == [service.cache, service.cache]
        assert service.cache.capacity == 5

    def test_invalid_request_fails_before_network(self):
        service = SlopeAnalysisService()
        with patch('services.slope_analysis.make_http_session') as make_session:
            with pytest.raises(InvalidInputError):
                asyncio.run(service.analyze({'polygon': [], 'interval': 10}))
        make_session.assert_not_called()
