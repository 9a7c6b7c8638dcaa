"""Tests for geodesy helpers, tile mapping and Terrain PNG decoding."""

import math

import numpy as np
import pytest

from domain.models import TileAddress
from geo.topography import (
    decode_pixel,
    decode_tile,
    encode_elevation,
    geo_to_tile,
    haversine_distance,
    meters_to_degrees,
    pixel_elevation,
    read_tile_image,
    tile_has_data,
)


class TestMetersToDegrees:
    """Tests for meters_to_degrees."""

    def test_equator(self):
        d_lat, d_lon = meters_to_degrees(111_195.0, 0.0)
        assert d_lat == pytest.approx(1.0, rel=1e-4)
        assert d_lon == pytest.approx(1.0, rel=1e-4)

    def test_longitude_step_grows_with_latitude(self):
        d_lat, d_lon = meters_to_degrees(10.0, 60.0)
        assert d_lon == pytest.approx(2 * d_lat, rel=1e-9)


class TestHaversine:
    """Tests for haversine_distance."""

    def test_zero(self):
        assert haversine_distance(35.0, 139.0, 35.0, 139.0) == 0.0

    def test_one_degree_of_latitude(self):
        d = haversine_distance(0.0, 0.0, 1.0, 0.0)
        assert d == pytest.approx(6371000 * math.pi / 180, rel=1e-9)

    def test_symmetric(self):
        a = haversine_distance(35.1, 139.2, 35.3, 139.5)
        b = haversine_distance(35.3, 139.5, 35.1, 139.2)
        assert a == pytest.approx(b)


class TestGeoToTile:
    """Tests for geo_to_tile."""

    def test_origin_zoom_zero(self):
        tp = geo_to_tile(0.0, 0.0, 0)
        assert tp.address == TileAddress(z=0, x=0, y=0)
        assert (tp.px, tp.py) == (128, 128)

    def test_north_east_quadrant_zoom_1(self):
        tp = geo_to_tile(45.0, 90.0, 1)
        assert tp.address == TileAddress(z=1, x=1, y=0)
        assert tp.px == 128
        assert tp.py == 184

    def test_north_west_corner_of_world(self):
        tp = geo_to_tile(85.0, -180.0, 1)
        assert tp.address.x == 0
        assert tp.address.y == 0
        assert tp.px == 0

    def test_custom_tile_size(self):
        tp = geo_to_tile(0.0, 0.0, 0, tile_size=512)
        assert (tp.px, tp.py) == (256, 256)

    def test_nearby_points_share_tile(self):
        a = geo_to_tile(35.6812, 139.7671, 15)
        b = geo_to_tile(35.68121, 139.76712, 15)
        assert a.address == b.address


class TestDecodePixel:
    """Tests for the Terrain PNG pixel codec."""

    def test_zero(self):
        assert decode_pixel(0, 0, 0) == 0.0

    def test_positive(self):
        # 0x00_27_10 = 10000 -> 100.00 m
        assert decode_pixel(0, 0x27, 0x10) == pytest.approx(100.0)

    def test_sentinel_is_no_data(self):
        assert decode_pixel(128, 0, 0) is None

    def test_negative_wraps(self):
        r, g, b = encode_elevation(-12.34)
        assert r == 0xFF
        assert decode_pixel(r, g, b) == pytest.approx(-12.34)

    def test_out_of_range_is_no_data(self):
        # 5000 m is above the plausible ceiling
        assert decode_pixel(*encode_elevation(5000.0)) is None
        assert decode_pixel(*encode_elevation(-600.0)) is None

    @pytest.mark.parametrize('elevation', [-499.99, -0.01, 0.01, 3.14, 776.25, 3775.99])
    def test_encode_decode(self, elevation):
        assert decode_pixel(*encode_elevation(elevation)) == pytest.approx(elevation, abs=0.01)

    def test_encode_none_is_sentinel(self):
        assert encode_elevation(None) == (128, 0, 0)


class TestDecodeTile:
    """Tests for vectorised decoding and probing."""

    def test_matches_scalar_decoder(self, tile_pixels):
        grid = np.array([[0.0, 12.5], [np.nan, -3.0]])
        decoded = decode_tile(tile_pixels(grid))
        assert decoded[0, 0] == pytest.approx(0.0)
        assert decoded[0, 1] == pytest.approx(12.5)
        assert np.isnan(decoded[1, 0])
        assert decoded[1, 1] == pytest.approx(-3.0)

    def test_pixel_elevation(self, tile_pixels):
        pixels = tile_pixels(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert pixel_elevation(pixels, 1, 0) == pytest.approx(2.0)
        assert pixel_elevation(pixels, 0, 1) == pytest.approx(3.0)
        assert pixel_elevation(pixels, 2, 0) is None

    def test_all_no_data_tile(self, tile_pixels):
        assert not tile_has_data(tile_pixels(None))

    def test_full_tile(self, tile_pixels):
        assert tile_has_data(tile_pixels(42.0))

    def test_probe_finds_bottom_right_corner(self, tile_pixels):
        grid = np.full((256, 256), np.nan)
        grid[255, 255] = 10.0
        assert tile_has_data(tile_pixels(grid))

    def test_probe_misses_unsampled_pixel(self, tile_pixels):
        # Pixel (1, 1) is between probe strides
        grid = np.full((256, 256), np.nan)
        grid[1, 1] = 10.0
        assert not tile_has_data(tile_pixels(grid))

    def test_read_tile_image(self, tile_png):
        pixels = read_tile_image(tile_png(250.0, size=16))
        assert pixels.shape == (16, 16, 3)
        assert pixels.dtype == np.uint8
        assert pixel_elevation(pixels, 3, 7) == pytest.approx(250.0)
