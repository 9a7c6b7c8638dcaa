import math
from io import BytesIO

import numpy as np
from PIL import Image

from domain.models import TileAddress, TilePixel
from shared.constants import (
    DEM_NODATA_VALUE,
    DEM_TILE_SIZE,
    DEM_UNIT_M,
    DEM_WRAP_VALUE,
    EARTH_RADIUS_M,
    ELEVATION_MAX_VALID_M,
    ELEVATION_MIN_VALID_M,
    TILE_PROBE_DIVISIONS,
    WORLD_LNG_HALF_SPAN_DEG,
    WORLD_LNG_SPAN_DEG,
)


def meters_to_degrees(meters: float, lat_deg: float) -> tuple[float, float]:
    """Return (d_lat, d_lon) spanned by `meters` at latitude `lat_deg`."""
    d_lat = math.degrees(meters / EARTH_RADIUS_M)
    d_lon = math.degrees(meters / (EARTH_RADIUS_M * math.cos(math.radians(lat_deg))))
    return d_lat, d_lon


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two WGS84 points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def geo_to_tile(
    lat: float,
    lon: float,
    zoom: int,
    tile_size: int = DEM_TILE_SIZE,
) -> TilePixel:
    """
    Map a WGS84 point to its Web Mercator tile and the pixel inside that tile.

    Pixel offsets are the fractional tile position scaled to the tile width,
    floored and clamped to [0, tile_size - 1].
    """
    n = 2**zoom
    fx = (lon + WORLD_LNG_HALF_SPAN_DEG) / WORLD_LNG_SPAN_DEG * n
    fy = (1 - math.asinh(math.tan(math.radians(lat))) / math.pi) / 2 * n
    x = math.floor(fx)
    y = math.floor(fy)
    px = min(max(math.floor((fx - x) * tile_size), 0), tile_size - 1)
    py = min(max(math.floor((fy - y) * tile_size), 0), tile_size - 1)
    return TilePixel(address=TileAddress(z=zoom, x=x, y=y), px=px, py=py)


def decode_pixel(r: int, g: int, b: int) -> float | None:
    """
    Decode one Terrain PNG pixel into metres.

    x = R*65536 + G*256 + B; x == 2**23 is no data, x < 2**23 is x * 0.01,
    x > 2**23 wraps to (x - 2**24) * 0.01. Values outside the plausible
    range are no data as well.
    """
    x = int(r) * 65536 + int(g) * 256 + int(b)
    if x == DEM_NODATA_VALUE:
        return None
    elevation = x * DEM_UNIT_M if x < DEM_NODATA_VALUE else (x - DEM_WRAP_VALUE) * DEM_UNIT_M
    if elevation < ELEVATION_MIN_VALID_M or elevation > ELEVATION_MAX_VALID_M:
        return None
    return elevation


def encode_elevation(elevation_m: float | None) -> tuple[int, int, int]:
    """Inverse of decode_pixel; None encodes the no-data sentinel."""
    if elevation_m is None:
        x = DEM_NODATA_VALUE
    else:
        x = round(elevation_m / DEM_UNIT_M)
        if x < 0:
            x += DEM_WRAP_VALUE
    return (x >> 16) & 0xFF, (x >> 8) & 0xFF, x & 0xFF


def decode_tile(pixels: np.ndarray) -> np.ndarray:
    """
    Vectorised decode of an H x W x 3 uint8 tile into metres.

    Returns float64 array with NaN where the pixel holds no data.
    """
    rgb = pixels[:, :, :3].astype(np.int64)
    x = rgb[:, :, 0] * 65536 + rgb[:, :, 1] * 256 + rgb[:, :, 2]
    elevation = np.where(x < DEM_NODATA_VALUE, x, x - DEM_WRAP_VALUE) * DEM_UNIT_M
    invalid = (
        (x == DEM_NODATA_VALUE)
        | (elevation < ELEVATION_MIN_VALID_M)
        | (elevation > ELEVATION_MAX_VALID_M)
    )
    return np.where(invalid, np.nan, elevation)


def pixel_elevation(pixels: np.ndarray, px: int, py: int) -> float | None:
    """Elevation of pixel (px, py) of a decoded-to-RGB tile, None outside or no data."""
    h, w = pixels.shape[:2]
    if px < 0 or px >= w or py < 0 or py >= h:
        return None
    r, g, b = pixels[py, px, :3]
    return decode_pixel(r, g, b)


def tile_has_data(pixels: np.ndarray, divisions: int = TILE_PROBE_DIVISIONS) -> bool:
    """
    Coarse probe: does any sampled pixel decode to an elevation?

    Samples every (size // divisions)-th pixel along both axes, then the
    bottom-right corner.
    """
    h, w = pixels.shape[:2]
    step_y = max(1, h // divisions)
    step_x = max(1, w // divisions)
    probe = pixels[::step_y, ::step_x]
    if np.any(~np.isnan(decode_tile(probe))):
        return True
    return pixel_elevation(pixels, w - 1, h - 1) is not None


def read_tile_image(data: bytes) -> np.ndarray:
    """Decode PNG bytes into an H x W x 3 uint8 array."""
    with Image.open(BytesIO(data)) as img:
        return np.array(img.convert('RGB'), dtype=np.uint8)
