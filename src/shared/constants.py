from enum import Enum

# Mean Earth radius for the spherical approximation (metres)
EARTH_RADIUS_M = 6371000.0

# --- Web Mercator extents
WORLD_LNG_SPAN_DEG = 360.0
WORLD_LNG_HALF_SPAN_DEG = 180.0

# --- DEM tiles
# Zoom level of the DEM tiles (finest level published by the provider)
DEM_TILE_ZOOM = 15
# Side of a DEM tile (pixels)
DEM_TILE_SIZE = 256
# Stride of the coarse "does this tile hold any data" probe
# (every 8th of a tile side, plus the opposite corner)
TILE_PROBE_DIVISIONS = 8

# --- Terrain PNG encoding (x = R*65536 + G*256 + B, 0.01 m units)
DEM_NODATA_VALUE = 2**23
DEM_WRAP_VALUE = 2**24
DEM_UNIT_M = 0.01
# Plausible physical range; decoded values outside are no data (metres)
ELEVATION_MIN_VALID_M = -500.0
ELEVATION_MAX_VALID_M = 4000.0

# --- Elevation sources in priority order (name, url template)
DEM_SOURCES = (
    ('dem5a', 'https://cyberjapandata.gsi.go.jp/xyz/dem5a_png/{z}/{x}/{y}.png'),
    ('dem5b', 'https://cyberjapandata.gsi.go.jp/xyz/dem5b_png/{z}/{x}/{y}.png'),
    ('dem5c', 'https://cyberjapandata.gsi.go.jp/xyz/dem5c_png/{z}/{x}/{y}.png'),
    ('dem10b', 'https://cyberjapandata.gsi.go.jp/xyz/dem_png/{z}/{x}/{y}.png'),
)

# --- Tile fetching
# Tiles fetched concurrently per chunk
FETCH_CHUNK_SIZE = 10
# Decoded tiles kept in memory
TILE_CACHE_CAPACITY = 100


class EvictionPolicy(str, Enum):
    """Which entry the tile cache drops once capacity is exceeded."""

    INSERTION = 'insertion'  # oldest inserted first
    RECENCY = 'recency'  # least recently read first


TILE_CACHE_POLICY = EvictionPolicy.INSERTION

# --- Network defaults
HTTP_TIMEOUT_DEFAULT = 20.0
HTTP_RETRIES_DEFAULT = 3
HTTP_BACKOFF_FACTOR = 1.6
HTTP_OK = 200
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600

# --- Analysis defaults
# Grid spacing bounds accepted at the request boundary (metres)
GRID_INTERVAL_MIN_M = 1.0
GRID_INTERVAL_MAX_M = 50.0
GRID_INTERVAL_DEFAULT_M = 2.0
# Point-count ceiling for one request
MAX_GRID_POINTS = 500
# Wall clock budget of the elevation resolution step (seconds)
RESOLUTION_TIMEOUT_S = 60.0
# Samples along a cross-section line
CROSS_SECTION_SAMPLES = 50
# Minimum vertices of a polyline / closed polygon ring
MIN_POINTS_FOR_LINE = 2
MIN_POINTS_FOR_RING = 4
# Distance of the N/S/E/W samples for a single-location slope (metres)
POINT_SLOPE_OFFSET_M = 10.0

# --- Slope classes (upper bound in degrees, label, display colour)
SLOPE_FLAT_MAX_DEG = 3.0
SLOPE_GENTLE_MAX_DEG = 8.0
SLOPE_MODERATE_MAX_DEG = 15.0
SLOPE_STEEP_MAX_DEG = 30.0

# Rounding of reported values (decimal places)
SLOPE_DEGREES_DECIMALS = 2
ASPECT_DEGREES_DECIMALS = 1
ELEVATION_DECIMALS = 1
DISTRIBUTION_DECIMALS = 1

# Availability flag for optional diagnostics
PSUTIL_AVAILABLE = True
