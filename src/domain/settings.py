from __future__ import annotations

import logging
from pathlib import Path

import tomlkit
from pydantic import BaseModel, field_validator

from shared.constants import (
    DEM_SOURCES,
    DEM_TILE_SIZE,
    DEM_TILE_ZOOM,
    FETCH_CHUNK_SIZE,
    HTTP_BACKOFF_FACTOR,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    TILE_CACHE_CAPACITY,
    TILE_CACHE_POLICY,
    EvictionPolicy,
)

logger = logging.getLogger(__name__)


class SourceSettings(BaseModel):
    """One elevation tile source; URL template uses {z}/{x}/{y}."""

    name: str
    url_template: str

    @field_validator('url_template')
    @classmethod
    def validate_template(cls, v: str) -> str:
        for part in ('{z}', '{x}', '{y}'):
            if part not in v:
                msg = f'url_template must contain {part}'
                raise ValueError(msg)
        return v


def _default_sources() -> list[SourceSettings]:
    return [SourceSettings(name=n, url_template=u) for n, u in DEM_SOURCES]


class EngineSettings(BaseModel):
    """Tunables of the elevation resolution step."""

    model_config = {'extra': 'ignore'}

    zoom: int = DEM_TILE_ZOOM
    tile_size: int = DEM_TILE_SIZE
    chunk_size: int = FETCH_CHUNK_SIZE
    cache_capacity: int = TILE_CACHE_CAPACITY
    cache_policy: EvictionPolicy = TILE_CACHE_POLICY
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT
    http_retries: int = HTTP_RETRIES_DEFAULT
    http_backoff: float = HTTP_BACKOFF_FACTOR
    # Priority order: first source with data wins
    sources: list[SourceSettings] = _default_sources()

    @field_validator('zoom')
    @classmethod
    def validate_zoom(cls, v: int) -> int:
        v = int(v)
        if not (0 <= v <= 24):
            msg = 'zoom must be within 0-24'
            raise ValueError(msg)
        return v

    @field_validator('tile_size', 'chunk_size', 'cache_capacity', 'http_retries')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        v = int(v)
        if v < 1:
            msg = 'value must be at least 1'
            raise ValueError(msg)
        return v

    @field_validator('sources')
    @classmethod
    def validate_sources(cls, v: list[SourceSettings]) -> list[SourceSettings]:
        if not v:
            msg = 'at least one elevation source is required'
            raise ValueError(msg)
        return v


def load_settings(path: str | Path) -> EngineSettings:
    """
    Load EngineSettings from a TOML file.

    Sources are given as an array of tables::

        [[sources]]
        name = "dem5a"
        url_template = "https://.../{z}/{x}/{y}.png"
    """
    p = Path(path)
    if not p.exists():
        msg = f'Settings file not found: {p}'
        raise FileNotFoundError(msg)
    data = tomlkit.parse(p.read_text(encoding='utf-8')).unwrap()
    settings = EngineSettings.model_validate(data)
    logger.info(
        'Settings loaded from %s: zoom=%d, sources=%s',
        p,
        settings.zoom,
        ','.join(s.name for s in settings.sources),
    )
    return settings


def save_settings(path: str | Path, settings: EngineSettings) -> None:
    """Write EngineSettings as TOML."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.document()
    for key, value in settings.model_dump(mode='json', exclude={'sources'}).items():
        doc[key] = value
    sources = tomlkit.aot()
    for src in settings.sources:
        tbl = tomlkit.table()
        tbl['name'] = src.name
        tbl['url_template'] = src.url_template
        sources.append(tbl)
    doc['sources'] = sources
    p.write_text(tomlkit.dumps(doc), encoding='utf-8')
