"""Cache configuration model and YAML loading.

`CacheConfig` carries every knob the cache layer needs. It can be built
directly in code or loaded from a YAML file with `load_config`; a missing
file yields the defaults so a fresh checkout runs without any setup.
"""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from memtree_lib.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path('data/config/cache_config.yml')


class CacheConfig(BaseModel):
    delimiter: str = '.'
    default_ttl: int = 600
    index_ttl: int = 3600
    metadata_enabled: bool = True
    global_root: str = 'global'
    meta_root: str = 'meta'
    # segment holding a path's own metadata record, reserved in data paths
    meta_record_segment: str = '__record__'
    index_key: str = 'cache-key-map'
    app_roots: List[str] = Field(default_factory=list)
    default_app_root: str = 'app'
    # compare-and-swap index writes when the backend supports gets/cas
    index_cas: bool = True
    index_cas_retries: int = 5
    gc_on_startup: bool = True
    backend: str = 'memory'
    serializer: str = 'pickle'
    data_dir: str = 'data/cache'
    log_level: str = 'WARNING'

    @field_validator('delimiter')
    @classmethod
    def _delimiter_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError('delimiter must not be empty')
        return v

    @field_validator('default_ttl', 'index_ttl')
    @classmethod
    def _ttl_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('ttl values must be positive')
        return v

    @field_validator('global_root', 'meta_root', 'default_app_root', 'meta_record_segment')
    @classmethod
    def _root_is_single_segment(cls, v: str, info) -> str:
        delimiter = info.data.get('delimiter', '.')
        if not v or delimiter in v:
            raise ValueError(f'namespace root {v!r} must be a single non-empty segment')
        return v

    def legal_roots(self) -> List[str]:
        """Return every namespace root a canonical path may start with."""
        roots = [self.global_root, self.meta_root]
        for r in [*self.app_roots, self.default_app_root]:
            if r not in roots:
                roots.append(r)
        return roots


def load_config(path: Optional[Path | str] = None) -> CacheConfig:
    """Load a `CacheConfig` from YAML, returning defaults when the file is absent."""
    cfg_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        logger.debug('No cache config at %s; using defaults', cfg_path)
        return CacheConfig()
    try:
        with cfg_path.open('r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f'Failed to parse {cfg_path}: {e}') from e
    if not isinstance(raw, dict):
        raise ConfigError(f'{cfg_path} must contain a mapping, got {type(raw).__name__}')
    try:
        cfg = CacheConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f'Invalid cache config in {cfg_path}: {e}') from e
    logger.info('Loaded cache config from %s', cfg_path)
    return cfg
