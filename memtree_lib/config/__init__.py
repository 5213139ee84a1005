from .config import CacheConfig, load_config

__all__ = ["CacheConfig", "load_config"]
