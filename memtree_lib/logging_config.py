from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional


def configure_logging(config_path: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure root logging for the cache layer.

    The level comes from `level` when given, otherwise from the `log_level`
    key of the YAML config file, otherwise WARNING. Returns a module logger
    for the caller.
    """
    DEFAULT_LOG_LEVEL = logging.WARNING

    if level:
        DEFAULT_LOG_LEVEL = getattr(logging, level.upper(), logging.WARNING)
    else:
        cfg_path = config_path or Path('data/config/cache_config.yml')
        if cfg_path.exists():
            try:
                with cfg_path.open('r', encoding='utf-8') as _f:
                    _cfg = yaml.safe_load(_f) or {}
                    _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
                    if isinstance(_lvl, str):
                        DEFAULT_LOG_LEVEL = getattr(logging, _lvl.upper(), logging.WARNING)
            except yaml.YAMLError:
                # If config parse fails, fall back to default level
                DEFAULT_LOG_LEVEL = logging.WARNING

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=DEFAULT_LOG_LEVEL, format='%(asctime)s %(levelname)s [%(name)s]: %(message)s')
    logger = logging.getLogger(__name__)
    logger.info("Cache logging configured at %s", logging.getLevelName(DEFAULT_LOG_LEVEL))

    return logger
