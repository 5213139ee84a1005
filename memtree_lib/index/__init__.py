from .key_map import KNOWN, KeyMapIndex

__all__ = ["KNOWN", "KeyMapIndex"]
