"""
Utility modules for the listing form engine.
"""

from .formatting import format_percent, humanize_key
from .config import Config

__all__ = ["format_percent", "humanize_key", "Config"]
