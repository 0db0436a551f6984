"""
Utility modules for the crawler.
"""

from .config import Config, ConfigManager, SearchConstraints, load_config

__all__ = ['Config', 'ConfigManager', 'SearchConstraints', 'load_config']
