"""sqlferry configuration"""

from .settings import ConfigManager, FerryConfig, get_config

__all__ = ['ConfigManager', 'FerryConfig', 'get_config']
