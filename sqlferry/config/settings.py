#!/usr/bin/env python3
"""
sqlferry Configuration Manager
Handles environment variables and the optional .env file centrally
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.errors import ConfigurationError

ENV_PREFIX = "SQLFERRY_"

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_LOG_FORMATS = ('human', 'structured', 'json')
_PROVIDERS = ('mysql', 'postgres', 'sqlite')


@dataclass
class FerryConfig:
    """sqlferry runtime settings"""

    # Logging
    log_level: str = "INFO"
    log_format: str = "human"

    # Transfer defaults
    batch_rows: int = 1000
    fetch_size: int = 1000
    default_provider: str = "mysql"

    # Progress bars off when quiet
    quiet: bool = False

    def __post_init__(self):
        """Apply environment overrides and validate"""
        self.log_level = os.environ.get(f'{ENV_PREFIX}LOG_LEVEL', self.log_level).upper()
        self.log_format = os.environ.get(f'{ENV_PREFIX}LOG_FORMAT', self.log_format).lower()
        self.default_provider = os.environ.get(f'{ENV_PREFIX}DEFAULT_PROVIDER', self.default_provider).lower()
        self.batch_rows = self._int_from_env('BATCH_ROWS', self.batch_rows)
        self.fetch_size = self._int_from_env('FETCH_SIZE', self.fetch_size)

        quiet = os.environ.get(f'{ENV_PREFIX}QUIET')
        if quiet is not None:
            self.quiet = quiet.strip().lower() in _TRUE_VALUES

        self.validate()

    @staticmethod
    def _int_from_env(name: str, default: int) -> int:
        raw = os.environ.get(f'{ENV_PREFIX}{name}')
        if raw is None or raw.strip() == '':
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'") from None

    def validate(self) -> None:
        if self.batch_rows <= 0:
            raise ConfigurationError(f"batch_rows must be positive, got {self.batch_rows}")
        if self.fetch_size <= 0:
            raise ConfigurationError(f"fetch_size must be positive, got {self.fetch_size}")
        if self.log_format not in _LOG_FORMATS:
            raise ConfigurationError(
                f"log_format must be one of {', '.join(_LOG_FORMATS)}, got '{self.log_format}'"
            )
        if self.default_provider not in _PROVIDERS:
            raise ConfigurationError(
                f"default_provider must be one of {', '.join(_PROVIDERS)}, got '{self.default_provider}'"
            )

    def get_safe_dict(self) -> Dict[str, Any]:
        return {
            'log_level': self.log_level,
            'log_format': self.log_format,
            'batch_rows': self.batch_rows,
            'fetch_size': self.fetch_size,
            'default_provider': self.default_provider,
            'quiet': self.quiet,
        }


class ConfigManager:
    """Singleton configuration manager"""

    _instance: Optional['ConfigManager'] = None
    _config: Optional[FerryConfig] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.load_config()

    def load_config(self, env_file: Optional[Path] = None):
        """Load configuration from environment.

        Priority (highest to lowest):
        1. Environment variables (SQLFERRY_*)
        2. .env file (loaded into os.environ before config creation)
        3. FerryConfig dataclass defaults
        """
        if env_file is None:
            env_file = Path(os.environ.get(f'{ENV_PREFIX}ENV_FILE', Path.cwd() / '.env'))
        if env_file.exists():
            self._load_env_file(env_file)

        self._config = FerryConfig()

    def _load_env_file(self, env_file: Path):
        """Load environment variables from .env file.

        Only sets values for keys not already in os.environ,
        so exported variables take precedence over the file.
        """
        with open(env_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                key = key.strip()
                if key.startswith('export '):
                    key = key[len('export '):].strip()
                value = value.strip().strip('"').strip("'")
                if key not in os.environ:
                    os.environ[key] = value

    @property
    def config(self) -> FerryConfig:
        """Get the current configuration"""
        if self._config is None:
            self.load_config()
        return self._config

    @classmethod
    def reset(cls):
        """Drop the cached instance so the next access re-reads the environment"""
        cls._instance = None
        cls._config = None


def get_config() -> FerryConfig:
    """Get the global configuration instance"""
    return ConfigManager().config
