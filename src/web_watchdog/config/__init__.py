from .errors import ConfigError
from .loader import load_config
from .models import AppConfig, DatabaseConfig, TargetConfig, WatchConfig

__all__ = [
    "AppConfig",
    "ConfigError",
    "DatabaseConfig",
    "TargetConfig",
    "WatchConfig",
    "load_config",
]
