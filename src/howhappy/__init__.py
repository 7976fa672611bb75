from howhappy.config import AppConfig, load_config
from howhappy.logging import setup_logging

__all__ = [
    "AppConfig",
    "load_config",
    "setup_logging",
]
