"""
Core service container and bootstrap module
Provides centralized service initialization and dependency management
"""
from .container import ServiceContainer
from .bootstrap import build_container
from .config import Config

__all__ = ["ServiceContainer", "build_container", "Config"]
