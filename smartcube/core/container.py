"""
Service container

The storage backend, cube registry, executor and execution manager wired
together for one API app or CLI invocation.
"""
import time
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..ai.client import AIProviderClient
    from ..storage.base import StorageInterface
    from .execution.cube_executor import CubeExecutor
    from .execution.cube_registry import CubeHandlerRegistry
    from .execution.manager import ExecutionManager


@dataclass
class ServiceContainer:
    """
    Services shared by the API routes and CLI commands

    Built by bootstrap.build_container and passed down explicitly; nothing
    here is cached at module level.
    """
    storage: 'StorageInterface'
    registry: 'CubeHandlerRegistry'
    executor: 'CubeExecutor'
    manager: 'ExecutionManager'
    ai_client: Optional['AIProviderClient'] = None
    mode: str = "solo"
    initialized_at: float = field(default_factory=time.time)
