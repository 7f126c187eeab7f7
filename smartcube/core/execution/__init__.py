"""
Execution Engine for SmartCube Core
Validates, orders and runs cube workflows
"""
from .cube_base import AIBackedCube, BaseCube, ExecutionContext
from .cube_executor import CubeExecutionResult, CubeExecutor
from .cube_registry import CubeHandlerRegistry, build_default_registry
from .loop_controller import LoopController, LoopState
from .manager import ExecutionManager
from .scheduler import Scheduler, SchedulerResult
from .validator import ValidationResult, WorkflowValidator
from .watchdog import OperationStatus, TimeoutWatchdog

__all__ = [
    'AIBackedCube',
    'BaseCube',
    'ExecutionContext',
    'CubeExecutionResult',
    'CubeExecutor',
    'CubeHandlerRegistry',
    'build_default_registry',
    'LoopController',
    'LoopState',
    'ExecutionManager',
    'Scheduler',
    'SchedulerResult',
    'ValidationResult',
    'WorkflowValidator',
    'OperationStatus',
    'TimeoutWatchdog',
]
