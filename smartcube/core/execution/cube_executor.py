"""
Cube Executor
Runs a single cube: handler lookup, input contract, watchdog, output formatting
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import (
    CubeTimeoutError,
    HandlerExecutionError,
    InputContractError,
    SmartCubeError,
    UnknownCubeTypeError,
)
from ..types import CubeData, Envelope, ExecutionLog
from ...utils.logger import get_logger
from ...utils.output_formatter import OutputFormatter
from .cube_base import ExecutionContext
from .cube_registry import CubeHandlerRegistry
from .watchdog import TimeoutWatchdog

logger = get_logger(__name__)


@dataclass
class CubeExecutionResult:
    """Outcome of a single cube; failures travel as values, never as exceptions"""
    success: bool
    output: Optional[Envelope] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    logs: List[ExecutionLog] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


class CubeExecutor:
    """
    Executes one cube against resolved inputs

    AI-backed handlers run under the TimeoutWatchdog with operation id
    "<execution_id>:<cube_id>"; everything else runs inline.
    """

    def __init__(
        self,
        registry: CubeHandlerRegistry,
        watchdog: Optional[TimeoutWatchdog] = None,
        ai_timeout_ms: Optional[int] = None,
    ):
        if ai_timeout_ms is None:
            from ..config import Config
            ai_timeout_ms = Config.AI_TIMEOUT_MS
        self.registry = registry
        self.ai_timeout_ms = ai_timeout_ms
        self.watchdog = watchdog or TimeoutWatchdog(default_budget_ms=ai_timeout_ms)

    def execute(self, cube: CubeData, context: ExecutionContext, inputs: Dict[str, Any]) -> CubeExecutionResult:
        """
        Execute a cube

        Args:
            cube: Cube definition
            context: Run context (used for the execution id)
            inputs: Resolved inputs (config overridden by wired outputs)

        Returns:
            CubeExecutionResult
        """
        cube_id, cube_name, cube_type = cube['id'], cube.get('name', cube['id']), cube.get('type')
        logs: List[ExecutionLog] = []

        def log(message: str, level: str = "info") -> None:
            logs.append(ExecutionLog(cube_id=cube_id, cube_name=cube_name, message=message, level=level))

        log(f"Starting execution of cube: {cube_name} ({cube_type})")
        start = time.monotonic()

        try:
            handler = self.registry.get(cube_type)
            if handler is None:
                raise UnknownCubeTypeError(cube_type)

            missing = [key for key in handler.required_inputs if inputs.get(key) is None]
            if missing:
                raise InputContractError(missing)

            config = cube.get('config') or {}
            if handler.ai_backed:
                raw = self.watchdog.run_with_budget(
                    f"{context.execution_id}:{cube_id}",
                    lambda: handler.execute(inputs, config),
                    budget_ms=self.ai_timeout_ms,
                )
            else:
                raw = handler.execute(inputs, config)

            output = OutputFormatter.format(raw, cube_type)

        except SmartCubeError as e:
            error_type = e.code
            if not isinstance(e, (UnknownCubeTypeError, InputContractError, CubeTimeoutError)):
                error_type = HandlerExecutionError.code
            return self._failure(log, logs, e.message, error_type, cube_type, start)

        except Exception as e:
            logger.error(f"Cube {cube_id} ({cube_type}) raised: {e}", exc_info=True)
            return self._failure(log, logs, str(e), HandlerExecutionError.code, cube_type, start)

        log("Cube execution completed successfully")
        return CubeExecutionResult(
            success=True,
            output=output,
            logs=logs,
            metadata=self._metadata(cube_type, start),
        )

    @staticmethod
    def _metadata(cube_type: str, start: float) -> Dict[str, Any]:
        return {
            'cubeType': cube_type,
            'executionTimeMs': round((time.monotonic() - start) * 1000, 3),
        }

    def _failure(self, log, logs, message: str, error_type: str, cube_type: str, start: float) -> CubeExecutionResult:
        log(f"Cube execution failed: {message}", "error")
        return CubeExecutionResult(
            success=False,
            error=message,
            error_type=error_type,
            logs=logs,
            metadata=self._metadata(cube_type, start),
        )
