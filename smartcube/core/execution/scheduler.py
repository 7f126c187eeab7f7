"""
Scheduler
Sequential workflow execution with decider-driven loop-back
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import StructuralValidationError
from ..types import (
    CubeData,
    CubeID,
    CubeType,
    DEFAULT_INPUT_HANDLE,
    ExecutionLog,
    ExecutionStatus,
    LogLevel,
    WorkflowData,
)
from ...utils.logger import get_logger
from .cube_base import ExecutionContext
from .cube_executor import CubeExecutor
from .validator import WorkflowValidator

logger = get_logger(__name__)

SYSTEM_ID = "system"
SYSTEM_NAME = "System"


@dataclass
class SchedulerResult:
    success: bool
    status: ExecutionStatus
    results: Dict[CubeID, Dict[str, Any]] = field(default_factory=dict)
    logs: List[ExecutionLog] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'success': self.success,
            'status': self.status.value,
            'results': self.results,
            'logs': [log.to_dict() for log in self.logs],
        }
        if self.error is not None:
            result['error'] = self.error
        return result


class Scheduler:
    """
    Executes a workflow one cube at a time in topological order

    Features:
    - Structural validation before anything runs
    - Inputs resolved from config plus upstream envelopes
    - Abort on first failing cube, keeping partial results
    - Loop-back: a True decision restarts the whole order, bounded by the
      run's LoopController
    - Cooperative cancellation checked between cubes

    Progress is reported as (completed, total) where completed keeps counting
    across restarts, so completed may exceed total on looping runs.
    """

    def __init__(self, executor: CubeExecutor):
        self.executor = executor

    def execute(self, workflow: WorkflowData, context: ExecutionContext) -> SchedulerResult:
        """
        Execute a workflow

        Args:
            workflow: Workflow graph
            context: Fresh per-run context (owns outputs, logs, loop controller)

        Returns:
            SchedulerResult with terminal status
        """
        validation = WorkflowValidator.validate(workflow)
        if not validation.valid:
            # Structural failures return before any observer or cube runs
            error = StructuralValidationError(validation.errors).message
            logger.warning(f"Rejected workflow {context.workflow_id or workflow.get('id', 'unknown')}: {error}")
            return SchedulerResult(success=False, status=ExecutionStatus.FAILED, error=error)

        cubes: List[CubeData] = workflow['cubes']
        connections = workflow.get('connections') or []
        cubes_by_id = {cube['id']: cube for cube in cubes}
        order = WorkflowValidator.get_execution_order(cubes, connections)
        total = len(order)
        completed = 0

        self._log(context, SYSTEM_ID, SYSTEM_NAME, f"Starting workflow execution with {total} cubes")

        cursor = 0
        while cursor < total:
            if context.cancel_requested:
                return self._cancelled(context)

            cube = cubes_by_id[order[cursor]]
            cube_name = cube.get('name', cube['id'])
            iteration = context.loop_controller.get_current_iteration()
            self._log(context, cube['id'], cube_name, f"Executing cube (iteration {iteration})")

            inputs = self.resolve_inputs(cube, connections, context)
            result = self.executor.execute(cube, context, inputs)

            for entry in result.logs:
                self._emit(context, entry)

            if not result.success:
                return self._failed(context, f"Cube execution failed: {result.error}")

            context.outputs[cube['id']] = result.output
            completed += 1
            self._report_progress(context, completed, total)

            if self._should_loop(cube, result.output):
                loop_controller = context.loop_controller
                if loop_controller.can_loop():
                    iteration = loop_controller.increment_iteration()
                    self._log(context, cube['id'], cube_name, f"Decision is true, starting loop iteration {iteration}")
                    cursor = 0
                    continue

                self._log(
                    context,
                    cube['id'],
                    cube_name,
                    f"Decision is true but max iterations ({loop_controller.MAX_ITERATIONS}) reached, continuing",
                    "warning",
                )

            cursor += 1

        self._log(context, SYSTEM_ID, SYSTEM_NAME, "Workflow execution completed successfully")
        return SchedulerResult(
            success=True,
            status=ExecutionStatus.COMPLETED,
            results=context.results_dict(),
            logs=list(context.logs),
        )

    @staticmethod
    def resolve_inputs(cube: CubeData, connections, context: ExecutionContext) -> Dict[str, Any]:
        """
        Cube config overridden by upstream outputs

        Each incoming connection contributes its source envelope's data under
        targetHandle (default "input"). When sourceHandle names a key of a
        mapping payload, only that entry is propagated. Sources that have not
        produced output yet are skipped.
        """
        inputs: Dict[str, Any] = {}
        for conn in connections:
            if conn.get('targetId') != cube['id']:
                continue

            envelope = context.outputs.get(conn.get('sourceId'))
            if envelope is None:
                continue

            value = envelope.data
            source_handle = conn.get('sourceHandle')
            if source_handle and isinstance(value, dict) and source_handle in value:
                value = value[source_handle]

            inputs[conn.get('targetHandle') or DEFAULT_INPUT_HANDLE] = value

        return {**(cube.get('config') or {}), **inputs}

    @staticmethod
    def _should_loop(cube: CubeData, output) -> bool:
        if cube.get('type') != CubeType.DECIDER.value or output is None:
            return False
        data = output.data
        return isinstance(data, dict) and data.get('decision') is True

    def _failed(self, context: ExecutionContext, reason: str) -> SchedulerResult:
        self._log(context, SYSTEM_ID, SYSTEM_NAME, f"Workflow execution failed: {reason}", "error")
        return SchedulerResult(
            success=False,
            status=ExecutionStatus.FAILED,
            results=context.results_dict(),
            logs=list(context.logs),
            error=reason,
        )

    def _cancelled(self, context: ExecutionContext) -> SchedulerResult:
        reason = "Execution cancelled"
        self._log(context, SYSTEM_ID, SYSTEM_NAME, reason, "warning")
        return SchedulerResult(
            success=False,
            status=ExecutionStatus.CANCELLED,
            results=context.results_dict(),
            logs=list(context.logs),
            error=reason,
        )

    def _log(self, context: ExecutionContext, cube_id: str, cube_name: str, message: str,
             level: LogLevel = "info") -> None:
        self._emit(context, ExecutionLog(cube_id=cube_id, cube_name=cube_name, message=message, level=level))

    @staticmethod
    def _emit(context: ExecutionContext, entry: ExecutionLog) -> None:
        context.logs.append(entry)

        log_fn = {"warning": logger.warning, "error": logger.error}.get(entry.level, logger.debug)
        log_fn(f"[{context.execution_id or 'run'}] {entry.cube_name}: {entry.message}")

        if context.on_log:
            try:
                context.on_log(entry)
            except Exception as e:
                logger.error(f"on_log observer failed: {e}")

    @staticmethod
    def _report_progress(context: ExecutionContext, completed: int, total: int) -> None:
        if context.on_progress:
            try:
                context.on_progress(completed, total)
            except Exception as e:
                logger.error(f"on_progress observer failed: {e}")
