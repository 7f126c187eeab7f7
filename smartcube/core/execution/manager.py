"""
Execution Manager
Run lifecycle on top of the Scheduler: persistence, ownership, analytics, cancellation
"""
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..errors import (
    ExecutionAccessError,
    ExecutionNotFoundError,
    ExecutionStateError,
    WorkflowNotFoundError,
)
from ..types import ExecutionLog, ExecutionRecord, ExecutionStatus, WorkflowData, utc_now_iso
from ...storage.base import StorageInterface
from ...utils.logger import get_logger
from .cube_base import ExecutionContext
from .cube_executor import CubeExecutor
from .loop_controller import LoopController
from .scheduler import Scheduler, SchedulerResult

logger = get_logger(__name__)

INLINE_WORKFLOW_ID = "inline"


class ExecutionManager:
    """
    Starts, tracks and finalizes workflow runs

    Each run gets a fresh ExecutionContext and LoopController. Runs execute
    inline or on a daemon thread; the registry of active runs is guarded by
    a lock. Analytics and per-log persistence failures never fail a run.
    """

    def __init__(self, storage: StorageInterface, executor: CubeExecutor):
        self.storage = storage
        self.executor = executor
        self._active: Dict[str, ExecutionContext] = {}
        self._threads: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Starting runs
    # ------------------------------------------------------------------

    def start_execution(
        self,
        workflow_id: str,
        user_id: str,
        background: bool = False,
        on_log: Optional[Callable[[ExecutionLog], None]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> str:
        """
        Start a run of a stored workflow

        Args:
            workflow_id: Stored workflow id
            user_id: Requesting user; must own the workflow
            background: Run on a daemon thread and return immediately

        Returns:
            Execution id

        Raises:
            WorkflowNotFoundError: workflow does not exist
            ExecutionAccessError: user does not own the workflow
        """
        workflow = self.storage.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        if workflow.get('userId') != user_id:
            raise ExecutionAccessError("Unauthorized to execute this workflow")

        return self._launch(workflow, workflow_id, user_id, background, on_log, on_progress)

    def execute_workflow(
        self,
        workflow: WorkflowData,
        user_id: str,
        on_log: Optional[Callable[[ExecutionLog], None]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> ExecutionRecord:
        """
        Run an inline workflow payload to completion

        Returns:
            The finalized execution record
        """
        workflow_id = workflow.get('id') or INLINE_WORKFLOW_ID
        execution_id = self._launch(workflow, workflow_id, user_id, False, on_log, on_progress)
        return self.storage.get_execution(execution_id)

    def _launch(self, workflow, workflow_id, user_id, background, on_log, on_progress) -> str:
        execution_id = str(uuid.uuid4())
        record: ExecutionRecord = {
            'executionId': execution_id,
            'workflowId': workflow_id,
            'userId': user_id,
            'status': ExecutionStatus.RUNNING.value,
            'startTime': utc_now_iso(),
            'results': {},
            'logs': [],
        }
        self.storage.create_execution(record)

        context = ExecutionContext(
            workflow_id=workflow_id,
            execution_id=execution_id,
            user_id=user_id,
            loop_controller=LoopController(),
            on_log=self._log_sink(execution_id, on_log),
            on_progress=on_progress,
        )
        with self._lock:
            self._active[execution_id] = context

        self._log_event(user_id, "workflow_execution_started", {
            'workflowId': workflow_id,
            'executionId': execution_id,
        })
        logger.info(f"Execution {execution_id} started for workflow {workflow_id}")

        if background:
            thread = threading.Thread(
                target=self._run,
                args=(workflow, context),
                name=f"execution-{execution_id}",
                daemon=True,
            )
            with self._lock:
                self._threads[execution_id] = thread
            thread.start()
        else:
            self._run(workflow, context)

        return execution_id

    def _log_sink(self, execution_id: str, on_log: Optional[Callable[[ExecutionLog], None]]):
        def sink(entry: ExecutionLog) -> None:
            try:
                self.storage.append_execution_log(execution_id, entry.to_dict())
            except Exception as e:
                logger.error(f"Failed to persist log for execution {execution_id}: {e}")
            if on_log:
                on_log(entry)
        return sink

    def _run(self, workflow: WorkflowData, context: ExecutionContext) -> None:
        execution_id = context.execution_id
        try:
            result = Scheduler(self.executor).execute(workflow, context)
        except Exception as e:
            logger.error(f"Execution {execution_id} crashed: {e}", exc_info=True)
            result = SchedulerResult(
                success=False,
                status=ExecutionStatus.FAILED,
                results=context.results_dict(),
                logs=list(context.logs),
                error=str(e),
            )

        try:
            self._finalize(context, result)
        finally:
            with self._lock:
                self._active.pop(execution_id, None)
                self._threads.pop(execution_id, None)

    def _finalize(self, context: ExecutionContext, result: SchedulerResult) -> None:
        execution_id = context.execution_id

        # Read and write under the lock cancel_execution holds
        with self._lock:
            current = self.storage.get_execution(execution_id) or {}

            # A run cancelled while its last cube was in flight stays cancelled
            already_cancelled = current.get('status') == ExecutionStatus.CANCELLED.value
            status = ExecutionStatus.CANCELLED if already_cancelled else result.status

            updates: Dict[str, Any] = {
                'status': status.value,
                'results': result.results,
                'logs': [log.to_dict() for log in result.logs],
                'error': result.error,
            }
            if not already_cancelled:
                updates['endTime'] = utc_now_iso()
            self.storage.update_execution(execution_id, updates)

        if not already_cancelled:
            event_type = {
                ExecutionStatus.COMPLETED: "workflow_execution_completed",
                ExecutionStatus.CANCELLED: "workflow_execution_cancelled",
            }.get(status, "workflow_execution_failed")
            self._log_event(context.user_id, event_type, {
                'workflowId': context.workflow_id,
                'executionId': execution_id,
                'error': result.error,
            })

        logger.info(f"Execution {execution_id} finished with status {status.value}")

    # ------------------------------------------------------------------
    # Queries and control
    # ------------------------------------------------------------------

    def cancel_execution(self, execution_id: str, user_id: str) -> ExecutionRecord:
        """
        Cancel a running execution

        The record is marked cancelled immediately; the scheduler stops
        before its next cube.

        Raises:
            ExecutionNotFoundError, ExecutionAccessError, ExecutionStateError
        """
        with self._lock:
            execution = self._get_owned(execution_id, user_id, "cancel")

            if execution.get('status') != ExecutionStatus.RUNNING.value:
                raise ExecutionStateError("Execution is not running")

            context = self._active.get(execution_id)
            if context is not None:
                context.cancel_event.set()

            updated = self.storage.update_execution(execution_id, {
                'status': ExecutionStatus.CANCELLED.value,
                'endTime': utc_now_iso(),
            })
        self._log_event(user_id, "workflow_execution_cancelled", {'executionId': execution_id})
        logger.info(f"Execution {execution_id} cancelled by {user_id}")
        return updated or execution

    def get_execution(self, execution_id: str, user_id: str) -> ExecutionRecord:
        return self._get_owned(execution_id, user_id, "view")

    def list_executions(self, workflow_id: str, user_id: str, limit: int = 20) -> List[ExecutionRecord]:
        """User's executions of a workflow, newest first"""
        return self.storage.list_executions(workflow_id, user_id, limit)

    def is_active(self, execution_id: str) -> bool:
        with self._lock:
            return execution_id in self._active

    def wait(self, execution_id: str, timeout: Optional[float] = None) -> bool:
        """Block until a background run finishes; True if it is no longer running"""
        with self._lock:
            thread = self._threads.get(execution_id)
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def _get_owned(self, execution_id: str, user_id: str, action: str) -> ExecutionRecord:
        execution = self.storage.get_execution(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        if execution.get('userId') != user_id:
            raise ExecutionAccessError(f"Unauthorized to {action} this execution")
        return execution

    def _log_event(self, user_id: str, event_type: str, metadata: Dict[str, Any]) -> None:
        try:
            self.storage.log_event(user_id, event_type, metadata)
        except Exception as e:
            logger.error(f"Failed to log analytics event {event_type}: {e}")
