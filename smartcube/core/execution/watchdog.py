"""
Timeout Watchdog
Best-effort wall-clock budget enforcement for long-running (AI) calls
"""
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..errors import WatchdogTimeoutError
from ...utils.logger import get_logger

logger = get_logger(__name__)


class OperationStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class WatchdogOperation:
    """A tracked in-flight operation"""
    id: str
    budget_ms: int
    start_time: float = field(default_factory=time.monotonic)
    status: OperationStatus = OperationStatus.RUNNING
    timer: Optional[threading.Timer] = None
    # Set once the operation's fate is decided (work finished or timer fired)
    settled: threading.Event = field(default_factory=threading.Event)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000


class TimeoutWatchdog:
    """
    Monitors named operations with cancellable timers

    This is budget enforcement, not preemption: when the timer fires the
    caller gets a WatchdogTimeoutError, but the work itself keeps running on
    its daemon thread until it finishes on its own. Its result is discarded.
    """

    DEFAULT_BUDGET_MS = 60000

    def __init__(self, default_budget_ms: Optional[int] = None):
        self.default_budget_ms = self.DEFAULT_BUDGET_MS if default_budget_ms is None else default_budget_ms
        self._operations: Dict[str, WatchdogOperation] = {}
        self._lock = threading.Lock()

    def start_operation(
        self,
        operation_id: str,
        budget_ms: Optional[int] = None,
        on_timeout: Optional[Callable[[str], None]] = None,
    ) -> WatchdogOperation:
        """
        Start monitoring an operation

        An operation already tracked under the same id has its timer
        cancelled and is replaced.
        """
        if budget_ms is None:
            budget_ms = self.default_budget_ms
        operation = WatchdogOperation(id=operation_id, budget_ms=budget_ms)
        timer = threading.Timer(budget_ms / 1000.0, self._handle_timeout, args=(operation, on_timeout))
        timer.daemon = True
        operation.timer = timer

        with self._lock:
            existing = self._operations.get(operation_id)
            if existing is not None:
                logger.debug(f"Replacing tracked operation {operation_id}")
                self._cancel_locked(existing)
            self._operations[operation_id] = operation

        timer.start()
        return operation

    def complete_operation(
        self,
        operation_id: str,
        on_complete: Optional[Callable[[str, float], None]] = None,
    ) -> Optional[float]:
        """
        Mark an operation completed and clear its timer

        Returns:
            Duration in milliseconds, or None if the operation is not tracked
        """
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None or operation.status != OperationStatus.RUNNING:
                return None
            self._finish_locked(operation, OperationStatus.COMPLETED)

        duration = operation.elapsed_ms
        if on_complete:
            on_complete(operation_id, duration)
        return duration

    def cancel_operation(self, operation_id: str) -> None:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is not None:
                self._cancel_locked(operation)

    def cancel_all(self) -> None:
        with self._lock:
            for operation in list(self._operations.values()):
                self._cancel_locked(operation)

    def get_operation_status(self, operation_id: str) -> Optional[OperationStatus]:
        operation = self._operations.get(operation_id)
        return operation.status if operation else None

    def get_operation_duration(self, operation_id: str) -> Optional[float]:
        operation = self._operations.get(operation_id)
        return operation.elapsed_ms if operation else None

    def is_operation_running(self, operation_id: str) -> bool:
        return self.get_operation_status(operation_id) == OperationStatus.RUNNING

    def get_running_operations(self) -> List[str]:
        with self._lock:
            return [
                op_id for op_id, op in self._operations.items()
                if op.status == OperationStatus.RUNNING
            ]

    def run_with_budget(
        self,
        operation_id: str,
        work: Callable[[], Any],
        budget_ms: Optional[int] = None,
        on_timeout: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[str, float], None]] = None,
    ) -> Any:
        """
        Run work under a wall-clock budget

        Args:
            operation_id: Name the operation is tracked under
            work: Zero-argument callable
            budget_ms: Budget in milliseconds (default: watchdog default)

        Returns:
            Whatever work returns

        Raises:
            WatchdogTimeoutError: if the timer fires first
            Exception: whatever work raised, if it failed within budget
        """
        operation = self.start_operation(operation_id, budget_ms, on_timeout)
        outcome: Dict[str, Any] = {}

        def _runner():
            try:
                outcome['result'] = work()
            except Exception as e:
                outcome['error'] = e
            finally:
                operation.settled.set()

        worker = threading.Thread(target=_runner, name=f"watchdog-{operation_id}", daemon=True)
        worker.start()
        operation.settled.wait()

        # Decide the outcome against this operation object; the id may have
        # been re-used by a newer operation in the meantime
        with self._lock:
            if operation.status == OperationStatus.RUNNING:
                failed = 'error' in outcome
                self._finish_locked(
                    operation, OperationStatus.CANCELLED if failed else OperationStatus.COMPLETED
                )
            status = operation.status

        if status == OperationStatus.TIMEOUT:
            raise WatchdogTimeoutError(operation_id, operation.budget_ms)

        if 'error' in outcome:
            raise outcome['error']

        if status == OperationStatus.COMPLETED and on_complete:
            on_complete(operation_id, operation.elapsed_ms)
        return outcome.get('result')

    def _handle_timeout(self, operation: WatchdogOperation, on_timeout: Optional[Callable[[str], None]]) -> None:
        with self._lock:
            if operation.status != OperationStatus.RUNNING:
                return
            self._finish_locked(operation, OperationStatus.TIMEOUT)

        logger.warning(f"Operation {operation.id} exceeded its {operation.budget_ms}ms budget")
        operation.settled.set()

        if on_timeout:
            try:
                on_timeout(operation.id)
            except Exception as e:
                logger.error(f"on_timeout callback failed for {operation.id}: {e}")

    def _finish_locked(self, operation: WatchdogOperation, status: OperationStatus) -> None:
        if operation.timer is not None:
            operation.timer.cancel()
        operation.status = status
        if self._operations.get(operation.id) is operation:
            del self._operations[operation.id]

    def _cancel_locked(self, operation: WatchdogOperation) -> None:
        # The waiter (if any) is released when its work finishes
        self._finish_locked(operation, OperationStatus.CANCELLED)
