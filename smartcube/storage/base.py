"""
Abstract storage interface for SmartCube Core
Supports both solo mode (local JSON) and prod mode (Supabase)
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from ..core.types import ExecutionRecord, WorkflowData


class StorageInterface(ABC):
    """Persistence sink for workflows, execution records and analytics"""

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> Optional[WorkflowData]:
        """Get a workflow by id, or None if it does not exist"""
        pass

    @abstractmethod
    def save_workflow(self, workflow: WorkflowData, user_id: str) -> WorkflowData:
        """
        Create or update a workflow

        Assigns an id when missing, stamps userId/createdAt/updatedAt.

        Returns:
            The stored workflow
        """
        pass

    @abstractmethod
    def list_workflows(self, user_id: str) -> List[WorkflowData]:
        """User's workflows, most recently updated first"""
        pass

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    @abstractmethod
    def create_execution(self, record: ExecutionRecord) -> ExecutionRecord:
        """Store a new execution record (record['executionId'] is the key)"""
        pass

    @abstractmethod
    def append_execution_log(self, execution_id: str, log: Dict[str, Any]) -> None:
        """Append a single log entry (wire format) to an execution"""
        pass

    @abstractmethod
    def update_execution(self, execution_id: str, updates: Dict[str, Any]) -> Optional[ExecutionRecord]:
        """Merge updates into an execution record; None if it does not exist"""
        pass

    @abstractmethod
    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        pass

    @abstractmethod
    def list_executions(self, workflow_id: str, user_id: str, limit: int = 20) -> List[ExecutionRecord]:
        """
        Executions of a workflow by a user

        Returns:
            At most `limit` records, newest startTime first
        """
        pass

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    @abstractmethod
    def log_event(self, user_id: str, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Record an analytics event (e.g. workflow_execution_started)"""
        pass
