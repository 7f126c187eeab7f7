"""
Local JSON storage for solo mode
Stores data in ~/.smartcube/data/ as JSON files
Only accessible to the local user
"""
import json
import os
import threading
import uuid
from pathlib import Path
from typing import Dict, Any, List, Optional

from ..core.types import ExecutionRecord, WorkflowData, utc_now_iso
from ..utils.logger import get_logger
from .base import StorageInterface

logger = get_logger(__name__)


class LocalJSONStorage(StorageInterface):
    """Local JSON file storage for solo mode"""

    def __init__(self, storage_path: Optional[str] = None):
        """
        Initialize local JSON storage

        Args:
            storage_path: Base path for storage (default: ~/.smartcube/data/)
        """
        if storage_path is None:
            self.base_path = Path.home() / ".smartcube" / "data"
        else:
            self.base_path = Path(storage_path).expanduser()

        self.workflows_path = self.base_path / "workflows"
        self.executions_path = self.base_path / "executions"
        self.analytics_path = self.base_path / "analytics"

        for path in [self.base_path, self.workflows_path, self.executions_path, self.analytics_path]:
            path.mkdir(parents=True, exist_ok=True)
            # Set file permissions (user only)
            os.chmod(path, 0o700)

        # Background runs append logs while API requests read records
        self._lock = threading.RLock()

    def _get_workflow_file(self, workflow_id: str) -> Path:
        return self.workflows_path / f"{Path(workflow_id).name}.json"

    def _get_execution_file(self, execution_id: str) -> Path:
        return self.executions_path / f"{Path(execution_id).name}.json"

    def _get_analytics_file(self) -> Path:
        return self.analytics_path / "events.json"

    def _read(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            return None

    def _write(self, path: Path, data: Any) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2, default=str)
        os.replace(tmp_path, path)
        os.chmod(path, 0o600)  # User read/write only

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def get_workflow(self, workflow_id: str) -> Optional[WorkflowData]:
        with self._lock:
            return self._read(self._get_workflow_file(workflow_id))

    def save_workflow(self, workflow: WorkflowData, user_id: str) -> WorkflowData:
        now = utc_now_iso()
        with self._lock:
            workflow_id = workflow.get('id') or str(uuid.uuid4())
            existing = self._read(self._get_workflow_file(workflow_id)) or {}

            stored = {
                **workflow,
                'id': workflow_id,
                'userId': user_id,
                'connections': workflow.get('connections') or [],
                'createdAt': existing.get('createdAt') or workflow.get('createdAt') or now,
                'updatedAt': now,
            }
            self._write(self._get_workflow_file(workflow_id), stored)

        logger.debug(f"Saved workflow {workflow_id} for user {user_id}")
        return stored

    def list_workflows(self, user_id: str) -> List[WorkflowData]:
        workflows = []
        with self._lock:
            for path in self.workflows_path.glob("*.json"):
                workflow = self._read(path)
                if workflow and workflow.get('userId') == user_id:
                    workflows.append(workflow)
        return sorted(workflows, key=lambda w: w.get('updatedAt', ''), reverse=True)

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    def create_execution(self, record: ExecutionRecord) -> ExecutionRecord:
        stored = {'results': {}, 'logs': [], **record}
        with self._lock:
            self._write(self._get_execution_file(record['executionId']), stored)
        return stored

    def append_execution_log(self, execution_id: str, log: Dict[str, Any]) -> None:
        with self._lock:
            path = self._get_execution_file(execution_id)
            record = self._read(path)
            if record is None:
                logger.warning(f"Cannot append log: execution {execution_id} not found")
                return
            record.setdefault('logs', []).append(log)
            self._write(path, record)

    def update_execution(self, execution_id: str, updates: Dict[str, Any]) -> Optional[ExecutionRecord]:
        with self._lock:
            path = self._get_execution_file(execution_id)
            record = self._read(path)
            if record is None:
                return None
            record.update(updates)
            self._write(path, record)
            return record

    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        with self._lock:
            return self._read(self._get_execution_file(execution_id))

    def list_executions(self, workflow_id: str, user_id: str, limit: int = 20) -> List[ExecutionRecord]:
        records = []
        with self._lock:
            for path in self.executions_path.glob("*.json"):
                record = self._read(path)
                if record and record.get('workflowId') == workflow_id and record.get('userId') == user_id:
                    records.append(record)
        records.sort(key=lambda r: r.get('startTime', ''), reverse=True)
        return records[:limit]

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def log_event(self, user_id: str, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        event = {
            'id': str(uuid.uuid4()),
            'userId': user_id,
            'eventType': event_type,
            'metadata': metadata or {},
            'timestamp': utc_now_iso(),
        }
        with self._lock:
            path = self._get_analytics_file()
            events = self._read(path) or []
            events.append(event)
            self._write(path, events)

    def get_events(self, event_type: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """Analytics events, most recent first"""
        with self._lock:
            events = self._read(self._get_analytics_file()) or []
        if event_type:
            events = [e for e in events if e.get('eventType') == event_type]
        return list(reversed(events))[:limit]
