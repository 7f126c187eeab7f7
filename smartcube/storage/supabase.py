"""
Supabase storage for prod mode
Tables: workflows, executions, analytics (snake_case columns)
"""
import uuid
from typing import Dict, Any, List, Optional

from supabase import create_client, Client

from ..core.types import ExecutionRecord, WorkflowData, utc_now_iso
from ..utils.logger import get_logger
from .base import StorageInterface

logger = get_logger(__name__)

# record key -> column
_WORKFLOW_COLUMNS = {
    'id': 'id',
    'userId': 'user_id',
    'name': 'name',
    'description': 'description',
    'cubes': 'cubes',
    'connections': 'connections',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

_EXECUTION_COLUMNS = {
    'executionId': 'id',
    'workflowId': 'workflow_id',
    'userId': 'user_id',
    'status': 'status',
    'startTime': 'start_time',
    'endTime': 'end_time',
    'results': 'results',
    'logs': 'logs',
    'error': 'error',
}


def _to_row(record: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    return {columns[key]: value for key, value in record.items() if key in columns}


def _from_row(row: Optional[Dict[str, Any]], columns: Dict[str, str]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {key: row.get(column) for key, column in columns.items() if column in row}


class SupabaseStorage(StorageInterface):
    """Supabase storage for prod mode"""

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        """
        Initialize Supabase storage

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key
            client: Pre-built client (skips create_client)
        """
        self.client: Client = client or create_client(supabase_url, supabase_key)

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def get_workflow(self, workflow_id: str) -> Optional[WorkflowData]:
        try:
            result = self.client.table('workflows').select('*').eq('id', workflow_id).limit(1).execute()
            return _from_row(result.data[0], _WORKFLOW_COLUMNS) if result.data else None
        except Exception as e:
            logger.error(f"Error getting workflow {workflow_id}: {e}")
            return None

    def save_workflow(self, workflow: WorkflowData, user_id: str) -> WorkflowData:
        now = utc_now_iso()
        record = {
            **workflow,
            'id': workflow.get('id') or str(uuid.uuid4()),
            'userId': user_id,
            'connections': workflow.get('connections') or [],
            'updatedAt': now,
        }
        record.setdefault('createdAt', now)

        result = self.client.table('workflows').upsert(_to_row(record, _WORKFLOW_COLUMNS)).execute()
        if result.data:
            return _from_row(result.data[0], _WORKFLOW_COLUMNS)
        return record

    def list_workflows(self, user_id: str) -> List[WorkflowData]:
        try:
            result = (
                self.client.table('workflows').select('*')
                .eq('user_id', user_id)
                .order('updated_at', desc=True)
                .execute()
            )
            return [_from_row(row, _WORKFLOW_COLUMNS) for row in result.data or []]
        except Exception as e:
            logger.error(f"Error listing workflows for {user_id}: {e}")
            return []

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    def create_execution(self, record: ExecutionRecord) -> ExecutionRecord:
        stored = {'results': {}, 'logs': [], **record}
        result = self.client.table('executions').insert(_to_row(stored, _EXECUTION_COLUMNS)).execute()
        if result.data:
            return _from_row(result.data[0], _EXECUTION_COLUMNS)
        return stored

    def append_execution_log(self, execution_id: str, log: Dict[str, Any]) -> None:
        # Read-modify-write; each execution has a single writer
        record = self.get_execution(execution_id)
        if record is None:
            logger.warning(f"Cannot append log: execution {execution_id} not found")
            return
        logs = list(record.get('logs') or [])
        logs.append(log)
        self.client.table('executions').update({'logs': logs}).eq('id', execution_id).execute()

    def update_execution(self, execution_id: str, updates: Dict[str, Any]) -> Optional[ExecutionRecord]:
        row = _to_row(updates, _EXECUTION_COLUMNS)
        row.pop('id', None)
        result = self.client.table('executions').update(row).eq('id', execution_id).execute()
        return _from_row(result.data[0], _EXECUTION_COLUMNS) if result.data else None

    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        try:
            result = self.client.table('executions').select('*').eq('id', execution_id).limit(1).execute()
            return _from_row(result.data[0], _EXECUTION_COLUMNS) if result.data else None
        except Exception as e:
            logger.error(f"Error getting execution {execution_id}: {e}")
            return None

    def list_executions(self, workflow_id: str, user_id: str, limit: int = 20) -> List[ExecutionRecord]:
        try:
            result = (
                self.client.table('executions').select('*')
                .eq('workflow_id', workflow_id)
                .eq('user_id', user_id)
                .order('start_time', desc=True)
                .limit(limit)
                .execute()
            )
            return [_from_row(row, _EXECUTION_COLUMNS) for row in result.data or []]
        except Exception as e:
            logger.error(f"Error listing executions for workflow {workflow_id}: {e}")
            return []

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def log_event(self, user_id: str, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.client.table('analytics').insert({
            'user_id': user_id,
            'event_type': event_type,
            'metadata': metadata or {},
        }).execute()
