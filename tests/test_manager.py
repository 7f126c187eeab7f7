"""
Tests for ExecutionManager: run lifecycle, persistence, ownership and cancellation
"""
import threading

import pytest

from smartcube.core.errors import (
    ExecutionAccessError,
    ExecutionNotFoundError,
    ExecutionStateError,
    WorkflowNotFoundError,
)
from smartcube.core.execution.cube_base import BaseCube
from smartcube.core.execution.cube_executor import CubeExecutor
from smartcube.core.execution.cube_registry import CubeHandlerRegistry
from smartcube.core.execution.cubes import LoaderTextCube
from smartcube.core.execution.manager import ExecutionManager
from smartcube.storage import LocalJSONStorage


class BlockingCube(BaseCube):
    """Blocks until released so a run can be cancelled mid-flight"""
    cube_type = "block"

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def execute(self, inputs, config):
        self.entered.set()
        self.release.wait(5)
        return "unblocked"


class FlakyAnalyticsStorage(LocalJSONStorage):
    def log_event(self, user_id, event_type, metadata=None):
        raise RuntimeError("analytics down")


@pytest.fixture
def saved_workflow(storage, make_cube, make_conn, make_workflow):
    workflow = make_workflow(
        [
            make_cube('load', 'loader-text', {'content': '5'}),
            make_cube('calc', 'math', {'expression': 'x + 1'}),
        ],
        [make_conn('load', 'calc', target_handle='unused')],
    )
    workflow['cubes'][1]['config']['variables'] = {'x': 41}
    return storage.save_workflow(workflow, 'user-1')


def test_start_execution_completes_and_persists(manager, storage, saved_workflow):
    execution_id = manager.start_execution(saved_workflow['id'], 'user-1')

    record = storage.get_execution(execution_id)
    assert record['status'] == 'completed'
    assert record['workflowId'] == saved_workflow['id']
    assert record['userId'] == 'user-1'
    assert record['results']['calc']['data'] == 42
    assert record['endTime'] >= record['startTime']
    assert record['logs'][0]['message'] == "Starting workflow execution with 2 cubes"
    assert record['error'] is None
    assert not manager.is_active(execution_id)


def test_analytics_events_logged(manager, storage, saved_workflow):
    manager.start_execution(saved_workflow['id'], 'user-1')

    event_types = [event['eventType'] for event in storage.get_events()]
    assert event_types == ["workflow_execution_completed", "workflow_execution_started"]


def test_failed_run_records_error(manager, storage, make_cube, make_workflow):
    workflow = storage.save_workflow(make_workflow([make_cube('m', 'math', {'expression': '1/0'})]), 'user-1')

    execution_id = manager.start_execution(workflow['id'], 'user-1')

    record = storage.get_execution(execution_id)
    assert record['status'] == 'failed'
    assert record['error'].startswith("Cube execution failed: Math evaluation failed")
    assert storage.get_events("workflow_execution_failed")


def test_structurally_invalid_workflow_fails(manager, make_workflow):
    record = manager.execute_workflow(make_workflow([]), 'user-1')

    assert record['status'] == 'failed'
    assert record['error'] == "Workflow validation failed: Workflow must contain at least one cube"
    assert record['logs'] == []


def test_execute_inline_workflow(manager, make_cube, make_workflow):
    seen = []
    progress = []

    record = manager.execute_workflow(
        make_workflow([make_cube('m', 'math', {'expression': '2+2'})]),
        'user-1',
        on_log=seen.append,
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert record['status'] == 'completed'
    assert record['workflowId'] == 'inline'
    assert record['results']['m']['data'] == 4
    assert len(seen) == len(record['logs'])
    assert progress == [(1, 1)]


def test_unknown_workflow(manager):
    with pytest.raises(WorkflowNotFoundError):
        manager.start_execution('missing', 'user-1')


def test_workflow_owned_by_someone_else(manager, saved_workflow):
    with pytest.raises(ExecutionAccessError, match="Unauthorized to execute this workflow"):
        manager.start_execution(saved_workflow['id'], 'intruder')


def test_get_execution_checks_ownership(manager, saved_workflow):
    execution_id = manager.start_execution(saved_workflow['id'], 'user-1')

    assert manager.get_execution(execution_id, 'user-1')['executionId'] == execution_id
    with pytest.raises(ExecutionAccessError, match="Unauthorized to view this execution"):
        manager.get_execution(execution_id, 'intruder')
    with pytest.raises(ExecutionNotFoundError):
        manager.get_execution('nope', 'user-1')


def test_list_executions_newest_first(manager, saved_workflow):
    ids = [manager.start_execution(saved_workflow['id'], 'user-1') for _ in range(3)]

    listed = [record['executionId'] for record in manager.list_executions(saved_workflow['id'], 'user-1')]
    assert listed == list(reversed(ids))

    assert len(manager.list_executions(saved_workflow['id'], 'user-1', limit=2)) == 2
    assert manager.list_executions(saved_workflow['id'], 'intruder') == []


def test_cancel_completed_run_rejected(manager, saved_workflow):
    execution_id = manager.start_execution(saved_workflow['id'], 'user-1')

    with pytest.raises(ExecutionStateError, match="Execution is not running"):
        manager.cancel_execution(execution_id, 'user-1')


def test_cancel_running_execution(storage, make_cube, make_conn, make_workflow):
    """Cancellation lands between cubes and the record stays cancelled"""
    blocker = BlockingCube()
    registry = CubeHandlerRegistry({'block': blocker, 'loader-text': LoaderTextCube()})
    manager = ExecutionManager(storage, CubeExecutor(registry, ai_timeout_ms=1000))
    workflow = storage.save_workflow(
        make_workflow(
            [make_cube('slow', 'block'), make_cube('next', 'loader-text', {'content': 'x'})],
            [make_conn('slow', 'next', target_handle='unused')],
        ),
        'user-1',
    )

    execution_id = manager.start_execution(workflow['id'], 'user-1', background=True)
    assert blocker.entered.wait(5)
    assert manager.is_active(execution_id)

    with pytest.raises(ExecutionAccessError):
        manager.cancel_execution(execution_id, 'intruder')

    cancelled = manager.cancel_execution(execution_id, 'user-1')
    assert cancelled['status'] == 'cancelled'

    blocker.release.set()
    assert manager.wait(execution_id, timeout=5)

    record = storage.get_execution(execution_id)
    assert record['status'] == 'cancelled'
    assert set(record['results']) == {'slow'}
    assert record['endTime']
    assert storage.get_events("workflow_execution_cancelled")


def test_analytics_failure_does_not_fail_run(tmp_path, executor, make_cube, make_workflow):
    storage = FlakyAnalyticsStorage(storage_path=str(tmp_path / "flaky"))
    manager = ExecutionManager(storage, executor)

    record = manager.execute_workflow(make_workflow([make_cube('m', 'math', {'expression': '1'})]), 'user-1')

    assert record['status'] == 'completed'


def test_runs_do_not_share_loop_state(manager, make_cube, make_workflow):
    """Each run gets its own loop controller"""
    always = {'value1': 1, 'operator': 'equals', 'value2': 1}
    workflow = make_workflow([make_cube('d', 'decider', always)])

    first = manager.execute_workflow(workflow, 'user-1')
    second = manager.execute_workflow(workflow, 'user-1')

    for record in (first, second):
        messages = [log['message'] for log in record['logs']]
        assert messages.count("Decision is true, starting loop iteration 1") == 1


class CancelRacingStorage(LocalJSONStorage):
    """Issues a cancel from another thread right after the run reads its final record"""

    def __init__(self, storage_path):
        super().__init__(storage_path)
        self.manager = None
        self.armed_thread = None
        self.canceller = None
        self.cancel_outcome = []

    def get_execution(self, execution_id):
        record = super().get_execution(execution_id)
        if self.armed_thread == threading.get_ident():
            self.armed_thread = None
            self.canceller = threading.Thread(target=self._cancel, args=(execution_id,))
            self.canceller.start()
            self.canceller.join(0.3)
        return record

    def _cancel(self, execution_id):
        try:
            self.manager.cancel_execution(execution_id, 'user-1')
            self.cancel_outcome.append('cancelled')
        except ExecutionStateError:
            self.cancel_outcome.append('rejected')


class ArmingCube(BaseCube):
    cube_type = "arm"

    def __init__(self, storage):
        self.storage = storage

    def execute(self, inputs, config):
        self.storage.armed_thread = threading.get_ident()
        return "armed"


def test_cancel_during_finalize_is_not_overwritten(tmp_path, make_cube, make_workflow):
    """A cancel racing the final write either wins or is rejected, never lost"""
    storage = CancelRacingStorage(str(tmp_path / "data"))
    registry = CubeHandlerRegistry({'arm': ArmingCube(storage)})
    manager = ExecutionManager(storage, CubeExecutor(registry, ai_timeout_ms=1000))
    storage.manager = manager
    workflow = storage.save_workflow(make_workflow([make_cube('a', 'arm')]), 'user-1')

    execution_id = manager.start_execution(workflow['id'], 'user-1')
    storage.canceller.join(5)

    assert storage.cancel_outcome == ['rejected']
    assert storage.get_execution(execution_id)['status'] == 'completed'
