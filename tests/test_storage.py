"""
Tests for storage backends
"""
import json
import os
from unittest.mock import MagicMock

from smartcube.storage import LocalJSONStorage, SupabaseStorage


def _record(execution_id, workflow_id='wf-1', user_id='user-1', start='2026-01-01T00:00:00+00:00'):
    return {
        'executionId': execution_id,
        'workflowId': workflow_id,
        'userId': user_id,
        'status': 'running',
        'startTime': start,
    }


class TestLocalJSONStorage:
    def test_directories_created_private(self, tmp_path):
        storage = LocalJSONStorage(storage_path=str(tmp_path / "store"))

        for path in (storage.workflows_path, storage.executions_path, storage.analytics_path):
            assert path.is_dir()
            assert oct(os.stat(path).st_mode & 0o777) == oct(0o700)

    def test_save_workflow_assigns_id_and_timestamps(self, storage):
        saved = storage.save_workflow({'name': 'wf', 'cubes': []}, 'user-1')

        assert saved['id']
        assert saved['userId'] == 'user-1'
        assert saved['connections'] == []
        assert saved['createdAt'] and saved['updatedAt']
        assert storage.get_workflow(saved['id']) == saved

    def test_resave_keeps_created_at(self, storage):
        first = storage.save_workflow({'name': 'wf', 'cubes': []}, 'user-1')
        second = storage.save_workflow({**first, 'name': 'renamed'}, 'user-1')

        assert second['id'] == first['id']
        assert second['createdAt'] == first['createdAt']
        assert storage.get_workflow(first['id'])['name'] == 'renamed'

    def test_list_workflows_filters_by_user(self, storage):
        storage.save_workflow({'name': 'mine', 'cubes': []}, 'user-1')
        storage.save_workflow({'name': 'theirs', 'cubes': []}, 'user-2')

        assert [w['name'] for w in storage.list_workflows('user-1')] == ['mine']

    def test_execution_lifecycle(self, storage):
        storage.create_execution(_record('e1'))
        storage.append_execution_log('e1', {'message': 'one'})
        storage.append_execution_log('e1', {'message': 'two'})

        updated = storage.update_execution('e1', {'status': 'completed'})

        assert updated['status'] == 'completed'
        assert [log['message'] for log in storage.get_execution('e1')['logs']] == ['one', 'two']
        assert storage.get_execution('e1')['results'] == {}

    def test_missing_records(self, storage):
        assert storage.get_workflow('nope') is None
        assert storage.get_execution('nope') is None
        assert storage.update_execution('nope', {'status': 'failed'}) is None
        storage.append_execution_log('nope', {'message': 'dropped'})

    def test_ids_cannot_escape_storage(self, storage, tmp_path):
        storage.create_execution(_record('../../escaped'))

        assert not (tmp_path / "escaped.json").exists()
        assert storage.get_execution('escaped')['executionId'] == '../../escaped'

    def test_list_executions_newest_first_with_limit(self, storage):
        storage.create_execution(_record('old', start='2026-01-01T00:00:00+00:00'))
        storage.create_execution(_record('new', start='2026-03-01T00:00:00+00:00'))
        storage.create_execution(_record('mid', start='2026-02-01T00:00:00+00:00'))
        storage.create_execution(_record('other', workflow_id='wf-2'))

        records = storage.list_executions('wf-1', 'user-1')

        assert [r['executionId'] for r in records] == ['new', 'mid', 'old']
        assert len(storage.list_executions('wf-1', 'user-1', limit=1)) == 1

    def test_corrupt_file_reads_as_missing(self, storage):
        (storage.executions_path / "bad.json").write_text("{oops")

        assert storage.get_execution('bad') is None

    def test_events(self, storage):
        storage.log_event('user-1', 'a', {'n': 1})
        storage.log_event('user-1', 'b')

        events = storage.get_events()
        assert [e['eventType'] for e in events] == ['b', 'a']
        assert events[0]['metadata'] == {}
        assert [e['eventType'] for e in storage.get_events('a')] == ['a']
        assert json.loads(storage._get_analytics_file().read_text())[0]['userId'] == 'user-1'


class TestSupabaseStorage:
    """Row mapping against a mocked supabase client"""

    @staticmethod
    def _client(rows):
        client = MagicMock()
        query = client.table.return_value
        for method in ('select', 'eq', 'limit', 'order', 'insert', 'upsert', 'update'):
            getattr(query, method).return_value = query
        query.execute.return_value = MagicMock(data=rows)
        return client, query

    def test_get_workflow_maps_columns(self):
        client, _ = self._client([{
            'id': 'wf-1', 'user_id': 'user-1', 'name': 'wf', 'cubes': [], 'connections': [],
            'created_at': 't0', 'updated_at': 't1',
        }])
        storage = SupabaseStorage('https://x.supabase.co', 'key', client=client)

        workflow = storage.get_workflow('wf-1')

        assert workflow == {
            'id': 'wf-1', 'userId': 'user-1', 'name': 'wf', 'cubes': [], 'connections': [],
            'createdAt': 't0', 'updatedAt': 't1',
        }
        client.table.assert_called_with('workflows')

    def test_get_execution_missing(self):
        client, _ = self._client([])
        storage = SupabaseStorage('url', 'key', client=client)

        assert storage.get_execution('nope') is None

    def test_read_errors_are_logged_not_raised(self):
        client = MagicMock()
        client.table.side_effect = RuntimeError("network down")
        storage = SupabaseStorage('url', 'key', client=client)

        assert storage.get_workflow('wf') is None
        assert storage.list_executions('wf', 'user-1') == []

    def test_create_execution_writes_snake_case_row(self):
        client, query = self._client([])
        storage = SupabaseStorage('url', 'key', client=client)

        stored = storage.create_execution(_record('e1'))

        row = query.insert.call_args.args[0]
        assert row['id'] == 'e1'
        assert row['workflow_id'] == 'wf-1'
        assert row['start_time'] == '2026-01-01T00:00:00+00:00'
        assert stored['results'] == {} and stored['logs'] == []

    def test_update_execution_never_rewrites_id(self):
        client, query = self._client([{'id': 'e1', 'status': 'completed'}])
        storage = SupabaseStorage('url', 'key', client=client)

        updated = storage.update_execution('e1', {'executionId': 'other', 'status': 'completed', 'endTime': 't'})

        assert query.update.call_args.args[0] == {'status': 'completed', 'end_time': 't'}
        assert updated == {'executionId': 'e1', 'status': 'completed'}

    def test_log_event(self):
        client, query = self._client([])
        storage = SupabaseStorage('url', 'key', client=client)

        storage.log_event('user-1', 'workflow_execution_started', {'executionId': 'e1'})

        client.table.assert_called_with('analytics')
        assert query.insert.call_args.args[0] == {
            'user_id': 'user-1',
            'event_type': 'workflow_execution_started',
            'metadata': {'executionId': 'e1'},
        }
