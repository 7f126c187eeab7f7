"""
Shared fixtures for SmartCube Core tests
"""
from unittest.mock import MagicMock

import pytest

from smartcube.ai.client import AIResponse, ImageResponse
from smartcube.core.execution.cube_base import ExecutionContext
from smartcube.core.execution.cube_executor import CubeExecutor
from smartcube.core.execution.cube_registry import build_default_registry
from smartcube.core.execution.manager import ExecutionManager
from smartcube.storage import LocalJSONStorage


@pytest.fixture
def storage(tmp_path):
    """Isolated local JSON storage"""
    return LocalJSONStorage(storage_path=str(tmp_path / "data"))


@pytest.fixture
def uploads_path(tmp_path):
    return str(tmp_path / "uploads")


@pytest.fixture
def ai_client():
    """AI provider stand-in returning canned responses"""
    client = MagicMock()
    client.generate_text.return_value = AIResponse(text="generated text", model="test-model", provider="openrouter")
    client.generate_image.return_value = ImageResponse(url="https://img.example/1.png", model="dall-e-3", provider="azure")
    return client


@pytest.fixture
def registry(ai_client, uploads_path):
    return build_default_registry(ai_client=ai_client, uploads_path=uploads_path)


@pytest.fixture
def executor(registry):
    return CubeExecutor(registry, ai_timeout_ms=2000)


@pytest.fixture
def manager(storage, executor):
    return ExecutionManager(storage, executor)


@pytest.fixture
def context():
    return ExecutionContext(workflow_id="wf-test", execution_id="exec-test", user_id="user-1")


@pytest.fixture
def make_cube():
    """Build a cube dict"""
    def _make(cube_id, cube_type, config=None, name=None):
        return {
            'id': cube_id,
            'type': cube_type,
            'name': name or cube_id,
            'config': config or {},
            'position': {'x': 0, 'y': 0},
        }
    return _make


@pytest.fixture
def make_conn():
    """Build a connection dict"""
    def _make(source_id, target_id, target_handle=None, source_handle=None, conn_id=None):
        conn = {
            'id': conn_id or f"{source_id}->{target_id}",
            'sourceId': source_id,
            'targetId': target_id,
        }
        if target_handle:
            conn['targetHandle'] = target_handle
        if source_handle:
            conn['sourceHandle'] = source_handle
        return conn
    return _make


@pytest.fixture
def make_workflow():
    def _make(cubes, connections=None, name="Test Workflow", workflow_id=None):
        workflow = {'name': name, 'cubes': cubes, 'connections': connections or []}
        if workflow_id:
            workflow['id'] = workflow_id
        return workflow
    return _make
