"""
Tests for the click CLI
"""
import json

import pytest
from click.testing import CliRunner

from smartcube.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workflow_file(tmp_path, make_cube):
    path = tmp_path / "sum.json"
    path.write_text(json.dumps({'cubes': [make_cube('m', 'math', {'expression': '2+2'})]}))
    return path


def test_validate_valid(runner, workflow_file):
    result = runner.invoke(cli, ['validate', str(workflow_file)])

    assert result.exit_code == 0
    assert "is valid" in result.output
    assert "Execution order: m" in result.output


def test_validate_invalid(runner, tmp_path, make_cube, make_conn):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({
        'name': 'broken',
        'cubes': [make_cube('a', 'math')],
        'connections': [make_conn('a', 'ghost')],
    }))

    result = runner.invoke(cli, ['validate', str(path)])

    assert result.exit_code == 1
    assert "non-existent target cube: ghost" in result.output


def test_validate_rejects_bad_json(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{nope")

    result = runner.invoke(cli, ['validate', str(path)])

    assert result.exit_code != 0
    assert "not valid JSON" in result.output


def test_run_workflow(runner, workflow_file, tmp_path):
    result = runner.invoke(cli, [
        'run', str(workflow_file),
        '--storage-path', str(tmp_path / "data"),
        '--uploads-path', str(tmp_path / "uploads"),
    ])

    assert result.exit_code == 0, result.output
    assert "completed" in result.output
    assert "Workflow execution completed successfully" in result.output


def test_run_failing_workflow_exits_nonzero(runner, tmp_path, make_cube):
    path = tmp_path / "fail.json"
    path.write_text(json.dumps({'name': 'fail', 'cubes': [make_cube('m', 'math', {'expression': '1/0'})]}))

    result = runner.invoke(cli, ['run', str(path), '--storage-path', str(tmp_path / "data")])

    assert result.exit_code == 1
    assert "failed" in result.output


def test_cube_types(runner, tmp_path):
    result = runner.invoke(cli, ['cube-types'])

    assert result.exit_code == 0
    assert "decider" in result.output
    assert "saver-table" in result.output
