"""
Tests for the Scheduler: ordering, data propagation, loop-back, failure and cancellation
"""
from unittest.mock import MagicMock

import pytest

from smartcube.core.execution.cube_base import BaseCube, ExecutionContext
from smartcube.core.execution.cube_executor import CubeExecutor
from smartcube.core.execution.cube_registry import CubeHandlerRegistry
from smartcube.core.execution.cubes import DeciderCube, LoaderTextCube
from smartcube.core.execution.scheduler import Scheduler
from smartcube.core.types import ExecutionStatus


class CountingCube(BaseCube):
    """Echoes its input and counts invocations"""
    cube_type = "count"

    def __init__(self):
        self.calls = 0

    def execute(self, inputs, config):
        self.calls += 1
        return inputs.get('input', self.calls)


@pytest.fixture
def scheduler(executor):
    return Scheduler(executor)


def _messages(result):
    return [log.message for log in result.logs]


def test_loader_feeds_decider_and_loop_is_bounded(scheduler, context, make_cube, make_conn, make_workflow):
    """Loader "5" wired to value1 of a "greater than 3" decider"""
    workflow = make_workflow(
        [
            make_cube('load', 'loader-text', {'content': '5'}, name='Loader'),
            make_cube('decide', 'decider', {'operator': 'greater', 'value2': 3}, name='Decider'),
        ],
        [make_conn('load', 'decide', target_handle='value1')],
    )

    result = scheduler.execute(workflow, context)

    assert result.success is True
    assert result.status == ExecutionStatus.COMPLETED
    assert result.results['load']['data'] == '5'
    assert result.results['decide']['data'] == {'decision': True}
    assert result.results['decide']['type'] == 'json'

    messages = _messages(result)
    assert "Decision is true, starting loop iteration 1" in messages
    assert "Decision is true, starting loop iteration 2" in messages
    assert "Decision is true but max iterations (2) reached, continuing" in messages
    assert messages[-1] == "Workflow execution completed successfully"


def test_math_only_workflow(scheduler, context, make_cube, make_workflow):
    result = scheduler.execute(make_workflow([make_cube('m', 'math', {'expression': '2+2'})]), context)

    assert result.success is True
    assert result.results['m']['data'] == 4
    assert result.results['m']['type'] == 'number'
    assert result.results['m']['success'] is True
    assert _messages(result)[0] == "Starting workflow execution with 1 cubes"


def test_two_true_deciders_restart_exactly_twice(scheduler, make_cube, make_workflow):
    """The first decider restarts twice then hits the ceiling; the second continues"""
    always = {'value1': 1, 'operator': 'equals', 'value2': 1}
    workflow = make_workflow([
        make_cube('d1', 'decider', always, name='D1'),
        make_cube('d2', 'decider', always, name='D2'),
    ])
    progress = []
    context = ExecutionContext(execution_id="loop", on_progress=lambda done, total: progress.append((done, total)))

    result = scheduler.execute(workflow, context)

    assert result.success is True
    messages = _messages(result)
    assert sum(m.startswith("Decision is true, starting loop iteration") for m in messages) == 2
    assert messages.count("Decision is true but max iterations (2) reached, continuing") == 2
    assert context.loop_controller.get_current_iteration() == 2
    # d1 runs three times, d2 once
    assert progress == [(1, 2), (2, 2), (3, 2), (4, 2)]


def test_iteration_is_logged_before_each_cube(scheduler, context, make_cube, make_workflow):
    always = {'value1': 'x', 'operator': 'equals', 'value2': 'x'}
    result = scheduler.execute(make_workflow([make_cube('d', 'decider', always)]), context)

    executing = [m for m in _messages(result) if m.startswith("Executing cube")]
    assert executing == [
        "Executing cube (iteration 0)",
        "Executing cube (iteration 1)",
        "Executing cube (iteration 2)",
    ]


def test_false_decision_does_not_loop(scheduler, context, make_cube, make_workflow):
    never = {'value1': 1, 'operator': 'equals', 'value2': 2}
    result = scheduler.execute(make_workflow([make_cube('d', 'decider', never)]), context)

    assert result.results['d']['data'] == {'decision': False}
    assert not any("Decision is true" in m for m in _messages(result))


def test_failure_keeps_partial_results(scheduler, context, make_cube, make_conn, make_workflow):
    workflow = make_workflow(
        [
            make_cube('load', 'loader-text', {'content': 'hello'}),
            make_cube('broken', 'math', {'expression': '2 +'}),
            make_cube('after', 'loader-text', {'content': 'never'}),
        ],
        [make_conn('load', 'broken'), make_conn('broken', 'after')],
    )

    result = scheduler.execute(workflow, context)

    assert result.success is False
    assert result.status == ExecutionStatus.FAILED
    assert result.error.startswith("Cube execution failed: Invalid expression syntax")
    assert set(result.results) == {'load'}
    assert result.logs[-1].level == "error"
    assert result.logs[-1].message == f"Workflow execution failed: {result.error}"


def test_missing_required_input_fails_run(scheduler, context, make_cube, make_workflow):
    result = scheduler.execute(
        make_workflow([make_cube('d', 'decider', {'operator': 'equals', 'value2': 1})]),
        context,
    )

    assert result.status == ExecutionStatus.FAILED
    assert result.error == "Cube execution failed: Input validation failed: Missing required input: value1"


def test_unknown_cube_type_fails_run(scheduler, context, make_cube, make_workflow):
    result = scheduler.execute(make_workflow([make_cube('x', 'bogus')]), context)

    assert result.status == ExecutionStatus.FAILED
    assert result.error == "Cube execution failed: Unknown cube type: bogus"


def test_structural_failure_runs_nothing(scheduler, make_workflow):
    """Invalid graphs return before any observer fires"""
    on_log, on_progress = MagicMock(), MagicMock()
    context = ExecutionContext(on_log=on_log, on_progress=on_progress)

    result = scheduler.execute(make_workflow([]), context)

    assert result.status == ExecutionStatus.FAILED
    assert result.error == "Workflow validation failed: Workflow must contain at least one cube"
    assert result.results == {}
    assert result.logs == []
    on_log.assert_not_called()
    on_progress.assert_not_called()


def test_source_handle_selects_entry(scheduler, context, make_cube, make_conn, make_workflow):
    """sourceHandle picks one key of a mapping payload"""
    workflow = make_workflow(
        [
            make_cube('vars', 'loader-json', {'content': '{"vars": {"x": 3}, "other": 1}'}),
            make_cube('calc', 'math', {'expression': 'x * 2'}),
        ],
        [make_conn('vars', 'calc', target_handle='variables', source_handle='vars')],
    )

    result = scheduler.execute(workflow, context)

    assert result.success is True
    assert result.results['calc']['data'] == 6


def test_unhandled_input_goes_to_default_slot(scheduler, context, make_cube, make_conn, make_workflow):
    workflow = make_workflow(
        [
            make_cube('load', 'loader-text', {'content': 'context text'}),
            make_cube('gen', 'text', {'prompt': 'Summarize'}),
        ],
        [make_conn('load', 'gen')],
    )

    result = scheduler.execute(workflow, context)

    assert result.success is True
    assert result.results['gen']['data'] == "generated text"


def test_wired_value_does_not_satisfy_other_required_key(scheduler, context, make_cube, make_conn, make_workflow):
    """A value on the default slot is not a stand-in for a named required input"""
    workflow = make_workflow(
        [
            make_cube('load', 'loader-text', {'content': 'hello'}),
            make_cube('save', 'saver-text'),
        ],
        [make_conn('load', 'save')],
    )

    result = scheduler.execute(workflow, context)

    assert result.status == ExecutionStatus.FAILED
    assert "Missing required input: content" in result.error


def test_resolve_inputs_overrides_config(make_cube, make_conn):
    from smartcube.core.types import Envelope

    context = ExecutionContext()
    context.outputs['up'] = Envelope(success=True, data=10, type='number')
    cube = make_cube('down', 'decider', {'value1': 1, 'operator': 'equals', 'value2': 10})

    inputs = Scheduler.resolve_inputs(
        cube,
        [make_conn('up', 'down', target_handle='value1'), make_conn('missing', 'down', target_handle='value2')],
        context,
    )

    assert inputs == {'value1': 10, 'operator': 'equals', 'value2': 10}


def test_cancellation_before_start(scheduler, make_cube, make_workflow):
    context = ExecutionContext()
    context.cancel_event.set()

    result = scheduler.execute(make_workflow([make_cube('m', 'math', {'expression': '1'})]), context)

    assert result.status == ExecutionStatus.CANCELLED
    assert result.results == {}
    assert result.logs[-1].message == "Execution cancelled"
    assert result.logs[-1].level == "warning"


def test_cancellation_between_cubes(scheduler, make_cube, make_conn, make_workflow):
    """Cancel requested after the first cube stops before the second"""
    context = ExecutionContext()
    context.on_progress = lambda done, total: context.cancel_event.set()
    workflow = make_workflow(
        [make_cube('a', 'math', {'expression': '1'}), make_cube('b', 'math', {'expression': '2'})],
        [make_conn('a', 'b', target_handle='unused')],
    )

    result = scheduler.execute(workflow, context)

    assert result.status == ExecutionStatus.CANCELLED
    assert set(result.results) == {'a'}


def test_observer_failures_do_not_fail_run(scheduler, make_cube, make_workflow):
    def broken(*args):
        raise RuntimeError("observer down")

    context = ExecutionContext(on_log=broken, on_progress=broken)
    result = scheduler.execute(make_workflow([make_cube('m', 'math', {'expression': '3'})]), context)

    assert result.success is True


def test_observers_see_every_log(scheduler, make_cube, make_workflow):
    seen = []
    context = ExecutionContext(on_log=seen.append)

    result = scheduler.execute(make_workflow([make_cube('m', 'math', {'expression': '3'})]), context)

    assert seen == result.logs


def test_outputs_overwritten_on_restart(make_cube, make_conn, make_workflow):
    """A looping run keeps only the latest output per cube"""
    counter = CountingCube()
    registry = CubeHandlerRegistry({'count': counter, 'decider': DeciderCube(), 'loader-text': LoaderTextCube()})
    scheduler = Scheduler(CubeExecutor(registry, ai_timeout_ms=1000))
    workflow = make_workflow(
        [
            make_cube('c', 'count'),
            make_cube('d', 'decider', {'value1': 1, 'operator': 'equals', 'value2': 1}),
        ],
        [make_conn('c', 'd', target_handle='ignored')],
    )

    result = scheduler.execute(workflow, ExecutionContext())

    assert counter.calls == 3
    assert result.results['c']['data'] == 3


def test_result_to_dict(scheduler, context, make_cube, make_workflow):
    payload = scheduler.execute(make_workflow([make_cube('m', 'math', {'expression': '1'})]), context).to_dict()

    assert payload['status'] == 'completed'
    assert 'error' not in payload
    assert payload['logs'][0]['cubeId'] == 'system'
    assert payload['logs'][0]['cubeName'] == 'System'
