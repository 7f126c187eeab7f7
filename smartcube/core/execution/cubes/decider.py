"""
Decider Cube
Compares two values and emits a boolean decision
"""
import math
import re
from typing import Any, Callable, Dict

from ...errors import HandlerExecutionError
from ...types import CubeType
from ..cube_base import BaseCube


def _to_number(value: Any) -> float:
    # Non-numeric values compare as NaN so every ordering test is False
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _contains(value1: Any, value2: Any) -> bool:
    if isinstance(value1, str):
        return str(value2) in value1
    if isinstance(value1, (list, tuple)):
        return value2 in value1
    return False


def _regex(value1: Any, value2: Any) -> bool:
    if not isinstance(value1, str):
        return False
    try:
        return re.search(str(value2), value1) is not None
    except re.error as e:
        raise HandlerExecutionError(f"Invalid regular expression: {e}") from e


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    'equals': lambda a, b: a == b,
    'not_equals': lambda a, b: a != b,
    'contains': _contains,
    'greater': lambda a, b: _to_number(a) > _to_number(b),
    'less': lambda a, b: _to_number(a) < _to_number(b),
    'greater_equals': lambda a, b: _to_number(a) >= _to_number(b),
    'less_equals': lambda a, b: _to_number(a) <= _to_number(b),
    'regex': _regex,
}


class DeciderCube(BaseCube):
    """
    Decision cube

    A True decision lets the scheduler restart the workflow, up to the
    loop ceiling.

    Inputs:
        value1: Left operand (required)
        operator: One of OPERATORS (required)
        value2: Right operand (required)

    Outputs:
        {"decision": bool}
    """

    cube_type = CubeType.DECIDER.value
    required_inputs = ('value1', 'operator', 'value2')

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        operator = inputs.get('operator')
        compare = OPERATORS.get(operator)
        if compare is None:
            raise HandlerExecutionError(f"Unsupported operator: {operator}")

        decision = bool(compare(inputs.get('value1'), inputs.get('value2')))
        return {'decision': decision}
