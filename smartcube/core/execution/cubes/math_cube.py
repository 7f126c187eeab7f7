"""
Math Cube
Evaluates arithmetic expressions against a whitelisted, numpy-backed scope
"""
import ast
import math
import operator
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from ...errors import HandlerExecutionError
from ...types import CubeType
from ..cube_base import BaseCube


MAX_RESULT_DIGITS = 4000


def bounded_pow(base: Any, exponent: Any) -> Any:
    """Integer power refused when the result would exceed MAX_RESULT_DIGITS"""
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0 and abs(base) > 1:
        digits = exponent * math.log10(abs(base))
        if digits > MAX_RESULT_DIGITS:
            raise HandlerExecutionError(
                f"Result of {base}**{exponent} is too large (about {int(digits)} digits)"
            )
    return operator.pow(base, exponent)


_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: bounded_pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

FUNCTIONS: Dict[str, Callable[..., Any]] = {
    'abs': np.abs,
    'sqrt': np.sqrt,
    'cbrt': np.cbrt,
    'exp': np.exp,
    'log': np.log,
    'log10': np.log10,
    'log2': np.log2,
    'sin': np.sin,
    'cos': np.cos,
    'tan': np.tan,
    'asin': np.arcsin,
    'acos': np.arccos,
    'atan': np.arctan,
    'atan2': np.arctan2,
    'floor': np.floor,
    'ceil': np.ceil,
    'round': np.round,
    'pow': np.power,
    'min': lambda *args: np.min(args),
    'max': lambda *args: np.max(args),
    'sum': lambda *args: np.sum(args),
    'mean': lambda *args: np.mean(args),
    'median': lambda *args: np.median(args),
    'std': lambda *args: np.std(args),
}

CONSTANTS: Dict[str, float] = {
    'pi': math.pi,
    'e': math.e,
    'tau': math.tau,
}


class ExpressionEvaluator:
    """
    Walks a parsed expression and evaluates only whitelisted node kinds

    Supported: numeric literals, + - * / // % ** (and ^ as power), unary
    sign, parentheses, names bound in variables or CONSTANTS, and calls to
    FUNCTIONS with positional arguments. Anything else is rejected before
    evaluation.
    """

    def __init__(self, variables: Optional[Mapping[str, Any]] = None):
        self.scope: Dict[str, Any] = {**CONSTANTS, **(variables or {})}

    def evaluate(self, expression: str) -> Any:
        source = expression.replace('^', '**')
        try:
            tree = ast.parse(source, mode='eval')
        except SyntaxError as e:
            raise HandlerExecutionError(f"Invalid expression syntax: {e.msg}") from e
        return self._eval(tree.body)

    def _eval(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise HandlerExecutionError(f"Unsupported literal: {node.value!r}")
            return node.value

        if isinstance(node, ast.BinOp):
            op = _BINARY_OPS.get(type(node.op))
            if op is None:
                raise HandlerExecutionError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval(node.left), self._eval(node.right))

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPS.get(type(node.op))
            if op is None:
                raise HandlerExecutionError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval(node.operand))

        if isinstance(node, ast.Name):
            if node.id not in self.scope:
                raise HandlerExecutionError(f"Undefined symbol: {node.id}")
            return self._coerce(node.id, self.scope[node.id])

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
                name = getattr(node.func, 'id', type(node.func).__name__)
                raise HandlerExecutionError(f"Unsupported function: {name}")
            if node.keywords:
                raise HandlerExecutionError("Keyword arguments are not supported")
            args = [self._eval(arg) for arg in node.args]
            return FUNCTIONS[node.func.id](*args)

        raise HandlerExecutionError(f"Unsupported expression element: {type(node).__name__}")

    @staticmethod
    def _coerce(name: str, value: Any) -> Any:
        if isinstance(value, bool):
            raise HandlerExecutionError(f"Variable {name} is not a number")
        if isinstance(value, (int, float, np.number)):
            return value
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                raise HandlerExecutionError(f"Variable {name} is not a number: {value!r}")
        raise HandlerExecutionError(f"Variable {name} is not a number")


def to_finite_number(value: Any) -> Any:
    """Normalize numpy scalars to Python numbers and reject NaN/inf"""
    if isinstance(value, np.ndarray):
        if value.ndim != 0:
            raise HandlerExecutionError("Expression did not evaluate to a single number")
        value = value.item()
    elif isinstance(value, np.generic):
        value = value.item()

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise HandlerExecutionError("Expression did not evaluate to a valid number")
    if isinstance(value, int) and value.bit_length() * math.log10(2) > MAX_RESULT_DIGITS:
        raise HandlerExecutionError(f"Result exceeds {MAX_RESULT_DIGITS} digits")
    if isinstance(value, float) and not math.isfinite(value):
        raise HandlerExecutionError("Expression did not evaluate to a valid number")
    return value


class MathCube(BaseCube):
    """
    Evaluates a math expression

    Inputs:
        expression: Expression string, e.g. "2 + 2" or "sqrt(x) * 3" (required)

    Config:
        variables: Mapping of symbol name to number

    Outputs:
        The numeric result
    """

    cube_type = CubeType.MATH.value
    required_inputs = ('expression',)

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        expression = inputs.get('expression')
        if not isinstance(expression, str) or not expression.strip():
            raise HandlerExecutionError("Expression must be a non-empty string")

        variables = inputs.get('variables') or {}
        if not isinstance(variables, Mapping):
            raise HandlerExecutionError("Variables must be an object")

        evaluator = ExpressionEvaluator(variables)
        try:
            with np.errstate(all='ignore'):
                result = evaluator.evaluate(expression)
        except (ZeroDivisionError, TypeError, ValueError, OverflowError) as e:
            raise HandlerExecutionError(f"Math evaluation failed: {e}") from e

        return to_finite_number(result)
