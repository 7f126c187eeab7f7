"""
Error taxonomy for SmartCube Core

Every error carries an HTTP-ish status code and a short machine-readable code
so the API layer can map failures without inspecting messages.
"""
from typing import Any, List, Optional


class SmartCubeError(Exception):
    """Base class for all SmartCube errors"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'message': self.message, 'code': self.code}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class StructuralValidationError(SmartCubeError):
    """Workflow graph is invalid; the run never starts"""
    status_code = 400
    code = "STRUCTURAL_VALIDATION_ERROR"

    def __init__(self, errors: List[str]):
        super().__init__(f"Workflow validation failed: {', '.join(errors)}", details=errors)
        self.errors = errors


class InputContractError(SmartCubeError):
    """A cube's required input is missing; the cube is never dispatched"""
    status_code = 400
    code = "INPUT_CONTRACT_ERROR"

    def __init__(self, missing: List[str]):
        super().__init__(
            f"Input validation failed: {', '.join(f'Missing required input: {key}' for key in missing)}",
            details=missing,
        )
        self.missing = missing


class UnknownCubeTypeError(SmartCubeError):
    status_code = 400
    code = "UNKNOWN_CUBE_TYPE"

    def __init__(self, cube_type: str):
        super().__init__(f"Unknown cube type: {cube_type}")
        self.cube_type = cube_type


class HandlerExecutionError(SmartCubeError):
    """Raised by cube handlers when their own logic fails"""
    status_code = 500
    code = "HANDLER_EXECUTION_ERROR"


class CubeTimeoutError(SmartCubeError):
    """An AI-backed call exceeded its wall-clock budget"""
    status_code = 504
    code = "TIMEOUT"


class WatchdogTimeoutError(CubeTimeoutError):
    """Raised by TimeoutWatchdog when the timer fires before the work completes"""

    def __init__(self, operation_id: str, budget_ms: int):
        super().__init__(f"Operation {operation_id} timed out after {budget_ms}ms")
        self.operation_id = operation_id
        self.budget_ms = budget_ms


class AIProviderError(SmartCubeError):
    status_code = 502
    code = "AI_PROVIDER_ERROR"


class DataTypeError(SmartCubeError):
    status_code = 400
    code = "DATA_TYPE_ERROR"


class WorkflowNotFoundError(SmartCubeError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow not found: {workflow_id}")


class ExecutionNotFoundError(SmartCubeError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, execution_id: str):
        super().__init__(f"Execution not found: {execution_id}")


class ExecutionAccessError(SmartCubeError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"


class ExecutionStateError(SmartCubeError):
    status_code = 409
    code = "INVALID_STATE"
