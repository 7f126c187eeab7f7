"""
Base cube class and per-run execution context
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from ..errors import AIProviderError
from ..types import CubeID, Envelope, ExecutionLog, DEFAULT_INPUT_HANDLE
from .loop_controller import LoopController

if TYPE_CHECKING:
    from ...ai.client import AIProviderClient


@dataclass
class ExecutionContext:
    """State owned by a single run, mutated only by Scheduler and CubeExecutor"""
    workflow_id: str = ""
    execution_id: str = ""
    user_id: str = ""
    # Last envelope produced by each cube; overwritten, never cleared mid-run
    outputs: Dict[CubeID, Envelope] = field(default_factory=dict)
    # Append-only run log
    logs: List[ExecutionLog] = field(default_factory=list)
    loop_controller: LoopController = field(default_factory=LoopController)
    # Observers
    on_log: Optional[Callable[[ExecutionLog], None]] = None
    on_progress: Optional[Callable[[int, int], None]] = None
    # Cooperative cancellation, checked between cubes
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_event.is_set()

    def results_dict(self) -> Dict[CubeID, Dict[str, Any]]:
        """Outputs as plain dicts for the run result payload"""
        return {cube_id: envelope.to_dict() for cube_id, envelope in self.outputs.items()}


class BaseCube(ABC):
    """
    Base class for all cube handlers

    Each handler:
    - Declares its cube type and required input keys
    - Declares whether it is AI-backed (runs under the timeout watchdog)
    - Receives resolved inputs (config merged with wired outputs) and its raw config
    """

    cube_type: str = ""
    # Keys that must be present and non-null before execute() is called
    required_inputs: Tuple[str, ...] = ()
    ai_backed: bool = False

    @abstractmethod
    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        """
        Execute the cube

        Args:
            inputs: Resolved inputs (cube config overridden by wired outputs)
            config: The cube's static config

        Returns:
            Raw output value (normalized into an Envelope by the executor)
        """
        pass

    @staticmethod
    def merged(inputs: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
        """Config values overridden by inputs"""
        return {**(config or {}), **(inputs or {})}

    @staticmethod
    def get_value(values: Dict[str, Any], key: str, default: Any = None, *, use_input: bool = False) -> Any:
        """
        Look up a value, optionally falling back to the generic input slot

        A cube wired without a target handle receives its upstream value under
        "input"; use_input lets that value stand in for the cube's primary key.
        """
        value = values.get(key)
        if value is None and use_input:
            value = values.get(DEFAULT_INPUT_HANDLE)
        return default if value is None else value


class AIBackedCube(BaseCube):
    """Base for cubes that call the AI provider; executed under the timeout watchdog"""

    ai_backed = True

    def __init__(self, ai_client: Optional['AIProviderClient'] = None):
        self.ai_client = ai_client

    def _client(self) -> 'AIProviderClient':
        if self.ai_client is None:
            raise AIProviderError(f"No AI provider client configured for {self.cube_type} cube")
        return self.ai_client
