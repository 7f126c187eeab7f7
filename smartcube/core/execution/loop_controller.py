"""
Loop Controller
Bounded iteration counters for decider-driven loop-back
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

DEFAULT_LOOP_ID = "main"


@dataclass
class LoopState:
    """Iteration state for a single loop context"""
    current_iteration: int = 0
    max_iterations: int = 2

    @property
    def can_continue(self) -> bool:
        return self.current_iteration < self.max_iterations


class LoopController:
    """
    Tracks iteration counts per loop id against a fixed ceiling

    The ceiling is a hard constant. A run uses a single loop context
    (DEFAULT_LOOP_ID); each run owns its own controller instance.
    """

    MAX_ITERATIONS = 2

    def __init__(self):
        self._loops: Dict[str, LoopState] = {}

    def _state(self, loop_id: str) -> LoopState:
        state = self._loops.get(loop_id)
        if state is None:
            state = LoopState(max_iterations=self.MAX_ITERATIONS)
            self._loops[loop_id] = state
        return state

    def can_loop(self, loop_id: str = DEFAULT_LOOP_ID) -> bool:
        """True while the loop has restarted fewer than MAX_ITERATIONS times"""
        return self._state(loop_id).can_continue

    def increment_iteration(self, loop_id: str = DEFAULT_LOOP_ID) -> int:
        """Advance the counter and return the new iteration number"""
        state = self._state(loop_id)
        state.current_iteration += 1
        return state.current_iteration

    def get_current_iteration(self, loop_id: str = DEFAULT_LOOP_ID) -> int:
        return self._state(loop_id).current_iteration

    def is_limit_reached(self, loop_id: str = DEFAULT_LOOP_ID) -> bool:
        state = self._loops.get(loop_id)
        return state is not None and not state.can_continue

    def get_loop_state(self, loop_id: str = DEFAULT_LOOP_ID) -> Optional[LoopState]:
        return self._loops.get(loop_id)

    def reset(self, loop_id: str = DEFAULT_LOOP_ID) -> None:
        state = self._loops.get(loop_id)
        if state is not None:
            state.current_iteration = 0

    def clear_all(self) -> None:
        self._loops.clear()

    def get_active_loops(self) -> List[str]:
        return list(self._loops.keys())
