"""
Workflow Validator
Structural checks and execution ordering for workflow graphs
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..types import CubeData, CubeID, ConnectionData, WorkflowData
from ...utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_WORKFLOW_ERROR = "Workflow must contain at least one cube"
CYCLE_ERROR = "Workflow contains a cycle which would cause infinite execution"
NO_START_ERROR = "Workflow has no starting point (all cubes have incoming connections)"


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


class WorkflowValidator:
    """
    Validates workflow graph structure

    Checks, all collected in one pass:
    - at least one cube (short-circuits when empty)
    - unique cube ids
    - every connection endpoint references an existing cube
    - no declared cycles
    - at least one cube without incoming connections
    """

    @classmethod
    def validate(cls, workflow: WorkflowData) -> ValidationResult:
        cubes = workflow.get('cubes') or []
        connections = workflow.get('connections') or []
        errors: List[str] = []

        if not cubes:
            errors.append(EMPTY_WORKFLOW_ERROR)
            return ValidationResult(valid=False, errors=errors)

        cube_ids = set()
        reported = set()
        for cube in cubes:
            cube_id = cube.get('id')
            if cube_id in cube_ids and cube_id not in reported:
                errors.append(f"Duplicate cube ID: {cube_id}")
                reported.add(cube_id)
            cube_ids.add(cube_id)

        for conn in connections:
            if conn.get('sourceId') not in cube_ids:
                errors.append(f"Connection references non-existent source cube: {conn.get('sourceId')}")
            if conn.get('targetId') not in cube_ids:
                errors.append(f"Connection references non-existent target cube: {conn.get('targetId')}")

        if cls.has_cycle(cubes, connections):
            errors.append(CYCLE_ERROR)

        if not cls._start_cubes(cubes, connections):
            errors.append(NO_START_ERROR)

        if errors:
            logger.debug(f"Workflow {workflow.get('id', 'unknown')} failed validation: {errors}")

        return ValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def build_graph(cubes: Sequence[CubeData], connections: Sequence[ConnectionData]) -> Dict[CubeID, List[CubeID]]:
        """Adjacency list in connection order; edges to unknown cubes are dropped"""
        graph: Dict[CubeID, List[CubeID]] = {cube['id']: [] for cube in cubes}
        for conn in connections:
            source_id, target_id = conn.get('sourceId'), conn.get('targetId')
            if source_id in graph and target_id in graph:
                graph[source_id].append(target_id)
        return graph

    @classmethod
    def has_cycle(cls, cubes: Sequence[CubeData], connections: Sequence[ConnectionData]) -> bool:
        """
        Depth-first search with an explicit stack

        A neighbour already on the current path closes a cycle.
        """
        graph = cls.build_graph(cubes, connections)
        visited = set()

        for root in graph:
            if root in visited:
                continue

            on_path = {root}
            visited.add(root)
            stack = [(root, iter(graph[root]))]

            while stack:
                node, neighbours = stack[-1]
                advanced = False
                for neighbour in neighbours:
                    if neighbour in on_path:
                        return True
                    if neighbour not in visited:
                        visited.add(neighbour)
                        on_path.add(neighbour)
                        stack.append((neighbour, iter(graph[neighbour])))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    on_path.discard(node)

        return False

    @staticmethod
    def _in_degrees(cubes: Sequence[CubeData], connections: Sequence[ConnectionData]) -> Dict[CubeID, int]:
        in_degree = {cube['id']: 0 for cube in cubes}
        for conn in connections:
            target_id = conn.get('targetId')
            if target_id in in_degree:
                in_degree[target_id] += 1
        return in_degree

    @classmethod
    def _start_cubes(cls, cubes: Sequence[CubeData], connections: Sequence[ConnectionData]) -> List[CubeID]:
        return [cube_id for cube_id, degree in cls._in_degrees(cubes, connections).items() if degree == 0]

    @classmethod
    def get_execution_order(cls, cubes: Sequence[CubeData], connections: Sequence[ConnectionData]) -> List[CubeID]:
        """
        Topological order (Kahn's algorithm)

        The queue is seeded with zero in-degree cubes in authoring order and
        neighbours are released in connection order, so ties are deterministic.
        Only meaningful for a workflow that passed validate().
        """
        graph = cls.build_graph(cubes, connections)
        in_degree = cls._in_degrees(cubes, connections)

        queue = deque(cube_id for cube_id, degree in in_degree.items() if degree == 0)
        order: List[CubeID] = []

        while queue:
            cube_id = queue.popleft()
            order.append(cube_id)
            for neighbour in graph[cube_id]:
                in_degree[neighbour] -= 1
                if in_degree[neighbour] == 0:
                    queue.append(neighbour)

        return order
