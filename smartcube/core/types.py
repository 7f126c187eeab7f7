"""
Type definitions for SmartCube Core

This module provides:
- Type aliases for common identifiers
- Enumerations for cube types, data types and execution status
- TypedDicts for the workflow authoring payload and run records
- Value objects shared across the engine (Envelope, TypedValue, ExecutionLog)
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, TypeAlias, TypedDict

from typing_extensions import NotRequired


# ============================================================================
# Type Aliases
# ============================================================================

UserID: TypeAlias = str
CubeID: TypeAlias = str
WorkflowID: TypeAlias = str
ExecutionID: TypeAlias = str
ConnectionID: TypeAlias = str
LogLevel: TypeAlias = Literal["info", "warning", "error"]

DEFAULT_INPUT_HANDLE = "input"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Enumerations
# ============================================================================

class CubeType(str, Enum):
    """Closed set of cube kinds the engine knows how to dispatch"""
    LOADER_TEXT = "loader-text"
    LOADER_JSON = "loader-json"
    LOADER_IMAGE = "loader-image"
    RECOGNITION_SEEING = "recognition-seeing"
    RECOGNITION_HEARING = "recognition-hearing"
    MATH = "math"
    DECIDER = "decider"
    TEXT = "text"
    IMAGE = "image"
    SAVER_TEXT = "saver-text"
    SAVER_IMAGE = "saver-image"
    SAVER_TABLE = "saver-table"
    SAVER_JSON = "saver-json"


class DataType(str, Enum):
    """Semantic classification of values flowing between cubes"""
    TEXT = "text"
    JSON = "json"
    IMAGE = "image"
    AUDIO = "audio"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ============================================================================
# Workflow Authoring Payload (TypedDict)
# ============================================================================

class CubeData(TypedDict):
    """A single cube in the workflow graph"""
    id: CubeID
    type: str  # One of CubeType values
    name: str
    config: Dict[str, Any]
    position: NotRequired[Dict[str, float]]  # {"x": 0.0, "y": 0.0}, ignored by the engine


class ConnectionData(TypedDict):
    """Directed edge between two cubes"""
    id: ConnectionID
    sourceId: CubeID
    targetId: CubeID
    sourceHandle: NotRequired[Optional[str]]  # Output slot on the source cube
    targetHandle: NotRequired[Optional[str]]  # Input slot on the target cube (default "input")


class WorkflowData(TypedDict):
    """Complete workflow graph"""
    id: NotRequired[WorkflowID]
    userId: NotRequired[UserID]
    name: str
    description: NotRequired[Optional[str]]
    cubes: List[CubeData]
    connections: List[ConnectionData]
    createdAt: NotRequired[str]
    updatedAt: NotRequired[str]


class ExecutionRecord(TypedDict):
    """Run result payload as handed to the persistence sink"""
    executionId: ExecutionID
    workflowId: WorkflowID
    userId: UserID
    status: str
    startTime: str
    endTime: NotRequired[Optional[str]]
    results: Dict[CubeID, Dict[str, Any]]
    logs: List[Dict[str, Any]]
    error: NotRequired[Optional[str]]


# ============================================================================
# Value Objects
# ============================================================================

@dataclass(frozen=True)
class TypedValue:
    """
    A value carrying its declared kind explicitly

    Handlers return this when the shape of the value alone is ambiguous
    (e.g. a URL that is really an image). Plain values are still accepted and
    classified by DataTypeValidator.
    """
    kind: DataType
    data: Any


@dataclass
class Envelope:
    """Canonical wrapper around every cube output"""
    success: bool
    data: Any
    type: str
    timestamp: str = field(default_factory=utc_now_iso)
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for storage (metadata omitted when empty)"""
        result = {
            'success': self.success,
            'data': self.data,
            'type': self.type,
            'timestamp': self.timestamp,
        }
        if self.metadata:
            result['metadata'] = self.metadata
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Envelope":
        return cls(
            success=data['success'],
            data=data.get('data'),
            type=data['type'],
            timestamp=data.get('timestamp') or utc_now_iso(),
            metadata=data.get('metadata'),
        )


@dataclass
class ExecutionLog:
    """A single user-visible entry in a run's log"""
    cube_id: str
    cube_name: str
    message: str
    level: LogLevel = "info"
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'cubeId': self.cube_id,
            'cubeName': self.cube_name,
            'message': self.message,
            'level': self.level,
        }
