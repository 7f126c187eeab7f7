"""
Cube handler registry
Maps cube type strings to handler instances
"""
from typing import Dict, List, Optional, TYPE_CHECKING

from ..types import CubeType
from .cube_base import BaseCube

if TYPE_CHECKING:
    from ...ai.client import AIProviderClient


class CubeHandlerRegistry:
    """
    Closed mapping from cube type to handler

    Built explicitly and handed to the CubeExecutor; there is no module-level
    registry, so concurrent runs and tests can use different handler sets.
    """

    def __init__(self, handlers: Optional[Dict[str, BaseCube]] = None):
        self._handlers: Dict[str, BaseCube] = {}
        for cube_type, handler in (handlers or {}).items():
            self.register(cube_type, handler)

    def register(self, cube_type: str, handler: BaseCube) -> None:
        """
        Register a handler

        Args:
            cube_type: Cube type identifier (e.g., "math")
            handler: Handler instance exposing execute(inputs, config)
        """
        key = cube_type.value if isinstance(cube_type, CubeType) else cube_type
        self._handlers[key] = handler

    def get(self, cube_type: str) -> Optional[BaseCube]:
        """Handler for a cube type, or None if not registered"""
        return self._handlers.get(cube_type)

    def has(self, cube_type: str) -> bool:
        return cube_type in self._handlers

    def types(self) -> List[str]:
        return list(self._handlers.keys())

    def __contains__(self, cube_type: str) -> bool:
        return self.has(cube_type)

    def __len__(self) -> int:
        return len(self._handlers)


def build_default_registry(
    ai_client: Optional['AIProviderClient'] = None,
    uploads_path: Optional[str] = None,
) -> CubeHandlerRegistry:
    """
    Build the registry with every built-in cube type

    Args:
        ai_client: Client used by AI-backed cubes (text, image, recognition)
        uploads_path: Base directory saver cubes write into (default: Config.UPLOADS_PATH)

    Returns:
        CubeHandlerRegistry covering every CubeType
    """
    from .cubes import (
        LoaderTextCube, LoaderJsonCube, LoaderImageCube,
        RecognitionSeeingCube, RecognitionHearingCube,
        MathCube, DeciderCube, TextCube, ImageCube,
        SaverTextCube, SaverImageCube, SaverTableCube, SaverJsonCube,
    )

    if uploads_path is None:
        from ..config import Config
        uploads_path = Config.UPLOADS_PATH

    handlers: List[BaseCube] = [
        LoaderTextCube(),
        LoaderJsonCube(),
        LoaderImageCube(),
        RecognitionSeeingCube(ai_client),
        RecognitionHearingCube(ai_client),
        MathCube(),
        DeciderCube(),
        TextCube(ai_client),
        ImageCube(ai_client),
        SaverTextCube(uploads_path),
        SaverImageCube(uploads_path),
        SaverTableCube(uploads_path),
        SaverJsonCube(uploads_path),
    ]

    registry = CubeHandlerRegistry()
    for handler in handlers:
        registry.register(handler.cube_type, handler)
    return registry
