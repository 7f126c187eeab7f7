"""
Image Cube
Generates images with the configured AI provider
"""
from typing import Any, Dict

from ...errors import AIProviderError, HandlerExecutionError
from ...types import CubeType, DataType, TypedValue
from ..cube_base import AIBackedCube


class ImageCube(AIBackedCube):
    """
    AI image generation

    Inputs:
        prompt: Image description (required)

    Config:
        size: Image size (default: "1024x1024")
        model: Provider model override (optional)

    Outputs:
        Image URL
    """

    cube_type = CubeType.IMAGE.value
    required_inputs = ('prompt',)

    DEFAULT_SIZE = "1024x1024"

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        prompt = inputs.get('prompt')
        if not prompt:
            raise HandlerExecutionError("Prompt is required")

        try:
            response = self._client().generate_image(
                prompt=str(prompt),
                size=inputs.get('size') or self.DEFAULT_SIZE,
                model=inputs.get('model'),
            )
        except AIProviderError as e:
            raise HandlerExecutionError(f"Image generation failed: {e.message}") from e

        return TypedValue(DataType.IMAGE, response.url)
