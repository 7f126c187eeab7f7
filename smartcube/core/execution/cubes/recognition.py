"""
Recognition Cubes
AI-backed image analysis and speech-to-text
"""
from typing import Any, Dict

from ...errors import AIProviderError, HandlerExecutionError
from ...types import CubeType
from ....utils.logger import get_logger
from ..cube_base import AIBackedCube

logger = get_logger(__name__)


class RecognitionSeeingCube(AIBackedCube):
    """
    AI-powered image analysis (description, OCR)

    Inputs:
        image: Image URL or data URL (required)

    Config:
        prompt: Instruction for the model (optional)

    Outputs:
        Text description of the image
    """

    cube_type = CubeType.RECOGNITION_SEEING.value
    required_inputs = ('image',)

    DEFAULT_PROMPT = "Analyze this image and describe what you see in detail. Extract any text present."

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        image = inputs.get('image')
        if not image:
            raise HandlerExecutionError("Image input is required for seeing cube")

        prompt = config.get('prompt') or self.DEFAULT_PROMPT
        preview = image[:100] if isinstance(image, str) else "[Binary image data]"

        try:
            response = self._client().generate_text(
                prompt=f"{prompt}\n\nImage data: {preview}",
                max_tokens=1000,
            )
        except AIProviderError as e:
            raise HandlerExecutionError(f"Image recognition failed: {e.message}") from e

        return response.text


class RecognitionHearingCube(AIBackedCube):
    """
    AI-powered speech-to-text

    Inputs:
        audio: Audio data URL (required)

    Config:
        prompt: Instruction for the model (optional)

    Outputs:
        Transcribed text
    """

    cube_type = CubeType.RECOGNITION_HEARING.value
    required_inputs = ('audio',)

    DEFAULT_PROMPT = "Transcribe this audio to text accurately."

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        audio = inputs.get('audio')
        if not audio:
            raise HandlerExecutionError("Audio input is required for hearing cube")

        prompt = config.get('prompt') or self.DEFAULT_PROMPT

        try:
            response = self._client().generate_text(
                prompt=f"{prompt}\n\nAudio data provided. Please transcribe.",
                max_tokens=2000,
            )
        except AIProviderError as e:
            raise HandlerExecutionError(f"Audio transcription failed: {e.message}") from e

        logger.debug(f"[Hearing] Transcribed {len(response.text)} characters")
        return response.text
