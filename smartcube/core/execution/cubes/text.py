"""
Text Cube
Generates text with the configured AI provider
"""
from typing import Any, Dict

from ...errors import AIProviderError, HandlerExecutionError
from ...types import CubeType
from ....utils.logger import get_logger
from ..cube_base import AIBackedCube

logger = get_logger(__name__)


class TextCube(AIBackedCube):
    """
    AI text generation

    Inputs:
        prompt: User prompt (required)
        context: Extra context prepended to the prompt; a value wired into
                 the default input slot is used when context is unset

    Config:
        systemPrompt: System message (optional)
        maxTokens: Token limit (default: 2000)
        temperature: Sampling temperature (default: 0.7)
        model: Provider model override (optional)

    Outputs:
        Generated text
    """

    cube_type = CubeType.TEXT.value
    required_inputs = ('prompt',)

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        prompt = inputs.get('prompt')
        if not prompt:
            raise HandlerExecutionError("Prompt is required")

        context = self.get_value(inputs, 'context', use_input=True)
        full_prompt = f"Context: {context}\n\n{prompt}" if context else str(prompt)
        temperature = inputs.get('temperature')

        try:
            response = self._client().generate_text(
                prompt=full_prompt,
                system_prompt=inputs.get('systemPrompt'),
                max_tokens=int(inputs.get('maxTokens') or 2000),
                temperature=0.7 if temperature is None else float(temperature),
                model=inputs.get('model'),
            )
        except AIProviderError as e:
            raise HandlerExecutionError(f"Text generation failed: {e.message}") from e

        logger.debug(f"[Text] Generated {len(response.text)} characters with {response.model}")
        return response.text
