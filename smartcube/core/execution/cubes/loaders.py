"""
Loader Cubes
Entry-point cubes that bring text, JSON and image data into a workflow
"""
import json
from pathlib import Path
from typing import Any, Dict

from ...errors import HandlerExecutionError
from ...types import CubeType, DataType, TypedValue
from ....utils.data_types import DataTypeValidator
from ..cube_base import BaseCube


def _read_file(file_path: str) -> str:
    path = Path(file_path).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise HandlerExecutionError(f"Could not read {file_path}: {e}") from e


class LoaderTextCube(BaseCube):
    """
    Loads text data

    Config:
        content: Literal text
        filePath: Path to a UTF-8 text file (used when content is empty)

    Outputs:
        The text
    """

    cube_type = CubeType.LOADER_TEXT.value

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        values = self.merged(inputs, config)
        content = values.get('content')
        file_path = values.get('filePath')

        if content in (None, '') and not file_path:
            raise HandlerExecutionError("Either content or filePath must be provided")

        text_data = content if content not in (None, '') else _read_file(file_path)

        if not isinstance(text_data, str):
            text_data = str(text_data)
        if not DataTypeValidator.validate(text_data, DataType.TEXT).valid:
            raise HandlerExecutionError("Invalid text data format")

        return text_data


class LoaderJsonCube(BaseCube):
    """
    Loads JSON data

    Config:
        content: JSON string, or an already-parsed object/array
        filePath: Path to a JSON file (used when content is empty)

    Outputs:
        The parsed object or array
    """

    cube_type = CubeType.LOADER_JSON.value

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        values = self.merged(inputs, config)
        content = values.get('content')
        file_path = values.get('filePath')

        if content in (None, '') and not file_path:
            raise HandlerExecutionError("Either content or filePath must be provided")

        json_data = content if content not in (None, '') else _read_file(file_path)

        if isinstance(json_data, str):
            try:
                json_data = json.loads(json_data)
            except json.JSONDecodeError as e:
                raise HandlerExecutionError(f"Invalid JSON format: {e.msg}") from e

        if not DataTypeValidator.validate(json_data, DataType.JSON).valid:
            raise HandlerExecutionError("Invalid JSON data format")

        return json_data


class LoaderImageCube(BaseCube):
    """
    Loads an image reference

    Config:
        imageUrl: http(s) URL of the image
        imageData: base64 data URL (used when imageUrl is empty)

    Outputs:
        The URL or data URL, tagged as an image
    """

    cube_type = CubeType.LOADER_IMAGE.value

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        values = self.merged(inputs, config)
        result = values.get('imageUrl') or values.get('imageData')

        if not result:
            raise HandlerExecutionError("Either imageUrl or imageData must be provided")

        if not isinstance(result, str):
            raise HandlerExecutionError("Invalid image data format")

        is_url = result.startswith(('http://', 'https://'))
        if not is_url and not DataTypeValidator.is_base64_image(result):
            raise HandlerExecutionError("Invalid image data format")

        return TypedValue(DataType.IMAGE, result)
