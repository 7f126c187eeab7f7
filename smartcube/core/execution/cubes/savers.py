"""
Saver Cubes
Write cube outputs to the uploads directory
"""
import base64
import binascii
import csv
import io
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ...errors import HandlerExecutionError
from ...types import CubeType
from ....utils.logger import get_logger
from ..cube_base import BaseCube

logger = get_logger(__name__)


class _SaverCube(BaseCube):
    """Resolves destination/filename under the uploads root and writes bytes"""

    default_destination = "files"
    default_extension = "txt"
    default_prefix = "file"

    def __init__(self, uploads_path: str):
        self.uploads_path = Path(uploads_path).expanduser()

    def resolve_target(self, values: Mapping[str, Any]):
        # Only the final path segment of destination and filename is used
        destination = Path(str(values.get('destination') or self.default_destination)).name
        filename = values.get('filename') or (
            f"{self.default_prefix}-{int(time.time() * 1000)}.{self.default_extension}"
        )
        filename = Path(str(filename)).name
        for segment in (destination, filename):
            if segment in ('', '.', '..'):
                raise HandlerExecutionError(f"Invalid destination or filename: {segment!r}")

        root = self.uploads_path.resolve()
        if not (root / destination / filename).resolve().is_relative_to(root):
            raise HandlerExecutionError("Save path must stay inside the uploads directory")
        return destination, filename

    def write(self, values: Mapping[str, Any], payload: bytes) -> Dict[str, str]:
        destination, filename = self.resolve_target(values)
        directory = self.uploads_path / destination
        try:
            directory.mkdir(parents=True, exist_ok=True)
            (directory / filename).write_bytes(payload)
        except OSError as e:
            raise HandlerExecutionError(f"Failed to save {filename}: {e}") from e

        logger.debug(f"Saved {len(payload)} bytes to {directory / filename}")
        return {'filePath': f"/uploads/{destination}/{filename}"}


class SaverTextCube(_SaverCube):
    """
    Saves text to a file

    Inputs:
        content: Text to save (required)

    Config:
        destination: Subdirectory under uploads (default: "files")
        filename: File name (default: text-<ms>.txt)
    """

    cube_type = CubeType.SAVER_TEXT.value
    required_inputs = ('content',)
    default_prefix = "text"

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        content = inputs.get('content')
        if not isinstance(content, str):
            content = json.dumps(content) if isinstance(content, (dict, list)) else str(content)
        return self.write(inputs, content.encode('utf-8'))


class SaverImageCube(_SaverCube):
    """
    Saves an image to a file

    Inputs:
        imageData: base64 string or data URL (required)

    Config:
        destination: Subdirectory under uploads (default: "images")
        filename: File name (default: image-<ms>.png)
    """

    cube_type = CubeType.SAVER_IMAGE.value
    required_inputs = ('imageData',)
    default_destination = "images"
    default_extension = "png"
    default_prefix = "image"

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        image_data = inputs.get('imageData')

        if isinstance(image_data, (bytes, bytearray)):
            payload = bytes(image_data)
        elif isinstance(image_data, str):
            encoded = image_data.split(',', 1)[1] if image_data.startswith('data:') else image_data
            try:
                payload = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError) as e:
                raise HandlerExecutionError(f"Invalid base64 image data: {e}") from e
        else:
            raise HandlerExecutionError("Image data must be a base64 string or bytes")

        return self.write(inputs, payload)


class SaverTableCube(_SaverCube):
    """
    Saves rows as CSV

    Inputs:
        data: List of row objects; headers come from the first row (required)

    Config:
        destination: Subdirectory under uploads (default: "tables")
        filename: File name (default: table-<ms>.csv)
    """

    cube_type = CubeType.SAVER_TABLE.value
    required_inputs = ('data',)
    default_destination = "tables"
    default_extension = "csv"
    default_prefix = "table"

    @staticmethod
    def to_csv(rows: List[Mapping[str, Any]]) -> str:
        headers = list(rows[0].keys()) if rows else []
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(headers)
        for row in rows:
            writer.writerow(['' if row.get(h) is None else row.get(h) for h in headers])
        return buffer.getvalue()

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        data = inputs.get('data')
        if not isinstance(data, list):
            raise HandlerExecutionError("Data must be an array")
        if not all(isinstance(row, Mapping) for row in data):
            raise HandlerExecutionError("Every row must be an object")

        return self.write(inputs, self.to_csv(data).encode('utf-8'))


class SaverJsonCube(_SaverCube):
    """
    Saves data as pretty-printed JSON

    Inputs:
        data: Any JSON-serializable value (required)

    Config:
        destination: Subdirectory under uploads (default: "json")
        filename: File name (default: data-<ms>.json)
    """

    cube_type = CubeType.SAVER_JSON.value
    required_inputs = ('data',)
    default_destination = "json"
    default_extension = "json"
    default_prefix = "data"

    def execute(self, inputs: Dict[str, Any], config: Dict[str, Any]) -> Any:
        try:
            content = json.dumps(inputs.get('data'), indent=2)
        except (TypeError, ValueError) as e:
            raise HandlerExecutionError(f"Data is not JSON serializable: {e}") from e
        return self.write(inputs, content.encode('utf-8'))
