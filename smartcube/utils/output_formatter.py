"""
Output Formatter
Wraps raw cube results into the canonical Envelope
"""
from typing import Any, Dict, Optional

from ..core.errors import DataTypeError
from ..core.types import CubeType, DataType, Envelope, TypedValue
from .data_types import DataTypeValidator

# Declared output kind per cube type
CUBE_OUTPUT_TYPES: Dict[str, DataType] = {
    CubeType.LOADER_TEXT.value: DataType.TEXT,
    CubeType.LOADER_JSON.value: DataType.JSON,
    CubeType.LOADER_IMAGE.value: DataType.IMAGE,
    CubeType.RECOGNITION_SEEING.value: DataType.TEXT,
    CubeType.RECOGNITION_HEARING.value: DataType.TEXT,
    CubeType.MATH.value: DataType.NUMBER,
    CubeType.DECIDER.value: DataType.JSON,
    CubeType.TEXT.value: DataType.TEXT,
    CubeType.IMAGE.value: DataType.IMAGE,
    CubeType.SAVER_TEXT.value: DataType.JSON,
    CubeType.SAVER_IMAGE.value: DataType.JSON,
    CubeType.SAVER_TABLE.value: DataType.JSON,
    CubeType.SAVER_JSON.value: DataType.JSON,
}

_DATA_TYPE_NAMES = {member.value for member in DataType}


class OutputFormatter:
    """
    The only place raw handler output is normalized before storage/propagation.

    `format` never transforms the payload itself, so formatting an envelope's
    `data` again with the same type yields identical data.
    """

    @classmethod
    def format(cls, output: Any, output_type: Any, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        """
        Wrap output into an Envelope

        Args:
            output: Raw handler result, TypedValue or an already-built Envelope
            output_type: Cube type (mapped to its declared kind) or a DataType
            metadata: Optional metadata attached to the envelope

        Returns:
            Envelope with success=True
        """
        if isinstance(output, Envelope):
            metadata = {**(output.metadata or {}), **(metadata or {})} or None
            return cls.success(output.data, output.type, metadata)

        declared_kind = None
        if isinstance(output, TypedValue):
            declared_kind = DataType(output.kind)
            output = output.data

        type_name = cls.resolve_type(output, output_type, declared_kind)
        return cls.success(output, type_name, metadata)

    @staticmethod
    def resolve_type(data: Any, output_type: Any, declared_kind: Optional[DataType] = None) -> str:
        """Pick the envelope type: cube declaration, then explicit kind, then detection"""
        key = output_type.value if isinstance(output_type, (CubeType, DataType)) else str(output_type)

        if key in CUBE_OUTPUT_TYPES:
            return CUBE_OUTPUT_TYPES[key].value
        if key in _DATA_TYPE_NAMES:
            return key
        if declared_kind is not None:
            return declared_kind.value
        try:
            return DataTypeValidator.detect_type(data).value
        except DataTypeError:
            return key

    @staticmethod
    def success(data: Any, type_name: str, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return Envelope(success=True, data=data, type=type_name, metadata=metadata)

    @staticmethod
    def error(error: Any, type_name: str, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        message = str(error)
        return Envelope(success=False, data={'error': message}, type=type_name, metadata=metadata)

    @classmethod
    def text(cls, text: str, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(text, DataType.TEXT.value, metadata)

    @classmethod
    def json(cls, data: Any, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(data, DataType.JSON.value, metadata)

    @classmethod
    def image(cls, image_data: str, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(image_data, DataType.IMAGE.value, metadata)

    @classmethod
    def audio(cls, audio_data: str, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(audio_data, DataType.AUDIO.value, metadata)

    @classmethod
    def number(cls, value: float, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(value, DataType.NUMBER.value, metadata)

    @classmethod
    def boolean(cls, value: bool, metadata: Optional[Dict[str, Any]] = None) -> Envelope:
        return cls.success(value, DataType.BOOLEAN.value, metadata)
