"""
Data type detection and validation for values flowing between cubes
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from ..core.errors import DataTypeError
from ..core.types import DataType, TypedValue

# Legacy string payloads: base64 data URLs are classified by their prefix
_BASE64_IMAGE = re.compile(r"^data:image/(png|jpg|jpeg|gif|webp);base64,")
_BASE64_AUDIO = re.compile(r"^data:audio/(mp3|wav|ogg|webm);base64,")

# expected type -> actual types accepted for it
_COMPATIBILITY: Dict[DataType, Set[DataType]] = {
    DataType.TEXT: {DataType.TEXT, DataType.IMAGE, DataType.AUDIO},
    DataType.JSON: {DataType.JSON, DataType.OBJECT, DataType.ARRAY},
    DataType.OBJECT: {DataType.JSON, DataType.OBJECT},
    DataType.IMAGE: {DataType.IMAGE},
    DataType.AUDIO: {DataType.AUDIO},
    DataType.NUMBER: {DataType.NUMBER},
    DataType.BOOLEAN: {DataType.BOOLEAN},
    DataType.ARRAY: {DataType.ARRAY},
}


@dataclass
class TypeCheckResult:
    valid: bool
    type: Optional[DataType]
    error: Optional[str] = None


class DataTypeValidator:
    """Classifies raw values into DataType and checks them against expectations"""

    @staticmethod
    def is_base64_image(value: str) -> bool:
        return bool(_BASE64_IMAGE.match(value))

    @staticmethod
    def is_base64_audio(value: str) -> bool:
        return bool(_BASE64_AUDIO.match(value))

    @classmethod
    def detect_type(cls, value: Any) -> DataType:
        """
        Detect the semantic type of a value

        TypedValue carries its kind explicitly and wins. Strings fall back to
        the data-URL prefix heuristic. bool is checked before numbers since
        it is an int subclass.

        Raises:
            DataTypeError: if value is None or of an unsupported type
        """
        if isinstance(value, TypedValue):
            return DataType(value.kind)

        if value is None:
            raise DataTypeError("Data is null or undefined")

        if isinstance(value, str):
            if cls.is_base64_image(value):
                return DataType.IMAGE
            if cls.is_base64_audio(value):
                return DataType.AUDIO
            return DataType.TEXT

        if isinstance(value, bool):
            return DataType.BOOLEAN

        if isinstance(value, (int, float)):
            return DataType.NUMBER

        if isinstance(value, (list, tuple)):
            return DataType.ARRAY

        if isinstance(value, Mapping):
            return DataType.JSON

        raise DataTypeError(f"Unknown data type: {type(value).__name__}")

    @staticmethod
    def is_compatible(actual: DataType, expected: DataType) -> bool:
        return actual in _COMPATIBILITY.get(expected, {expected})

    @classmethod
    def validate(cls, value: Any, expected_type: Any) -> TypeCheckResult:
        """
        Validate that value matches expected_type (exactly or compatibly)

        Args:
            value: Raw value or TypedValue
            expected_type: DataType or its string value

        Returns:
            TypeCheckResult; never raises
        """
        try:
            expected = DataType(expected_type)
        except ValueError:
            return TypeCheckResult(valid=False, type=None, error=f"Unknown expected type: {expected_type}")

        try:
            actual = cls.detect_type(value)
        except DataTypeError as e:
            return TypeCheckResult(valid=False, type=None, error=e.message)

        if actual == expected or cls.is_compatible(actual, expected):
            return TypeCheckResult(valid=True, type=actual)

        return TypeCheckResult(
            valid=False,
            type=actual,
            error=f"Expected type '{expected.value}' but got '{actual.value}'",
        )

    @classmethod
    def validate_batch(cls, items: List[Tuple[Any, Any]]) -> List[TypeCheckResult]:
        """Validate (value, expected_type) pairs"""
        return [cls.validate(value, expected) for value, expected in items]
