# src/webcake_data/base/utils.py

import logging
import uuid
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping

from .exceptions import UnsupportedValueError

logger = logging.getLogger(__name__)


def encode_scalar(value: Any, context: str = "value") -> Any:
    """
    Convert a single filter value to its JSON-compatible form.

    Strings, numbers, booleans and None pass through unchanged. Dates and
    datetimes become ISO-8601 strings, UUIDs become strings and Enum members
    are replaced by their value.

    Raises:
        UnsupportedValueError: If the value is not one of the supported scalar kinds.
    """
    if isinstance(value, Enum):
        return encode_scalar(value.value, context)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise UnsupportedValueError(
        f"Unsupported {context} of type {type(value).__name__}: {value!r}. "
        "Expected str, int, float, bool, None, date, datetime, UUID or Enum."
    )


def encode_scalar_sequence(values: Any, context: str = "value") -> List[Any]:
    """Convert a list/tuple/set of scalars to a JSON list."""
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise TypeError(
            f"{context} requires a list/set/tuple, got {type(values).__name__}"
        )
    return [encode_scalar(item, f"{context} item {i}") for i, item in enumerate(values)]


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively convert Pydantic models, dataclasses, and special types to
    JSON-compatible structures for the collection API.

    It handles:
    - Pydantic BaseModel instances (dumped in json mode with field aliases)
    - Python dataclasses
    - Dictionaries (processing values recursively)
    - Lists, tuples and sets (processing each item)
    - Scalars supported by `encode_scalar`

    Args:
        data: The data to convert

    Returns:
        The converted data, ready to be sent as a JSON body

    Raises:
        UnsupportedValueError: If some nested value cannot be encoded.
    """
    if data is None:
        return None

    # Handle dataclasses
    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    # Handle Pydantic models
    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        logger.debug(f"Dumping pydantic model {type(data).__name__} for storage")
        return prepare_for_storage(data.model_dump(mode="json", by_alias=True))

    if isinstance(data, Mapping):
        return {str(k): prepare_for_storage(v) for k, v in data.items()}

    if isinstance(data, (list, tuple, set, frozenset)):
        return [prepare_for_storage(item) for item in data]

    # Handle Pydantic URL types and other special types
    if data.__class__.__module__.startswith("pydantic"):
        return str(data)

    return encode_scalar(data, "field value")


def to_field_values(document: Any) -> List[Dict[str, Any]]:
    """
    Flatten a document into the ordered field-value pairs the API expects.

    Example:
        >>> to_field_values({"name": "Jo", "age": 30})
        [{'field_name': 'name', 'field_value': 'Jo'}, {'field_name': 'age', 'field_value': 30}]
    """
    prepared = prepare_for_storage(document)
    if not isinstance(prepared, dict):
        raise TypeError(
            f"Document must be a mapping, dataclass or pydantic model, "
            f"got {type(document).__name__}"
        )
    return [
        {"field_name": name, "field_value": value} for name, value in prepared.items()
    ]
