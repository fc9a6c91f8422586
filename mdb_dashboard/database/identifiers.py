"""
Identifier coercion for query filters and update bodies.

Browsers only speak JSON, so document identifiers arrive as 24-character hex
strings. Before a filter reaches the driver those strings are turned back
into ``ObjectId`` values wherever they sit under the ``_id`` field, including
inside operator documents and lists:

    {"_id": "507f1f77bcf86cd799439011"}
    {"_id": {"$in": ["507f1f77bcf86cd799439011", "507f191e810c19729de860ea"]}}
    {"$or": [{"_id": "507f1f77bcf86cd799439011"}, {"name": "a"}]}

Coercion is tolerant: a string that is not a valid ObjectId is passed
through untouched, so collections that use string identifiers keep working.
"""

import logging
from collections.abc import Mapping
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from ..constants import ID_FIELD

logger = logging.getLogger(__name__)


def to_object_id(value: Any) -> Any:
    """
    Convert a string to an ObjectId, returning the input when it is not one.

    Args:
        value: Candidate identifier

    Returns:
        ObjectId for valid 24-hex strings, otherwise ``value`` unchanged
    """
    if not isinstance(value, str):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        logger.debug(f"Identifier {value!r} is not an ObjectId, keeping string form")
        return value


def coerce_identifiers(value: Any, field: str = ID_FIELD) -> Any:
    """
    Return a copy of ``value`` with identifier strings converted to ObjectId.

    Args:
        value: Filter, update body, or any nested mapping/list/scalar
        field: Name of the identifier field

    Returns:
        New structure; the input is never mutated
    """
    return _coerce(value, field, under_identifier=False)


def _coerce(value: Any, field: str, under_identifier: bool) -> Any:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, Mapping):
        return {
            key: _coerce(
                item,
                field,
                # Operators under _id ($in, $ne, ...) still compare identifiers
                under_identifier=key == field
                or (under_identifier and isinstance(key, str) and key.startswith("$")),
            )
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_coerce(item, field, under_identifier) for item in value]
    if under_identifier:
        return to_object_id(value)
    return value
