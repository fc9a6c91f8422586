"""
MongoDB utility functions for MDB_DASHBOARD.

This module provides helpers for working with MongoDB documents and
connection strings, including JSON serialization of BSON values.
"""

import base64
import math
import re
from datetime import datetime
from typing import Any
from urllib.parse import urlsplit, urlunsplit
from uuid import UUID

from bson import Binary, Code, DBRef, Decimal128, MaxKey, MinKey, ObjectId, Regex, Timestamp
from bson.datetime_ms import DatetimeMS

from ..constants import REDACTED_PASSWORD


_REGEX_OPTIONS = (
    (re.IGNORECASE, "i"),
    (re.LOCALE, "l"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.UNICODE, "u"),
    (re.VERBOSE, "x"),
)


def _regex_to_json(value: Regex) -> dict[str, str]:
    pattern = value.pattern
    if isinstance(pattern, bytes):
        pattern = pattern.decode("utf-8", errors="replace")
    options = "".join(letter for flag, letter in _REGEX_OPTIONS if value.flags & flag)
    return {"$regex": pattern, "$options": options}


def clean_mongo_value(value: Any) -> Any:
    """
    Convert a single BSON value to a JSON-serializable value.

    - ObjectId -> str
    - datetime -> ISO format string; out-of-range DatetimeMS -> {"$date": ms}
    - Decimal128 -> str (keeps full precision)
    - Binary / bytes -> base64 string (UUID subtype -> canonical UUID string)
    - UUID -> str
    - Timestamp -> {"t": seconds, "i": increment}
    - NaN / Infinity / -Infinity doubles -> "NaN" / "Infinity" / "-Infinity"
    - Regex -> {"$regex", "$options"}; Code -> {"$code", "$scope"?};
      DBRef -> {"$ref", "$id", "$db"?}; MinKey / MaxKey -> {"$minKey": 1} / {"$maxKey": 1}
    - Nested dictionaries and lists are processed recursively
    """
    if isinstance(value, DBRef):
        ref = {"$ref": value.collection, "$id": clean_mongo_value(value.id)}
        if value.database:
            ref["$db"] = value.database
        return ref
    if isinstance(value, dict):
        return clean_mongo_doc(value)
    if isinstance(value, (list, tuple)):
        return [clean_mongo_value(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, DatetimeMS):
        return {"$date": int(value)}
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, Decimal128):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Binary):
        if value.subtype in (3, 4) and len(value) == 16:
            return str(value.as_uuid(value.subtype))
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Timestamp):
        return {"t": value.time, "i": value.inc}
    if isinstance(value, re.Pattern):
        return _regex_to_json(Regex.from_native(value))
    if isinstance(value, Regex):
        return _regex_to_json(value)
    if isinstance(value, Code):
        code = {"$code": str(value)}
        if value.scope:
            code["$scope"] = clean_mongo_doc(value.scope)
        return code
    if isinstance(value, MinKey):
        return {"$minKey": 1}
    if isinstance(value, MaxKey):
        return {"$maxKey": 1}
    return value


def clean_mongo_doc(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Convert MongoDB document to JSON-serializable format.

    Args:
        doc: MongoDB document (dict) or None

    Returns:
        Cleaned document with all MongoDB types converted, or None if input was None

    Example:
        ```python
        doc = {
            "_id": ObjectId("507f1f77bcf86cd799439011"),
            "created_at": datetime(2024, 1, 1, 12, 0, 0),
        }
        clean_mongo_doc(doc)
        # {"_id": "507f1f77bcf86cd799439011", "created_at": "2024-01-01T12:00:00"}
        ```
    """
    if doc is None:
        return None
    if not isinstance(doc, dict):
        return clean_mongo_value(doc)
    return {key: clean_mongo_value(value) for key, value in doc.items()}


def clean_mongo_docs(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Convert a list of MongoDB documents to JSON-serializable format.

    Args:
        docs: List of MongoDB documents

    Returns:
        List of cleaned documents
    """
    return [clean_mongo_doc(doc) for doc in docs]


def redact_uri(mongo_uri: str | None) -> str:
    """
    Hide the password of a connection string so it can be logged.

    Strings that cannot be parsed as URLs are returned as a fixed marker
    rather than echoed back.

    Example:
        redact_uri("mongodb://admin:s3cret@db:27017/?tls=true")
        # "mongodb://admin:****@db:27017/?tls=true"
    """
    if not mongo_uri:
        return ""
    try:
        parts = urlsplit(mongo_uri)
    except ValueError:
        return "<unparseable connection string>"
    netloc = parts.netloc
    if "@" not in netloc:
        return mongo_uri
    credentials, hosts = netloc.rsplit("@", 1)
    if ":" in credentials:
        user = credentials.split(":", 1)[0]
        credentials = f"{user}:{REDACTED_PASSWORD}"
    return urlunsplit(
        (parts.scheme, f"{credentials}@{hosts}", parts.path, parts.query, parts.fragment)
    )
