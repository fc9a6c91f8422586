"""
Request validation for the query gateway.

Every gateway call is checked here before any I/O is attempted:

- Connection strings must use the mongodb:// or mongodb+srv:// scheme
- Database and collection names must be non-empty and legal for MongoDB
- Filters, projections, documents and update bodies must be mappings
- Sort specifications must be a mapping or a list of [field, direction] pairs
- limit must be a positive integer, skip a non-negative integer, both
  within the BSON int64 range
- Aggregation pipelines must be an ordered list of stage documents

Pipelines and filters are otherwise passed to the server unchanged; the
server is the authority on operator semantics.
"""

import logging
from collections.abc import Mapping
from typing import Any

from ..constants import (
    INVALID_COLLECTION_NAME_CHARS,
    INVALID_DATABASE_NAME_CHARS,
    MAX_BSON_INT64,
    MAX_COLLECTION_NAME_LENGTH,
    MAX_DATABASE_NAME_LENGTH,
    MONGODB_SCHEMES,
    SYSTEM_COLLECTION_PREFIX,
)
from ..exceptions import RequestValidationError

logger = logging.getLogger(__name__)


class QueryValidator:
    """
    Validates gateway inputs and raises RequestValidationError on the first problem.
    """

    def __init__(
        self,
        max_database_name_length: int = MAX_DATABASE_NAME_LENGTH,
        max_collection_name_length: int = MAX_COLLECTION_NAME_LENGTH,
    ):
        """
        Initialize the validator.

        Args:
            max_database_name_length: Maximum database name length
            max_collection_name_length: Maximum collection name length
        """
        self.max_database_name_length = max_database_name_length
        self.max_collection_name_length = max_collection_name_length

    def validate_connection_string(self, mongo_uri: Any) -> None:
        """
        Validate a connection string.

        Raises:
            RequestValidationError: If the URI is missing or uses another scheme
        """
        if not isinstance(mongo_uri, str) or not mongo_uri.strip():
            raise RequestValidationError("Connection string is required", field="uri")

        if not mongo_uri.startswith(MONGODB_SCHEMES):
            raise RequestValidationError(
                "Connection string must start with mongodb:// or mongodb+srv://",
                field="uri",
            )

    def validate_database_name(self, database: Any) -> None:
        """
        Validate a database name.

        Raises:
            RequestValidationError: If the name is empty, too long or has illegal characters
        """
        if not isinstance(database, str) or not database:
            raise RequestValidationError("Database name is required", field="database")

        if len(database) > self.max_database_name_length:
            raise RequestValidationError(
                f"Database name exceeds maximum length: "
                f"{len(database)} > {self.max_database_name_length}",
                field="database",
            )

        bad_chars = [c for c in INVALID_DATABASE_NAME_CHARS if c in database]
        if bad_chars:
            raise RequestValidationError(
                f"Database name contains invalid characters: {''.join(bad_chars)!r}",
                field="database",
            )

    def validate_collection_name(self, collection: Any, allow_system: bool = True) -> None:
        """
        Validate a collection name.

        Args:
            collection: Collection name
            allow_system: Permit names starting with "system." (reads only;
                creating or dropping them is rejected)

        Raises:
            RequestValidationError: If the name is empty, too long, has illegal
                characters or targets a system collection when not allowed
        """
        if not isinstance(collection, str) or not collection:
            raise RequestValidationError("Collection name is required", field="collection")

        if len(collection) > self.max_collection_name_length:
            raise RequestValidationError(
                f"Collection name exceeds maximum length: "
                f"{len(collection)} > {self.max_collection_name_length}",
                field="collection",
            )

        bad_chars = [c for c in INVALID_COLLECTION_NAME_CHARS if c in collection]
        if bad_chars:
            raise RequestValidationError(
                f"Collection name contains invalid characters: {''.join(bad_chars)!r}",
                field="collection",
            )

        if not allow_system and collection.startswith(SYSTEM_COLLECTION_PREFIX):
            raise RequestValidationError(
                f"Collection name cannot start with '{SYSTEM_COLLECTION_PREFIX}'",
                field="collection",
            )

    def validate_mapping(self, value: Any, field: str, required: bool = True) -> None:
        """
        Validate that ``value`` is a document (mapping).

        Args:
            value: Value to check
            field: Request field name used in the error message
            required: Whether None is rejected

        Raises:
            RequestValidationError: If the value is missing or not a mapping
        """
        if value is None:
            if required:
                raise RequestValidationError(f"{field} is required", field=field)
            return

        if not isinstance(value, Mapping):
            raise RequestValidationError(
                f"{field} must be an object, got {type(value).__name__}",
                field=field,
            )

    def validate_sort(self, sort: Any | None) -> None:
        """
        Validate a sort specification.

        Accepts {"field": 1} mappings or [["field", -1], ...] lists.

        Raises:
            RequestValidationError: If the specification has another shape
        """
        if sort is None or isinstance(sort, Mapping):
            return

        if isinstance(sort, (list, tuple)):
            for idx, item in enumerate(sort):
                if (
                    not isinstance(item, (list, tuple))
                    or len(item) != 2
                    or not isinstance(item[0], str)
                ):
                    raise RequestValidationError(
                        f"Sort entry {idx} must be a [field, direction] pair",
                        field="sort",
                    )
            return

        raise RequestValidationError(
            f"sort must be an object or a list of [field, direction] pairs, "
            f"got {type(sort).__name__}",
            field="sort",
        )

    def validate_pagination(self, limit: Any, skip: Any) -> None:
        """
        Validate limit and skip.

        Raises:
            RequestValidationError: If limit is not a positive integer or skip
                is not a non-negative integer
        """
        if not _is_int(limit) or limit < 1:
            raise RequestValidationError(
                f"limit must be a positive integer, got {limit!r}", field="limit"
            )
        if not _is_int(skip) or skip < 0:
            raise RequestValidationError(
                f"skip must be a non-negative integer, got {skip!r}", field="skip"
            )
        for field, value in (("limit", limit), ("skip", skip)):
            if value > MAX_BSON_INT64:
                raise RequestValidationError(
                    f"{field} must not exceed {MAX_BSON_INT64}", field=field
                )

    def validate_pipeline(self, pipeline: Any) -> None:
        """
        Validate an aggregation pipeline.

        Raises:
            RequestValidationError: If the pipeline is missing, not a list, or
                contains a stage that is not a document
        """
        if pipeline is None:
            raise RequestValidationError("pipeline is required", field="pipeline")

        if not isinstance(pipeline, list):
            raise RequestValidationError("Pipeline must be an array", field="pipeline")

        for idx, stage in enumerate(pipeline):
            if not isinstance(stage, Mapping):
                raise RequestValidationError(
                    f"Pipeline stage {idx} must be an object, got {type(stage).__name__}",
                    field="pipeline",
                )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
