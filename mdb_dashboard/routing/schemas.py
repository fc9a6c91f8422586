"""
Pydantic request schemas for the dashboard API.

The schemas only check that required fields are present. Types and
values of filters, documents, pipelines and pagination are validated by
the gateway so that every caller, HTTP or not, gets the same messages.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class ConnectionRequest(BaseModel):
    """Any request addressed to one deployment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uri: str = Field(
        validation_alias=AliasChoices("uri", "connectionString"),
        description="MongoDB connection string (mongodb:// or mongodb+srv://)",
        examples=["mongodb://localhost:27017"],
    )


class DatabaseRequest(ConnectionRequest):
    database: str = Field(description="Database name", examples=["shop"])


class CreateDatabaseRequest(DatabaseRequest):
    collection: Optional[str] = Field(
        default=None,
        description="First collection to create; a placeholder is used when omitted",
    )


class CollectionRequest(DatabaseRequest):
    collection: str = Field(description="Collection name", examples=["orders"])


# =============================================================================
# Documents
# =============================================================================


class FindDocumentsRequest(CollectionRequest):
    """
    Paginated read.

    Query options may be given flat or nested under ``options``; flat
    values win.
    """

    filter: Any = None
    projection: Any = None
    sort: Any = None
    limit: Any = None
    skip: Any = None
    options: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def merge_options(self) -> "FindDocumentsRequest":
        if self.options:
            for name in ("filter", "projection", "sort", "limit", "skip"):
                if getattr(self, name) is None and name in self.options:
                    setattr(self, name, self.options[name])
        return self


class InsertDocumentRequest(CollectionRequest):
    document: Any = Field(description="Document to insert", examples=[{"name": "a"}])


class UpdateDocumentRequest(CollectionRequest):
    filter: Any = Field(description="Selects the document to update")
    update: Any = Field(description="Fields to overwrite", examples=[{"name": "b"}])


class DeleteDocumentRequest(CollectionRequest):
    filter: Any = Field(description="Selects the document to delete")


class AggregateRequest(CollectionRequest):
    pipeline: Any = Field(
        description="Ordered list of pipeline stages",
        examples=[[{"$match": {"status": "open"}}, {"$count": "n"}]],
    )
