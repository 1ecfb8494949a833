"""Raw API response types for the Jira REST API.

Pydantic models representing the structure of data returned by the Jira
REST API (v2) with minimal processing. Instances are frozen: a page of
search results never changes once it has been decoded.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split_expand(value: Any) -> Any:
    # Jira sends expand hints as a single comma-separated string
    if isinstance(value, str):
        return [part for part in value.split(",") if part]
    return value


class Issue(BaseModel):
    """Single issue as returned by the search and issue endpoints.

    Fields are kept as the raw ``fields`` mapping; nothing inside it is
    interpreted by the client or the walker.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    key: str = ""
    self_url: str = Field("", alias="self")
    expand: list[str] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator("expand", mode="before")
    @classmethod
    def _normalize_expand(cls, value: Any) -> Any:
        return _split_expand(value)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Numeric ids show up in older server versions
        if isinstance(value, int):
            return str(value)
        return value

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value of field ``name``, or ``default`` if absent."""
        return self.fields.get(name, default)


class SearchResponse(BaseModel):
    """One page of ``/rest/api/2/search`` results.

    ``total`` is the server-side match count for the whole query, not the
    number of issues on this page; see :attr:`issues_count` for the latter.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    expand: list[str] = Field(default_factory=list)
    start_at: int = Field(0, alias="startAt", ge=0)
    max_results: int = Field(0, alias="maxResults", ge=0)
    total: int = Field(0, ge=0)
    issues: list[Issue] = Field(default_factory=list)

    @field_validator("expand", mode="before")
    @classmethod
    def _normalize_expand(cls, value: Any) -> Any:
        return _split_expand(value)

    @property
    def issues_count(self) -> int:
        """Number of issues actually returned on this page."""
        return len(self.issues)


class FieldDefinition(BaseModel):
    """Field metadata from ``/rest/api/2/field``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    custom: bool = False
