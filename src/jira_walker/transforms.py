"""Ready-made per-issue transforms for IssueWalker.set_transform.

Each helper returns a plain callable taking an :class:`Issue`, so they can
be registered on a walker or used on their own.
"""

from collections.abc import Callable, Iterable
from typing import Any

from .restapi.types import FieldDefinition, Issue


def key_of(issue: Issue) -> str:
    """Return the issue key (e.g., "PRJ-1001")."""
    return issue.key


def pluck(name: str, default: Any = None) -> Callable[[Issue], Any]:
    """Build a transform returning the value of field ``name``."""

    def _pluck(issue: Issue) -> Any:
        return issue.get(name, default)

    return _pluck


def remap_fields(definitions: Iterable[FieldDefinition]) -> Callable[[Issue], Issue]:
    """Build a transform that renames field ids to their display names.

    Custom fields come back keyed by id (``customfield_10010``); this swaps
    in the names from ``/rest/api/2/field``. Unknown ids are kept as-is.

    Args:
        definitions: Field definitions, usually from JiraRestApiClient.get_fields().
    """
    names = {definition.id: definition.name for definition in definitions if definition.name}

    def _remap(issue: Issue) -> Issue:
        fields = {names.get(field_id, field_id): value for field_id, value in issue.fields.items()}
        return issue.model_copy(update={"fields": fields})

    return _remap
