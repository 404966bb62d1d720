"""
JSON:API resource helpers for IT Glue.

IT Glue wraps every record as ``{"id", "type", "attributes", "relationships"}``
with kebab-case attribute names, and takes filters as ``filter[<field>]``
query parameters with snake-case field names.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Resource:
    """A single JSON:API resource object."""

    id: str
    type: str
    attributes: dict[str, Any] = field(default_factory=dict)
    relationships: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Resource":
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", ""),
            attributes=data.get("attributes") or {},
            relationships=data.get("relationships") or {},
        )

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attributes.get(attribute, default)

    @property
    def name(self) -> str:
        return self.attributes.get("name") or ""


def build_params(
    filters: dict[str, Any] | None = None,
    page_size: int | None = None,
    sort: str | None = None,
    include: Iterable[str] | None = None,
) -> dict[str, str]:
    """
    Build IT Glue collection query parameters.

    Args:
        filters: Field name to value; lists are joined with commas
        page_size: Value for page[size]
        sort: Sort expression, e.g. "-updated_at"
        include: Related resources to side-load

    Returns:
        Query parameters for requests

    Example:
        >>> build_params({"organization_id": 42, "id": [1, 2]}, page_size=50)
        {'filter[organization_id]': '42', 'filter[id]': '1,2', 'page[size]': '50'}
    """
    params: dict[str, str] = {}
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple, set)):
            value = ",".join(str(v) for v in value)
        params[f"filter[{key}]"] = str(value)
    if page_size:
        params["page[size]"] = str(page_size)
    if sort:
        params["sort"] = sort
    if include:
        params["include"] = ",".join(include)
    return params


def to_payload(
    resource_type: str, attributes: dict[str, Any], resource_id: str | int | None = None
) -> dict[str, Any]:
    """Wrap attributes in a JSON:API document for create or update."""
    data: dict[str, Any] = {"type": resource_type, "attributes": attributes}
    if resource_id is not None:
        data["id"] = str(resource_id)
    return {"data": data}


def to_bulk_payload(resource_type: str, ids: Iterable[str | int]) -> dict[str, Any]:
    """Build the body IT Glue expects for bulk DELETE requests."""
    return {"data": [{"type": resource_type, "attributes": {"id": str(i)}} for i in ids]}
