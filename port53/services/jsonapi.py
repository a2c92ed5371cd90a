"""
JSON:API codec
Unmarshals request bodies into documents and renders rows as documents
"""

from typing import Any, Dict, List, Optional, Sequence, Union
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from ..models.jsonapi import (
    Document, Links, Relationship, ResourceIdentifier, ResourceObject
)
from .associations import AssociationManager, RELATIONS, relationship_kind, relationships_of
from .errors import BadRequestError
from .pagination import LinkSet
from .query import Query


MEDIA_TYPE = "application/vnd.api+json"


class JSONAPIResponse(JSONResponse):
    """JSON response with the JSON:API media type, accepts Document models"""
    media_type = MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        if isinstance(content, BaseModel):
            content = render_document(content)
        return super().render(content)


def render_document(document: BaseModel) -> Dict[str, Any]:
    # Only what was set explicitly, so a null to-one linkage survives
    return document.model_dump(mode="json", by_alias=True, exclude_unset=True)


# =============================================================================
# Unmarshal
# =============================================================================

def unmarshal_document(body: bytes) -> Document:
    """Parse a request body, absent or malformed bodies are a BadRequestError"""
    if not body or not body.strip():
        raise BadRequestError("Request body is required")
    try:
        return Document.model_validate_json(body)
    except ValidationError:
        raise BadRequestError("Body is not a json:api representation")


def unmarshal_resource(body: bytes, resource_type: str) -> ResourceObject:
    """Single resource object of the given type"""
    document = unmarshal_document(body)
    if not isinstance(document.data, ResourceObject):
        raise BadRequestError(f"Body is not a json:api representation of {resource_type}")
    if document.data.type != resource_type:
        raise BadRequestError(
            f"Expected resource type '{resource_type}', got '{document.data.type}'"
        )
    return document.data


def _identifier(resource: Union[ResourceObject, ResourceIdentifier], resource_type: str, label: str) -> str:
    if resource.type != resource_type:
        raise BadRequestError(f"Expected resource type '{resource_type}', got '{resource.type}'")
    if not resource.id:
        raise BadRequestError(f"{label} ID is required")
    return resource.id


def unmarshal_identifier(body: bytes, resource_type: str, label: str) -> str:
    """Identifier of the single resource named in a relationship body"""
    try:
        document = unmarshal_document(body)
    except BadRequestError:
        raise BadRequestError(f"{label} ID is required")
    if not isinstance(document.data, ResourceObject):
        raise BadRequestError(f"{label} ID is required")
    return _identifier(document.data, resource_type, label)


def unmarshal_identifiers(body: bytes, resource_type: str, label: str, to_one: bool = False) -> List[str]:
    """
    Identifiers of a full relationship replacement.
    To-many bodies carry a list, possibly empty. To-one bodies carry an
    identifier or null.
    """
    document = unmarshal_document(body)
    data = document.data
    if to_one:
        if data is None:
            return []
        if isinstance(data, ResourceObject):
            return [_identifier(data, resource_type, label)]
        raise BadRequestError(f"Body is not a json:api representation of a single {resource_type}")

    if not isinstance(data, list):
        raise BadRequestError(f"Body is not a json:api representation of a {resource_type} collection")
    return [_identifier(item, resource_type, label) for item in data]


def relationship_ids(resource: ResourceObject) -> Dict:
    """
    Relationship linkage of a resource body, keyed by relation kind.
    Unknown relationships and mistyped identifiers are a BadRequestError.
    """
    links = {}
    for name, relationship in resource.relationships.items():
        kind = relationship_kind(resource.type, name)
        if kind is None:
            raise BadRequestError(f"Unknown relationship '{name}' for {resource.type}")
        target = RELATIONS[kind].target
        data = relationship.data
        if data is None:
            identifiers = []
        elif isinstance(data, list):
            identifiers = data
        else:
            identifiers = [data]
        links[kind] = [_identifier(item, target.resource_type, target.label) for item in identifiers]
    return links


# =============================================================================
# Marshal
# =============================================================================

class ResourceSerializer:
    """Renders rows as resource objects with linkage, includes and sparse fieldsets"""

    def __init__(self, associations: AssociationManager, query: Optional[Query] = None):
        self.associations = associations
        self.query = query or Query()

    async def document(
        self,
        data,
        links: Optional[LinkSet] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Document:
        many = isinstance(data, list)
        rows = data if many else ([] if data is None else [data])
        resources, included = await self._render(rows)

        fields: Dict[str, Any] = {"data": resources if many else (resources[0] if resources else None)}
        if included:
            fields["included"] = included
        if links is not None:
            fields["links"] = _links(links)
        if meta is not None:
            fields["meta"] = meta
        return Document(**fields)

    async def _render(self, rows: Sequence) -> tuple:
        resources: List[ResourceObject] = []
        included: List[ResourceObject] = []
        seen = {(row.resource_type, row.id) for row in rows}

        # Rows of one call share a type, group anyway to keep linkage queries batched
        groups: Dict[str, list] = {}
        for row in rows:
            groups.setdefault(row.resource_type, []).append(row)

        rendered: Dict[tuple, ResourceObject] = {}
        for resource_type, group in groups.items():
            ids = [row.id for row in group]
            linkage = {}
            for name, kind in relationships_of(resource_type).items():
                linkage[name] = (kind, await self.associations.linked_ids(kind, ids))

            fieldset = self._fieldset(resource_type)
            for row in group:
                relationships = {}
                for name, (kind, linked) in linkage.items():
                    relationships[name] = _relationship(kind, linked[row.id])
                rendered[(resource_type, row.id)] = ResourceObject(
                    type=resource_type,
                    id=row.id,
                    attributes=_attributes(row, fieldset),
                    relationships=relationships,
                )

            for name, (kind, linked) in linkage.items():
                if not self._includes(resource_type, name):
                    continue
                target_ids = [target_id for targets in linked.values() for target_id in targets]
                for target in await self.associations.fetch_targets(kind, target_ids):
                    key = (target.resource_type, target.id)
                    if key in seen:
                        continue
                    seen.add(key)
                    included.append(ResourceObject(
                        type=target.resource_type,
                        id=target.id,
                        attributes=_attributes(target, self._fieldset(target.resource_type, name)),
                    ))

        for row in rows:
            resources.append(rendered[(row.resource_type, row.id)])
        return resources, included

    def _includes(self, resource_type: str, name: str) -> bool:
        for requested in self.query.includes:
            if relationship_kind(resource_type, requested) == relationships_of(resource_type)[name]:
                return True
        return False

    def _fieldset(self, resource_type: str, relation: Optional[str] = None) -> Optional[List[str]]:
        """Requested attribute names, None means all of them"""
        for name in (relation, resource_type):
            include = self.query.includes.get(name) if name else None
            if include is not None and include.fields:
                return include.fields
        return None


def _attributes(row, fieldset: Optional[List[str]]) -> Dict[str, Any]:
    return {
        name: getattr(row, name)
        for name in row.attributes
        if fieldset is None or name in fieldset
    }


def _relationship(kind, target_ids: List[str]) -> Relationship:
    relation = RELATIONS[kind]
    identifiers = [
        ResourceIdentifier(type=relation.target.resource_type, id=target_id)
        for target_id in target_ids
    ]
    if relation.to_one:
        return Relationship(data=identifiers[0] if identifiers else None)
    return Relationship(data=identifiers)


def _links(link_set: LinkSet) -> Links:
    values = {"self_link": link_set.self_link, "first": link_set.first, "last": link_set.last}
    if link_set.previous is not None:
        values["prev"] = link_set.previous
    if link_set.next is not None:
        values["next"] = link_set.next
    return Links(**values)
