"""
Resource route orchestration shared by backends, zones and records
Binds the request, validates, calls the store or association manager and serializes
"""

import logging
from typing import Callable, Dict, Optional, Sequence, Type
from fastapi import Request, Response, status
from pydantic import BaseModel, ValidationError

from ..database import Database, log_audit
from ..services.associations import AssociationManager, RELATIONS, relationship_kind, relationships_of
from ..services.errors import BadRequestError, ConflictError, MalformedQueryError, NotFoundError
from ..services.jsonapi import (
    JSONAPIResponse, ResourceSerializer, relationship_ids,
    unmarshal_identifier, unmarshal_identifiers, unmarshal_resource,
)
from ..services.pagination import compute_links, new_page
from ..services.query import PageParams, Query, parse_query
from ..services.store import ConstraintViolation, ResourceStore


logger = logging.getLogger(__name__)


def _validation_message(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "attributes"
        messages.append(f"{field}: {item['msg']}")
    return "; ".join(messages)


class ResourceRoute:
    """
    Request handling for one resource type.

    Router modules declare the endpoints and delegate here, so every
    resource binds bodies, reports errors and builds documents the same way.
    """

    def __init__(
        self,
        model,
        create_schema: Type[BaseModel],
        patch_schema: Type[BaseModel],
        check: Optional[Callable[[Dict], None]] = None,
        required_relationships: Sequence[str] = (),
    ):
        self.model = model
        self.create_schema = create_schema
        self.patch_schema = patch_schema
        self.check = check
        self.required_relationships = required_relationships

    @property
    def resource_type(self) -> str:
        return self.model.resource_type

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def list(self, request: Request, database: Database) -> JSONAPIResponse:
        settings = request.app.state.settings
        query = self._query(request)
        requested = query.page or PageParams(size=settings.default_page_size)
        if requested.size > settings.max_page_size:
            raise MalformedQueryError(
                "page[size]", str(requested.size), f"must not exceed {settings.max_page_size}"
            )
        page = new_page(requested.number, requested.size)

        store = ResourceStore(database)
        rows, total = await store.list(self.model, query.filters, query.sort, page)

        links = compute_links(page, total, self._collection_url(request, query))
        document = await self._serializer(store, query).document(rows, links=links, meta={"total": total})
        return JSONAPIResponse(document)

    async def get(self, request: Request, database: Database, resource_id: str) -> JSONAPIResponse:
        query = self._query(request)
        store = ResourceStore(database)
        row = await store.get(self.model, resource_id)
        return JSONAPIResponse(await self._serializer(store, query).document(row))

    async def create(self, request: Request, database: Database) -> JSONAPIResponse:
        resource = unmarshal_resource(await request.body(), self.resource_type)
        attributes = self._bind(self.create_schema, resource.attributes).model_dump()
        if not attributes.get("name"):
            raise BadRequestError("Name is required")
        if self.check:
            self.check(attributes)

        links = relationship_ids(resource)
        for name in self.required_relationships:
            kind = relationship_kind(self.resource_type, name)
            if not links.get(kind):
                raise BadRequestError(f"{RELATIONS[kind].target.label} ID is required")

        if resource.id:
            attributes["id"] = resource.id

        store = ResourceStore(database)
        try:
            row = await store.create(self.model, attributes, links)
        except ConstraintViolation as violation:
            raise self._conflict(request, violation)

        await self._audit(request, database, "CREATE", row.id, details=f"name={row.name}")
        document = await self._serializer(store).document(row)
        return JSONAPIResponse(
            document,
            status_code=status.HTTP_201_CREATED,
            headers={"Location": self.location(request, row.id)},
        )

    async def update(self, request: Request, database: Database, resource_id: str) -> JSONAPIResponse:
        resource = unmarshal_resource(await request.body(), self.resource_type)
        if resource.id and resource.id != resource_id:
            raise BadRequestError(f"{self.model.label} ID in body does not match the URL")

        changes = self._bind(self.patch_schema, resource.attributes).model_dump(exclude_unset=True)
        cleared = [field for field, value in changes.items() if value is None]
        if cleared:
            raise BadRequestError(f"Attributes cannot be null: {', '.join(cleared)}")
        if "name" in changes and not changes["name"]:
            raise BadRequestError("Name is required")
        if self.check:
            self.check(changes)

        links = relationship_ids(resource)
        store = ResourceStore(database)
        try:
            row = await store.update(self.model, resource_id, changes, links)
        except ConstraintViolation as violation:
            raise self._conflict(request, violation)

        await self._audit(request, database, "UPDATE", resource_id, details=", ".join(changes) or None)
        return JSONAPIResponse(await self._serializer(store).document(row))

    async def delete(self, request: Request, database: Database, resource_id: str) -> Response:
        deleted = await ResourceStore(database).delete(self.model, resource_id)
        if deleted:
            await self._audit(request, database, "DELETE", resource_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # =========================================================================
    # Relationship Operations
    # =========================================================================

    async def list_related(self, request: Request, database: Database, resource_id: str, relation: str):
        kind = self._kind(relation)
        associations = AssociationManager(database)
        targets = await associations.list_targets(kind, resource_id)
        if not targets:
            raise NotFoundError(f"{self.model.label} doesn't have any {relation}")
        return await self._related_response(associations, kind, targets)

    async def add_related(self, request: Request, database: Database, resource_id: str, relation: str):
        kind = self._kind(relation)
        target = RELATIONS[kind].target
        await ResourceStore(database).get(self.model, resource_id)
        target_id = unmarshal_identifier(await request.body(), target.resource_type, target.label)

        associations = AssociationManager(database)
        linked = await associations.add(kind, resource_id, target_id)
        await self._audit(request, database, "LINK", resource_id, details=f"{relation}={target_id}")
        return JSONAPIResponse(await ResourceSerializer(associations).document(linked))

    async def remove_related(self, request: Request, database: Database, resource_id: str, relation: str):
        kind = self._kind(relation)
        target = RELATIONS[kind].target
        await ResourceStore(database).get(self.model, resource_id)
        target_id = unmarshal_identifier(await request.body(), target.resource_type, target.label)

        associations = AssociationManager(database)
        remaining = await associations.remove(kind, resource_id, target_id)
        await self._audit(request, database, "UNLINK", resource_id, details=f"{relation}={target_id}")
        if not remaining:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return await self._related_response(associations, kind, remaining)

    async def replace_related(self, request: Request, database: Database, resource_id: str, relation: str):
        kind = self._kind(relation)
        target = RELATIONS[kind].target
        await ResourceStore(database).get(self.model, resource_id)
        target_ids = unmarshal_identifiers(
            await request.body(), target.resource_type, target.label, to_one=RELATIONS[kind].to_one
        )

        associations = AssociationManager(database)
        targets = await associations.replace(kind, resource_id, target_ids)
        await self._audit(
            request, database, "REPLACE", resource_id,
            details=f"{relation}=[{','.join(target_ids)}]",
        )
        if not targets:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return await self._related_response(associations, kind, targets)

    # =========================================================================
    # Helpers
    # =========================================================================

    def location(self, request: Request, resource_id: str) -> str:
        settings = request.app.state.settings
        return f"{settings.service_url}{settings.api_prefix}/{self.resource_type}/{resource_id}"

    def _kind(self, relation: str):
        kind = relationship_kind(self.resource_type, relation)
        if kind is None:
            raise NotFoundError(f"{self.model.label} has no relationship '{relation}'")
        return kind

    def _query(self, request: Request) -> Query:
        query = parse_query(request.url.query, request.app.state.settings.default_page_size)
        known = set(relationships_of(self.resource_type))
        for name in query.includes:
            if name == self.resource_type or name in known:
                continue
            if relationship_kind(self.resource_type, name) is None:
                raise MalformedQueryError("include", name, "unknown relationship")
        return query

    def _collection_url(self, request: Request, query: Query) -> str:
        settings = request.app.state.settings
        base = f"{settings.service_url}{request.url.path}"
        rest = query.without_page().serialize()
        return f"{base}?{rest}" if rest else base

    def _bind(self, schema: Type[BaseModel], attributes: Dict) -> BaseModel:
        try:
            return schema.model_validate(attributes)
        except ValidationError as e:
            raise BadRequestError(f"Invalid attributes: {_validation_message(e)}")

    def _serializer(self, store: ResourceStore, query: Optional[Query] = None) -> ResourceSerializer:
        return ResourceSerializer(store.associations, query)

    async def _related_response(self, associations: AssociationManager, kind, targets: list) -> JSONAPIResponse:
        serializer = ResourceSerializer(associations)
        if RELATIONS[kind].to_one:
            return JSONAPIResponse(await serializer.document(targets[0]))
        return JSONAPIResponse(await serializer.document(targets))

    def _conflict(self, request: Request, violation: ConstraintViolation) -> ConflictError:
        location = self.location(request, violation.existing_id)
        logger.warning(
            f"Conflict on {self.resource_type}.{violation.field}, existing resource at {location}"
        )
        return ConflictError(f"{self.model.label} already exists", location=location)

    async def _audit(self, request: Request, database: Database, action: str, resource_id: str, details: str = None):
        await log_audit(
            database,
            action=action,
            resource_type=self.resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
