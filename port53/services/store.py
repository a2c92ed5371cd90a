"""
Resource Store - create/read/update/delete for backends, zones and records
Soft deletes, filtered and paginated listing, typed unique constraint violations
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy import Column, func, select, update
from sqlalchemy.exc import IntegrityError

from ..database import Database, new_identifier, parse_identifier
from .associations import AssociationManager, RelationKind
from .errors import BadRequestError, MalformedQueryError, NotFoundError
from .pagination import Page


logger = logging.getLogger(__name__)


# Fields that are unique among live rows, per resource type
UNIQUE_FIELDS = {
    "backends": ("name",),
    "zones": ("name",),
}

# Query field names that map onto a differently named column
FIELD_ALIASES = {
    "records": {"zone": "zone_id"},
}

MIN_INTEGER = -(2 ** 63)
MAX_INTEGER = 2 ** 63 - 1


class ConstraintViolation(Exception):
    """A unique constraint failed, existing_id names the row already holding the value"""

    def __init__(self, model, field: str, existing_id: str):
        self.model = model
        self.field = field
        self.existing_id = existing_id
        super().__init__(f"unique constraint violated: {model.resource_type}.{field}")


class ResourceStore:
    """CRUD over one storage handle"""

    def __init__(self, database: Database, associations: Optional[AssociationManager] = None):
        self.database = database
        self.associations = associations or AssociationManager(database)

    # =========================================================================
    # Reads
    # =========================================================================

    async def find(self, model, resource_id: str):
        """Live row or None"""
        async with self.database.session() as session:
            result = await session.execute(
                select(model).where(model.id == resource_id, model.deleted_at.is_(None))
            )
            return result.scalar_one_or_none()

    async def get(self, model, resource_id: str):
        """Live row, raises NotFoundError"""
        row = await self.find(model, resource_id)
        if row is None:
            raise NotFoundError(f"{model.label} not found", missing=[resource_id])
        return row

    async def list(
        self,
        model,
        filters: Dict[str, List[str]],
        sort: Sequence[str],
        page: Page,
    ) -> Tuple[list, int]:
        """
        One page of live rows plus the total number of matching rows.
        Values of one field are ORed, different fields are ANDed.
        """
        conditions = [model.deleted_at.is_(None)]
        for field, values in filters.items():
            column = self._column(model, field, f"filter[{field}]")
            coerced = [self._coerce(column, f"filter[{field}]", value) for value in values]
            conditions.append(column.in_(coerced))

        async with self.database.session() as session:
            total = await session.scalar(
                select(func.count()).select_from(model).where(*conditions)
            )
            # Pages past the end serve the last page, as the links do
            page.total = total
            page.number = min(page.number, page.total_pages - 1)
            result = await session.execute(
                select(model)
                .where(*conditions)
                .order_by(*self._ordering(model, sort))
                .offset(page.offset)
                .limit(page.limit)
            )
            rows = list(result.scalars().all())

        return rows, total

    async def count(self, model) -> int:
        async with self.database.session() as session:
            return await session.scalar(
                select(func.count()).select_from(model).where(model.deleted_at.is_(None))
            )

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, model, values: Dict, links: Optional[Dict[RelationKind, List[str]]] = None):
        """
        Insert a row and its initial associations in one transaction.
        A missing id is generated, a supplied one must be a valid ULID.
        """
        values = dict(values)
        raw_id = values.pop("id", None)
        values["id"] = self._identifier(model, raw_id) if raw_id else new_identifier()

        try:
            async with self.database.transaction() as session:
                row = model(**values)
                session.add(row)
                await session.flush()
                for kind, target_ids in (links or {}).items():
                    await self.associations.replace_within(session, kind, row.id, target_ids)
        except IntegrityError as e:
            violation = await self._find_violation(model, values)
            if violation is not None:
                raise violation from e
            if await self._retired(model, values["id"]):
                raise BadRequestError(
                    f"{model.label} ID '{values['id']}' belonged to a deleted {model.label.lower()}"
                ) from e
            raise

        logger.info(f"Created {model.resource_type}/{row.id}")
        return row

    async def update(
        self,
        model,
        resource_id: str,
        changes: Dict,
        links: Optional[Dict[RelationKind, List[str]]] = None,
    ):
        """Apply exactly the attributes present in changes"""
        try:
            async with self.database.transaction() as session:
                result = await session.execute(
                    select(model)
                    .where(model.id == resource_id, model.deleted_at.is_(None))
                    .with_for_update()
                )
                row = result.scalar_one_or_none()
                if row is None:
                    raise NotFoundError(f"{model.label} not found", missing=[resource_id])
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.flush()
                for kind, target_ids in (links or {}).items():
                    await self.associations.replace_within(session, kind, row.id, target_ids)
        except IntegrityError as e:
            violation = await self._find_violation(model, changes, exclude_id=resource_id)
            if violation is None:
                raise
            raise violation from e

        logger.info(f"Updated {model.resource_type}/{resource_id}: {', '.join(changes) or 'relationships'}")
        return row

    async def delete(self, model, resource_id: str) -> bool:
        """Soft delete, deleting a missing row is not an error"""
        async with self.database.transaction() as session:
            result = await session.execute(
                update(model)
                .where(model.id == resource_id, model.deleted_at.is_(None))
                .values(deleted_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted {model.resource_type}/{resource_id}")
        return deleted

    # =========================================================================
    # Helpers
    # =========================================================================

    def _identifier(self, model, raw_id: str) -> str:
        try:
            return parse_identifier(raw_id)
        except (ValueError, TypeError):
            raise BadRequestError(f"Invalid {model.label} ID: '{raw_id}'")

    def _column(self, model, field: str, parameter: str) -> Column:
        name = FIELD_ALIASES.get(model.resource_type, {}).get(field, field)
        if field != "id" and field not in model.attributes and name == field:
            raise MalformedQueryError(parameter, field, "unknown field")
        return model.__table__.c[name]

    def _coerce(self, column: Column, parameter: str, value: str):
        python_type = column.type.python_type
        if python_type is str:
            return value
        try:
            coerced = python_type(value)
        except (TypeError, ValueError):
            raise MalformedQueryError(parameter, value)
        # Drivers bind integers as signed 64-bit
        if python_type is int and not MIN_INTEGER <= coerced <= MAX_INTEGER:
            raise MalformedQueryError(parameter, value, "out of range value")
        return coerced

    def _ordering(self, model, sort: Sequence[str]) -> List:
        ordering = []
        sorted_by_id = False
        for name in sort:
            descending = name.startswith("-")
            field = name[1:] if descending else name
            column = self._column(model, field, "sort")
            ordering.append(column.desc() if descending else column.asc())
            sorted_by_id = sorted_by_id or field == "id"
        if not sorted_by_id:
            ordering.append(model.__table__.c.id.asc())
        return ordering

    async def _find_violation(self, model, values: Dict, exclude_id: Optional[str] = None) -> Optional[ConstraintViolation]:
        """Work out which unique constraint a failed write ran into"""
        async with self.database.session() as session:
            for field in UNIQUE_FIELDS.get(model.resource_type, ()):
                if values.get(field) is None:
                    continue
                statement = select(model.id).where(
                    getattr(model, field) == values[field],
                    model.deleted_at.is_(None),
                )
                if exclude_id:
                    statement = statement.where(model.id != exclude_id)
                existing_id = await session.scalar(statement)
                if existing_id is not None:
                    return ConstraintViolation(model, field, existing_id)

            if values.get("id") and not exclude_id:
                existing_id = await session.scalar(
                    select(model.id).where(model.id == values["id"], model.deleted_at.is_(None))
                )
                if existing_id is not None:
                    return ConstraintViolation(model, "id", existing_id)
        return None

    async def _retired(self, model, resource_id: str) -> bool:
        """True when the identifier is held by a soft-deleted row"""
        async with self.database.session() as session:
            existing_id = await session.scalar(
                select(model.id).where(model.id == resource_id, model.deleted_at.is_not(None))
            )
        return existing_id is not None
