"""
Association Service - links between backends, zones and records
Add/remove/replace-set semantics over an explicit join table and a foreign key
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
from sqlalchemy import Column, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Database, Backend, Zone, Record, backend_zones
from .errors import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)


class RelationKind(str, Enum):
    """Named relationship an association operation targets"""
    BACKEND_ZONES = "backends.zones"
    ZONE_BACKENDS = "zones.backends"
    ZONE_RECORDS = "zones.records"
    RECORD_ZONE = "records.zone"


# How the link is stored
JOIN_TABLE = "join_table"     # row in a join table
TARGET_KEY = "target_key"     # foreign key on the target row
OWNER_KEY = "owner_key"       # foreign key on the owner row


class Relation:
    """Storage description of one relation kind"""

    def __init__(
        self,
        owner,
        target,
        storage: str,
        owner_column: Column,
        target_column: Column,
        to_one: bool = False,
    ):
        self.owner = owner
        self.target = target
        self.storage = storage
        self.owner_column = owner_column
        self.target_column = target_column
        self.to_one = to_one


RELATIONS: Dict[RelationKind, Relation] = {
    RelationKind.BACKEND_ZONES: Relation(
        Backend, Zone, JOIN_TABLE,
        owner_column=backend_zones.c.backend_id,
        target_column=backend_zones.c.zone_id,
    ),
    RelationKind.ZONE_BACKENDS: Relation(
        Zone, Backend, JOIN_TABLE,
        owner_column=backend_zones.c.zone_id,
        target_column=backend_zones.c.backend_id,
    ),
    RelationKind.ZONE_RECORDS: Relation(
        Zone, Record, TARGET_KEY,
        owner_column=Record.zone_id,
        target_column=Record.id,
    ),
    RelationKind.RECORD_ZONE: Relation(
        Record, Zone, OWNER_KEY,
        owner_column=Record.id,
        target_column=Record.zone_id,
        to_one=True,
    ),
}

# Relationship names exposed per resource type
RELATIONSHIPS: Dict[str, Dict[str, RelationKind]] = {
    "backends": {"zones": RelationKind.BACKEND_ZONES},
    "zones": {
        "backends": RelationKind.ZONE_BACKENDS,
        "records": RelationKind.ZONE_RECORDS,
    },
    "records": {"zone": RelationKind.RECORD_ZONE},
}

# Older clients name the record side after the target collection
RELATIONSHIP_ALIASES: Dict[str, Dict[str, str]] = {
    "records": {"zones": "zone"},
}


def relationships_of(resource_type: str) -> Dict[str, RelationKind]:
    """Relationship name -> kind for a resource type"""
    return RELATIONSHIPS.get(resource_type, {})


def relationship_kind(resource_type: str, name: str) -> Optional[RelationKind]:
    """Resolve a relationship name (or alias) of a resource type, None if unknown"""
    name = RELATIONSHIP_ALIASES.get(resource_type, {}).get(name, name)
    return relationships_of(resource_type).get(name)


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in ids:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class AssociationManager:
    """
    Add, remove and replace associations.

    Every public mutation runs inside one transaction and starts by locking
    the owner row, so a failure leaves no partial state and two mutations of
    the same owner never interleave.
    """

    def __init__(self, database: Database):
        self.database = database

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def add(self, kind: RelationKind, owner_id: str, target_id: str):
        """Link target to owner, adding an existing link is a no-op"""
        async with self.database.transaction() as session:
            return await self.add_within(session, kind, owner_id, target_id)

    async def remove(self, kind: RelationKind, owner_id: str, target_id: str) -> list:
        """Unlink target from owner, returns the remaining targets"""
        async with self.database.transaction() as session:
            return await self.remove_within(session, kind, owner_id, target_id)

    async def replace(self, kind: RelationKind, owner_id: str, target_ids: Sequence[str]) -> list:
        """Make the owner's targets exactly target_ids, all or nothing"""
        async with self.database.transaction() as session:
            return await self.replace_within(session, kind, owner_id, target_ids)

    async def list_targets(self, kind: RelationKind, owner_id: str) -> list:
        """Live targets linked to a live owner"""
        relation = RELATIONS[kind]
        async with self.database.session() as session:
            await self._get_owner(session, relation, owner_id)
            return await self._targets(session, kind, owner_id)

    async def linked_ids(self, kind: RelationKind, owner_ids: Sequence[str]) -> Dict[str, List[str]]:
        """Target identifiers per owner, for relationship linkage"""
        async with self.database.session() as session:
            return await self._linked_ids(session, kind, owner_ids)

    async def fetch_targets(self, kind: RelationKind, target_ids: Sequence[str]) -> list:
        """Live target rows by identifier, ordered by identifier"""
        relation = RELATIONS[kind]
        target_ids = _unique(target_ids)
        if not target_ids:
            return []
        async with self.database.session() as session:
            result = await session.execute(
                select(relation.target)
                .where(relation.target.id.in_(target_ids), relation.target.deleted_at.is_(None))
                .order_by(relation.target.id)
            )
            return list(result.scalars().all())

    # =========================================================================
    # Transaction-scoped Operations
    # =========================================================================

    async def add_within(self, session: AsyncSession, kind: RelationKind, owner_id: str, target_id: str):
        relation = RELATIONS[kind]
        await self._get_owner(session, relation, owner_id, lock=True)
        targets = await self._resolve_targets(session, relation, [target_id])

        if relation.storage == JOIN_TABLE:
            existing = await session.execute(
                select(relation.owner_column).where(
                    relation.owner_column == owner_id,
                    relation.target_column == target_id,
                )
            )
            if existing.first() is None:
                await session.execute(
                    insert(backend_zones).values({
                        relation.owner_column.name: owner_id,
                        relation.target_column.name: target_id,
                    })
                )
        elif relation.storage == TARGET_KEY:
            await session.execute(
                update(Record)
                .where(Record.id == target_id)
                .values(zone_id=owner_id)
            )
        else:
            await session.execute(
                update(Record)
                .where(Record.id == owner_id)
                .values(zone_id=target_id)
            )

        logger.info(f"Linked {kind.value}: {owner_id} -> {target_id}")
        return targets[0]

    async def remove_within(self, session: AsyncSession, kind: RelationKind, owner_id: str, target_id: str) -> list:
        relation = RELATIONS[kind]
        await self._get_owner(session, relation, owner_id, lock=True)

        if relation.storage == JOIN_TABLE:
            await session.execute(
                delete(backend_zones).where(
                    relation.owner_column == owner_id,
                    relation.target_column == target_id,
                )
            )
        elif relation.storage == TARGET_KEY:
            await session.execute(
                update(Record)
                .where(Record.id == target_id, Record.zone_id == owner_id)
                .values(zone_id=None)
            )
        else:
            await session.execute(
                update(Record)
                .where(Record.id == owner_id, Record.zone_id == target_id)
                .values(zone_id=None)
            )

        logger.info(f"Unlinked {kind.value}: {owner_id} -x- {target_id}")
        return await self._targets(session, kind, owner_id)

    async def replace_within(
        self,
        session: AsyncSession,
        kind: RelationKind,
        owner_id: str,
        target_ids: Sequence[str],
    ) -> list:
        relation = RELATIONS[kind]
        target_ids = _unique(target_ids)
        if relation.to_one and len(target_ids) > 1:
            raise BadRequestError(
                f"A {relation.owner.label.lower()} belongs to at most one {relation.target.label.lower()}"
            )

        await self._get_owner(session, relation, owner_id, lock=True)
        # Resolve everything before touching a single link
        await self._resolve_targets(session, relation, target_ids)

        if relation.storage == JOIN_TABLE:
            await session.execute(
                delete(backend_zones).where(
                    relation.owner_column == owner_id,
                    relation.target_column.not_in(target_ids),
                )
            )
            current = await session.execute(
                select(relation.target_column).where(relation.owner_column == owner_id)
            )
            present = set(current.scalars().all())
            missing = [target_id for target_id in target_ids if target_id not in present]
            if missing:
                await session.execute(
                    insert(backend_zones),
                    [
                        {relation.owner_column.name: owner_id, relation.target_column.name: target_id}
                        for target_id in missing
                    ],
                )
        elif relation.storage == TARGET_KEY:
            await session.execute(
                update(Record)
                .where(Record.zone_id == owner_id, Record.id.not_in(target_ids))
                .values(zone_id=None)
            )
            if target_ids:
                await session.execute(
                    update(Record)
                    .where(Record.id.in_(target_ids))
                    .values(zone_id=owner_id)
                )
        else:
            await session.execute(
                update(Record)
                .where(Record.id == owner_id)
                .values(zone_id=target_ids[0] if target_ids else None)
            )

        logger.info(f"Replaced {kind.value} for {owner_id}: {len(target_ids)} target(s)")
        return await self._targets(session, kind, owner_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_owner(self, session: AsyncSession, relation: Relation, owner_id: str, lock: bool = False):
        statement = select(relation.owner).where(
            relation.owner.id == owner_id,
            relation.owner.deleted_at.is_(None),
        )
        if lock:
            statement = statement.with_for_update()
        owner = (await session.execute(statement)).scalar_one_or_none()
        if owner is None:
            raise NotFoundError(f"{relation.owner.label} not found", missing=[owner_id])
        return owner

    async def _resolve_targets(self, session: AsyncSession, relation: Relation, target_ids: Sequence[str]) -> list:
        if not target_ids:
            return []
        result = await session.execute(
            select(relation.target).where(
                relation.target.id.in_(target_ids),
                relation.target.deleted_at.is_(None),
            )
        )
        found = {row.id: row for row in result.scalars().all()}
        missing = [target_id for target_id in target_ids if target_id not in found]
        if missing:
            logger.info(f"Unresolved {relation.target.label} identifiers: {', '.join(missing)}")
            raise NotFoundError(f"{relation.target.label} not found", missing=missing)
        return [found[target_id] for target_id in target_ids]

    async def _linked_ids(self, session: AsyncSession, kind: RelationKind, owner_ids: Sequence[str]) -> Dict[str, List[str]]:
        relation = RELATIONS[kind]
        owner_ids = _unique(owner_ids)
        linkage: Dict[str, List[str]] = {owner_id: [] for owner_id in owner_ids}
        if not owner_ids:
            return linkage

        target = relation.target
        if relation.storage == TARGET_KEY:
            statement = select(Record.zone_id, Record.id).where(
                Record.zone_id.in_(owner_ids),
                Record.deleted_at.is_(None),
            )
        else:
            statement = (
                select(relation.owner_column, target.id)
                .select_from(backend_zones if relation.storage == JOIN_TABLE else Record)
                .join(target, target.id == relation.target_column)
                .where(relation.owner_column.in_(owner_ids), target.deleted_at.is_(None))
            )
        statement = statement.order_by(target.id)

        for owner_id, target_id in (await session.execute(statement)).all():
            linkage[owner_id].append(target_id)
        return linkage

    async def _targets(self, session: AsyncSession, kind: RelationKind, owner_id: str) -> list:
        relation = RELATIONS[kind]
        target = relation.target
        if relation.storage == TARGET_KEY:
            statement = select(Record).where(Record.zone_id == owner_id)
        elif relation.storage == OWNER_KEY:
            statement = (
                select(target)
                .join(Record, Record.zone_id == target.id)
                .where(Record.id == owner_id)
            )
        else:
            statement = (
                select(target)
                .join(backend_zones, relation.target_column == target.id)
                .where(relation.owner_column == owner_id)
            )
        statement = statement.where(target.deleted_at.is_(None)).order_by(target.id)
        # Rows updated by bulk statements in this session must be re-read
        statement = statement.execution_options(populate_existing=True)
        return list((await session.execute(statement)).scalars().all())
