"""Tests for the resource store: identifiers, soft deletes, filters and conflicts."""

import pytest

from port53.database import Backend, Record, Zone, new_identifier
from port53.services.associations import RelationKind
from port53.services.errors import BadRequestError, MalformedQueryError, NotFoundError
from port53.services.pagination import new_page
from port53.services.store import ConstraintViolation


BACKEND_ID = "01F1ZQZJXQXZJXZJXZJXZJXZJX"
ZONE_ID = "01GP0JQGFM61EKSCDGRDZ6H6QX"


class TestCreate:
    async def test_generates_identifier(self, store):
        backend = await store.create(Backend, {"name": "bind"})
        assert len(backend.id) == 26

    async def test_keeps_client_identifier(self, store):
        backend = await store.create(Backend, {"id": BACKEND_ID, "name": "bind"})
        assert backend.id == BACKEND_ID

    async def test_rejects_invalid_identifier(self, store):
        with pytest.raises(BadRequestError, match="Invalid Backend ID"):
            await store.create(Backend, {"id": "B1", "name": "bind"})

    async def test_zone_defaults(self, store):
        zone = await store.create(Zone, {"id": ZONE_ID, "name": "martinez.io"})
        fetched = await store.get(Zone, ZONE_ID)
        assert zone.id == fetched.id
        assert (fetched.ttl, fetched.mname, fetched.rname, fetched.serial) == (3600, "@", "admin", 1)
        assert (fetched.refresh, fetched.retry, fetched.expire, fetched.minimum) == (3600, 600, 604800, 3600)

    async def test_duplicate_name_is_a_constraint_violation(self, store):
        await store.create(Backend, {"id": BACKEND_ID, "name": "bind"})
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.create(Backend, {"name": "bind"})
        assert exc_info.value.field == "name"
        assert exc_info.value.existing_id == BACKEND_ID

    async def test_duplicate_identifier_is_a_constraint_violation(self, store):
        await store.create(Backend, {"id": BACKEND_ID, "name": "bind"})
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.create(Backend, {"id": BACKEND_ID, "name": "powerdns"})
        assert exc_info.value.field == "id"

    async def test_name_is_reusable_after_delete(self, store):
        first = await store.create(Backend, {"name": "bind"})
        await store.delete(Backend, first.id)
        second = await store.create(Backend, {"name": "bind"})
        assert second.id != first.id

    async def test_identifier_of_deleted_row_is_rejected(self, store):
        await store.create(Backend, {"id": BACKEND_ID, "name": "bind"})
        await store.delete(Backend, BACKEND_ID)
        with pytest.raises(BadRequestError, match="belonged to a deleted backend"):
            await store.create(Backend, {"id": BACKEND_ID, "name": "powerdns"})

    async def test_missing_related_zone_leaves_nothing_behind(self, store):
        with pytest.raises(NotFoundError, match="Zone not found"):
            await store.create(
                Record,
                {"name": "www", "type": "A", "content": "192.0.2.1"},
                {RelationKind.RECORD_ZONE: [new_identifier()]},
            )
        assert await store.count(Record) == 0


class TestUpdate:
    async def test_applies_only_present_fields(self, store):
        zone = await store.create(Zone, {"name": "martinez.io", "ttl": 60})
        await store.update(Zone, zone.id, {"serial": 2})
        fetched = await store.get(Zone, zone.id)
        assert (fetched.name, fetched.ttl, fetched.serial) == ("martinez.io", 60, 2)

    async def test_missing_row(self, store):
        with pytest.raises(NotFoundError, match="Zone not found"):
            await store.update(Zone, new_identifier(), {"serial": 2})

    async def test_rename_onto_existing_name(self, store):
        taken = await store.create(Zone, {"name": "a.example.com"})
        zone = await store.create(Zone, {"name": "b.example.com"})
        with pytest.raises(ConstraintViolation) as exc_info:
            await store.update(Zone, zone.id, {"name": "a.example.com"})
        assert exc_info.value.existing_id == taken.id


class TestDelete:
    async def test_soft_delete_hides_row(self, store):
        backend = await store.create(Backend, {"name": "bind"})
        assert await store.delete(Backend, backend.id) is True
        assert await store.find(Backend, backend.id) is None
        assert await store.count(Backend) == 0

    async def test_delete_is_idempotent(self, store):
        assert await store.delete(Backend, new_identifier()) is False


class TestList:
    @pytest.fixture
    async def zones(self, store):
        names = ["a.example.com", "b.example.com", "c.example.com", "d.example.com"]
        return [await store.create(Zone, {"name": name, "ttl": 60 * (i + 1)}) for i, name in enumerate(names)]

    async def test_values_of_one_field_are_ored(self, store, zones):
        rows, total = await store.list(
            Zone, {"name": ["a.example.com", "c.example.com"]}, [], new_page()
        )
        assert total == 2
        assert sorted(row.name for row in rows) == ["a.example.com", "c.example.com"]

    async def test_fields_are_anded(self, store, zones):
        rows, total = await store.list(
            Zone, {"name": ["a.example.com", "c.example.com"], "ttl": ["180"]}, [], new_page()
        )
        assert total == 1
        assert rows[0].name == "c.example.com"

    async def test_sort_descending(self, store, zones):
        rows, _ = await store.list(Zone, {}, ["-name"], new_page())
        assert [row.name for row in rows] == [
            "d.example.com", "c.example.com", "b.example.com", "a.example.com"
        ]

    async def test_page_offset(self, store, zones):
        rows, total = await store.list(Zone, {}, ["name"], new_page(1, 3))
        assert total == 4
        assert [row.name for row in rows] == ["d.example.com"]

    async def test_page_past_the_end_serves_last_page(self, store, zones):
        page = new_page(5, 2)
        rows, _ = await store.list(Zone, {}, ["name"], page)
        assert page.number == 1
        assert [row.name for row in rows] == ["c.example.com", "d.example.com"]

    async def test_records_filter_by_zone(self, store, zones):
        await store.create(
            Record, {"name": "www", "type": "A", "content": "192.0.2.1"},
            {RelationKind.RECORD_ZONE: [zones[0].id]},
        )
        await store.create(
            Record, {"name": "mail", "type": "A", "content": "192.0.2.2"},
            {RelationKind.RECORD_ZONE: [zones[1].id]},
        )
        rows, total = await store.list(Record, {"zone": [zones[1].id]}, [], new_page())
        assert total == 1
        assert rows[0].name == "mail"

    @pytest.mark.parametrize("filters, sort", [
        ({"nope": ["x"]}, []),
        ({"ttl": ["sixty"]}, []),
        ({"ttl": ["99999999999999999999999"]}, []),
        ({}, ["-nope"]),
    ])
    async def test_malformed_query(self, store, zones, filters, sort):
        with pytest.raises(MalformedQueryError):
            await store.list(Zone, filters, sort, new_page())
