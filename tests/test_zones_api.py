"""API tests for zones, pagination links and the zone relationship endpoints.

Covers:
- POST/GET/PATCH/DELETE /v1/zones
- GET /v1/zones with filter, include, sort and page parameters
- /v1/zones/{id}/backends and /v1/zones/{id}/records
"""

import pytest
from fastapi.testclient import TestClient

from port53.database import new_identifier
from port53.main import create_app
from tests.conftest import SERVICE_URL
from tests.helpers import (
    JSONAPI_HEADERS, create_backend, create_record, create_zone, identifier_body,
    identifiers_body, linked_ids, resource_body,
)


pytestmark = pytest.mark.api

ZONE_ID = "01GP0JQGFM61EKSCDGRDZ6H6QX"


class TestZoneCrud:
    def test_create_with_defaults(self, client):
        response = client.post(
            "/v1/zones", content=resource_body("zones", {"name": "martinez.io."}, ZONE_ID), headers=JSONAPI_HEADERS
        )
        assert response.status_code == 201
        assert response.headers["location"] == f"{SERVICE_URL}/v1/zones/{ZONE_ID}"
        data = response.json()["data"]
        assert data["attributes"] == {
            "name": "martinez.io",
            "ttl": 3600,
            "mname": "@",
            "rname": "admin",
            "serial": 1,
            "refresh": 3600,
            "retry": 600,
            "expire": 604800,
            "minimum": 3600,
        }
        assert data["relationships"] == {"backends": {"data": []}, "records": {"data": []}}

    def test_invalid_name(self, client):
        response = client.post("/v1/zones", content=resource_body("zones", {"name": "bad..name"}))
        assert response.status_code == 400

    def test_invalid_ttl(self, client):
        response = client.post("/v1/zones", content=resource_body("zones", {"name": "martinez.io", "ttl": -5}))
        assert response.status_code == 400

    def test_duplicate_name(self, client):
        create_zone(client, "martinez.io", ZONE_ID)
        response = client.post("/v1/zones", content=resource_body("zones", {"name": "martinez.io"}))
        assert response.status_code == 409
        assert response.headers["location"] == f"{SERVICE_URL}/v1/zones/{ZONE_ID}"

    def test_patch_only_touches_present_attributes(self, client):
        create_zone(client, "martinez.io", ZONE_ID, ttl=60)
        response = client.patch(f"/v1/zones/{ZONE_ID}", content=resource_body("zones", {"serial": 2}))
        assert response.status_code == 200
        attributes = response.json()["data"]["attributes"]
        assert (attributes["ttl"], attributes["serial"]) == (60, 2)

    def test_patch_id_mismatch(self, client):
        create_zone(client, "martinez.io", ZONE_ID)
        response = client.patch(
            f"/v1/zones/{ZONE_ID}", content=resource_body("zones", {"serial": 2}, new_identifier())
        )
        assert response.status_code == 400

    def test_patch_missing_zone(self, client):
        response = client.patch(f"/v1/zones/{new_identifier()}", content=resource_body("zones", {"serial": 2}))
        assert response.status_code == 404

    def test_delete_orphans_records(self, client):
        zone_id = create_zone(client, "martinez.io")
        record_id = create_record(client, zone_id)
        assert client.delete(f"/v1/zones/{zone_id}").status_code == 204
        record = client.get(f"/v1/records/{record_id}").json()["data"]
        assert record["relationships"]["zone"]["data"] is None


class TestZoneListing:
    def test_page_past_the_end_is_clamped(self, client):
        for i in range(30):
            create_zone(client, f"zone{i:02d}.example.com")

        response = client.get("/v1/zones?page[number]=2&page[size]=15")
        assert response.status_code == 200
        body = response.json()
        links = body["links"]
        assert links["self"] == f"{SERVICE_URL}/v1/zones?page[number]=1&page[size]=15"
        assert links["prev"] == f"{SERVICE_URL}/v1/zones?page[number]=0&page[size]=15"
        assert "next" not in links
        assert links["first"] == f"{SERVICE_URL}/v1/zones?page[number]=0&page[size]=15"
        assert links["last"] == f"{SERVICE_URL}/v1/zones?page[number]=1&page[size]=15"
        assert body["meta"] == {"total": 30}
        assert len(body["data"]) == 15

    def test_default_page(self, client):
        for i in range(12):
            create_zone(client, f"zone{i:02d}.example.com")
        body = client.get("/v1/zones").json()
        assert len(body["data"]) == 10
        assert body["links"]["next"] == f"{SERVICE_URL}/v1/zones?page[number]=1&page[size]=10"
        assert "prev" not in body["links"]

    def test_links_keep_the_rest_of_the_query(self, client):
        create_zone(client, "a.example.com")
        body = client.get("/v1/zones?filter[name]=a.example.com&sort=-name&page[size]=5").json()
        assert body["links"]["self"] == (
            f"{SERVICE_URL}/v1/zones?filter[name]=a.example.com&sort=-name&page[number]=0&page[size]=5"
        )

    def test_empty_collection(self, client):
        body = client.get("/v1/zones").json()
        assert body["data"] == []
        assert body["links"]["first"] == body["links"]["last"] == body["links"]["self"]

    def test_page_size_limit(self, client):
        response = client.get("/v1/zones?page[size]=100000")
        assert response.status_code == 400

    def test_include_backends(self, client):
        zone_id = create_zone(client, "martinez.io")
        backend_id = create_backend(client, "bind")
        client.post(f"/v1/zones/{zone_id}/backends", content=identifier_body("backends", backend_id))

        body = client.get("/v1/zones?filter[name]=martinez.io&include=backends").json()
        assert body["data"][0]["relationships"]["backends"]["data"] == [{"type": "backends", "id": backend_id}]
        assert [item["id"] for item in body["included"]] == [backend_id]
        assert body["included"][0]["attributes"] == {"name": "bind"}

    def test_unknown_filter_field(self, client):
        response = client.get("/v1/zones?filter[colour]=blue")
        assert response.status_code == 400

    def test_out_of_range_integer_filter(self, client):
        response = client.get("/v1/zones?filter[ttl]=99999999999999999999999")
        assert response.status_code == 400
        assert "out of range value" in response.text

    def test_page_number_uses_configured_size(self, app_settings):
        settings = app_settings.model_copy(update={"default_page_size": 5})
        with TestClient(create_app(settings)) as client:
            for i in range(7):
                create_zone(client, f"zone{i:02d}.example.com")
            body = client.get("/v1/zones?page[number]=1").json()
        assert len(body["data"]) == 2
        assert body["links"]["self"] == f"{SERVICE_URL}/v1/zones?page[number]=1&page[size]=5"


class TestZoneBackends:
    def test_replace_and_list(self, client):
        zone_id = create_zone(client, "martinez.io")
        backends = [create_backend(client, name) for name in ("bind", "knot")]
        response = client.patch(f"/v1/zones/{zone_id}/backends", content=identifiers_body("backends", backends))
        assert response.status_code == 200
        assert sorted(linked_ids(client.get(f"/v1/zones/{zone_id}/backends"))) == sorted(backends)

    def test_list_empty(self, client):
        zone_id = create_zone(client, "martinez.io")
        response = client.get(f"/v1/zones/{zone_id}/backends")
        assert response.status_code == 404
        assert response.text == "Zone doesn't have any backends"

    def test_missing_zone(self, client):
        response = client.get(f"/v1/zones/{new_identifier()}/backends")
        assert response.status_code == 404
        assert response.text == "Zone not found"


class TestZoneRecords:
    def test_records_of_zone(self, client):
        zone_id = create_zone(client, "martinez.io")
        record_ids = [create_record(client, zone_id, name) for name in ("www", "mail")]
        response = client.get(f"/v1/zones/{zone_id}/records")
        assert response.status_code == 200
        assert sorted(linked_ids(response)) == sorted(record_ids)

    def test_add_moves_record(self, client):
        source = create_zone(client, "a.example.com")
        destination = create_zone(client, "b.example.com")
        record_id = create_record(client, source)

        response = client.post(f"/v1/zones/{destination}/records", content=identifier_body("records", record_id))
        assert response.status_code == 200
        assert response.json()["data"]["relationships"]["zone"]["data"] == {"type": "zones", "id": destination}
        assert client.get(f"/v1/zones/{source}/records").status_code == 404

    def test_remove_last_record(self, client):
        zone_id = create_zone(client, "martinez.io")
        record_id = create_record(client, zone_id)
        response = client.request("DELETE", f"/v1/zones/{zone_id}/records", content=identifier_body("records", record_id))
        assert response.status_code == 204
