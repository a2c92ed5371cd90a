"""Builders for JSON:API request bodies used across the API tests."""

import json
from typing import Dict, List, Optional

from port53.database import new_identifier


JSONAPI_HEADERS = {"Content-Type": "application/vnd.api+json"}


def resource_body(
    resource_type: str,
    attributes: Optional[Dict] = None,
    resource_id: Optional[str] = None,
    relationships: Optional[Dict] = None,
) -> str:
    data = {"type": resource_type, "attributes": attributes or {}}
    if resource_id is not None:
        data["id"] = resource_id
    if relationships is not None:
        data["relationships"] = relationships
    return json.dumps({"data": data})


def identifier_body(resource_type: str, resource_id: Optional[str]) -> str:
    data = {"type": resource_type}
    if resource_id is not None:
        data["id"] = resource_id
    return json.dumps({"data": data})


def identifiers_body(resource_type: str, resource_ids: List[str]) -> str:
    return json.dumps({"data": [{"type": resource_type, "id": rid} for rid in resource_ids]})


def create_backend(client, name: str, backend_id: Optional[str] = None) -> str:
    backend_id = backend_id or new_identifier()
    response = client.post(
        "/v1/backends",
        content=resource_body("backends", {"name": name}, backend_id),
        headers=JSONAPI_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


def create_zone(client, name: str, zone_id: Optional[str] = None, **attributes) -> str:
    zone_id = zone_id or new_identifier()
    response = client.post(
        "/v1/zones",
        content=resource_body("zones", {"name": name, **attributes}, zone_id),
        headers=JSONAPI_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


def create_record(client, zone_id: str, name: str = "www", record_type: str = "A", content: str = "192.0.2.1") -> str:
    response = client.post(
        "/v1/records",
        content=resource_body(
            "records",
            {"name": name, "type": record_type, "content": content},
            relationships={"zone": {"data": {"type": "zones", "id": zone_id}}},
        ),
        headers=JSONAPI_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


def linked_ids(response) -> List[str]:
    data = response.json()["data"]
    if isinstance(data, dict):
        return [data["id"]]
    return [item["id"] for item in data]
