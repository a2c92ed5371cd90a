"""API tests for how failures are rendered.

Covers:
- 4xx bodies are short text/plain messages
- unrecognized errors are 500 with the raw message
"""

import pytest


pytestmark = pytest.mark.api


class TestClientErrors:
    def test_invalid_escape_is_plain_text(self, client):
        response = client.get("/v1/zones?filter[name]=%zz")
        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert "invalid URL escape" in response.text


class TestServerErrors:
    @pytest.mark.parametrize("path", ["/v1/zones", "/v1/backends", "/v1/records"])
    def test_storage_failure_returns_raw_message(self, unavailable_client, path):
        response = unavailable_client.get(path)
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Database is not open"
