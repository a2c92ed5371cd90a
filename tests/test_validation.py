"""Unit tests for zone and record attribute validation."""

import pytest

from port53.services.errors import BadRequestError
from port53.services.validation import ValidationService, check_record, check_zone


@pytest.fixture
def validator():
    return ValidationService()


class TestHostnames:
    @pytest.mark.parametrize("name", ["@", "*", "www", "*.example.com", "_dmarc", "mail.example.com."])
    def test_valid(self, validator, name):
        assert validator.validate_hostname(name) == (True, "")

    @pytest.mark.parametrize("name", ["", "-bad.example.com", "bad..example.com", "sp ace.example.com"])
    def test_invalid(self, validator, name):
        valid, error = validator.validate_hostname(name)
        assert not valid
        assert error

    def test_wildcard_not_allowed_in_zone_name(self, validator):
        valid, _ = validator.validate_zone_name("*.example.com")
        assert not valid


class TestRecordTypes:
    @pytest.mark.parametrize("record_type", ["A", "AAAA", "MX", "TXT", "SRV", "CAA"])
    def test_known_types(self, validator, record_type):
        assert validator.validate_record_type(record_type) == (True, "")

    def test_unknown_type(self, validator):
        valid, error = validator.validate_record_type("BOGUS")
        assert not valid
        assert "BOGUS" in error

    def test_meta_type_rejected(self, validator):
        valid, _ = validator.validate_record_type("AXFR")
        assert not valid


def test_check_zone_accepts_partial_attributes():
    check_zone({"ttl": 60})
    check_zone({"name": "martinez.io", "minimum": 300})


def test_check_zone_rejects_bad_name():
    with pytest.raises(BadRequestError) as exc_info:
        check_zone({"name": "bad..name"})
    assert "Invalid zone name" in exc_info.value.message


def test_check_record_collects_every_error():
    with pytest.raises(BadRequestError) as exc_info:
        check_record({"name": "-x", "type": "BOGUS", "ttl": -1})
    assert exc_info.value.message.count(";") == 2


def test_check_record_requires_type():
    with pytest.raises(BadRequestError, match="Type is required"):
        check_record({"name": "www", "type": None})
