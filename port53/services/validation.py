"""
Validation Service for port53
Checks zone and record attributes before anything is written
"""

import re
from typing import Optional, List, Dict, Any, Tuple
import dns.exception
import dns.name
import dns.rdatatype

from .errors import BadRequestError


LABEL = re.compile(r'^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$')
# Allow underscore for special records like _dmarc, _dkim
SERVICE_LABEL = re.compile(r'^_?[a-zA-Z0-9]([a-zA-Z0-9_-]*[a-zA-Z0-9])?$')

# Meta types that can never be stored in a zone
META_TYPES = {"ANY", "AXFR", "IXFR", "OPT", "TKEY", "TSIG", "MAILA", "MAILB"}


class ValidationService:
    """Attribute validation, returns (is_valid, error) pairs"""

    # =========================================================================
    # DNS Name Validation
    # =========================================================================

    def validate_hostname(self, hostname: str, allow_wildcard: bool = True) -> Tuple[bool, str]:
        """
        Validate DNS hostname/label
        Returns: (is_valid, error_message)
        """
        if not hostname:
            return False, "Hostname cannot be empty"

        # Handle special cases
        if hostname == "@":
            return True, ""

        if hostname == "*" and allow_wildcard:
            return True, ""

        if hostname.startswith("*.") and allow_wildcard:
            hostname = hostname[2:]  # Validate rest of name

        # Remove trailing dot if present
        hostname = hostname.rstrip(".")

        try:
            dns.name.from_text(hostname)
        except dns.exception.DNSException as e:
            return False, f"Invalid name '{hostname}': {e}"

        for label in hostname.split("."):
            if not LABEL.match(label) and not SERVICE_LABEL.match(label):
                return False, f"Invalid characters in label: '{label}'"

        return True, ""

    def validate_zone_name(self, zone_name: str) -> Tuple[bool, str]:
        """Validate zone name"""
        if not zone_name:
            return False, "Zone name cannot be empty"

        valid, error = self.validate_hostname(zone_name.rstrip("."), allow_wildcard=False)
        if not valid:
            return False, f"Invalid zone name: {error}"

        return True, ""

    # =========================================================================
    # DNS Record Validation
    # =========================================================================

    def validate_record_type(self, record_type: str) -> Tuple[bool, str]:
        """Validate DNS record type"""
        if not record_type:
            return False, "Type is required"
        try:
            rdtype = dns.rdatatype.from_text(record_type)
        except dns.rdatatype.UnknownRdatatype:
            return False, f"Unknown record type: '{record_type}'"
        if dns.rdatatype.to_text(rdtype) in META_TYPES:
            return False, f"Record type '{record_type}' cannot be stored in a zone"
        return True, ""

    def validate_ttl(self, ttl: int) -> Tuple[bool, str]:
        """Validate TTL value"""
        if ttl < 0:
            return False, f"TTL cannot be negative: {ttl}"
        if ttl > 2147483647:  # Max signed 32-bit int
            return False, f"TTL too large: {ttl} > 2147483647"
        return True, ""

    # =========================================================================
    # Resource Validation
    # =========================================================================

    def validate_zone(self, attributes: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate the zone attributes that are present"""
        errors = []
        if "name" in attributes:
            valid, error = self.validate_zone_name(attributes["name"])
            if not valid:
                errors.append(error)
        for field in ("ttl", "minimum"):
            if attributes.get(field) is not None:
                valid, error = self.validate_ttl(attributes[field])
                if not valid:
                    errors.append(error)
        return len(errors) == 0, errors

    def validate_record(self, attributes: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate the record attributes that are present"""
        errors = []
        if "name" in attributes:
            valid, error = self.validate_hostname(attributes["name"])
            if not valid:
                errors.append(error)
        if "type" in attributes:
            valid, error = self.validate_record_type(attributes["type"])
            if not valid:
                errors.append(error)
        if attributes.get("ttl") is not None:
            valid, error = self.validate_ttl(attributes["ttl"])
            if not valid:
                errors.append(error)
        return len(errors) == 0, errors


def check_zone(attributes: Dict[str, Any]) -> None:
    """Raise BadRequestError if the zone attributes are invalid"""
    valid, errors = get_validation_service().validate_zone(attributes)
    if not valid:
        raise BadRequestError("; ".join(errors))


def check_record(attributes: Dict[str, Any]) -> None:
    """Raise BadRequestError if the record attributes are invalid"""
    valid, errors = get_validation_service().validate_record(attributes)
    if not valid:
        raise BadRequestError("; ".join(errors))


# Singleton instance
_validation_service: Optional[ValidationService] = None


def get_validation_service() -> ValidationService:
    """Get validation service instance"""
    global _validation_service
    if _validation_service is None:
        _validation_service = ValidationService()
    return _validation_service
