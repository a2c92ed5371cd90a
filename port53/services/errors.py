"""
Error taxonomy for port53
Every error raised to the HTTP layer derives from Port53Error and carries its status code
"""

from typing import List, Optional


class Port53Error(Exception):
    """Base class for errors rendered as plain-text responses"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(Port53Error):
    """Referenced entity or association endpoint does not exist"""
    status_code = 404

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class ConflictError(Port53Error):
    """Unique constraint violation, points at the existing resource"""
    status_code = 409

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.location = location


class BadRequestError(Port53Error):
    """Malformed request body or query string"""
    status_code = 400


class MalformedQueryError(BadRequestError):
    """A query parameter is present but cannot be interpreted"""

    def __init__(self, field: str, token: str, reason: str = "invalid value"):
        self.field = field
        self.token = token
        super().__init__(f"invalid query parameters: {reason} for {field}: '{token}'")


class InvalidEncodingError(BadRequestError):
    """Percent-encoding in the raw query string is broken"""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"invalid query parameters: invalid URL escape '{token}'")
