"""
port53 Service Layer
Query language, pagination, storage, associations and the JSON:API codec
"""

from .errors import (
    Port53Error, NotFoundError, ConflictError, BadRequestError,
    MalformedQueryError, InvalidEncodingError,
)
from .query import Query, parse_query, serialize_query
from .pagination import Page, LinkSet, new_page, compute_links
from .associations import AssociationManager, RelationKind
from .store import ResourceStore, ConstraintViolation
from .validation import ValidationService, get_validation_service

__all__ = [
    "Port53Error",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
    "MalformedQueryError",
    "InvalidEncodingError",
    "Query",
    "parse_query",
    "serialize_query",
    "Page",
    "LinkSet",
    "new_page",
    "compute_links",
    "AssociationManager",
    "RelationKind",
    "ResourceStore",
    "ConstraintViolation",
    "ValidationService",
    "get_validation_service",
]
