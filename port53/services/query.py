"""
JSON:API query string language
Parses filter, fields, include, sort and page parameters and serializes them back

https://jsonapi.org/format/#fetching
"""

import re
from typing import Dict, List, Optional
from urllib.parse import quote, unquote_plus
from pydantic import BaseModel, Field

from .errors import MalformedQueryError, InvalidEncodingError


FILTER_KEY = re.compile(r"^filter\[(.+)\]$")
FIELDS_KEY = re.compile(r"^fields\[(.+)\]$")
PAGE_KEY = re.compile(r"^page\[(number|size|limit|offset)\]$")
INTEGER = re.compile(r"^-?[0-9]+$")
BROKEN_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

DEFAULT_PAGE_NUMBER = 0
DEFAULT_PAGE_SIZE = 10


class Include(BaseModel):
    """Relation registered by include= or fields[...]"""
    fields: List[str] = Field(default_factory=list)


class PageParams(BaseModel):
    """Requested page, zero based"""
    number: int = DEFAULT_PAGE_NUMBER
    size: int = DEFAULT_PAGE_SIZE


class Query(BaseModel):
    """Structured form of a request query string"""
    filters: Dict[str, List[str]] = Field(default_factory=dict)
    includes: Dict[str, Include] = Field(default_factory=dict)
    sort: List[str] = Field(default_factory=list)
    page: Optional[PageParams] = None

    @classmethod
    def parse(cls, raw: Optional[str], default_page_size: int = DEFAULT_PAGE_SIZE) -> "Query":
        return parse_query(raw, default_page_size)

    def serialize(self) -> str:
        return serialize_query(self)

    def without_page(self) -> "Query":
        return self.model_copy(update={"page": None}, deep=True)


# =============================================================================
# Parsing
# =============================================================================

def _unescape(token: str) -> str:
    if BROKEN_ESCAPE.search(token):
        raise InvalidEncodingError(token)
    try:
        return unquote_plus(token, errors="strict")
    except UnicodeDecodeError:
        raise InvalidEncodingError(token)


def _split_csv(raw_value: str) -> List[str]:
    """Split before unescaping so an escaped comma stays inside its item"""
    items = []
    for item in raw_value.split(","):
        item = _unescape(item).strip()
        if item:
            items.append(item)
    return items


def _parse_int(field: str, raw_value: str) -> int:
    value = _unescape(raw_value).strip()
    if not INTEGER.match(value):
        raise MalformedQueryError(field, value)
    return int(value)


def parse_query(raw: Optional[str], default_page_size: int = DEFAULT_PAGE_SIZE) -> Query:
    """
    Parse a raw (still percent-encoded) query string.

    Unrecognized or malformed pairs are skipped. Page values must be
    integers, anything else fails the whole parse. A page without a
    size or limit gets default_page_size.
    """
    query = Query()
    if not raw:
        return query

    page_values: Dict[str, int] = {}

    for pair in raw.split("&"):
        if not pair:
            continue
        raw_key, sep, raw_value = pair.partition("=")
        key = _unescape(raw_key)

        page_match = PAGE_KEY.match(key)
        if page_match:
            page_values[page_match.group(1)] = _parse_int(key, raw_value)
            continue

        if not sep:
            continue

        filter_match = FILTER_KEY.match(key)
        if filter_match:
            query.filters.setdefault(filter_match.group(1), []).append(_unescape(raw_value))
            continue

        fields_match = FIELDS_KEY.match(key)
        if fields_match:
            include = query.includes.setdefault(fields_match.group(1), Include())
            include.fields = _split_csv(raw_value)
            continue

        if key == "include":
            for name in _split_csv(raw_value):
                query.includes.setdefault(name, Include())
        elif key == "sort":
            query.sort = _split_csv(raw_value)

    if page_values:
        query.page = _resolve_page(page_values, default_page_size)

    return query


def _resolve_page(values: Dict[str, int], default_size: int) -> PageParams:
    """Fold number/size and offset/limit into a zero based page"""
    size = values.get("size", values.get("limit", default_size))
    if size <= 0:
        key = "page[size]" if "size" in values else "page[limit]"
        raise MalformedQueryError(key, str(size), "must be greater than zero")

    if "number" in values:
        key, raw_number = "page[number]", values["number"]
        number = raw_number
    else:
        key, raw_number = "page[offset]", values.get("offset", DEFAULT_PAGE_NUMBER)
        number = raw_number // size
    if raw_number < 0:
        raise MalformedQueryError(key, str(raw_number), "must not be negative")

    return PageParams(number=number, size=size)


# =============================================================================
# Serialization
# =============================================================================

def _escape(value: str) -> str:
    return quote(value, safe="")


def serialize_query(query: Query) -> str:
    """Canonical query string, the inverse of parse_query"""
    parts: List[str] = []

    for field, values in query.filters.items():
        for value in values:
            parts.append(f"filter[{_escape(field)}]={_escape(value)}")

    if query.includes:
        parts.append("include=" + ",".join(_escape(name) for name in query.includes))
        for name, include in query.includes.items():
            if include.fields:
                parts.append(
                    f"fields[{_escape(name)}]=" + ",".join(_escape(f) for f in include.fields)
                )

    if query.sort:
        parts.append("sort=" + ",".join(_escape(name) for name in query.sort))

    if query.page is not None:
        parts.append(f"page[size]={query.page.size}")
        parts.append(f"page[number]={query.page.number}")

    return "&".join(parts)
