"""
JSON:API document models
https://jsonapi.org/format/#document-structure
"""

from typing import Optional, List, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field


class ResourceIdentifier(BaseModel):
    """Resource linkage: type and id only"""
    type: str
    id: str


class Relationship(BaseModel):
    """Relationship object, data is an identifier, a list of them, or null"""
    data: Union[List[ResourceIdentifier], ResourceIdentifier, None] = None
    links: Optional[Dict[str, str]] = None
    meta: Optional[Dict[str, Any]] = None


class ResourceObject(BaseModel):
    """Resource object, id is optional for client-generated creates"""
    type: str
    id: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    relationships: Dict[str, Relationship] = Field(default_factory=dict)
    links: Optional[Dict[str, str]] = None
    meta: Optional[Dict[str, Any]] = None


class Links(BaseModel):
    """Top-level links, previous is serialized as prev"""
    model_config = ConfigDict(populate_by_name=True)

    self_link: Optional[str] = Field(default=None, alias="self")
    first: Optional[str] = None
    prev: Optional[str] = None
    next: Optional[str] = None
    last: Optional[str] = None


class Document(BaseModel):
    """Top-level document, data is required"""
    data: Union[List[ResourceObject], ResourceObject, None]
    included: Optional[List[ResourceObject]] = None
    links: Optional[Links] = None
    meta: Optional[Dict[str, Any]] = None
