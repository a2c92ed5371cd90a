"""
DNS Record Models for port53
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .zones import MAX_TIMER


class RecordCreate(BaseModel):
    """Attributes accepted when creating a record, the zone comes from relationships"""
    name: Optional[str] = Field(default=None, max_length=255, description="Record name")
    ttl: int = Field(default=3600, ge=0, le=MAX_TIMER, description="Time to live")
    type: Optional[str] = Field(default=None, max_length=16, description="Record type (A, AAAA, MX, ...)")
    content: str = Field(default="", description="Record data")

    @field_validator("type")
    @classmethod
    def uppercase_type(cls, v):
        return v.strip().upper() if v is not None else v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if v is not None else v


class RecordPatch(BaseModel):
    """Attributes present in an update request, unset fields are left alone"""
    name: Optional[str] = Field(default=None, max_length=255)
    ttl: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)
    type: Optional[str] = Field(default=None, max_length=16)
    content: Optional[str] = None

    @field_validator("type")
    @classmethod
    def uppercase_type(cls, v):
        return v.strip().upper() if v is not None else v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if v is not None else v
