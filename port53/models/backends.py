"""
Backend Models for port53
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class BackendCreate(BaseModel):
    """Attributes accepted when creating a backend"""
    name: Optional[str] = Field(default=None, max_length=255, description="Backend name, unique")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if v is not None else v


class BackendPatch(BaseModel):
    """Attributes present in an update request, unset fields are left alone"""
    name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if v is not None else v
