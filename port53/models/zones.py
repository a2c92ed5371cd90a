"""
Zone Management Models for port53
SOA-like zone attributes with their fixed defaults
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


# Signed 32-bit upper bound used by DNS timers
MAX_TIMER = 2147483647
# Serials are unsigned 32-bit
MAX_SERIAL = 4294967295


class ZoneCreate(BaseModel):
    """Attributes accepted when creating a zone"""
    name: Optional[str] = Field(default=None, max_length=255, description="Zone name (e.g., example.com)")
    ttl: int = Field(default=3600, ge=0, le=MAX_TIMER, description="Default TTL")
    mname: str = Field(default="@", max_length=255, description="Primary nameserver")
    rname: str = Field(default="admin", max_length=255, description="Responsible person")
    serial: int = Field(default=1, ge=0, le=MAX_SERIAL, description="Zone serial")
    refresh: int = Field(default=3600, ge=0, le=MAX_TIMER, description="Refresh interval")
    retry: int = Field(default=600, ge=0, le=MAX_TIMER, description="Retry interval")
    expire: int = Field(default=604800, ge=0, le=MAX_TIMER, description="Expire time")
    minimum: int = Field(default=3600, ge=0, le=MAX_TIMER, description="Negative caching TTL")

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v):
        # Remove trailing dot for consistency
        return v.strip().rstrip(".") if v is not None else v


class ZonePatch(BaseModel):
    """Attributes present in an update request, unset fields are left alone"""
    name: Optional[str] = Field(default=None, max_length=255)
    ttl: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)
    mname: Optional[str] = Field(default=None, max_length=255)
    rname: Optional[str] = Field(default=None, max_length=255)
    serial: Optional[int] = Field(default=None, ge=0, le=MAX_SERIAL)
    refresh: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)
    retry: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)
    expire: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)
    minimum: Optional[int] = Field(default=None, ge=0, le=MAX_TIMER)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v):
        return v.strip().rstrip(".") if v is not None else v
