"""
Common models and types used across the API
"""

from datetime import datetime
from typing import Dict
from pydantic import BaseModel, Field
from enum import Enum


class HealthStatus(str, Enum):
    """Health check status"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthCheck(BaseModel):
    """Health check response"""
    status: HealthStatus
    version: str
    uptime: float
    database_connected: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    checks: Dict[str, str] = {}
