"""
port53 - JSON:API service for DNS backends, zones and records
"""

__version__ = "1.0.0"
