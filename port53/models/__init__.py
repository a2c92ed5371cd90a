"""
Models for port53
JSON:API documents and per-resource attribute schemas
"""

from .jsonapi import *
from .backends import *
from .zones import *
from .records import *
from .common import *
