"""
Core logic package.

Provides MIME negotiation, JSON mapping and type conversion shared by the
function catalog.
"""

from .conversion import ConversionService, TypeConverter
from .json_mapper import JsonMapper, PydanticJsonMapper, PydanticOptions, StdlibJsonMapper
from .mime import MimeType

__all__ = [
    "ConversionService",
    "TypeConverter",
    "JsonMapper",
    "PydanticJsonMapper",
    "PydanticOptions",
    "StdlibJsonMapper",
    "MimeType",
]
