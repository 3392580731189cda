"""
Parsing of raw, loosely-typed network records

- CoordinateNormalizer: any coordinate encoding -> (lng, lat)
- PropertyParser: stringified/absent attribute bags -> canonical maps
- KMZConverter: KMZ parse responses -> ingestion payloads
"""

from .coordinates import (
    Coordinate,
    CoordinateNormalizer,
    InvalidCoordinate,
    SENTINEL,
    LAT_LNG,
    LNG_LAT,
    is_sentinel,
    valid_coordinates,
)
from .properties import PropertyParser, KNOWN_FIELDS, is_null_value
from .kmz import KMZConverter, convert_kmz, validate_converted

__all__ = [
    "Coordinate",
    "CoordinateNormalizer",
    "InvalidCoordinate",
    "SENTINEL",
    "LAT_LNG",
    "LNG_LAT",
    "is_sentinel",
    "valid_coordinates",
    "PropertyParser",
    "KNOWN_FIELDS",
    "is_null_value",
    "KMZConverter",
    "convert_kmz",
    "validate_converted",
]
