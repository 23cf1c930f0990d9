"""Placement domain and shape regions."""

from .shapes import BaseShape, BoxShape, ScatterShape, SphereShape, SHAPES, get_shape
from .domain import Bounds, Domain, DomainShapeInfo

__all__ = [
    "BaseShape",
    "BoxShape",
    "ScatterShape",
    "SphereShape",
    "SHAPES",
    "get_shape",
    "Bounds",
    "Domain",
    "DomainShapeInfo",
]
