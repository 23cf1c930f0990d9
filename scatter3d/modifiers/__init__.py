"""Modifier pipeline for computing placement transforms."""

from .modifiers import (
    BaseModifier,
    CreateInsideGrid,
    CreateInsideRandom,
    OffsetPosition,
    OffsetScale,
    RandomizeTransforms,
    MODIFIERS,
    get_modifier,
    list_modifiers,
)
from .stack import ModifierStack

__all__ = [
    "BaseModifier",
    "CreateInsideGrid",
    "CreateInsideRandom",
    "OffsetPosition",
    "OffsetScale",
    "RandomizeTransforms",
    "MODIFIERS",
    "get_modifier",
    "list_modifiers",
    "ModifierStack",
]
