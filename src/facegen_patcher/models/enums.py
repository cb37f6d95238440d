"""Enumerations for the facegen patcher data model."""

from enum import Enum


class VisualPart(str, Enum):
    """Visual attribute groups that can be copied from a template.

    Values are the names used in the parts configuration list.
    """

    HEAD_PARTS = "PNAM"
    WORN_ARMOR = "WNAM"
    TEXTURE_LIGHTING = "QNAM"
    FACE_MORPH = "NAM9"
    FACE_PARTS = "NAMA"
    TINT_LAYERS = "Tint Layers"
    HEAD_TEXTURE = "FTST"
    HAIR_COLOR = "HCLF"


class MatchStatus(str, Enum):
    """Outcome of matching one target NPC."""

    MATCHED = "matched"  # Primary template with complete facegen
    FALLBACK = "fallback"  # Reused a template proven earlier in the run
    UNPATCHED = "unpatched"  # Nothing usable; record left unchanged
