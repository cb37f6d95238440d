"""Record models for the facegen patcher."""

from facegen_patcher.models.base import Base
from facegen_patcher.models.enums import MatchStatus, VisualPart
from facegen_patcher.models.form_key import FormKey
from facegen_patcher.models.npc import CONFIGURATION_FIELDS, NpcRecord
from facegen_patcher.models.voice_type import VoiceTypeRecord

__all__ = [
    "Base",
    "CONFIGURATION_FIELDS",
    "FormKey",
    "MatchStatus",
    "NpcRecord",
    "VisualPart",
    "VoiceTypeRecord",
]
