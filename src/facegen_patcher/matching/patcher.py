"""Writes template attributes into a patch override.

The patch override starts as a copy of the winning record. Game-state
attributes are then re-taken from the prior override so they are never lost,
and the selected visual attributes are taken from the template.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from facegen_patcher.models.enums import VisualPart
from facegen_patcher.models.npc import CONFIGURATION_FIELDS, NpcRecord

# Parts copied only when the template actually has a value
_PRESENCE_GATED = frozenset({VisualPart.FACE_MORPH, VisualPart.TINT_LAYERS})

_PART_ATTRIBUTES: dict[VisualPart, str] = {
    VisualPart.HEAD_PARTS: "head_parts",
    VisualPart.WORN_ARMOR: "worn_armor",
    VisualPart.TEXTURE_LIGHTING: "texture_lighting",
    VisualPart.FACE_MORPH: "face_morph",
    VisualPart.FACE_PARTS: "face_parts",
    VisualPart.TINT_LAYERS: "tint_layers",
    VisualPart.HEAD_TEXTURE: "head_texture",
    VisualPart.HAIR_COLOR: "hair_color",
}


class OverridePatchApplier:
    """Applies carry-forward, template attributes and the patched marker."""

    def __init__(
        self,
        parts: Iterable[VisualPart],
        *,
        default_height: float = 1.0,
        default_weight: float = 50.0,
    ) -> None:
        # Keep declaration order so application is deterministic
        enabled = frozenset(parts)
        self.parts: tuple[VisualPart, ...] = tuple(p for p in VisualPart if p in enabled)
        self.default_height = default_height
        self.default_weight = default_weight

    def carry_forward(self, patched: NpcRecord, prior: NpcRecord | None) -> None:
        """Copy game-state attributes from ``prior`` onto ``patched``.

        Does nothing when there is no prior override. A field the prior
        override leaves unset clears the patched field.
        """
        if prior is None:
            return

        configuration = dict(patched.configuration or {})
        prior_configuration = prior.configuration or {}
        for field in CONFIGURATION_FIELDS:
            if field in prior_configuration:
                configuration[field] = copy.deepcopy(prior_configuration[field])
            else:
                configuration.pop(field, None)
        patched.configuration = configuration

        patched.keywords = list(prior.keywords or [])
        patched.items = copy.deepcopy(prior.items)
        patched.packages = list(prior.packages or [])
        patched.perks = copy.deepcopy(prior.perks)
        patched.factions = copy.deepcopy(prior.factions or [])

    def apply_template(self, patched: NpcRecord, template: NpcRecord) -> None:
        for part in self.parts:
            attribute = _PART_ATTRIBUTES[part]
            value = getattr(template, attribute)
            if part in _PRESENCE_GATED and value is None:
                continue
            if part is VisualPart.HEAD_PARTS:
                value = list(value or [])
            setattr(patched, attribute, copy.deepcopy(value))

        patched.female = True
        patched.height = template.height or self.default_height
        patched.weight = template.weight or self.default_weight

    def mark(self, patched: NpcRecord, keyword: str) -> None:
        if patched.has_keyword(keyword):
            return
        patched.keywords = [*(patched.keywords or []), keyword]
