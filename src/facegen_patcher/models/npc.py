"""NPC record model: one row per plugin that defines or overrides an NPC."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from facegen_patcher.models.base import Base
from facegen_patcher.models.form_key import FormKey

# Keys of the configuration block carried forward from a prior override
CONFIGURATION_FIELDS: tuple[str, ...] = (
    "level",
    "calc_min_level",
    "calc_max_level",
    "health_offset",
    "magicka_offset",
    "stamina_offset",
    "disposition_base",
    "flags",
)


class NpcRecord(Base):
    """A single version of an NPC record as written by one plugin.

    ``origin_plugin`` + ``form_id`` form the record's FormKey; ``plugin`` is
    the plugin this row came from. The row with the highest ``load_index``
    for a FormKey is the winning override.

    Nullable JSON columns keep "no value" (None) apart from "empty" ([]), so
    carrying fields forward from a prior override can reproduce either.
    """

    __tablename__ = "npc_records"
    __table_args__ = (UniqueConstraint("origin_plugin", "form_id", "plugin"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    origin_plugin: Mapped[str] = mapped_column(String(260), index=True)
    form_id: Mapped[str] = mapped_column(String(6), index=True)
    plugin: Mapped[str] = mapped_column(String(260), index=True)
    load_index: Mapped[int] = mapped_column(Integer, default=0)

    editor_id: Mapped[str | None] = mapped_column(String(512))
    race: Mapped[str | None] = mapped_column(String(512), index=True)
    female: Mapped[bool] = mapped_column(Boolean, default=False)
    voice: Mapped[str | None] = mapped_column(String(512))

    # Visual attributes (copied from templates)
    head_parts: Mapped[list[str]] = mapped_column(JSON, default=list)
    worn_armor: Mapped[str | None] = mapped_column(String(512))
    texture_lighting: Mapped[list[float] | None] = mapped_column(JSON)
    face_morph: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    face_parts: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    tint_layers: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    head_texture: Mapped[str | None] = mapped_column(String(512))
    hair_color: Mapped[str | None] = mapped_column(String(512))
    height: Mapped[float] = mapped_column(Float, default=1.0)
    weight: Mapped[float] = mapped_column(Float, default=50.0)

    # Game-state attributes (carried forward from prior overrides)
    configuration: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    keywords: Mapped[list[str] | None] = mapped_column(JSON)
    items: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    packages: Mapped[list[str]] = mapped_column(JSON, default=list)
    perks: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    factions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def form_key(self) -> FormKey:
        return FormKey(form_id=self.form_id, plugin=self.origin_plugin)

    @property
    def label(self) -> str:
        """Human-readable identity for logs and reports."""
        return f"{self.editor_id or 'Unnamed'} ({self.form_id})"

    def has_keyword(self, keyword: str) -> bool:
        return keyword in (self.keywords or [])

    def clone_as_override(self, plugin: str, load_index: int) -> NpcRecord:
        """Deep-copy this row as a new override written by ``plugin``."""
        return NpcRecord(
            origin_plugin=self.origin_plugin,
            form_id=self.form_id,
            plugin=plugin,
            load_index=load_index,
            editor_id=self.editor_id,
            race=self.race,
            female=self.female,
            voice=self.voice,
            head_parts=list(self.head_parts or []),
            worn_armor=self.worn_armor,
            texture_lighting=copy.deepcopy(self.texture_lighting),
            face_morph=copy.deepcopy(self.face_morph),
            face_parts=copy.deepcopy(self.face_parts),
            tint_layers=copy.deepcopy(self.tint_layers),
            head_texture=self.head_texture,
            hair_color=self.hair_color,
            height=self.height,
            weight=self.weight,
            configuration=copy.deepcopy(self.configuration or {}),
            keywords=None if self.keywords is None else list(self.keywords),
            items=copy.deepcopy(self.items),
            packages=list(self.packages or []),
            perks=copy.deepcopy(self.perks),
            factions=copy.deepcopy(self.factions or []),
        )

    def __repr__(self) -> str:
        return f"<NpcRecord {self.form_key} from {self.plugin}>"
