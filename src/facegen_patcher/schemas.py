"""Pydantic schemas for the JSON record dump.

A dump is an export of the relevant NPC and voice type records of a load
order. It is the only way records enter the store; the binary plugin format
itself is never read.

Example::

    {
      "load_order": ["Skyrim.esm", "MyMod.esp"],
      "npcs": [
        {"plugin": "Skyrim.esm", "form_key": "01A694:Skyrim.esm",
         "editor_id": "Ulfric", "race": "NordRace", "voice": "MaleNord"}
      ],
      "voice_types": [{"plugin": "Skyrim.esm", "editor_id": "FemaleNord"}]
    }
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, model_validator

from facegen_patcher.models.form_key import FormKey


def _validate_form_key(v: Any) -> str:
    """Normalize a FormKey string (raises ValueError when unparsable)."""
    if isinstance(v, FormKey):
        return str(v)
    return str(FormKey.parse(str(v)))


class ConfigurationBlock(BaseModel):
    """Level, stat offsets and flags of an NPC."""

    level: Any = 1
    calc_min_level: int = 0
    calc_max_level: int = 0
    health_offset: int = 0
    magicka_offset: int = 0
    stamina_offset: int = 0
    disposition_base: int = 35
    flags: list[str] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]


class NpcDump(BaseModel):
    """One NPC record as written by one plugin."""

    plugin: str = Field(description="Plugin this version of the record comes from")
    form_key: Annotated[str, BeforeValidator(_validate_form_key)]
    editor_id: str | None = None
    race: str | None = None
    female: bool = False
    voice: str | None = None

    head_parts: list[str] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    worn_armor: str | None = None
    texture_lighting: list[float] | None = None
    face_morph: dict[str, Any] | None = None
    face_parts: dict[str, Any] | None = None
    tint_layers: list[dict[str, Any]] | None = None
    head_texture: str | None = None
    hair_color: str | None = None
    height: float = 1.0
    weight: float = 50.0

    configuration: ConfigurationBlock = Field(default_factory=ConfigurationBlock)
    keywords: list[str] | None = None
    items: list[dict[str, Any]] | None = None
    packages: list[str] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    perks: list[dict[str, Any]] | None = None
    factions: list[dict[str, Any]] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    @property
    def key(self) -> FormKey:
        return FormKey.parse(self.form_key)


class VoiceTypeDump(BaseModel):
    plugin: str
    editor_id: str


class RecordDump(BaseModel):
    """A full export: load order plus the records it defines."""

    load_order: list[str] = Field(min_length=1)
    npcs: list[NpcDump] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    voice_types: list[VoiceTypeDump] = Field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    @model_validator(mode="after")
    def _check_load_order(self) -> RecordDump:
        if len(set(self.load_order)) != len(self.load_order):
            raise ValueError("load_order contains duplicate plugins")
        return self
