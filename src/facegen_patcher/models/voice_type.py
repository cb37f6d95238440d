"""Voice type model."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from facegen_patcher.models.base import Base


class VoiceTypeRecord(Base):
    """A voice type available in the load order, referenced by EditorID."""

    __tablename__ = "voice_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    editor_id: Mapped[str] = mapped_column(String(512), index=True)
    plugin: Mapped[str] = mapped_column(String(260), index=True)
