"""Entity store: enumerate winning NPC records and write patch overrides.

The matching engine only sees the ``EntityStore`` protocol. ``SqlEntityStore``
implements it on top of the SQLAlchemy record tables, where every plugin's
version of a record is a separate row and the highest ``load_index`` wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from facegen_patcher.models.form_key import FormKey
from facegen_patcher.models.npc import NpcRecord
from facegen_patcher.models.voice_type import VoiceTypeRecord
from facegen_patcher.schemas import NpcDump, RecordDump

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Port: record access needed by the matching engine."""

    def enumerate(self) -> list[NpcRecord]:
        """Winning override of every NPC, patch plugin included."""
        ...

    def get_override(self, key: FormKey) -> NpcRecord:
        """Mutable patch-plugin override for ``key``, created on first use."""
        ...

    def prior_override(self, key: FormKey) -> NpcRecord | None:
        """Winning override ignoring the patch plugin, if any."""
        ...

    def voice_types(self) -> frozenset[str]:
        """EditorIDs of the voice types available in the load order."""
        ...

    def commit(self) -> None: ...


class SqlEntityStore:
    """``EntityStore`` backed by the ``npc_records`` table.

    Usage:
        with session_scope(engine) as session:
            store = SqlEntityStore(session, patch_plugin="FacegenPatcher.esp")
            for npc in store.enumerate():
                ...
            store.commit()
    """

    def __init__(self, session: Session, *, patch_plugin: str) -> None:
        self._session = session
        self._patch_plugin = patch_plugin
        self._patch_load_index: int | None = None
        self._voice_types: frozenset[str] | None = None

    @property
    def patch_plugin(self) -> str:
        return self._patch_plugin

    def enumerate(self) -> list[NpcRecord]:
        stmt = select(NpcRecord).order_by(
            NpcRecord.origin_plugin,
            NpcRecord.form_id,
            NpcRecord.load_index,
            NpcRecord.id,
        )
        winners: dict[tuple[str, str], NpcRecord] = {}
        patched: dict[tuple[str, str], NpcRecord] = {}
        for row in self._session.scalars(stmt):
            key = (row.origin_plugin, row.form_id)
            if row.plugin == self._patch_plugin:
                patched[key] = row
            else:
                # Rows arrive in ascending load order; the last one wins
                winners[key] = row
        # The patch always loads last, even after a re-import shifted indices
        winners.update(patched)
        return list(winners.values())

    def get_override(self, key: FormKey) -> NpcRecord:
        existing = self._session.scalar(
            self._key_query(key).where(NpcRecord.plugin == self._patch_plugin)
        )
        if existing is not None:
            return existing

        winner = self._session.scalar(
            self._key_query(key).order_by(NpcRecord.load_index.desc()).limit(1)
        )
        if winner is None:
            raise KeyError(f"No record for {key}")

        override = winner.clone_as_override(self._patch_plugin, self._next_patch_index())
        self._session.add(override)
        logger.debug("Created override for %s in %s", key, self._patch_plugin)
        return override

    def prior_override(self, key: FormKey) -> NpcRecord | None:
        return self._session.scalar(
            self._key_query(key)
            .where(NpcRecord.plugin != self._patch_plugin)
            .order_by(NpcRecord.load_index.desc())
            .limit(1)
        )

    def voice_types(self) -> frozenset[str]:
        if self._voice_types is None:
            self._voice_types = frozenset(
                self._session.scalars(select(VoiceTypeRecord.editor_id).distinct())
            )
        return self._voice_types

    def commit(self) -> None:
        self._session.commit()

    # ─────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _key_query(key: FormKey):
        return select(NpcRecord).where(
            NpcRecord.origin_plugin == key.plugin,
            NpcRecord.form_id == key.form_id,
        )

    def _next_patch_index(self) -> int:
        """Patch rows sit after every imported plugin."""
        if self._patch_load_index is None:
            highest = self._session.scalar(
                select(func.max(NpcRecord.load_index)).where(
                    NpcRecord.plugin != self._patch_plugin
                )
            )
            self._patch_load_index = (highest or 0) + 1
        return self._patch_load_index


# ─────────────────────────────────────────────────────────────────────────────
# Import
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ImportSummary:
    npcs: int
    voice_types: int
    plugins: tuple[str, ...]


def _npc_from_dump(npc: NpcDump, load_index: int) -> NpcRecord:
    key = npc.key
    return NpcRecord(
        origin_plugin=key.plugin,
        form_id=key.form_id,
        plugin=npc.plugin,
        load_index=load_index,
        editor_id=npc.editor_id,
        race=npc.race,
        female=npc.female,
        voice=npc.voice,
        head_parts=list(npc.head_parts),
        worn_armor=npc.worn_armor,
        texture_lighting=npc.texture_lighting,
        face_morph=npc.face_morph,
        face_parts=npc.face_parts,
        tint_layers=npc.tint_layers,
        head_texture=npc.head_texture,
        hair_color=npc.hair_color,
        height=npc.height,
        weight=npc.weight,
        configuration=npc.configuration.model_dump(),
        keywords=npc.keywords,
        items=npc.items,
        packages=list(npc.packages),
        perks=npc.perks,
        factions=list(npc.factions),
    )


def import_dump(session: Session, dump: RecordDump, *, replace: bool = False) -> ImportSummary:
    """Load a validated dump into the store.

    Rows from plugins present in the dump are replaced; rows from other
    plugins are kept but re-indexed against the dump's load order.

    Args:
        session: Open session; committed on success.
        dump: Validated record dump.
        replace: Clear the whole store first.

    Raises:
        ValueError: If a record names a plugin missing from ``load_order``.
    """
    positions = {plugin: index for index, plugin in enumerate(dump.load_order)}
    for npc in dump.npcs:
        if npc.plugin not in positions:
            raise ValueError(f"{npc.form_key} comes from {npc.plugin}, which is not in load_order")

    if replace:
        session.execute(delete(NpcRecord))
        session.execute(delete(VoiceTypeRecord))

    plugins = {npc.plugin for npc in dump.npcs} | {vt.plugin for vt in dump.voice_types}
    if plugins:
        session.execute(delete(NpcRecord).where(NpcRecord.plugin.in_(plugins)))
        session.execute(delete(VoiceTypeRecord).where(VoiceTypeRecord.plugin.in_(plugins)))

    for plugin, index in positions.items():
        session.execute(
            update(NpcRecord).where(NpcRecord.plugin == plugin).values(load_index=index)
        )

    session.add_all(_npc_from_dump(npc, positions[npc.plugin]) for npc in dump.npcs)
    session.add_all(
        VoiceTypeRecord(editor_id=vt.editor_id, plugin=vt.plugin) for vt in dump.voice_types
    )
    session.commit()

    logger.info(
        "Imported %d NPC rows and %d voice types from %d plugin(s)",
        len(dump.npcs),
        len(dump.voice_types),
        len(plugins),
    )
    return ImportSummary(
        npcs=len(dump.npcs),
        voice_types=len(dump.voice_types),
        plugins=tuple(sorted(plugins)),
    )
