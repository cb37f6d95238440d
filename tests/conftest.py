"""Shared pytest fixtures for facegen patcher tests."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from facegen_patcher.db import init_db, make_engine, session_scope
from facegen_patcher.matching.assets import AssetLayout
from facegen_patcher.models import FormKey, NpcRecord

PATCH_PLUGIN = "FacegenPatcher.esp"
PATCHED_KEYWORD = "000800:FacegenPatcherKeywords.esp"


class InMemoryEntityStore:
    """Dict-backed entity store for engine tests.

    Rows are kept per FormKey in load order; the last row wins.
    """

    def __init__(self, npcs: Iterable[NpcRecord] = (), *, voice_types: Iterable[str] = ()) -> None:
        self.rows: dict[FormKey, list[NpcRecord]] = {}
        self.overrides: dict[FormKey, NpcRecord] = {}
        self._voice_types = frozenset(voice_types)
        self.commits = 0
        for npc in npcs:
            self.add(npc)

    def add(self, npc: NpcRecord) -> NpcRecord:
        self.rows.setdefault(npc.form_key, []).append(npc)
        return npc

    def enumerate(self) -> list[NpcRecord]:
        return [self.overrides.get(key, versions[-1]) for key, versions in self.rows.items()]

    def get_override(self, key: FormKey) -> NpcRecord:
        if key not in self.overrides:
            winner = self.rows[key][-1]
            self.overrides[key] = winner.clone_as_override(PATCH_PLUGIN, winner.load_index + 1)
        return self.overrides[key]

    def prior_override(self, key: FormKey) -> NpcRecord | None:
        versions = self.rows.get(key)
        return versions[-1] if versions else None

    def voice_types(self) -> frozenset[str]:
        return self._voice_types

    def commit(self) -> None:
        self.commits += 1


# Type aliases for factory fixtures
MakeNpc = Callable[..., NpcRecord]
WriteFacegen = Callable[..., None]


@pytest.fixture
def make_npc() -> MakeNpc:
    """Factory fixture for creating transient NpcRecord instances."""
    ids = itertools.count(0x10000)

    def _make(
        *,
        form_id: str | None = None,
        origin_plugin: str = "Skyrim.esm",
        plugin: str | None = None,
        load_index: int = 0,
        editor_id: str | None = None,
        race: str = "NordRace",
        female: bool = False,
        voice: str | None = None,
        height: float = 1.0,
        weight: float = 50.0,
        keywords: list[str] | None = None,
        **attributes: Any,
    ) -> NpcRecord:
        form_id = form_id or f"{next(ids):06X}"
        values: dict[str, Any] = {
            "head_parts": [],
            "worn_armor": None,
            "texture_lighting": None,
            "face_morph": None,
            "face_parts": None,
            "tint_layers": None,
            "head_texture": None,
            "hair_color": None,
            "configuration": {"level": 1, "flags": []},
            "items": None,
            "packages": [],
            "perks": None,
            "factions": [],
        }
        values.update(attributes)
        return NpcRecord(
            origin_plugin=origin_plugin,
            form_id=form_id,
            plugin=plugin or origin_plugin,
            load_index=load_index,
            editor_id=editor_id or f"Npc{form_id}",
            race=race,
            female=female,
            voice=voice,
            height=height,
            weight=weight,
            keywords=keywords,
            **values,
        )

    return _make


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Data"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def write_facegen(data_dir: Path) -> WriteFacegen:
    """Create facegen files for an NPC under the Data folder."""
    layout = AssetLayout(data_dir)

    def _write(npc: NpcRecord, *, mesh: bool = True, tint: bool = True) -> None:
        if mesh:
            path = layout.mesh_path(npc.form_key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"nif:" + npc.form_id.encode())
        if tint:
            path = layout.tint_path(npc.form_key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"dds:" + npc.form_id.encode())

    return _write


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite record store with tables created."""
    engine = make_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    with session_scope(engine) as session:
        yield session
