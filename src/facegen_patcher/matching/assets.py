"""Facegen asset paths and the existence cache.

Every NPC's face is backed by two loose files in the Data folder:

    meshes/actors/character/facegendata/facegeom/<plugin>/00<id>.nif
    textures/actors/character/facegendata/facetint/<plugin>/00<id>.dds

The cache probes both once per candidate before matching starts. Matching
only ever reads it; an unknown key means "assets missing".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import NamedTuple

from facegen_patcher.models.form_key import FormKey
from facegen_patcher.models.npc import NpcRecord

logger = logging.getLogger(__name__)

_FACEGEN_DIR = ("actors", "character", "facegendata")


@dataclass(frozen=True)
class AssetLayout:
    """Facegen path convention rooted at a Data-like folder."""

    root: Path

    def mesh_path(self, key: FormKey) -> Path:
        return self.root.joinpath("meshes", *_FACEGEN_DIR, "facegeom", key.plugin, f"{key.asset_stem}.nif")

    def tint_path(self, key: FormKey) -> Path:
        return self.root.joinpath("textures", *_FACEGEN_DIR, "facetint", key.plugin, f"{key.asset_stem}.dds")


class AssetFlags(NamedTuple):
    """Existence of the two facegen files for one NPC."""

    mesh: bool
    tint: bool

    @property
    def complete(self) -> bool:
        return self.mesh and self.tint


MISSING = AssetFlags(mesh=False, tint=False)


def _exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


class AssetExistenceCache:
    """Read-only map of FormKey → ``AssetFlags``.

    Built once with ``build``; safe to share between threads afterwards.
    """

    def __init__(self, entries: Mapping[FormKey, AssetFlags]) -> None:
        self._entries: Mapping[FormKey, AssetFlags] = MappingProxyType(dict(entries))

    @classmethod
    def build(
        cls,
        candidates: Iterable[NpcRecord],
        layout: AssetLayout,
        *,
        workers: int = 1,
    ) -> AssetExistenceCache:
        """Probe facegen existence for every candidate.

        Args:
            candidates: NPCs that may serve as templates.
            layout: Source Data folder layout.
            workers: Probe threads; 1 probes inline.
        """
        keys = list(dict.fromkeys(npc.form_key for npc in candidates))

        def probe(key: FormKey) -> AssetFlags:
            return AssetFlags(mesh=_exists(layout.mesh_path(key)), tint=_exists(layout.tint_path(key)))

        if workers > 1 and len(keys) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                flags = list(pool.map(probe, keys))
        else:
            flags = [probe(key) for key in keys]

        cache = cls(dict(zip(keys, flags)))
        logger.info(
            "Cached facegen existence for %d NPCs (%d complete)",
            len(cache),
            sum(1 for f in flags if f.complete),
        )
        return cache

    def get(self, key: FormKey) -> AssetFlags:
        return self._entries.get(key, MISSING)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ArchiveIndex:
    """Detects plugins whose assets ship packed in a ``.bsa`` archive.

    The patcher cannot read archives, so donors from such plugins are
    skipped. Each plugin is probed at most once.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._known: dict[str, bool] = {}

    def archive_path(self, plugin: str) -> Path:
        return self._data_dir / f"{Path(plugin).stem}.bsa"

    def is_archive_only(self, plugin: str) -> bool:
        if plugin not in self._known:
            self._known[plugin] = _exists(self.archive_path(plugin))
        return self._known[plugin]
