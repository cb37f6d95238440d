"""Template pools: admitted donors per race, and donors proven during a run."""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from facegen_patcher.matching.assets import AssetExistenceCache
from facegen_patcher.models.npc import NpcRecord

logger = logging.getLogger(__name__)


class TemplatePool:
    """Admitted templates grouped by race, in encounter order. Read-only."""

    def __init__(self, by_race: Mapping[str, Iterable[NpcRecord]]) -> None:
        self._by_race: Mapping[str, tuple[NpcRecord, ...]] = MappingProxyType(
            {race: tuple(templates) for race, templates in by_race.items()}
        )

    def templates_for(self, races: Iterable[str]) -> list[NpcRecord]:
        """Union of the pools of ``races`` as a fresh, caller-owned list."""
        out: list[NpcRecord] = []
        for race in races:
            out.extend(self._by_race.get(race, ()))
        return out

    def races(self) -> list[str]:
        return sorted(self._by_race)

    def counts(self) -> dict[str, int]:
        return {race: len(self._by_race[race]) for race in self.races()}

    def __len__(self) -> int:
        return sum(len(t) for t in self._by_race.values())


@dataclass(frozen=True)
class TemplatePoolBuilder:
    """Decides which female NPCs may donate their face.

    A template is admitted when it is female, its race is eligible, and
    either it is reference content (``exception_race`` from
    ``reference_plugin``, assumed to ship its facegen) or its plugin is not
    blacklisted and both facegen files exist.
    """

    eligible_races: frozenset[str]
    blacklist: frozenset[str] = frozenset()
    exception_race: str = "DA13AfflictedRace"
    reference_plugin: str = "Skyrim.esm"

    def is_reference(self, npc: NpcRecord) -> bool:
        return npc.race == self.exception_race and npc.origin_plugin == self.reference_plugin

    def admits(self, npc: NpcRecord, cache: AssetExistenceCache) -> bool:
        if not npc.female or npc.race not in self.eligible_races:
            return False
        if self.is_reference(npc):
            return True
        return npc.origin_plugin not in self.blacklist and cache.get(npc.form_key).complete

    def build(self, npcs: Iterable[NpcRecord], cache: AssetExistenceCache) -> TemplatePool:
        by_race: dict[str, list[NpcRecord]] = defaultdict(list)
        for npc in npcs:
            if self.admits(npc, cache):
                by_race[npc.race].append(npc)  # type: ignore[index]

        pool = TemplatePool(by_race)
        logger.info("Collected %d templates for %d races", len(pool), len(pool.races()))
        for race, count in pool.counts().items():
            logger.debug("Found %d female templates for race %s", count, race)
        return pool


class ProvenPool:
    """Templates that fully provisioned a target earlier in this run.

    Keyed by the *target's* race. Only grows; used as a last resort.
    """

    def __init__(self) -> None:
        self._by_race: dict[str, list[NpcRecord]] = defaultdict(list)

    def register(self, race: str, template: NpcRecord) -> None:
        self._by_race[race].append(template)

    def pick(self, race: str, rng: random.Random) -> NpcRecord | None:
        templates = self._by_race.get(race)
        if not templates:
            return None
        return templates[rng.randrange(len(templates))]

    def count(self, race: str) -> int:
        return len(self._by_race.get(race, ()))

    def __len__(self) -> int:
        return sum(len(t) for t in self._by_race.values())
