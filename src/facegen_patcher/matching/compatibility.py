"""Race compatibility clusters.

A target may take a template from any race in its cluster. Clusters are
symmetric: every member expands to the whole cluster, itself included.
Races without a cluster only match themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Final

DEFAULT_RACE_CLUSTERS: Final[tuple[tuple[str, ...], ...]] = (
    ("NordRace", "NordRaceVampire", "HothRace"),
    ("DarkElfRace", "DarkElfRaceVampire", "_00DwemerRace", "MASNerevarineRace"),
    ("ArgonianRace", "ArgonianRaceVampire"),
    ("KhajiitRace", "KhajiitRaceVampire"),
    ("HighElfRace", "HighElfRaceVampire", "SnowElfRace", "WB_ConjureCraftlord_Race"),
    ("WoodElfRace", "WoodElfRaceVampire"),
    ("BretonRace", "BretonRaceVampire"),
    ("ImperialRace", "ImperialRaceVampire"),
    ("RedguardRace", "RedguardRaceVampire"),
    ("OrcRace", "OrcRaceVampire"),
    ("ElderRace", "ElderRaceVampire"),
    ("DremoraRace",),
    ("DA13AfflictedRace",),
)


class CompatibilityTable:
    """Explicit race → compatible races mapping."""

    def __init__(self, mapping: Mapping[str, tuple[str, ...]]) -> None:
        for race, compatible in mapping.items():
            if race not in compatible:
                raise ValueError(f"{race} must be compatible with itself")
            for other in compatible:
                if set(mapping.get(other, (other,))) != set(compatible):
                    raise ValueError(f"Compatibility of {race} and {other} is not symmetric")
        self._mapping: Mapping[str, tuple[str, ...]] = MappingProxyType(dict(mapping))

    @classmethod
    def from_clusters(cls, clusters: Iterable[Iterable[str]]) -> CompatibilityTable:
        """Build the table so every member of a cluster lists the whole cluster.

        Raises:
            ValueError: If a race appears in more than one cluster.
        """
        mapping: dict[str, tuple[str, ...]] = {}
        for cluster in clusters:
            members = tuple(dict.fromkeys(cluster))
            for race in members:
                if race in mapping:
                    raise ValueError(f"Race {race!r} appears in more than one cluster")
                mapping[race] = members
        return cls(mapping)

    @classmethod
    def default(cls) -> CompatibilityTable:
        return cls.from_clusters(DEFAULT_RACE_CLUSTERS)

    def expand(self, race: str) -> tuple[str, ...]:
        return self._mapping.get(race, (race,))

    def __contains__(self, race: object) -> bool:
        return race in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)
