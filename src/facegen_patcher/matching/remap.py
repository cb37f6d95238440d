"""Voice type remapping for NPCs that switch to a female face."""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Final

DEFAULT_VOICE_MAP: Final[dict[str, str]] = {
    "MaleArgonian": "FemaleArgonian",
    "MaleBandit": "FemaleCommoner",
    "MaleBrute": "FemaleCommander",
    "MaleChild": "FemaleChild",
    "MaleCommander": "FemaleCommander",
    "MaleCommoner": "FemaleCommoner",
    "MaleCommonerAccented": "FemaleCommoner",
    "MaleCondescending": "FemaleCondescending",
    "MaleCoward": "FemaleCoward",
    "MaleDarkElf": "FemaleDarkElf",
    "MaleDrunk": "FemaleSultry",
    "MaleElfHaughty": "FemaleElfHaughty",
    "MaleEvenToned": "FemaleEvenToned",
    "MaleEvenTonedAccented": "FemaleEvenToned",
    "MaleGuard": "FemaleCommander",
    "MaleKhajiit": "FemaleKhajiit",
    "MaleNord": "FemaleNord",
    "MaleNordCommander": "FemaleNord",
    "MaleOldGrumpy": "FemaleOldGrumpy",
    "MaleOldKindly": "FemaleOldKindly",
    "MaleOrc": "FemaleOrc",
    "MaleSlyCynical": "FemaleSultry",
    "MaleSoldier": "FemaleCommander",
    "MaleUniqueGhost": "FemaleUniqueGhost",
    "MaleWarlock": "FemaleCondescending",
    "MaleYoungEager": "FemaleYoungEager",
    "DLC1MaleVampire": "DLC1FemaleVampire",
    "DLC2MaleDarkElfCommoner": "DLC2FemaleDarkElfCommoner",
    "DLC2MaleDarkElfCynical": "FemaleDarkElf",
}

_RACE_VOICES: Final[dict[str, tuple[str, ...]]] = {
    "Nord": ("FemaleNord", "FemaleEvenToned", "FemaleCommander"),
    "DarkElf": ("FemaleDarkElf", "DLC2FemaleDarkElfCommoner", "FemaleCondescending"),
    "Argonian": ("FemaleArgonian", "FemaleSultry"),
    "Khajiit": ("FemaleKhajiit", "FemaleSultry"),
    "HighElf": ("FemaleElfHaughty", "FemaleEvenToned"),
    "WoodElf": ("FemaleEvenToned", "FemaleYoungEager"),
    "Breton": ("FemaleEvenToned", "FemaleYoungEager"),
    "Imperial": ("FemaleEvenToned", "FemaleCommander"),
    "Redguard": ("FemaleEvenToned", "FemaleSultry"),
    "Orc": ("FemaleOrc", "FemaleCommander"),
}

# Vampire variants share their base race's voices
DEFAULT_RACE_FALLBACKS: Final[dict[str, tuple[str, ...]]] = {
    f"{name}{suffix}": voices
    for name, voices in _RACE_VOICES.items()
    for suffix in ("Race", "RaceVampire")
}


class VoiceRemapTable:
    """Picks a female voice for a target given its current voice and race.

    A direct mapping of the current voice wins; otherwise a voice is drawn
    uniformly from the race's fallback list. Both tables are frozen at
    construction.
    """

    def __init__(
        self,
        direct: Mapping[str, str],
        fallbacks: Mapping[str, Sequence[str]],
    ) -> None:
        self._direct: Mapping[str, str] = MappingProxyType(dict(direct))
        self._fallbacks: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {race: tuple(voices) for race, voices in fallbacks.items() if voices}
        )

    @classmethod
    def default(cls) -> VoiceRemapTable:
        return cls(DEFAULT_VOICE_MAP, DEFAULT_RACE_FALLBACKS)

    def remap(self, voice: str | None, race: str | None, rng: random.Random) -> str | None:
        """Return the replacement voice, or None if nothing applies."""
        if voice is None:
            return None
        mapped = self._direct.get(voice)
        if mapped is not None:
            return mapped
        choices = self._fallbacks.get(race or "")
        if not choices:
            return None
        return choices[rng.randrange(len(choices))]
