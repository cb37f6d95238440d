"""Line-delimited configuration lists.

Each list is a plain text file with one entry per line. Blank lines and
lines starting with ``#`` are ignored; surrounding whitespace is stripped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from facegen_patcher.config import ConfigurationError, Settings
from facegen_patcher.models.enums import VisualPart

logger = logging.getLogger(__name__)


def load_list(path: Path, *, required: bool) -> list[str]:
    """Read a configuration list, preserving file order.

    Raises:
        ConfigurationError: If ``required`` and the file does not exist.
    """
    if not path.is_file():
        if required:
            raise ConfigurationError(f"Required configuration list not found: {path}")
        logger.info("Optional list %s not found; treating as empty", path)
        return []

    entries: list[str] = []
    for raw in path.read_text(encoding="utf-8-sig").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return entries


def parse_parts(entries: list[str]) -> frozenset[VisualPart]:
    """Map part names to ``VisualPart``; unknown names are rejected."""
    by_value = {part.value.lower(): part for part in VisualPart}
    parts: set[VisualPart] = set()
    for entry in entries:
        part = by_value.get(entry.lower())
        if part is None:
            known = ", ".join(p.value for p in VisualPart)
            raise ConfigurationError(f"Unknown part {entry!r} in parts list (known: {known})")
        parts.add(part)
    return frozenset(parts)


@dataclass(frozen=True)
class ConfigurationLists:
    """The four lists a patch run is configured with."""

    races: frozenset[str]
    parts: frozenset[VisualPart]
    blacklist: frozenset[str]
    target_plugins: frozenset[str]
    """Empty means the whole load order is in scope."""

    @property
    def whole_load_order(self) -> bool:
        return not self.target_plugins

    @classmethod
    def load(cls, settings: Settings) -> ConfigurationLists:
        """Load every list named by ``settings``.

        Raises:
            ConfigurationError: If the races or parts list is missing, or
                the parts list names an unknown part.
        """
        races = frozenset(load_list(settings.races_path, required=True))
        parts = parse_parts(load_list(settings.parts_path, required=True))
        blacklist = frozenset(load_list(settings.blacklist_path, required=False))
        targets = frozenset(load_list(settings.target_plugins_path, required=False))

        if targets:
            logger.info("Patching %d target plugin(s): %s", len(targets), ", ".join(sorted(targets)))
        else:
            logger.info("No target plugins listed; patching entire load order")

        return cls(races=races, parts=parts, blacklist=blacklist, target_plugins=targets)
