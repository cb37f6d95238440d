"""FormKey value object identifying a record across the load order."""

from __future__ import annotations

import re
from dataclasses import dataclass

_FORM_ID_PATTERN = re.compile(r"^[0-9A-Fa-f]{1,6}$")


@dataclass(frozen=True, order=True)
class FormKey:
    """Stable record identity: local id plus the plugin that defines it.

    The string form is ``012345:Skyrim.esm``. The local id is always stored as
    six upper-case hex digits so keys compare and hash consistently.
    """

    form_id: str
    plugin: str

    def __post_init__(self) -> None:
        if not _FORM_ID_PATTERN.match(self.form_id):
            raise ValueError(f"Invalid form id: {self.form_id!r}")
        if not self.plugin:
            raise ValueError("FormKey requires a plugin name")
        object.__setattr__(self, "form_id", self.form_id.upper().zfill(6))

    @classmethod
    def parse(cls, value: str) -> FormKey:
        """Parse ``<form id>:<plugin>``."""
        form_id, sep, plugin = value.strip().partition(":")
        if not sep:
            raise ValueError(f"Invalid FormKey (expected '<id>:<plugin>'): {value!r}")
        return cls(form_id=form_id.strip(), plugin=plugin.strip())

    @property
    def asset_stem(self) -> str:
        """File stem used by facegen assets (load-order byte zeroed)."""
        return f"00{self.form_id}"

    def __str__(self) -> str:
        return f"{self.form_id}:{self.plugin}"
